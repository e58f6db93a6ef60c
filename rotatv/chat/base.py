"""
Chat transport interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator


@dataclass(frozen=True)
class ChatMessage:
    """One inbound chat line."""

    sender: str
    destination: str
    text: str
    received_at: datetime = field(default_factory=datetime.now, compare=False)


class ChatTransport(ABC):
    """Base class for chat backends."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection and join the configured channels."""

    @abstractmethod
    async def close(self) -> None:
        """Disconnect and stop delivering messages."""

    @abstractmethod
    async def send(self, destination: str, text: str) -> None:
        """Send a line of text to a channel or user."""

    @abstractmethod
    def messages(self) -> AsyncIterator[ChatMessage]:
        """Inbound messages until the transport is closed."""
