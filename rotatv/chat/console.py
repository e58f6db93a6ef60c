"""
Console chat transport for running without a chat server.

Each stdin line is delivered as a message from ``sender``; replies are
printed.
"""

import asyncio
import logging
import sys
from typing import AsyncIterator, Optional, TextIO

from rotatv.chat.base import ChatMessage, ChatTransport

logger = logging.getLogger(__name__)


class ConsoleChatTransport(ChatTransport):
    """stdin/stdout chat."""

    def __init__(
        self,
        sender: str = "console",
        destination: str = "#console",
        stream_in: Optional[TextIO] = None,
        stream_out: Optional[TextIO] = None,
    ):
        self.sender = sender
        self.destination = destination
        self._in = stream_in or sys.stdin
        self._out = stream_out or sys.stdout
        self._closed = False

    async def connect(self) -> None:
        logger.info(f"Console chat ready; lines are sent as {self.sender}")

    async def close(self) -> None:
        self._closed = True

    async def send(self, destination: str, text: str) -> None:
        print(f"[{destination}] {text}", file=self._out, flush=True)

    async def messages(self) -> AsyncIterator[ChatMessage]:
        loop = asyncio.get_running_loop()
        while not self._closed:
            try:
                line = await loop.run_in_executor(None, self._in.readline)
            except (OSError, ValueError) as e:
                logger.warning(f"Console input unavailable: {e}")
                return
            if not line:
                return
            text = line.rstrip("\n")
            if text:
                yield ChatMessage(sender=self.sender, destination=self.destination, text=text)
