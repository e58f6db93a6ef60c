"""
Chat bot loop: pumps transport messages into the command router.
"""

import asyncio
import logging
from typing import Optional

from rotatv.chat.base import ChatTransport
from rotatv.chat.commands import CommandRouter

logger = logging.getLogger(__name__)


class ChatBot:
    """Runs a CommandRouter over a ChatTransport in a background task."""

    def __init__(self, transport: ChatTransport, router: CommandRouter):
        self.transport = transport
        self.router = router
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.is_running:
            return
        await self.transport.connect()
        self._task = asyncio.create_task(self.run())
        logger.info("Chat bot started")

    async def stop(self) -> None:
        await self.transport.close()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Chat bot stopped")

    async def run(self) -> None:
        """Handle messages until the transport stops delivering them."""
        async for message in self.transport.messages():
            try:
                await self.router.handle(message)
            except Exception as e:
                logger.error(f"Unhandled error for message from {message.sender}: {e}", exc_info=True)
        logger.info("Chat transport closed")
