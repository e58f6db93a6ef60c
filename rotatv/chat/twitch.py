"""
Twitch chat transport on top of twitchio.

Chat arrives through an EventSub websocket subscription for every joined
channel and replies go out through the Helix send-message endpoint. Both
are driven by a ``twitchio.ext.commands.Bot``; command dispatch itself is
left to CommandRouter so the console transport behaves the same way.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

import twitchio
from twitchio import eventsub
from twitchio.ext import commands

from rotatv.chat.base import ChatMessage, ChatTransport
from rotatv.errors import CollaboratorError

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 500


def channel_login(destination: str) -> str:
    """``#RotaTV`` -> ``rotatv``."""
    return destination.lstrip("#").lower()


def chunk_text(text: str, size: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """Split a long reply into sendable pieces."""
    if not text:
        return []
    return [text[i:i + size] for i in range(0, len(text), size)]


def to_chat_message(payload: Any, bot_user_id: str) -> Optional[ChatMessage]:
    """
    Convert a twitchio chat message payload.

    Returns None for the bot's own lines and for empty text.
    """
    chatter = payload.chatter
    if str(getattr(chatter, "id", "")) == bot_user_id:
        return None
    text = (payload.text or "").strip()
    if not text:
        return None
    return ChatMessage(sender=chatter.name, destination=f"#{payload.broadcaster.name}", text=text)


class RotationChatBot(commands.Bot):
    """twitchio bot that hands every chat line to an inbox queue."""

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        bot_id: str,
        token: str,
        refresh_token: str,
        channels: List[str],
        prefix: str,
        inbox: asyncio.Queue,
    ):
        super().__init__(
            client_id=client_id,
            client_secret=client_secret,
            bot_id=str(bot_id),
            prefix=prefix,
            fetch_client_user=False,
        )
        self.bot_user_id = str(bot_id)
        self.channel_logins = list(channels)
        self.broadcasters: Dict[str, Any] = {}
        self.ready_event = asyncio.Event()
        self._user_token = token
        self._refresh_token = refresh_token
        self._inbox = inbox

    async def load_tokens(self, path: Optional[str] = None) -> None:
        await self.add_token(self._user_token, self._refresh_token)

    async def save_tokens(self, path: Optional[str] = None) -> None:
        # Tokens live in the config file.
        return None

    async def event_token_refreshed(self, payload: Any) -> None:
        self._user_token = payload.token
        self._refresh_token = payload.refresh_token
        logger.info("Twitch user token refreshed")

    async def setup_hook(self) -> None:
        users = await self.fetch_users(logins=self.channel_logins)
        for user in users:
            self.broadcasters[user.name.lower()] = user
            subscription = eventsub.ChatMessageSubscription(
                broadcaster_user_id=user.id,
                user_id=self.bot_user_id,
            )
            await self.subscribe_websocket(payload=subscription, as_bot=True)
            logger.info(f"Subscribed to chat in #{user.name}")

        missing = set(self.channel_logins) - set(self.broadcasters)
        if missing:
            logger.warning(f"Unknown Twitch channels: {', '.join(sorted(missing))}")

    async def event_ready(self) -> None:
        logger.info(f"Twitch bot ready (user id {self.bot_user_id})")
        self.ready_event.set()

    async def event_message(self, payload: Any) -> None:
        message = to_chat_message(payload, self.bot_user_id)
        if message is not None:
            await self._inbox.put(message)


class TwitchChatTransport(ChatTransport):
    """Chat over Twitch EventSub and Helix, via RotationChatBot."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        bot_id: str,
        token: str,
        refresh_token: str,
        channels: List[str],
        prefix: str = "!",
        connect_timeout: float = 30.0,
        bot_factory: Optional[Callable[..., Any]] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.bot_id = str(bot_id)
        self.token = token.removeprefix("oauth:")
        self.refresh_token = refresh_token
        self.channels = [channel_login(c) for c in channels]
        self.prefix = prefix
        self.connect_timeout = connect_timeout

        self._bot_factory = bot_factory or RotationChatBot
        self._bot: Optional[Any] = None
        self._bot_task: Optional[asyncio.Task] = None
        self._inbox: asyncio.Queue = asyncio.Queue()

    @property
    def connected(self) -> bool:
        return self._bot is not None and self._bot.ready_event.is_set()

    async def connect(self) -> None:
        if not all((self.client_id, self.client_secret, self.bot_id, self.token, self.refresh_token)):
            raise CollaboratorError(
                "chat", "Twitch client_id, client_secret, bot_id, token and refresh_token are required"
            )

        logger.info(f"Connecting Twitch bot {self.bot_id} to {', '.join(self.channels)}")
        self._bot = self._bot_factory(
            client_id=self.client_id,
            client_secret=self.client_secret,
            bot_id=self.bot_id,
            token=self.token,
            refresh_token=self.refresh_token,
            channels=self.channels,
            prefix=self.prefix,
            inbox=self._inbox,
        )
        self._bot_task = asyncio.create_task(self._bot.start())
        ready = asyncio.create_task(self._bot.ready_event.wait())

        done, _ = await asyncio.wait(
            {self._bot_task, ready}, timeout=self.connect_timeout, return_when=asyncio.FIRST_COMPLETED
        )
        if ready in done:
            return

        ready.cancel()
        cause: Optional[BaseException] = None
        if self._bot_task in done and not self._bot_task.cancelled():
            cause = self._bot_task.exception()
        await self.close()
        raise CollaboratorError("chat", f"Twitch bot did not become ready: {cause or 'timed out'}", cause)

    async def close(self) -> None:
        bot, task = self._bot, self._bot_task
        self._bot = None
        self._bot_task = None

        if bot is not None:
            try:
                await bot.close()
            except twitchio.TwitchioException as e:
                logger.warning(f"Error closing Twitch bot: {e}")

        if task is not None:
            if not task.done():
                task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning(f"Twitch bot stopped with an error: {e}")

        await self._inbox.put(None)

    async def send(self, destination: str, text: str) -> None:
        if self._bot is None:
            raise CollaboratorError("chat", "Not connected")

        broadcaster = self._bot.broadcasters.get(channel_login(destination))
        if broadcaster is None:
            raise CollaboratorError("chat", f"Not subscribed to {destination}")

        for chunk in chunk_text(text):
            try:
                await broadcaster.send_message(
                    chunk,
                    sender=self._bot.bot_user_id,
                    token_for=self._bot.bot_user_id,
                )
            except twitchio.HTTPException as e:
                raise CollaboratorError("chat", f"Send to {destination} failed: {e}", e) from e

    async def messages(self) -> AsyncIterator[ChatMessage]:
        while True:
            message = await self._inbox.get()
            if message is None:
                return
            yield message
