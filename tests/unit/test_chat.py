"""
Unit tests for chat transports, cooldowns and the bot loop.
"""

import asyncio
import io
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from rotatv.chat.base import ChatMessage, ChatTransport
from rotatv.chat.bot import ChatBot
from rotatv.chat.console import ConsoleChatTransport
from rotatv.chat.cooldowns import CooldownTracker
from rotatv.chat.twitch import TwitchChatTransport, channel_login, chunk_text, to_chat_message
from rotatv.errors import CollaboratorError
from tests.conftest import FakeClock


def chat_payload(sender: str, channel: str, text: str, sender_id: str = "100") -> SimpleNamespace:
    """Shape of a twitchio chat message payload."""
    return SimpleNamespace(
        chatter=SimpleNamespace(id=sender_id, name=sender),
        broadcaster=SimpleNamespace(id="1", name=channel),
        text=text,
    )


@pytest.mark.unit
class TestToChatMessage:
    """Tests for converting twitchio payloads."""

    def test_viewer_message(self):
        message = to_chat_message(chat_payload("viewer", "rotatv", " !vote 2 "), bot_user_id="42")

        assert message.sender == "viewer"
        assert message.destination == "#rotatv"
        assert message.text == "!vote 2"

    def test_own_messages_dropped(self):
        assert to_chat_message(chat_payload("rotabot", "rotatv", "hi", sender_id="42"), bot_user_id="42") is None

    def test_empty_text_dropped(self):
        assert to_chat_message(chat_payload("viewer", "rotatv", "   "), bot_user_id="42") is None

    def test_channel_login(self):
        assert channel_login("#RotaTV") == "rotatv"
        assert channel_login("control") == "control"


@pytest.mark.unit
class TestChunkText:
    """Tests for splitting long replies."""

    def test_short_text(self):
        assert chunk_text("hello") == ["hello"]

    def test_long_text(self):
        chunks = chunk_text("x" * 1200)

        assert [len(c) for c in chunks] == [500, 500, 200]

    def test_empty(self):
        assert chunk_text("") == []


class FakeTwitchBot:
    """Becomes ready when started and runs until closed, like RotationChatBot."""

    def __init__(self, *, bot_id, channels, inbox, fail_with=None, **kwargs):
        self.bot_user_id = bot_id
        self.channels = channels
        self.inbox = inbox
        self.kwargs = kwargs
        self.fail_with = fail_with
        self.ready_event = asyncio.Event()
        self.broadcasters = {name: MagicMock(send_message=AsyncMock()) for name in channels}
        self.closed = False
        self._stopped = asyncio.Event()

    async def start(self):
        if self.fail_with is not None:
            raise self.fail_with
        self.ready_event.set()
        await self._stopped.wait()

    async def close(self):
        self.closed = True
        self._stopped.set()


def twitch_transport(fail_with=None, **overrides) -> TwitchChatTransport:
    bots = []

    def factory(**kwargs):
        bot = FakeTwitchBot(fail_with=fail_with, **kwargs)
        bots.append(bot)
        return bot

    options = dict(
        client_id="cid",
        client_secret="secret",
        bot_id="42",
        token="oauth:abc",
        refresh_token="refresh",
        channels=["RotaTV", "#control"],
        prefix="!",
        connect_timeout=1.0,
    )
    options.update(overrides)
    transport = TwitchChatTransport(bot_factory=factory, **options)
    transport.bots = bots
    return transport


@pytest.mark.unit
class TestTwitchTransport:
    """Tests for TwitchChatTransport with a stand-in bot."""

    async def test_connect_passes_credentials(self):
        transport = twitch_transport()

        await transport.connect()

        bot = transport.bots[0]
        assert transport.connected
        assert bot.channels == ["rotatv", "control"]
        assert bot.kwargs["token"] == "abc"
        assert bot.kwargs["prefix"] == "!"
        await transport.close()
        assert bot.closed
        assert not transport.connected

    async def test_send_chunks_to_broadcaster(self):
        transport = twitch_transport()
        await transport.connect()

        await transport.send("#RotaTV", "y" * 600)

        send_message = transport.bots[0].broadcasters["rotatv"].send_message
        assert send_message.await_count == 2
        assert send_message.await_args_list[0].kwargs == {"sender": "42", "token_for": "42"}
        await transport.close()

    async def test_send_to_unknown_channel(self):
        transport = twitch_transport()
        await transport.connect()

        with pytest.raises(CollaboratorError):
            await transport.send("#elsewhere", "hi")
        await transport.close()

    async def test_send_before_connect(self):
        with pytest.raises(CollaboratorError):
            await twitch_transport().send("#rotatv", "hi")

    async def test_missing_credentials(self):
        transport = twitch_transport(client_secret="")

        with pytest.raises(CollaboratorError):
            await transport.connect()
        assert transport.bots == []

    async def test_bot_start_failure(self):
        transport = twitch_transport(fail_with=RuntimeError("invalid token"))

        with pytest.raises(CollaboratorError) as exc_info:
            await transport.connect()

        assert "invalid token" in str(exc_info.value)
        assert not transport.connected

    async def test_close_ends_message_stream(self):
        transport = twitch_transport()
        await transport.connect()
        await transport.bots[0].inbox.put(ChatMessage("viewer", "#rotatv", "!queue"))
        await transport.close()

        received = [m async for m in transport.messages()]

        assert [m.text for m in received] == ["!queue"]


@pytest.mark.unit
class TestConsoleTransport:
    """Tests for ConsoleChatTransport."""

    async def test_reads_lines_as_messages(self):
        transport = ConsoleChatTransport(
            sender="admin", destination="#rotatv", stream_in=io.StringIO("!queue\n\n!current\n")
        )

        received = [m async for m in transport.messages()]

        assert [m.text for m in received] == ["!queue", "!current"]
        assert {m.sender for m in received} == {"admin"}

    async def test_send_prints(self):
        out = io.StringIO()
        transport = ConsoleChatTransport(stream_out=out)

        await transport.send("#rotatv", "Now Playing: X")

        assert out.getvalue() == "[#rotatv] Now Playing: X\n"


@pytest.mark.unit
class TestCooldownTracker:
    """Tests for CooldownTracker."""

    def test_remaining(self):
        clock = FakeClock()
        tracker = CooldownTracker(clock=clock)
        key = CooldownTracker.key("Viewer", "#RotaTV", "vote")
        tracker.place(key, 5)

        assert tracker.remaining(key) == 5
        clock.advance(3)
        assert tracker.remaining(key) == 2
        clock.advance(2)
        assert tracker.remaining(key) is None

    def test_key_is_case_insensitive(self):
        assert CooldownTracker.key("Viewer", "#A", "vote") == CooldownTracker.key("viewer", "#a", "vote")

    def test_zero_seconds_not_placed(self):
        tracker = CooldownTracker()
        tracker.place("k", 0)

        assert len(tracker) == 0

    def test_cleanup(self):
        clock = FakeClock()
        tracker = CooldownTracker(clock=clock)
        tracker.place("a", 1)
        tracker.place("b", 10)
        clock.advance(5)

        assert tracker.cleanup() == 1
        assert len(tracker) == 1


class ListTransport(ChatTransport):
    """In-memory transport feeding a fixed list of messages."""

    def __init__(self, messages):
        self._messages = list(messages)
        self.connected = False
        self.sent = []

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.connected = False

    async def send(self, destination: str, text: str) -> None:
        self.sent.append((destination, text))

    async def messages(self):
        for message in self._messages:
            yield message


@pytest.mark.unit
class TestChatBot:
    """Tests for ChatBot."""

    async def test_routes_every_message(self):
        transport = ListTransport([ChatMessage("a", "#c", "!queue"), ChatMessage("b", "#c", "!next")])
        router = MagicMock()
        router.handle = AsyncMock(return_value=None)
        bot = ChatBot(transport, router)

        await bot.run()

        assert router.handle.await_count == 2

    async def test_router_errors_do_not_stop_loop(self):
        transport = ListTransport([ChatMessage("a", "#c", "!x"), ChatMessage("b", "#c", "!y")])
        router = MagicMock()
        router.handle = AsyncMock(side_effect=[RuntimeError("boom"), None])
        bot = ChatBot(transport, router)

        await bot.run()

        assert router.handle.await_count == 2

    async def test_start_and_stop(self):
        transport = ListTransport([])
        bot = ChatBot(transport, MagicMock())

        await bot.start()
        assert transport.connected
        await asyncio.sleep(0)

        await bot.stop()
        assert not transport.connected
        assert not bot.is_running
