"""
Chat command parsing and routing.

Messages look like ``<prefix><command> [args...]``. Admin commands need the
sender on the allow-list; user commands go through a per-user cooldown that
admins bypass. Ignored users and unknown commands are dropped silently.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

from rotatv.chat.base import ChatMessage
from rotatv.chat.cooldowns import CooldownTracker
from rotatv.config import AnnouncementConfig, ChatConfig
from rotatv.errors import UserInputError
from rotatv.playout.scheduler import RotationScheduler
from rotatv.voting.tally import VoteStatus

logger = logging.getLogger(__name__)

Sender = Callable[[str, str], Awaitable[None]]


@dataclass
class ParsedCommand:
    """A command split out of a chat line."""

    key: str
    args: List[str] = field(default_factory=list)
    message: Optional[ChatMessage] = None

    def arg(self, index: int) -> Optional[str]:
        return self.args[index] if index < len(self.args) else None


def parse_command(text: str, prefix: str) -> Optional[ParsedCommand]:
    """
    Split a chat line into a command keyword and arguments.

    Returns:
        None when the line is not a command.
    """
    if not prefix or not text.startswith(prefix):
        return None
    parts = text[len(prefix):].split()
    if not parts:
        return None
    return ParsedCommand(key=parts[0].lower(), args=parts[1:])


class CommandRouter:
    """Dispatches chat commands to the rotation scheduler."""

    ADMIN_COMMANDS = ("skip", "add", "clear", "startvote", "pausevote", "meme", "timer")
    USER_COMMANDS = ("vote", "queue", "current", "next", "vr", "room", "skip")

    def __init__(
        self,
        rotation: RotationScheduler,
        chat_config: ChatConfig,
        send: Sender,
        announcements: Optional[List[AnnouncementConfig]] = None,
        cooldowns: Optional[CooldownTracker] = None,
    ):
        self.rotation = rotation
        self.config = chat_config
        self.send = send
        self.announcements: Dict[str, AnnouncementConfig] = {a.name: a for a in announcements or []}
        self.cooldowns = cooldowns if cooldowns is not None else CooldownTracker()

        self._admins = {name.lower() for name in chat_config.admins}
        self._ignored = {name.lower() for name in chat_config.ignored_users}

        self._admin_handlers: Dict[str, Callable[[ParsedCommand], Awaitable[Optional[str]]]] = {
            "skip": self._admin_skip,
            "add": self._admin_add,
            "clear": self._admin_clear,
            "startvote": self._admin_startvote,
            "pausevote": self._admin_pausevote,
            "meme": self._admin_meme,
            "timer": self._admin_timer,
        }
        self._user_handlers: Dict[str, Callable[[ParsedCommand], Awaitable[Optional[str]]]] = {
            "vote": self._user_vote,
            "queue": self._user_queue,
            "current": self._user_current,
            "next": self._user_next,
            "vr": self._user_request,
            "room": self._user_room,
            "skip": self._user_skip,
        }

    def is_admin(self, sender: str) -> bool:
        return sender.lower() in self._admins

    async def handle(self, message: ChatMessage) -> Optional[str]:
        """
        Handle one inbound chat line.

        Returns:
            The reply sent back, if any.
        """
        if message.sender.lower() in self._ignored:
            return None

        command = parse_command(message.text, self.config.prefix)
        if command is None:
            return None
        command.message = message

        is_admin = self.is_admin(message.sender)
        if command.key not in self._admin_handlers and command.key not in self._user_handlers:
            return None

        cooldown_key = CooldownTracker.key(message.sender, message.destination, command.key)
        if not is_admin and self.cooldowns.remaining(cooldown_key) is not None:
            logger.debug(f"{message.sender} is on cooldown for {command.key}")
            return None

        if is_admin and command.key in self._admin_handlers:
            handler = self._admin_handlers[command.key]
        elif command.key in self._user_handlers:
            handler = self._user_handlers[command.key]
            if not is_admin:
                self.cooldowns.place(cooldown_key, self.config.default_user_cooldown)
        else:
            return None

        logger.info(f"Command {command.key} {command.args} from {message.sender} in {message.destination}")
        try:
            reply = await handler(command)
        except UserInputError as e:
            reply = str(e)
        except Exception as e:
            logger.error(f"Command {command.key} failed: {e}", exc_info=True)
            return None

        if reply:
            await self._reply(message.destination, reply)
        return reply

    async def _reply(self, destination: str, text: str) -> None:
        try:
            await self.send(destination, text)
        except Exception as e:
            logger.error(f"Could not send chat reply to {destination}: {e}")

    # Admin commands

    async def _admin_skip(self, command: ParsedCommand) -> Optional[str]:
        skipped = await self.rotation.skip()
        return f"Skipped {skipped.label}" if skipped else None

    async def _admin_add(self, command: ParsedCommand) -> Optional[str]:
        item_id = command.arg(0)
        if item_id is None:
            return "Missing video ID"
        item, position = await self.rotation.add(item_id)
        return f"{item.label} has been added to the queue [{position}]"

    async def _admin_clear(self, command: ParsedCommand) -> Optional[str]:
        removed = await self.rotation.clear_queue()
        return f"Queue cleared ({removed} removed)"

    async def _admin_startvote(self, command: ParsedCommand) -> Optional[str]:
        minutes = self.rotation.start_vote()
        return f"Video Queue Voting will start in {minutes} minutes!"

    async def _admin_pausevote(self, command: ParsedCommand) -> Optional[str]:
        self.rotation.pause_vote()
        return "Video Queue Voting has been paused."

    async def _admin_meme(self, command: ParsedCommand) -> Optional[str]:
        choice = await self.rotation.request_interstitial(command.arg(0))
        return f"{choice.item.label} will play at the next break"

    async def _admin_timer(self, command: ParsedCommand) -> Optional[str]:
        name = command.arg(0)
        if name is None:
            return "A timer name is required!"
        announcement = self.announcements.get(name)
        if announcement is None:
            return "Invalid timer name!"

        task_name = f"announce:{name}"
        tasks = self.rotation.tasks
        wanted = (command.arg(1) or "").lower()
        if wanted not in ("on", "off"):
            wanted = "off" if tasks.has_task(task_name) else "on"

        if wanted == "off":
            tasks.remove_task(task_name)
            return f"Timer {name} stopped"

        async def announce() -> None:
            await self._reply(self.config.channel, announcement.message)

        tasks.add_task(task_name, announce, announcement.interval)
        await announce()
        return f"Timer {name} started (every {announcement.interval}s)"

    # User commands

    async def _user_vote(self, command: ParsedCommand) -> Optional[str]:
        sender = command.message.sender if command.message else "?"
        raw = command.arg(0)
        if raw is None:
            await self.rotation.announce_vote()
            return None

        choices = self.rotation.tally.choices
        if not choices:
            return f"@{sender}, there is no vote running right now!"

        try:
            choice_index = int(raw)
        except ValueError:
            choice_index = 0

        status = await self.rotation.cast_vote(sender, choice_index)
        if status == VoteStatus.INVALID:
            return f"@{sender}, please choose an option from 1 - {len(choices)}!"
        if status == VoteStatus.CHANGED:
            return f"@{sender}, your vote has been updated!"
        if status == VoteStatus.UNCHANGED:
            return f"@{sender}, your vote is already in!"
        return f"@{sender}, your vote has been logged!"

    async def _user_queue(self, command: ParsedCommand) -> Optional[str]:
        items = self.rotation.queue_snapshot(10)
        if not items:
            return "No videos currently in queue!"
        return " | ".join(f"[{i}] {item.label}" for i, item in enumerate(items, start=1))

    async def _user_current(self, command: ParsedCommand) -> Optional[str]:
        current = self.rotation.current()
        if current is None:
            return "Nothing is playing right now!"
        return f"Now Playing: {current.label}"

    async def _user_next(self, command: ParsedCommand) -> Optional[str]:
        upcoming = self.rotation.next_up()
        if upcoming is None:
            return "No videos currently in queue!"
        return f"Next Video: {upcoming.label}"

    async def _user_request(self, command: ParsedCommand) -> Optional[str]:
        item_id = command.arg(0)
        if item_id is None:
            return f"Usage: {self.config.prefix}vr <video-id>"
        sender = command.message.sender if command.message else None
        item, position = await self.rotation.add(item_id, requested_by=sender)
        return f"{item.label} has been added to the queue [{position}]"

    async def _user_room(self, command: ParsedCommand) -> Optional[str]:
        room_id = command.arg(0)
        if room_id is None:
            return f"Usage: {self.config.prefix}room <room-id>"
        sender = command.message.sender if command.message else None
        item, position = await self.rotation.add_room(room_id, requested_by=sender)
        return f"Added {item.label} to the queue [{position}]!"

    async def _user_skip(self, command: ParsedCommand) -> Optional[str]:
        sender = command.message.sender if command.message else "?"
        threshold = self.config.skip_vote_threshold
        count, skipped = await self.rotation.register_skip_vote(sender, threshold)
        if skipped:
            return "Skip vote passed!"
        if count == 0:
            return None
        return f"Skip vote: {count}/{threshold}"
