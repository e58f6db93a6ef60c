"""Chat transports, command routing and the bot loop."""

from rotatv.chat.base import ChatMessage, ChatTransport
from rotatv.chat.bot import ChatBot
from rotatv.chat.commands import CommandRouter, ParsedCommand, parse_command
from rotatv.chat.console import ConsoleChatTransport
from rotatv.chat.cooldowns import CooldownTracker
from rotatv.chat.twitch import TwitchChatTransport, chunk_text, to_chat_message

__all__ = [
    "ChatBot",
    "ChatMessage",
    "ChatTransport",
    "CommandRouter",
    "ConsoleChatTransport",
    "CooldownTracker",
    "ParsedCommand",
    "TwitchChatTransport",
    "chunk_text",
    "parse_command",
    "to_chat_message",
]
