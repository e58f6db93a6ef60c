"""
Per-user command cooldowns.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional


@dataclass
class CooldownEntry:
    """When a key was last used and for how long it stays cold."""

    used_at: float
    expires_at: float


class CooldownTracker:
    """In-memory cooldowns keyed by (user, destination, command)."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, CooldownEntry] = {}

    @staticmethod
    def key(sender: str, destination: str, command: str) -> str:
        return f"{sender.lower()}|{destination.lower()}|{command}"

    def remaining(self, key: str) -> Optional[float]:
        """Seconds left on cooldown, or None when the key is ready."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        left = entry.expires_at - self._clock()
        if left <= 0:
            del self._entries[key]
            return None
        return left

    def place(self, key: str, seconds: float) -> None:
        if seconds <= 0:
            return
        now = self._clock()
        self._entries[key] = CooldownEntry(used_at=now, expires_at=now + seconds)

    def cleanup(self) -> int:
        """Drop expired entries."""
        now = self._clock()
        expired = [k for k, entry in self._entries.items() if entry.expires_at <= now]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
