"""
Playback cursor and completion timers.

Tracks what is on air right now and the timer that will end it. Every
transition bumps the cursor generation; a timer only acts if the generation
it was armed with is still current, so a late firing after a skip is
harmless.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from rotatv.catalog.models import MediaItem
from rotatv.errors import InvariantViolation
from rotatv.playout.interstitial import InterstitialChoice

logger = logging.getLogger(__name__)


class RotationState(str, Enum):
    """What the rotation is currently doing."""

    IDLE = "idle"
    PLAYING_MAIN = "playing_main"
    INTERSTITIAL = "interstitial"
    ROOM_FALLBACK = "room_fallback"


class PlaybackTimer:
    """
    Fires ``callback(generation)`` after ``delay`` seconds.

    Once the timer has fired, ``cancel()`` no longer touches the task, so a
    transition started by the timer itself cannot cancel itself halfway.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[int], Awaitable[Any]],
        generation: int,
    ):
        self.delay = max(delay, 0.0)
        self.generation = generation
        self.fired = False
        self.cancelled = False
        self._callback = callback
        self._task: asyncio.Task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        if self.cancelled:
            return
        self.fired = True
        try:
            await self._callback(self.generation)
        except InvariantViolation:
            logger.critical(f"Rotation invariant broken (generation {self.generation})", exc_info=True)
        except Exception as e:
            logger.error(f"Playback timer callback failed (generation {self.generation}): {e}", exc_info=True)

    def cancel(self) -> None:
        self.cancelled = True
        if not self.fired and not self._task.done():
            self._task.cancel()


@dataclass
class PlaybackCursor:
    """
    The single current playback, main or interstitial.

    ``retry_item`` holds a main item whose show call failed so the next
    advancement tries it again before anything else.
    """

    current_item: Optional[MediaItem] = None
    state: RotationState = RotationState.IDLE
    generation: int = 0
    pending_timer: Optional[PlaybackTimer] = None
    started_at: Optional[datetime] = None
    interstitial: Optional[InterstitialChoice] = None
    retry_item: Optional[MediaItem] = None

    def next_generation(self) -> int:
        """Invalidate the outstanding timer and return a fresh generation."""
        if self.pending_timer is not None:
            self.pending_timer.cancel()
            self.pending_timer = None
        self.generation += 1
        return self.generation

    def set(
        self,
        item: Optional[MediaItem],
        state: RotationState,
        interstitial: Optional[InterstitialChoice] = None,
    ) -> None:
        self.current_item = item
        self.state = state
        self.interstitial = interstitial
        self.started_at = datetime.now() if item is not None else None

    def arm(self, timer: PlaybackTimer) -> None:
        self.pending_timer = timer

    def remaining_seconds(self) -> Optional[float]:
        """Seconds until the current item is scheduled to end."""
        if self.pending_timer is None or self.started_at is None:
            return None
        ends_at = self.started_at + timedelta(seconds=self.pending_timer.delay)
        return max((ends_at - datetime.now()).total_seconds(), 0.0)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "state": self.state.value,
            "generation": self.generation,
            "current": self.current_item.to_dict() if self.current_item else None,
            "interstitial_kind": self.interstitial.kind.value if self.interstitial else None,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "remaining_seconds": self.remaining_seconds(),
            "retry_pending": self.retry_item.id if self.retry_item else None,
        }
