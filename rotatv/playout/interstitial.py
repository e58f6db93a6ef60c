"""
Interstitial ("commercial break") gating.

Decides when a break is due, which interstitial plays, and keeps the main
rotation from advancing while one is on air.
"""

import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from rotatv.catalog.models import MediaItem
from rotatv.errors import InvariantViolation

logger = logging.getLogger(__name__)


class InterstitialKind(str, Enum):
    """Which interstitial variant was drawn."""

    SPECIAL = "special"  # The rare designated item
    STANDARD = "standard"  # Uniform pick from the pool


@dataclass(frozen=True)
class InterstitialChoice:
    """An interstitial picked for the next break."""

    kind: InterstitialKind
    item: MediaItem


class InterstitialGate:
    """
    Mutual-exclusion gate between interstitials and the main rotation.

    ``last_shown_at`` starts at construction time, so the first break comes
    one full interval after start-up.
    """

    def __init__(
        self,
        pool: List[MediaItem],
        interval_seconds: float,
        enabled: bool = True,
        special_item: Optional[MediaItem] = None,
        special_chance: int = 0,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
    ):
        self.pool = list(pool)
        self.interval_seconds = interval_seconds
        self.enabled = enabled
        self.special_item = special_item
        self.special_chance = special_chance
        self._clock = clock
        self._rng = rng or random.Random()

        self.last_shown_at: float = clock()
        self.is_playing = False
        self._requested: Optional[InterstitialChoice] = None

    @property
    def has_content(self) -> bool:
        return bool(self.pool) or self.special_item is not None

    def now(self) -> float:
        return self._clock()

    def seconds_since_last(self, now: Optional[float] = None) -> float:
        return (self.now() if now is None else now) - self.last_shown_at

    def should_interject(self, now: Optional[float] = None) -> bool:
        """True when a break is due and none is currently playing."""
        if self.is_playing:
            return False
        if self._requested is not None:
            return True
        if not self.enabled or not self.has_content:
            return False
        return self.seconds_since_last(now) >= self.interval_seconds

    def choose_variant(self) -> InterstitialChoice:
        """
        Draw the interstitial for the upcoming break.

        A 1-100 roll at or under ``special_chance`` picks the special item;
        otherwise a uniform pick from the pool. A pending admin request wins
        over both and is consumed.

        Raises:
            InvariantViolation: If there is nothing to choose from.
        """
        if self._requested is not None:
            choice, self._requested = self._requested, None
            return choice

        if self.special_item is not None:
            roll = self._rng.randint(1, 100)
            if roll <= self.special_chance or not self.pool:
                logger.info(f"Special interstitial drawn (roll {roll} <= {self.special_chance})")
                return InterstitialChoice(InterstitialKind.SPECIAL, self.special_item)

        if not self.pool:
            raise InvariantViolation("choose_variant called with an empty interstitial pool")

        return InterstitialChoice(InterstitialKind.STANDARD, self._rng.choice(self.pool))

    def choose_by_id(self, item_id: str) -> Optional[InterstitialChoice]:
        """Look up a specific interstitial, special or standard."""
        if self.special_item is not None and self.special_item.id == item_id:
            return InterstitialChoice(InterstitialKind.SPECIAL, self.special_item)
        for item in self.pool:
            if item.id == item_id:
                return InterstitialChoice(InterstitialKind.STANDARD, item)
        return None

    def request(self, choice: InterstitialChoice) -> None:
        """Force ``choice`` at the next transition regardless of the interval."""
        self._requested = choice

    @property
    def pending_request(self) -> Optional[InterstitialChoice]:
        return self._requested

    def begin(self) -> None:
        """
        Mark an interstitial as on air.

        Raises:
            InvariantViolation: If one is already playing.
        """
        if self.is_playing:
            raise InvariantViolation("Interstitial begin() while another interstitial is playing")
        self.is_playing = True

    def end(self, now: Optional[float] = None) -> None:
        """Mark the interstitial finished and restart the cool-down."""
        self.is_playing = False
        self.last_shown_at = self.now() if now is None else now
