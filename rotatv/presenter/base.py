"""
Presenter interface.

A presenter shows and hides named items in named scenes. It has no notion
of "playback finished"; the rotation scheduler times items itself.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from rotatv.catalog.models import MediaItem

logger = logging.getLogger(__name__)


class Presenter(ABC):
    """Base class for scene control backends."""

    async def connect(self) -> None:
        """Open the connection to the backend, if it has one."""

    async def close(self) -> None:
        """Release backend resources."""

    @abstractmethod
    async def show(self, item: MediaItem, scene: str) -> None:
        """Load ``item`` into its scene item and make it visible in ``scene``."""

    @abstractmethod
    async def hide(self, item_ref: str, scene: str) -> None:
        """Hide the scene item named ``item_ref`` in ``scene``."""

    @abstractmethod
    async def set_visible(self, item_ref: str, scene: str, visible: bool) -> None:
        """Toggle a scene item that is not a media item (overlays, filler sources)."""

    async def switch_scene(self, scene: str) -> None:
        """Make ``scene`` the on-air scene."""

    async def set_activity(self, text: Optional[str]) -> None:
        """Update the "now showing" label; None hides it."""


@dataclass
class PresenterCall:
    """One recorded presenter call."""

    action: str
    target: str
    scene: Optional[str] = None
    at: datetime = field(default_factory=datetime.now)


class LoggingPresenter(Presenter):
    """
    Dry-run presenter that only logs.

    Keeps the last calls in memory so the status API (and tests) can see
    what would have been shown.
    """

    def __init__(self, history_size: int = 50):
        self.history_size = history_size
        self.calls: List[PresenterCall] = []

    def _record(self, action: str, target: str, scene: Optional[str] = None) -> None:
        self.calls.append(PresenterCall(action=action, target=target, scene=scene))
        if len(self.calls) > self.history_size:
            self.calls = self.calls[-self.history_size:]

    async def show(self, item: MediaItem, scene: str) -> None:
        logger.info(f"[presenter] show {item.label} ({item.id}) in {scene} for {item.play_seconds:.0f}s")
        self._record("show", item.id, scene)

    async def hide(self, item_ref: str, scene: str) -> None:
        logger.info(f"[presenter] hide {item_ref} in {scene}")
        self._record("hide", item_ref, scene)

    async def set_visible(self, item_ref: str, scene: str, visible: bool) -> None:
        logger.info(f"[presenter] {'show' if visible else 'hide'} {item_ref} in {scene}")
        self._record("visible" if visible else "invisible", item_ref, scene)

    async def switch_scene(self, scene: str) -> None:
        logger.info(f"[presenter] switch to scene {scene}")
        self._record("switch", scene)

    async def set_activity(self, text: Optional[str]) -> None:
        logger.info(f"[presenter] activity: {text or '(hidden)'}")
        self._record("activity", text or "")
