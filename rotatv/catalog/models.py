"""
Catalog value types.

MediaItem is immutable and shared freely between the queue, the recency
window and vote choice lists.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional


@dataclass(frozen=True, eq=False)
class MediaItem:
    """
    A playable catalog entry.

    Identity is the id alone; two items with the same id compare equal even
    if one carries a requester.
    """

    id: str
    label: str
    duration_seconds: float
    source_ref: str = ""
    include_in_rotation: bool = True
    scene_item: Optional[str] = None  # Presenter item the source plays in
    loops: int = 1
    requested_by: Optional[str] = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MediaItem):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def play_seconds(self) -> float:
        """Total on-air time including loops."""
        return self.duration_seconds * max(self.loops, 1)

    def with_requester(self, requester: str) -> "MediaItem":
        """Copy of this item attributed to a chat user."""
        return replace(self, requested_by=requester)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "label": self.label,
            "duration_seconds": self.duration_seconds,
            "play_seconds": self.play_seconds,
            "requested_by": self.requested_by,
        }


@dataclass
class Catalog:
    """Everything loaded from the catalog file."""

    vods: List[MediaItem] = field(default_factory=list)
    interstitials: List[MediaItem] = field(default_factory=list)
    special_interstitial: Optional[MediaItem] = None
    fallback: Optional[MediaItem] = None  # Long-form filler shown instead of a shuffle pick
    rooms: List[MediaItem] = field(default_factory=list)  # Short clips looped to fill time

    def find(self, item_id: str) -> Optional[MediaItem]:
        """Look up a main rotation item by id."""
        for item in self.vods:
            if item.id == item_id:
                return item
        return None

    def find_room(self, item_id: str) -> Optional[MediaItem]:
        for item in self.rooms:
            if item.id == item_id:
                return item
        return None

    def find_interstitial(self, item_id: str) -> Optional[MediaItem]:
        """Look up an interstitial (standard or special) by id."""
        if self.special_interstitial and self.special_interstitial.id == item_id:
            return self.special_interstitial
        for item in self.interstitials:
            if item.id == item_id:
                return item
        return None

    @property
    def rotation_items(self) -> List[MediaItem]:
        """Items eligible for shuffle and voting."""
        return [item for item in self.vods if item.include_in_rotation]
