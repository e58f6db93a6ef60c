"""
Pending main rotation items.
"""

from collections import deque
from typing import Deque, List, Optional

from rotatv.catalog.models import MediaItem


class PlaybackQueue:
    """
    Ordered queue of MediaItem with no duplicate ids.

    Fed by admin adds, chat requests and vote winners; drained by the
    rotation scheduler at each transition.
    """

    def __init__(self) -> None:
        self._items: Deque[MediaItem] = deque()

    def enqueue(self, item: MediaItem) -> bool:
        """
        Append an item unless its id is already queued.

        Returns:
            True if appended, False if the id was already present.
        """
        if self.contains(item.id):
            return False
        self._items.append(item)
        return True

    def dequeue_front(self) -> Optional[MediaItem]:
        if not self._items:
            return None
        return self._items.popleft()

    def peek_front(self) -> Optional[MediaItem]:
        if not self._items:
            return None
        return self._items[0]

    def clear(self) -> None:
        self._items.clear()

    def size(self) -> int:
        return len(self._items)

    def contains(self, item_id: str) -> bool:
        return any(item.id == item_id for item in self._items)

    def position_of(self, item_id: str) -> Optional[int]:
        """1-based queue position of an id, or None."""
        for index, item in enumerate(self._items, start=1):
            if item.id == item_id:
                return index
        return None

    def ids(self) -> List[str]:
        return [item.id for item in self._items]

    def items(self, limit: Optional[int] = None) -> List[MediaItem]:
        """Snapshot of queued items, front first."""
        snapshot = list(self._items)
        return snapshot if limit is None else snapshot[:limit]

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)
