"""
Recently played memory.

Keeps the ids of the last N main rotation items so the shuffle does not
repeat them.
"""

from collections import deque
from typing import Deque, Iterator, List


class RecencyTracker:
    """
    Bounded, ordered history of recently shown item ids.

    The oldest id is evicted once the window is full. A capacity of 0 keeps
    nothing, so every item is always considered fresh.
    """

    def __init__(self, capacity: int):
        if capacity < 0:
            raise ValueError(f"Recency capacity must be >= 0, got {capacity}")
        self.capacity = capacity
        self._ids: Deque[str] = deque(maxlen=capacity)

    def record(self, item_id: str) -> None:
        """Append an id, evicting the oldest if the window is full."""
        if self.capacity == 0:
            return
        self._ids.append(item_id)

    def contains(self, item_id: str) -> bool:
        return item_id in self._ids

    def ids(self) -> List[str]:
        """Ids oldest first."""
        return list(self._ids)

    def clear(self) -> None:
        self._ids.clear()

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)
