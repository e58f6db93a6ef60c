"""
Candidate selection for shuffle picks and vote rounds.
"""

import random
from typing import Collection, Iterable, List, Optional

from rotatv.catalog.models import MediaItem


def select_fresh(
    catalog: Iterable[MediaItem],
    recency: Collection[str],
    exclude_ids: Collection[str],
    count: int,
    rng: Optional[random.Random] = None,
) -> List[MediaItem]:
    """
    Pick up to ``count`` rotation items in random order.

    Items are eligible when they are flagged for rotation, not excluded and
    not recently played. Returning fewer than ``count`` items is normal when
    the eligible pool is small; callers decide how to widen the search.

    Args:
        catalog: Full list of main rotation candidates.
        recency: Recently played ids (a RecencyTracker works here).
        exclude_ids: Ids that must not be offered (queued or on air).
        count: Maximum number of items to return.
        rng: Random source, injectable for deterministic tests.

    Returns:
        Shuffled list of at most ``count`` items.
    """
    if count <= 0:
        return []

    pool = [
        item for item in catalog
        if item.include_in_rotation
        and item.id not in exclude_ids
        and item.id not in recency
    ]
    (rng or random).shuffle(pool)
    return pool[:count]


class CatalogFilter:
    """select_fresh bound to a single random source."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def select_fresh(
        self,
        catalog: Iterable[MediaItem],
        recency: Collection[str],
        exclude_ids: Collection[str],
        count: int,
    ) -> List[MediaItem]:
        return select_fresh(catalog, recency, exclude_ids, count, rng=self.rng)
