"""
rotatv Playout Engine

Continuous rotation scheduling for an unattended broadcast.

Features:
- Shuffle picks that avoid recently played items
- Request/vote queue with duplicate protection
- Timed interstitial breaks with a rare special variant
- Generation-tokened completion timers safe against skips
"""

from rotatv.playout.filter import CatalogFilter, select_fresh
from rotatv.playout.interstitial import InterstitialChoice, InterstitialGate, InterstitialKind
from rotatv.playout.queue import PlaybackQueue
from rotatv.playout.recency import RecencyTracker
from rotatv.playout.scheduler import RotationScheduler
from rotatv.playout.state import PlaybackCursor, PlaybackTimer, RotationState

__all__ = [
    # Selection
    "CatalogFilter",
    "select_fresh",
    "RecencyTracker",
    # Queue
    "PlaybackQueue",
    # Interstitials
    "InterstitialChoice",
    "InterstitialGate",
    "InterstitialKind",
    # Scheduler
    "RotationScheduler",
    # State
    "PlaybackCursor",
    "PlaybackTimer",
    "RotationState",
]
