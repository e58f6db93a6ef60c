"""
Audience vote rounds.

One ballot per voter per round. Choices are 1-indexed the way they are
shown in chat.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from rotatv.catalog.models import MediaItem

logger = logging.getLogger(__name__)


class VoteStatus(str, Enum):
    """Outcome of casting a ballot."""

    NEW = "new"
    CHANGED = "changed"
    UNCHANGED = "unchanged"
    INVALID = "invalid"  # Out of range or no round open; nothing recorded


@dataclass
class VoteRound:
    """Choices on offer and the ballots cast so far."""

    choices: List[MediaItem] = field(default_factory=list)
    ballots: Dict[str, int] = field(default_factory=dict)


class VoteTally:
    """
    Collects ballots and resolves a round to a single winner.

    Ties go to the lowest choice index. Picking a winner when nobody voted
    is left to the caller.
    """

    def __init__(self) -> None:
        self._round = VoteRound()

    @property
    def choices(self) -> List[MediaItem]:
        return list(self._round.choices)

    @property
    def ballot_count(self) -> int:
        return len(self._round.ballots)

    @property
    def is_open(self) -> bool:
        return bool(self._round.choices)

    def open_round(self, choices: List[MediaItem]) -> None:
        """Start a new round, discarding any previous ballots."""
        self._round = VoteRound(choices=list(choices))

    def close_round(self) -> None:
        self._round = VoteRound()

    def cast_vote(self, voter_id: str, choice_index: int) -> VoteStatus:
        """
        Record or update a voter's ballot.

        Args:
            voter_id: Chat user casting the vote.
            choice_index: 1-based index into the current choices.

        Returns:
            NEW, CHANGED or UNCHANGED; INVALID when the index is out of range.
        """
        if not 1 <= choice_index <= len(self._round.choices):
            return VoteStatus.INVALID

        previous = self._round.ballots.get(voter_id)
        self._round.ballots[voter_id] = choice_index

        if previous is None:
            return VoteStatus.NEW
        if previous != choice_index:
            return VoteStatus.CHANGED
        return VoteStatus.UNCHANGED

    def tallies(self) -> Dict[int, int]:
        """Ballot count per choice index, every index present."""
        counts = {index: 0 for index in range(1, len(self._round.choices) + 1)}
        for choice_index in self._round.ballots.values():
            counts[choice_index] += 1
        return counts

    def resolve(self) -> Optional[MediaItem]:
        """
        Winner of the current round.

        Returns:
            The most-voted choice (lowest index among ties), or None when
            there are no ballots.
        """
        if not self._round.ballots:
            return None

        best_index = 0
        best_count = 0
        for index, count in sorted(self.tallies().items()):
            if count > best_count:
                best_index, best_count = index, count

        logger.info(f"Voting results: {self.tallies()} -> choice {best_index}")
        return self._round.choices[best_index - 1]
