"""Audience voting."""

from rotatv.voting.tally import VoteRound, VoteStatus, VoteTally

__all__ = [
    "VoteRound",
    "VoteStatus",
    "VoteTally",
]
