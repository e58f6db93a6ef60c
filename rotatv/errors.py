"""
Error taxonomy for the rotation engine.

User input problems are reported back to whoever issued the command,
collaborator failures are logged and retried, and invariant violations are
programming faults that should surface loudly.
"""

from typing import Optional


class RotationError(Exception):
    """Base class for rotation engine errors."""


class UserInputError(RotationError):
    """A chat or API request that cannot be honored. No state was changed."""


class UnknownMediaError(UserInputError):
    """Requested media id does not exist in the catalog."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"A video with ID {item_id} does not exist!")


class DuplicateQueueEntryError(UserInputError):
    """Requested media id is already waiting in the queue."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__("That video is in the queue already!")


class CollaboratorError(RotationError):
    """A Presenter or Chat call failed."""

    def __init__(self, collaborator: str, message: str, cause: Optional[BaseException] = None):
        self.collaborator = collaborator
        self.cause = cause
        super().__init__(f"{collaborator}: {message}")


class InvariantViolation(RotationError):
    """Scheduler state was driven somewhere it must never go."""
