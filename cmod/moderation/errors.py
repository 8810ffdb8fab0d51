"""Exception taxonomy for the moderation engine."""

from __future__ import annotations


class ModerationError(Exception):
    """Base class for moderation engine errors."""


class ClassificationError(ModerationError):
    """The remote classifier failed; always recovered inside the adapter."""


class PersistenceError(ModerationError):
    """A moderation record could not be read or written."""


class RecordNotFoundError(ModerationError):
    def __init__(self, moderation_id: str) -> None:
        super().__init__(f"Moderation record '{moderation_id}' not found")
        self.moderation_id = moderation_id


class InvalidTransitionError(ModerationError):
    """A status change that the lifecycle does not allow."""

    def __init__(self, moderation_id: str, current: str, action: str) -> None:
        super().__init__(
            f"Cannot {action} moderation record '{moderation_id}' in status '{current}'"
        )
        self.moderation_id = moderation_id
        self.current = current
        self.action = action
