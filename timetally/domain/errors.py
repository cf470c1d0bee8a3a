"""Error taxonomy for the TimeTally engine."""

from __future__ import annotations


class TimeTallyError(Exception):
    """Base exception for all TimeTally errors."""


class InvalidTaskInput(TimeTallyError, ValueError):
    """Raised when a task name or duration is rejected before reaching the store."""


class InvalidListName(TimeTallyError, ValueError):
    """Raised when a list name is empty or already taken."""


class MalformedImport(TimeTallyError):
    """Raised when an interchange document holds no recognizable lists."""


class MalformedPersistedState(TimeTallyError):
    """Raised when the durable state record cannot be decoded."""
