"""Domain entities and pure rules for task sequencing."""

from timetally.domain.config import AnnounceMode, ListConfig
from timetally.domain.errors import (
    InvalidListName,
    InvalidTaskInput,
    MalformedImport,
    MalformedPersistedState,
    TimeTallyError,
)
from timetally.domain.state import AppState, TaskList, default_state
from timetally.domain.task import MediaRef, Task

__all__ = [
    "AnnounceMode",
    "AppState",
    "InvalidListName",
    "InvalidTaskInput",
    "ListConfig",
    "MalformedImport",
    "MalformedPersistedState",
    "MediaRef",
    "Task",
    "TaskList",
    "TimeTallyError",
    "default_state",
]
