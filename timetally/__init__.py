"""Sequential countdown playlists with cross-instance state sync."""

from timetally.application.runtime import TimeTallyRuntime
from timetally.application.scheduler import SchedulerState
from timetally.application.store import StateStore
from timetally.domain.config import AnnounceMode, ListConfig
from timetally.domain.errors import InvalidListName, InvalidTaskInput, TimeTallyError
from timetally.domain.state import AppState
from timetally.domain.task import MediaRef, Task

__all__ = [
    "AnnounceMode",
    "AppState",
    "InvalidListName",
    "InvalidTaskInput",
    "ListConfig",
    "MediaRef",
    "SchedulerState",
    "StateStore",
    "Task",
    "TimeTallyError",
    "TimeTallyRuntime",
]
