"""Application services: store, scheduler, persistence, sync, runtime."""

from timetally.application.announcer import Announcer
from timetally.application.persistence import PersistenceGateway
from timetally.application.runtime import TimeTallyRuntime
from timetally.application.scheduler import SchedulerState, TimerScheduler
from timetally.application.store import ChangeOrigin, ObserverStage, StateChange, StateStore
from timetally.application.sync import SyncBroadcaster

__all__ = [
    "Announcer",
    "ChangeOrigin",
    "ObserverStage",
    "PersistenceGateway",
    "SchedulerState",
    "StateChange",
    "StateStore",
    "SyncBroadcaster",
    "TimeTallyRuntime",
    "TimerScheduler",
]
