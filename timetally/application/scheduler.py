"""Timer scheduler: the countdown state machine driving the active list."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from threading import Timer
from typing import Callable

from timetally.constants import TICK_INTERVAL_SECONDS
from timetally.domain.reorder import next_enabled_index
from timetally.domain.state import AppState

from .announcer import Announcer
from .store import StateStore

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    """Lifecycle of the tick source."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass(slots=True)
class _Advance:
    """What one time-advance transaction did, for cue dispatch after commit."""

    completed: bool = False
    started_index: int | None = None
    finished_queue: bool = False
    stalled: bool = False


class TimerScheduler:
    """Periodic-tick state machine advancing through enabled tasks.

    All work happens under the store lock, and every state change goes
    through ``StateStore.transact``. Timer callbacks carry a generation token;
    stopping bumps the generation, so a callback that fires after ``pause``
    returns finds a stale token and does nothing.
    """

    __slots__ = (
        "_store",
        "_announcer",
        "_tick_interval",
        "_enable_timers",
        "_monotonic",
        "_status",
        "_tick_timer",
        "_generation",
        "_last_tick_at",
    )

    def __init__(
        self,
        store: StateStore,
        announcer: Announcer,
        *,
        tick_interval: float = TICK_INTERVAL_SECONDS,
        enable_timers: bool = True,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        if tick_interval <= 0:
            raise ValueError("tick_interval must be > 0")
        self._store = store
        self._announcer = announcer
        self._tick_interval = tick_interval
        self._enable_timers = enable_timers
        self._monotonic = monotonic
        self._status = SchedulerState.IDLE
        self._tick_timer: Timer | None = None
        self._generation = 0
        self._last_tick_at = monotonic()

    @property
    def status(self) -> SchedulerState:
        with self._store.lock:
            return self._status

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def start(self) -> bool:
        """Begin (or resume) counting down the next enabled task at or after the cursor."""
        with self._store.lock:
            if self._status is SchedulerState.RUNNING:
                return False

            index = self._store.read(
                lambda state: next_enabled_index(state.active_tasks, state.active_task_index)
            )
            if index is None:
                logger.debug("start ignored: no enabled task at or after the cursor")
                return False

            self._store.transact(lambda state: self._move_cursor(state, index))
            self._announce_started()
            self._begin_ticking()
            logger.info("Timer running on task %d", index)
            return True

    def tick(self, elapsed_seconds: float) -> bool:
        """Advance the active task by ``elapsed_seconds``; no-op unless running."""
        with self._store.lock:
            if self._status is not SchedulerState.RUNNING:
                return False

            elapsed = max(0.0, float(elapsed_seconds))
            outcome = self._store.transact(lambda state: self._advance(state, elapsed))
            self._dispatch(outcome)
            return True

    def tick_from_clock(self) -> bool:
        """Tick by the monotonic time elapsed since the previous tick (or start or skip)."""
        with self._store.lock:
            if self._status is not SchedulerState.RUNNING:
                return False
            now = self._monotonic()
            elapsed = now - self._last_tick_at
            self._last_tick_at = now
            return self.tick(elapsed)

    def pause(self) -> bool:
        with self._store.lock:
            if self._status is not SchedulerState.RUNNING:
                return False
            self._stop_ticking()
            self._status = SchedulerState.PAUSED
            self._announcer.stop_media()
            logger.info("Timer paused")
            return True

    def skip(self) -> bool:
        """Move to the next enabled task, keeping the current task's remaining time."""
        with self._store.lock:
            index = self._store.read(
                lambda state: next_enabled_index(state.active_tasks, state.active_task_index + 1)
            )
            if index is None:
                return False

            self._store.transact(lambda state: self._move_cursor(state, index))
            # Time spent before the skip belongs to no task.
            self._last_tick_at = self._monotonic()
            if self._status is SchedulerState.RUNNING:
                self._announce_started()
            logger.info("Skipped to task %d", index)
            return True

    def complete_early(self) -> bool:
        """Zero the active task and advance exactly as a natural completion would."""
        with self._store.lock:
            if self._store.read(lambda state: state.active_task) is None:
                return False

            self._stop_ticking()

            def _finish(state: AppState) -> _Advance:
                task = state.active_task
                if task is None:
                    return _Advance(stalled=True)
                task.remaining = 0.0
                return self._complete_current(state)

            outcome = self._store.transact(_finish)
            if outcome.stalled:
                self._status = SchedulerState.IDLE
                return False

            self._announcer.task_completed(self._store.snapshot.active_config)
            if outcome.finished_queue:
                self._status = SchedulerState.IDLE
                logger.info("Queue finished; every task reset")
            else:
                self._announce_started()
                self._begin_ticking()
            return True

    def restart(self) -> bool:
        """Stop, reset every task of the active list, and rewind the cursor."""
        with self._store.lock:
            self._stop_ticking()
            self._store.transact(self._reset_active_list)
            self._status = SchedulerState.IDLE
            self._announcer.stop_media()
            logger.info("Timer restarted")
            return True

    def close(self) -> None:
        """Stop the tick source without touching state."""
        with self._store.lock:
            self._stop_ticking()
            if self._status is SchedulerState.RUNNING:
                self._status = SchedulerState.PAUSED

    # ------------------------------------------------------------------
    # Mutators (run inside transact)
    # ------------------------------------------------------------------
    @staticmethod
    def _move_cursor(state: AppState, index: int) -> None:
        state.active_task_index = index

    def _advance(self, state: AppState, elapsed: float) -> _Advance:
        task = state.active_task
        if task is None:
            return _Advance(stalled=True)

        task.remaining = max(0.0, task.remaining - elapsed)
        if task.remaining > 0:
            return _Advance()
        return self._complete_current(state)

    @staticmethod
    def _complete_current(state: AppState) -> _Advance:
        tasks = state.active_tasks
        following = next_enabled_index(tasks, state.active_task_index + 1)
        if following is None:
            TimerScheduler._reset_active_list(state)
            return _Advance(completed=True, finished_queue=True)

        state.active_task_index = following
        return _Advance(completed=True, started_index=following)

    @staticmethod
    def _reset_active_list(state: AppState) -> None:
        for task in state.active_tasks:
            task.reset()
        state.active_task_index = 0

    # ------------------------------------------------------------------
    # Tick source
    # ------------------------------------------------------------------
    def _dispatch(self, outcome: _Advance) -> None:
        if outcome.stalled:
            # The active task vanished underneath us (list emptied or switched).
            self._stop_ticking()
            self._status = SchedulerState.IDLE
            logger.info("Timer stopped: no active task")
            return

        if outcome.completed:
            logger.debug("Task completed")
            self._announcer.task_completed(self._store.snapshot.active_config)

        if outcome.finished_queue:
            self._stop_ticking()
            self._status = SchedulerState.IDLE
            logger.info("Queue finished; every task reset")
        elif outcome.started_index is not None:
            self._announce_started()

    def _announce_started(self) -> None:
        state = self._store.snapshot
        task = state.active_task
        if task is None:
            return
        self._announcer.task_started(
            state.active_list_name,
            state.active_task_index,
            task,
            state.active_config,
        )

    def _begin_ticking(self) -> None:
        self._stop_ticking()
        self._status = SchedulerState.RUNNING
        self._last_tick_at = self._monotonic()
        self._arm_tick_timer(self._generation)

    def _stop_ticking(self) -> None:
        self._generation += 1
        if self._tick_timer is not None:
            self._tick_timer.cancel()
            self._tick_timer = None

    def _arm_tick_timer(self, generation: int) -> None:
        if not self._enable_timers:
            return
        self._tick_timer = Timer(self._tick_interval, self._on_tick_timer, args=(generation,))
        self._tick_timer.daemon = True
        self._tick_timer.start()

    def _on_tick_timer(self, generation: int) -> None:
        with self._store.lock:
            if generation != self._generation or self._status is not SchedulerState.RUNNING:
                return

            self.tick_from_clock()

            if generation == self._generation and self._status is SchedulerState.RUNNING:
                self._arm_tick_timer(generation)
