"""Application runtime orchestrating task lists, the timer, persistence, and sync."""

from __future__ import annotations

import copy
import logging
import random
import time
from datetime import datetime
from pathlib import Path
from typing import Callable

from timetally.adapters.file_storage import FileStateStorage, MemoryStateStorage
from timetally.adapters.terminal_notifier import TerminalMediaControl, TerminalNotifier
from timetally.adapters.xml_interchange import export_document, merge_import, parse_document
from timetally.constants import SAVE_DEBOUNCE_SECONDS, STATE_FILE_NAME, TICK_INTERVAL_SECONDS
from timetally.domain.config import AnnounceMode, ListConfig
from timetally.domain.errors import InvalidListName, MalformedImport
from timetally.domain.formatting import enabled_remaining, eta_text, progress_percent
from timetally.domain.reorder import (
    cursor_after_insert,
    cursor_after_removal,
    is_valid_move,
    move_with_cursor,
    reorder,
)
from timetally.domain.state import AppState, TaskList
from timetally.domain.task import Task, to_seconds, validate_task_name
from timetally.ports.media import MediaControlPort
from timetally.ports.notifications import NotificationPort
from timetally.ports.storage import StateStoragePort, SyncChannelPort

from .announcer import Announcer
from .persistence import PersistenceGateway
from .scheduler import SchedulerState, TimerScheduler
from .store import ObserverStage, StateStore
from .sync import SyncBroadcaster

logger = logging.getLogger(__name__)


class TimeTallyRuntime:
    """One process-local TimeTally instance.

    Every command validates its input first, then mutates state through a
    single ``StateStore.transact`` call, which in turn schedules the durable
    write and signals sibling instances.
    """

    __slots__ = (
        "store",
        "gateway",
        "scheduler",
        "announcer",
        "channel",
        "broadcaster",
        "_now_provider",
        "_closed",
    )

    def __init__(
        self,
        *,
        storage: StateStoragePort | None = None,
        data_dir: str | Path | None = None,
        channel: SyncChannelPort | None = None,
        notifier: NotificationPort | None = None,
        media: MediaControlPort | None = None,
        enable_timers: bool = True,
        tick_interval: float = TICK_INTERVAL_SECONDS,
        save_debounce: float = SAVE_DEBOUNCE_SECONDS,
        monotonic: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
        now_provider: Callable[[], datetime] | None = None,
    ) -> None:
        if storage is None:
            if data_dir is not None:
                storage = FileStateStorage(Path(data_dir).expanduser() / STATE_FILE_NAME)
            else:
                storage = MemoryStateStorage()

        self.gateway = PersistenceGateway(
            storage,
            debounce_seconds=save_debounce,
            enable_timers=enable_timers,
        )
        self.store = StateStore(self.gateway.load())
        self.store.add_observer(self.gateway.on_change, stage=ObserverStage.PERSIST)

        self.channel = channel
        self.broadcaster: SyncBroadcaster | None = None
        if channel is not None:
            self.broadcaster = SyncBroadcaster(self.store, self.gateway, channel)
            self.store.add_observer(self.broadcaster.on_change, stage=ObserverStage.BROADCAST)
            self.gateway.add_write_listener(channel.acknowledge_local_write)

        self.announcer = Announcer(
            notifier or TerminalNotifier(),
            media or TerminalMediaControl(),
            rng=rng,
        )
        self.scheduler = TimerScheduler(
            self.store,
            self.announcer,
            tick_interval=tick_interval,
            enable_timers=enable_timers,
            monotonic=monotonic,
        )
        self._now_provider = now_provider or datetime.now
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def close(self) -> None:
        """Stop timers, flush the last pending write, and leave the sync topic."""
        if self._closed:
            return
        self._closed = True
        self.scheduler.close()
        self.gateway.close()
        if self.channel is not None:
            self.channel.close()

    def flush(self) -> bool:
        return self.gateway.flush()

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------
    def add_list(self, name: str) -> str:
        """Create an empty list with default config and make it active."""
        clean = self._validate_list_name(name)

        def _add(state: AppState) -> None:
            if clean in state.lists:
                raise InvalidListName(f"List name already exists: {clean!r}")
            state.lists[clean] = TaskList()
            state.list_order.append(clean)
            state.active_list_name = clean
            state.active_task_index = 0

        with self.store.lock:
            if clean in self.store.snapshot.lists:
                raise InvalidListName(f"List name already exists: {clean!r}")
            self.scheduler.pause()
            self.store.transact(_add)
        logger.info("Created list %r", clean)
        return clean

    def rename_list(self, old_name: str, new_name: str) -> str:
        clean = self._validate_list_name(new_name)

        def _rename(state: AppState) -> None:
            _check_rename(state, old_name, clean)
            state.lists = {
                (clean if name == old_name else name): task_list
                for name, task_list in state.lists.items()
            }
            state.list_order = [clean if name == old_name else name for name in state.list_order]
            if state.active_list_name == old_name:
                state.active_list_name = clean

        with self.store.lock:
            _check_rename(self.store.snapshot, old_name, clean)
            if clean != old_name:
                self.store.transact(_rename)
        return clean

    def delete_list(self, name: str) -> bool:
        """Delete a list and its config; the last remaining list cannot be deleted."""

        def _delete(state: AppState) -> bool:
            if name not in state.lists or len(state.list_order) <= 1:
                return False
            del state.lists[name]
            state.list_order = [item for item in state.list_order if item != name]
            if state.active_list_name == name:
                state.active_list_name = state.list_order[0]
                state.active_task_index = 0
            return True

        with self.store.lock:
            snapshot = self.store.snapshot
            if name not in snapshot.lists:
                raise KeyError(f"Unknown list: {name!r}")
            if len(snapshot.list_order) <= 1:
                return False
            if snapshot.active_list_name == name:
                self.scheduler.pause()
            deleted = self.store.transact(_delete)

        if deleted:
            logger.info("Deleted list %r", name)
        return deleted

    def reorder_lists(self, from_index: int, to_index: int) -> bool:
        if not is_valid_move(len(self.store.snapshot.list_order), from_index, to_index):
            return False

        def _move(state: AppState) -> bool:
            if not is_valid_move(len(state.list_order), from_index, to_index):
                return False
            state.list_order = reorder(state.list_order, from_index, to_index)
            return True

        return self.store.transact(_move)

    def select_list(self, name: str) -> bool:
        """Make ``name`` the active list with its cursor at the top; pauses a running timer."""

        def _select(state: AppState) -> bool:
            if name not in state.lists:
                return False
            state.active_list_name = name
            state.active_task_index = 0
            return True

        with self.store.lock:
            snapshot = self.store.snapshot
            if name not in snapshot.lists:
                raise KeyError(f"Unknown list: {name!r}")
            if name == snapshot.active_list_name:
                return False
            self.scheduler.pause()
            return self.store.transact(_select)

    # ------------------------------------------------------------------
    # Tasks (active list)
    # ------------------------------------------------------------------
    def add_task(
        self,
        name: str,
        duration: float,
        *,
        unit: str = "seconds",
        enabled: bool = True,
        index: int | None = None,
    ) -> Task:
        """Append (or insert at ``index``) a new task; invalid input never reaches the store."""
        task = Task.create(name, duration, unit=unit)
        task.enabled = enabled

        def _add(state: AppState) -> int:
            tasks = state.active_tasks
            position = len(tasks) if index is None else max(0, min(index, len(tasks)))
            state.active_task_index = cursor_after_insert(state.active_task_index, position, len(tasks))
            tasks.insert(position, task)
            return position

        position = self.store.transact(_add)
        return self._task_copy(position)

    def edit_task(
        self,
        index: int,
        *,
        name: str | None = None,
        duration: float | None = None,
        unit: str = "seconds",
    ) -> Task | None:
        """Rename and/or change the duration of a task; a new duration resets its countdown."""
        clean_name = validate_task_name(name) if name is not None else None
        new_total = to_seconds(duration, unit) if duration is not None else None

        def _edit(state: AppState) -> bool:
            tasks = state.active_tasks
            if not 0 <= index < len(tasks):
                return False
            task = tasks[index]
            if clean_name is not None and clean_name != task.name:
                task.name = clean_name
                # Re-derived from the new name by the repair pass.
                task.media = None
            if new_total is not None and new_total != task.total_duration:
                task.total_duration = new_total
                task.reset()
            return True

        if not self.store.transact(_edit):
            return None
        return self._task_copy(index)

    def set_task_enabled(self, index: int, enabled: bool) -> Task | None:
        def _set(state: AppState) -> bool:
            tasks = state.active_tasks
            if not 0 <= index < len(tasks):
                return False
            tasks[index].enabled = enabled
            return True

        if not self.store.transact(_set):
            return None
        return self._task_copy(index)

    def toggle_task(self, index: int) -> Task | None:
        task = self._task_copy(index)
        if task is None:
            return None
        return self.set_task_enabled(index, not task.enabled)

    def remove_task(self, index: int) -> Task | None:
        """Delete a task, keeping the cursor on the same logical task where possible."""

        def _remove(state: AppState) -> Task | None:
            tasks = state.active_tasks
            if not 0 <= index < len(tasks):
                return None
            removed = tasks.pop(index)
            state.active_task_index = cursor_after_removal(state.active_task_index, index, tasks)
            return removed

        removed = self.store.transact(_remove)
        return copy.deepcopy(removed) if removed is not None else None

    def reorder_tasks(self, from_index: int, to_index: int) -> bool:
        """Move a task within the active list; out-of-range moves are ignored."""

        def _move(state: AppState) -> bool:
            task_list = state.active_list
            if not is_valid_move(len(task_list.tasks), from_index, to_index):
                return False
            task_list.tasks, state.active_task_index = move_with_cursor(
                task_list.tasks,
                from_index,
                to_index,
                state.active_task_index,
            )
            return True

        if not is_valid_move(len(self.store.snapshot.active_tasks), from_index, to_index):
            return False
        return self.store.transact(_move)

    # ------------------------------------------------------------------
    # Config and UI flags
    # ------------------------------------------------------------------
    def update_config(
        self,
        *,
        list_name: str | None = None,
        beep_enabled: bool | None = None,
        voice_enabled: bool | None = None,
        voice_id: str | None = None,
        announce_mode: AnnounceMode | str | None = None,
        custom_message: str | None = None,
    ) -> ListConfig:
        target = list_name or self.store.snapshot.active_list_name
        if target not in self.store.snapshot.lists:
            raise KeyError(f"Unknown list: {target!r}")
        mode = AnnounceMode.from_value(announce_mode) if announce_mode is not None else None

        def _update(state: AppState) -> None:
            config = state.lists[target].config
            if beep_enabled is not None:
                config.beep_enabled = beep_enabled
            if voice_enabled is not None:
                config.voice_enabled = voice_enabled
            if voice_id is not None:
                config.voice_id = voice_id
            if mode is not None:
                config.announce_mode = mode
            if custom_message is not None:
                config.custom_message = custom_message

        self.store.transact(_update)
        return copy.deepcopy(self.store.snapshot.lists[target].config)

    def toggle_dark(self) -> bool:
        return self.store.transact(lambda state: _flip(state, "dark"))

    def toggle_help(self) -> bool:
        return self.store.transact(lambda state: _flip(state, "show_help"))

    def toggle_options(self) -> bool:
        return self.store.transact(lambda state: _flip(state, "show_options"))

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------
    def start(self) -> bool:
        return self.scheduler.start()

    def pause(self) -> bool:
        return self.scheduler.pause()

    def skip(self) -> bool:
        return self.scheduler.skip()

    def complete_early(self) -> bool:
        return self.scheduler.complete_early()

    def restart(self) -> bool:
        return self.scheduler.restart()

    def tick(self, elapsed_seconds: float) -> bool:
        return self.scheduler.tick(elapsed_seconds)

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------
    def export_xml(self) -> str:
        return self.store.read(export_document)

    def import_xml(self, text: str) -> int:
        """Merge an interchange document; malformed documents change nothing."""
        try:
            imported = parse_document(text)
        except MalformedImport as exc:
            logger.warning("Import ignored: %s", exc)
            return 0

        added = self.store.transact(lambda state: merge_import(state, imported))
        logger.info("Imported %d tasks across %d lists", added, len(imported))
        return added

    def export_to_file(self, path: str | Path) -> Path:
        target = Path(path).expanduser()
        target.write_text(self.export_xml(), encoding="utf-8")
        logger.info("Exported lists to %s", target)
        return target

    def import_from_file(self, path: str | Path) -> int:
        return self.import_xml(Path(path).expanduser().read_text(encoding="utf-8"))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def snapshot(self) -> AppState:
        """Current published state; treat it as read-only."""
        return self.store.snapshot

    @property
    def status(self) -> SchedulerState:
        return self.scheduler.status

    def list_names(self) -> list[str]:
        return list(self.store.snapshot.list_order)

    def list_tasks(self, list_name: str | None = None) -> list[Task]:
        snapshot = self.store.snapshot
        name = list_name or snapshot.active_list_name
        if name not in snapshot.lists:
            raise KeyError(f"Unknown list: {name!r}")
        return copy.deepcopy(snapshot.lists[name].tasks)

    def get_config(self, list_name: str | None = None) -> ListConfig:
        snapshot = self.store.snapshot
        name = list_name or snapshot.active_list_name
        if name not in snapshot.lists:
            raise KeyError(f"Unknown list: {name!r}")
        return copy.deepcopy(snapshot.lists[name].config)

    def get_active_task(self) -> Task | None:
        task = self.store.snapshot.active_task
        return copy.deepcopy(task) if task is not None else None

    def progress(self) -> int:
        return progress_percent(self.store.snapshot.active_tasks)

    def remaining_seconds(self) -> float:
        return enabled_remaining(self.store.snapshot.active_tasks)

    def eta(self, now: datetime | None = None) -> str:
        return eta_text(self.store.snapshot.active_tasks, now or self._now_provider())

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _task_copy(self, index: int) -> Task | None:
        tasks = self.store.snapshot.active_tasks
        if not 0 <= index < len(tasks):
            return None
        return copy.deepcopy(tasks[index])

    @staticmethod
    def _validate_list_name(name: str) -> str:
        clean = (name or "").strip()
        if not clean:
            raise InvalidListName("List name is required")
        return clean


def _flip(state: AppState, flag: str) -> bool:
    value = not getattr(state, flag)
    setattr(state, flag, value)
    return value



def _check_rename(state: AppState, old_name: str, new_name: str) -> None:
    if old_name not in state.lists:
        raise KeyError(f"Unknown list: {old_name!r}")
    if new_name != old_name and new_name in state.lists:
        raise InvalidListName(f"List name already exists: {new_name!r}")
