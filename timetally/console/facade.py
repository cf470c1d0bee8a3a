"""Front-end facade for timer commands, queries, and diagnostics."""

from __future__ import annotations

from datetime import datetime, timezone
from threading import RLock
from typing import Any, Callable, TypeVar

from timetally.application.runtime import TimeTallyRuntime
from timetally.application.store import ChangeOrigin, ObserverStage, StateChange
from timetally.console.events import EventHub, FrontendEvent
from timetally.domain.config import ListConfig
from timetally.domain.formatting import format_clock
from timetally.domain.media import media_key
from timetally.domain.task import Task


T = TypeVar("T")


class TimerFacade:
    """Facade that isolates front ends from runtime internals.

    Every command returns plain dicts so a front end can print or serialize
    them without importing domain types.
    """

    __slots__ = (
        "_runtime",
        "_event_hub",
        "_lock",
        "_last_successful_command_at",
        "_last_command_error",
        "_remote_reload_count",
    )

    def __init__(self, runtime: TimeTallyRuntime, event_hub: EventHub) -> None:
        self._runtime = runtime
        self._event_hub = event_hub
        self._lock = RLock()
        self._last_successful_command_at: datetime | None = None
        self._last_command_error: str | None = None
        self._remote_reload_count = 0
        runtime.store.add_observer(self._on_state_change, stage=ObserverStage.VIEW)

    # ------------------------------------------------------------------
    # List commands
    # ------------------------------------------------------------------
    def add_list(self, *, name: str) -> dict[str, Any]:
        def _add() -> dict[str, Any]:
            created = self._runtime.add_list(name)
            self.publish_info(f"List '{created}' created and selected.")
            return self._serialize_list(created)

        return self._run_command(_add)

    def rename_list(self, *, old_name: str, new_name: str) -> dict[str, Any]:
        def _rename() -> dict[str, Any]:
            renamed = self._runtime.rename_list(old_name, new_name)
            self.publish_info(f"List '{old_name}' renamed to '{renamed}'.")
            return self._serialize_list(renamed)

        return self._run_command(_rename)

    def delete_list(self, *, name: str) -> dict[str, Any]:
        def _delete() -> dict[str, Any]:
            deleted = self._runtime.delete_list(name)
            if deleted:
                self.publish_info(f"Deleted list '{name}'.")
            else:
                self.publish_info("The last list cannot be deleted.")
            return {"name": name, "deleted": deleted}

        return self._run_command(_delete)

    def reorder_lists(self, *, from_index: int, to_index: int) -> list[dict[str, Any]]:
        def _move() -> list[dict[str, Any]]:
            if not self._runtime.reorder_lists(from_index, to_index):
                raise ValueError(f"Cannot move list {from_index} to {to_index}")
            return self.list_lists()

        return self._run_command(_move)

    def select_list(self, *, name: str) -> dict[str, Any]:
        def _select() -> dict[str, Any]:
            if self._runtime.select_list(name):
                self.publish_info(f"Switched to list '{name}'.")
            return self._serialize_list(name)

        return self._run_command(_select)

    # ------------------------------------------------------------------
    # Task commands
    # ------------------------------------------------------------------
    def add_task(
        self,
        *,
        name: str,
        duration: float,
        unit: str = "seconds",
        index: int | None = None,
    ) -> dict[str, Any]:
        def _add() -> dict[str, Any]:
            task = self._runtime.add_task(name, duration, unit=unit, index=index)
            self.publish_info(f"Added '{task.name}' ({format_clock(task.total_duration)}).")
            return self._serialize_task(task)

        return self._run_command(_add)

    def edit_task(
        self,
        *,
        index: int,
        name: str | None = None,
        duration: float | None = None,
        unit: str = "seconds",
    ) -> dict[str, Any]:
        def _edit() -> dict[str, Any]:
            task = self._runtime.edit_task(index, name=name, duration=duration, unit=unit)
            if task is None:
                raise IndexError(f"No task at position {index}")
            self.publish_info(f"Updated '{task.name}'.")
            return self._serialize_task(task, index=index)

        return self._run_command(_edit)

    def toggle_task(self, *, index: int) -> dict[str, Any]:
        def _toggle() -> dict[str, Any]:
            task = self._runtime.toggle_task(index)
            if task is None:
                raise IndexError(f"No task at position {index}")
            state = "enabled" if task.enabled else "disabled"
            self.publish_info(f"'{task.name}' {state}.")
            return self._serialize_task(task, index=index)

        return self._run_command(_toggle)

    def remove_task(self, *, index: int) -> dict[str, Any]:
        def _remove() -> dict[str, Any]:
            task = self._runtime.remove_task(index)
            if task is None:
                raise IndexError(f"No task at position {index}")
            self.publish_info(f"Removed '{task.name}'.")
            return self._serialize_task(task)

        return self._run_command(_remove)

    def reorder_tasks(self, *, from_index: int, to_index: int) -> list[dict[str, Any]]:
        def _move() -> list[dict[str, Any]]:
            if not self._runtime.reorder_tasks(from_index, to_index):
                raise ValueError(f"Cannot move task {from_index} to {to_index}")
            return self.list_tasks()

        return self._run_command(_move)

    # ------------------------------------------------------------------
    # Config commands
    # ------------------------------------------------------------------
    def update_config(self, **changes: Any) -> dict[str, Any]:
        def _update() -> dict[str, Any]:
            config = self._runtime.update_config(**changes)
            self.publish_info("Settings updated.")
            return self._serialize_config(config)

        return self._run_command(_update)

    def toggle_dark(self) -> dict[str, Any]:
        return self._run_command(lambda: {"dark": self._runtime.toggle_dark()})

    # ------------------------------------------------------------------
    # Timer commands
    # ------------------------------------------------------------------
    def start(self) -> dict[str, Any]:
        return self._timer_command(self._runtime.start, "Timer started.", "Nothing to start.")

    def pause(self) -> dict[str, Any]:
        return self._timer_command(self._runtime.pause, "Timer paused.", "Timer is not running.")

    def skip(self) -> dict[str, Any]:
        return self._timer_command(self._runtime.skip, "Skipped to the next task.", "No later enabled task.")

    def complete_early(self) -> dict[str, Any]:
        return self._timer_command(self._runtime.complete_early, "Task marked complete.", "No active task.")

    def restart(self) -> dict[str, Any]:
        return self._timer_command(self._runtime.restart, "List restarted.", "Nothing to restart.")

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------
    def export_file(self, *, path: str) -> dict[str, Any]:
        def _export() -> dict[str, Any]:
            target = self._runtime.export_to_file(path)
            self.publish_info(f"Exported lists to '{target}'.")
            return {"path": str(target)}

        return self._run_command(_export)

    def import_file(self, *, path: str) -> dict[str, Any]:
        def _import() -> dict[str, Any]:
            added = self._runtime.import_from_file(path)
            task_word = "task" if added == 1 else "tasks"
            self.publish_info(f"Imported {added} {task_word} from '{path}'.")
            return {"path": path, "added": added}

        return self._run_command(_import)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def list_lists(self) -> list[dict[str, Any]]:
        return [self._serialize_list(name) for name in self._runtime.list_names()]

    def list_tasks(self, *, list_name: str | None = None) -> list[dict[str, Any]]:
        snapshot = self._runtime.snapshot
        name = list_name or snapshot.active_list_name
        tasks = self._runtime.list_tasks(name)
        return [self._serialize_task(task, index=index, list_name=name) for index, task in enumerate(tasks)]

    def get_config(self, *, list_name: str | None = None) -> dict[str, Any]:
        return self._serialize_config(self._runtime.get_config(list_name))

    def timer_status(self) -> dict[str, Any]:
        snapshot = self._runtime.snapshot
        active = self._runtime.get_active_task()
        return {
            "state": self._runtime.status.value,
            "active_list": snapshot.active_list_name,
            "active_task_index": snapshot.active_task_index,
            "active_task": (
                self._serialize_task(active, index=snapshot.active_task_index)
                if active is not None
                else None
            ),
            "remaining": format_clock(active.remaining) if active is not None else None,
            "progress_percent": self._runtime.progress(),
            "eta": self._runtime.eta(),
        }

    def list_events(self, *, limit: int = 200) -> list[dict[str, Any]]:
        return [self._serialize_event(event) for event in self._event_hub.list_recent(limit=limit)]

    def subscribe_events(self) -> int:
        return self._event_hub.subscribe()

    def unsubscribe_events(self, subscriber_id: int) -> None:
        self._event_hub.unsubscribe(subscriber_id)

    def drain_events(self, subscriber_id: int) -> list[dict[str, Any]]:
        return [self._serialize_event(event) for event in self._event_hub.drain(subscriber_id)]

    def diagnostics(self) -> dict[str, Any]:
        return {
            "state_version": self._runtime.store.version,
            "pending_write": self._runtime.gateway.has_pending,
            "sync_instance_id": (
                self._runtime.channel.instance_id if self._runtime.channel is not None else None
            ),
            "remote_reload_count": self._remote_reload_count,
            "event_subscribers": self._event_hub.subscriber_count,
            "dropped_event_count": self._event_hub.dropped_event_count,
            "last_successful_command_at": self._iso(self._last_successful_command_at),
            "last_command_error": self._last_command_error,
        }

    def publish_info(self, message: str) -> None:
        self._event_hub.publish(event_type="info", message=message, source="facade")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _on_state_change(self, change: StateChange) -> None:
        if change.origin is ChangeOrigin.REMOTE:
            self._remote_reload_count += 1
            self._event_hub.publish(
                event_type="sync",
                message="State updated by another instance.",
                source="sync",
            )

    def _timer_command(self, action: Callable[[], bool], done: str, ignored: str) -> dict[str, Any]:
        def _run() -> dict[str, Any]:
            applied = action()
            self.publish_info(done if applied else ignored)
            return {"applied": applied, **self.timer_status()}

        return self._run_command(_run)

    def _run_command(self, callback: Callable[[], T]) -> T:
        with self._lock:
            try:
                result = callback()
            except Exception as exc:
                self._last_command_error = str(exc)
                raise
            self._last_successful_command_at = datetime.now(timezone.utc)
            self._last_command_error = None
            return result

    def _serialize_list(self, name: str) -> dict[str, Any]:
        snapshot = self._runtime.snapshot
        task_list = snapshot.lists[name]
        return {
            "name": name,
            "active": name == snapshot.active_list_name,
            "task_count": len(task_list.tasks),
            "enabled_count": sum(1 for task in task_list.tasks if task.enabled),
            "total": format_clock(sum(task.total_duration for task in task_list.tasks)),
        }

    def _serialize_task(
        self,
        task: Task,
        *,
        index: int | None = None,
        list_name: str | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": task.name,
            "duration": format_clock(task.total_duration),
            "remaining": format_clock(task.remaining),
            "enabled": task.enabled,
            "media_url": task.media.source_url if task.media is not None else None,
        }
        if index is not None:
            payload["index"] = index
            if task.media is not None:
                owner = list_name or self._runtime.snapshot.active_list_name
                payload["media_key"] = media_key(owner, index)
        return payload

    @staticmethod
    def _serialize_config(config: ListConfig) -> dict[str, Any]:
        return {
            "beep_enabled": config.beep_enabled,
            "voice_enabled": config.voice_enabled,
            "voice_id": config.voice_id,
            "announce_mode": config.announce_mode.value,
            "announce_mode_label": config.announce_mode.label,
            "custom_message": config.custom_message,
        }

    @classmethod
    def _serialize_event(cls, event: FrontendEvent) -> dict[str, Any]:
        return {
            "id": event.event_id,
            "type": event.event_type,
            "message": event.message,
            "timestamp": cls._iso(event.timestamp),
            "source": event.source,
        }

    @staticmethod
    def _iso(value: datetime | None) -> str | None:
        return value.isoformat() if value is not None else None
