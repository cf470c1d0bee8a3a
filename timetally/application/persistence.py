"""Persistence gateway: debounced durable writes and repaired loads."""

from __future__ import annotations

import json
import logging
import math
from threading import RLock, Timer
from typing import Any, Callable

from timetally.constants import DEFAULT_CUSTOM_MESSAGE, SAVE_DEBOUNCE_SECONDS, STATE_FORMAT_VERSION
from timetally.domain.config import AnnounceMode, ListConfig
from timetally.domain.errors import MalformedPersistedState
from timetally.domain.media import watch_url
from timetally.domain.repair import normalize_state
from timetally.domain.state import AppState, TaskList, default_state
from timetally.domain.task import MediaRef, Task, round_half_up
from timetally.ports.storage import StateStoragePort

from .store import ChangeOrigin, StateChange


class PersistenceGateway:
    """Coalesces saves into one write per debounce window and repairs what it loads.

    The first ``save`` in a quiet period arms a timer; later saves inside the
    window only replace the pending snapshot, so the write always carries
    the latest state. ``flush`` writes synchronously and is what shutdown
    paths call.
    """

    __slots__ = (
        "_storage",
        "_debounce_seconds",
        "_enable_timers",
        "_lock",
        "_pending",
        "_timer",
        "_generation",
        "_last_payload",
        "_write_listeners",
        "logger",
    )

    def __init__(
        self,
        storage: StateStoragePort,
        *,
        debounce_seconds: float = SAVE_DEBOUNCE_SECONDS,
        enable_timers: bool = True,
        logger: logging.Logger | None = None,
    ) -> None:
        self._storage = storage
        self._debounce_seconds = max(0.0, debounce_seconds)
        self._enable_timers = enable_timers
        self._lock = RLock()
        self._pending: AppState | None = None
        self._timer: Timer | None = None
        self._generation = 0
        self._last_payload: str | None = None
        self._write_listeners: list[Callable[[], None]] = []
        self.logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def load(self) -> AppState:
        """Read durable state, falling back to the default state when absent or unreadable."""
        payload = self._storage.read()
        with self._lock:
            self._last_payload = payload

        if payload is None:
            self.logger.debug("No persisted state; starting from defaults")
            return default_state()

        try:
            state = decode_state(payload)
        except MalformedPersistedState as exc:
            self.logger.warning("Ignoring unreadable persisted state: %s", exc)
            return default_state()
        return normalize_state(state)

    def reload_if_changed(self) -> AppState | None:
        """Return freshly decoded state when the durable record differs from what this gateway last saw."""
        payload = self._storage.read()
        with self._lock:
            if payload is None or payload == self._last_payload:
                return None
            self._last_payload = payload

        try:
            state = decode_state(payload)
        except MalformedPersistedState as exc:
            self.logger.warning("Ignoring unreadable state written by another instance: %s", exc)
            return None
        return normalize_state(state)

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------
    def on_change(self, change: StateChange) -> None:
        """Store observer: remote reloads are already durable and are not written back."""
        if change.origin is ChangeOrigin.LOCAL:
            self.save(change.state)

    def save(self, state: AppState) -> None:
        with self._lock:
            self._pending = state
            if self._timer is not None or not self._enable_timers:
                return
            self._timer = Timer(self._debounce_seconds, self._on_timer, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> bool:
        """Write the pending state now; return False when nothing was pending."""
        with self._lock:
            self._cancel_timer()
            state = self._pending
            self._pending = None
            if state is None:
                return False

            payload = encode_state(state)
            try:
                self._storage.write(payload)
            except OSError as exc:
                self.logger.warning("Failed to write state: %s", exc)
                return False
            self._last_payload = payload
            self.logger.debug("Wrote state (%d bytes)", len(payload))
            listeners = list(self._write_listeners)

        for listener in listeners:
            listener()
        return True

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def add_write_listener(self, listener: Callable[[], None]) -> None:
        with self._lock:
            self._write_listeners.append(listener)

    def close(self) -> None:
        self.flush()

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
        self.flush()

    def _cancel_timer(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


# ----------------------------------------------------------------------
# Durable record encoding
# ----------------------------------------------------------------------
def encode_state(state: AppState) -> str:
    return json.dumps(state_to_record(state), indent=2, sort_keys=True)


def decode_state(payload: str) -> AppState:
    try:
        record = json.loads(payload)
    except (TypeError, ValueError) as exc:
        raise MalformedPersistedState(f"state record is not valid JSON: {exc}") from exc
    return state_from_record(record)


def state_to_record(state: AppState) -> dict[str, Any]:
    return {
        "version": STATE_FORMAT_VERSION,
        "lists": {
            name: [_task_to_record(task) for task in state.lists[name].tasks]
            for name in state.list_order
        },
        "listOrder": list(state.list_order),
        "activeListName": state.active_list_name,
        "activeTaskIndex": state.active_task_index,
        "configs": {name: _config_to_record(state.lists[name].config) for name in state.list_order},
        "ui": {
            "dark": state.dark,
            "showHelp": state.show_help,
            "showOptions": state.show_options,
        },
    }


def state_from_record(record: Any) -> AppState:
    """Decode a durable record, migrating the unversioned legacy shape."""
    if not isinstance(record, dict):
        raise MalformedPersistedState("state record must be a JSON object")

    raw_lists = record.get("lists")
    if not isinstance(raw_lists, dict):
        raise MalformedPersistedState("state record has no 'lists' object")

    # Legacy records kept configs under "listConfigs" and UI flags at top level.
    raw_configs = record.get("configs", record.get("listConfigs", {}))
    if not isinstance(raw_configs, dict):
        raw_configs = {}
    ui = record.get("ui")
    if not isinstance(ui, dict):
        ui = record

    lists: dict[str, TaskList] = {}
    for name, raw_tasks in raw_lists.items():
        if not isinstance(name, str) or not isinstance(raw_tasks, list):
            continue
        tasks = [task for row in raw_tasks if (task := _task_from_record(row)) is not None]
        lists[name] = TaskList(tasks=tasks, config=_config_from_record(raw_configs.get(name)))

    raw_order = record.get("listOrder")
    list_order = [name for name in raw_order if isinstance(name, str)] if isinstance(raw_order, list) else []

    active_list_name = record.get("activeListName", record.get("currentList"))
    active_task_index = record.get("activeTaskIndex", record.get("currentTaskIndex", 0))

    fallback = default_state()
    return AppState(
        lists=lists,
        list_order=list_order,
        active_list_name=active_list_name if isinstance(active_list_name, str) else fallback.active_list_name,
        active_task_index=_as_int(active_task_index, default=0),
        dark=_as_bool(ui.get("dark"), default=fallback.dark),
        show_help=_as_bool(ui.get("showHelp"), default=fallback.show_help),
        show_options=_as_bool(ui.get("showOptions"), default=fallback.show_options),
    )


def _task_to_record(task: Task) -> dict[str, Any]:
    row: dict[str, Any] = {
        "name": task.name,
        "time": task.total_duration,
        "remaining": task.remaining,
        "enabled": task.enabled,
    }
    if task.media is not None:
        row["mediaId"] = task.media.media_id
        row["mediaUrl"] = task.media.source_url
    return row


def _task_from_record(row: Any) -> Task | None:
    if not isinstance(row, dict):
        return None
    name = row.get("name")
    if not isinstance(name, str) or not name:
        return None

    total = _as_float(row.get("time"))
    if total is None or round_half_up(total) < 1:
        return None
    total_duration = round_half_up(total)

    remaining = _as_float(row.get("remaining"))
    if remaining is None:
        remaining = float(total_duration)

    media: MediaRef | None = None
    media_id = row.get("mediaId")
    if isinstance(media_id, str) and media_id:
        media_url = row.get("mediaUrl")
        media = MediaRef(
            media_id=media_id,
            source_url=media_url if isinstance(media_url, str) and media_url else watch_url(media_id),
        )

    task = Task(
        name=name,
        total_duration=total_duration,
        remaining=remaining,
        enabled=_as_bool(row.get("enabled"), default=True),
        media=media,
    )
    task.clamp_remaining()
    return task


def _config_to_record(config: ListConfig) -> dict[str, Any]:
    return {
        "beepEnabled": config.beep_enabled,
        "voiceEnabled": config.voice_enabled,
        "voiceId": config.voice_id,
        "announceMode": config.announce_mode.value,
        "customMessage": config.custom_message,
    }


def _config_from_record(row: Any) -> ListConfig:
    if not isinstance(row, dict):
        return ListConfig()

    defaults = ListConfig()
    raw_mode = row.get("announceMode", row.get("ttsMode"))
    announce_mode = defaults.announce_mode
    if isinstance(raw_mode, str):
        try:
            announce_mode = AnnounceMode.from_value(raw_mode)
        except ValueError:
            announce_mode = defaults.announce_mode

    voice_id = row.get("voiceId", row.get("selectedVoiceName", ""))
    custom_message = row.get("customMessage", row.get("ttsCustomMessage", DEFAULT_CUSTOM_MESSAGE))
    return ListConfig(
        beep_enabled=_as_bool(row.get("beepEnabled"), default=defaults.beep_enabled),
        voice_enabled=_as_bool(row.get("voiceEnabled", row.get("ttsEnabled")), default=defaults.voice_enabled),
        voice_id=voice_id if isinstance(voice_id, str) else "",
        announce_mode=announce_mode,
        custom_message=custom_message if isinstance(custom_message, str) else DEFAULT_CUSTOM_MESSAGE,
    )


def _as_float(value: object) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def _as_int(value: object, *, default: int) -> int:
    parsed = _as_float(value)
    if parsed is None:
        return default
    return int(parsed)


def _as_bool(value: object, *, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    return default
