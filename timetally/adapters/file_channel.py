"""File-based change channel for instances sharing one data directory.

Each instance publishes by atomically rewriting a small signal file that
names the sender. Every instance polls the signal file and the state file;
a changed signal from someone else, or a state-file change this instance
did not write, is delivered to listeners as one ``state_patched`` message.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from threading import RLock, Timer
from uuid import uuid4

from timetally.constants import STATE_FILE_NAME, STATE_PATCHED, SYNC_POLL_SECONDS, SYNC_TOPIC
from timetally.ports.storage import ChannelListener, ChannelMessage

from .file_storage import FileSignature, file_signature, write_text_atomic

logger = logging.getLogger(__name__)

STORAGE_ORIGIN = "storage"


class FileSyncChannel:
    """Polling broadcast channel backed by files in the shared data directory."""

    __slots__ = (
        "instance_id",
        "_signal_path",
        "_state_path",
        "_poll_interval",
        "_enable_timers",
        "_listeners",
        "_seen_signal",
        "_seen_state",
        "_sequence",
        "_timer",
        "_generation",
        "_closed",
        "_lock",
    )

    def __init__(
        self,
        directory: str | Path,
        *,
        topic: str = SYNC_TOPIC,
        state_file: str = STATE_FILE_NAME,
        instance_id: str | None = None,
        poll_interval: float = SYNC_POLL_SECONDS,
        enable_timers: bool = True,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        root = Path(directory).expanduser().resolve()
        root.mkdir(parents=True, exist_ok=True)

        self.instance_id = instance_id or uuid4().hex
        self._signal_path = root / f"{topic}.signal.json"
        self._state_path = root / state_file
        self._poll_interval = poll_interval
        self._enable_timers = enable_timers
        self._listeners: list[ChannelListener] = []
        self._seen_signal: FileSignature | None = file_signature(self._signal_path)
        self._seen_state: FileSignature | None = file_signature(self._state_path)
        self._sequence = 0
        self._timer: Timer | None = None
        self._generation = 0
        self._closed = False
        self._lock = RLock()

        self._arm_poll_timer()

    @property
    def signal_path(self) -> Path:
        return self._signal_path

    def publish(self, kind: str) -> None:
        with self._lock:
            if self._closed:
                return
            self._sequence += 1
            message = {"type": kind, "origin": self.instance_id, "seq": self._sequence}
            try:
                write_text_atomic(self._signal_path, json.dumps(message))
            except OSError as exc:
                logger.warning("Could not publish %s signal: %s", kind, exc)
                return
            self._seen_signal = file_signature(self._signal_path)

    def subscribe(self, listener: ChannelListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def acknowledge_local_write(self) -> None:
        with self._lock:
            self._seen_state = file_signature(self._state_path)

    def poll(self) -> bool:
        """Check both files once; return True when a message was delivered."""
        with self._lock:
            if self._closed:
                return False

            message: ChannelMessage | None = None

            signal = file_signature(self._signal_path)
            if signal != self._seen_signal:
                self._seen_signal = signal
                message = self._read_signal()

            state = file_signature(self._state_path)
            if state != self._seen_state:
                self._seen_state = state
                if message is None:
                    message = ChannelMessage(kind=STATE_PATCHED, origin=STORAGE_ORIGIN)

            listeners = list(self._listeners)

        if message is None:
            return False
        for listener in listeners:
            listener(message)
        return True

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _read_signal(self) -> ChannelMessage | None:
        try:
            data = json.loads(self._signal_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.debug("Unreadable sync signal: %s", exc)
            return None
        if not isinstance(data, dict):
            return None

        origin = str(data.get("origin", ""))
        if origin == self.instance_id:
            return None
        return ChannelMessage(kind=str(data.get("type", "")), origin=origin)

    def _arm_poll_timer(self) -> None:
        if not self._enable_timers:
            return
        self._timer = Timer(self._poll_interval, self._on_poll_timer, args=(self._generation,))
        self._timer.daemon = True
        self._timer.start()

    def _on_poll_timer(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._closed:
                return
        try:
            self.poll()
        finally:
            with self._lock:
                if generation == self._generation and not self._closed:
                    self._arm_poll_timer()
