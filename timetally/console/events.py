"""In-process event hub carrying cues and status messages to front ends."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from itertools import count
from queue import Empty, Full, Queue
from threading import RLock


@dataclass(frozen=True, slots=True)
class FrontendEvent:
    """One cue (voice, beep, media) or status message for a front end."""

    event_id: int
    event_type: str
    message: str
    timestamp: datetime
    source: str = "runtime"


class EventHub:
    """Fans events out to subscriber queues and keeps a bounded history.

    Publishing never blocks: a subscriber whose queue is full misses the
    event, and the miss is counted in ``dropped_event_count``.
    """

    __slots__ = ("_history", "_queues", "_queue_size", "_event_ids", "_subscriber_ids", "_dropped", "_lock")

    def __init__(self, *, history_limit: int = 512, subscriber_queue_size: int = 256) -> None:
        self._history: deque[FrontendEvent] = deque(maxlen=history_limit)
        self._queues: dict[int, Queue[FrontendEvent]] = {}
        self._queue_size = subscriber_queue_size
        self._event_ids = count(1)
        self._subscriber_ids = count(1)
        self._dropped = 0
        self._lock = RLock()

    def publish(self, *, event_type: str, message: str, source: str = "runtime") -> FrontendEvent:
        with self._lock:
            event = FrontendEvent(
                event_id=next(self._event_ids),
                event_type=event_type,
                message=message,
                timestamp=datetime.now(timezone.utc),
                source=source,
            )
            self._history.append(event)
            for queue in self._queues.values():
                try:
                    queue.put_nowait(event)
                except Full:
                    self._dropped += 1
            return event

    def subscribe(self) -> int:
        with self._lock:
            subscriber_id = next(self._subscriber_ids)
            self._queues[subscriber_id] = Queue(maxsize=self._queue_size)
            return subscriber_id

    def unsubscribe(self, subscriber_id: int) -> None:
        with self._lock:
            self._queues.pop(subscriber_id, None)

    def drain(self, subscriber_id: int) -> list[FrontendEvent]:
        """Events queued for ``subscriber_id`` since the last drain, oldest first."""
        with self._lock:
            queue = self._queues.get(subscriber_id)
        drained: list[FrontendEvent] = []
        while queue is not None:
            try:
                drained.append(queue.get_nowait())
            except Empty:
                break
        return drained

    def list_recent(self, *, limit: int = 200) -> list[FrontendEvent]:
        with self._lock:
            if limit <= 0:
                return []
            return list(self._history)[-limit:]

    @property
    def last_event(self) -> FrontendEvent | None:
        with self._lock:
            return self._history[-1] if self._history else None

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._queues)

    @property
    def dropped_event_count(self) -> int:
        with self._lock:
            return self._dropped
