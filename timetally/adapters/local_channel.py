"""In-process change channel for instances embedded in one interpreter."""

from __future__ import annotations

import logging
from queue import Queue
from threading import RLock, Thread
from uuid import uuid4

from timetally.constants import STATE_PATCHED
from timetally.ports.storage import ChannelListener, ChannelMessage

logger = logging.getLogger(__name__)


class LocalSyncBus:
    """Topic shared by every ``LocalSyncChannel`` created from it.

    Messages are queued and handed to receivers on one dispatcher thread,
    never on the publisher's thread: a publisher may be holding its store
    lock while a receiver needs its own.
    """

    __slots__ = ("_channels", "_lock", "_queue", "_dispatcher", "_closed")

    def __init__(self) -> None:
        self._channels: list[LocalSyncChannel] = []
        self._lock = RLock()
        self._queue: Queue[ChannelMessage | None] = Queue()
        self._dispatcher: Thread | None = None
        self._closed = False

    def channel(self, instance_id: str | None = None) -> "LocalSyncChannel":
        channel = LocalSyncChannel(self, instance_id=instance_id)
        with self._lock:
            self._channels.append(channel)
        return channel

    def detach(self, channel: "LocalSyncChannel") -> None:
        with self._lock:
            if channel in self._channels:
                self._channels.remove(channel)

    def deliver(self, message: ChannelMessage) -> None:
        """Queue ``message`` for every channel except its origin; never blocks."""
        with self._lock:
            if self._closed:
                return
            if self._dispatcher is None:
                self._dispatcher = Thread(target=self._dispatch_loop, name="timetally-local-sync", daemon=True)
                self._dispatcher.start()
            self._queue.put(message)

    def wait_idle(self) -> None:
        """Block until every queued message, including follow-ups, was handed out."""
        self._queue.join()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            dispatcher = self._dispatcher
            self._queue.put(None)
        if dispatcher is not None:
            dispatcher.join()

    def _dispatch_loop(self) -> None:
        while True:
            message = self._queue.get()
            try:
                if message is None:
                    return
                with self._lock:
                    targets = [channel for channel in self._channels if channel.instance_id != message.origin]
                for channel in targets:
                    try:
                        channel.receive(message)
                    except Exception:
                        logger.exception("Channel %s failed to handle %s", channel.instance_id, message.kind)
            finally:
                self._queue.task_done()


class LocalSyncChannel:
    """Channel endpoint; a durable write is announced like a change signal."""

    __slots__ = ("instance_id", "_bus", "_listeners", "_lock")

    def __init__(self, bus: LocalSyncBus, *, instance_id: str | None = None) -> None:
        self.instance_id = instance_id or uuid4().hex
        self._bus = bus
        self._listeners: list[ChannelListener] = []
        self._lock = RLock()

    def publish(self, kind: str) -> None:
        self._bus.deliver(ChannelMessage(kind=kind, origin=self.instance_id))

    def subscribe(self, listener: ChannelListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def acknowledge_local_write(self) -> None:
        # No storage watcher in-process: tell siblings the durable record moved.
        self._bus.deliver(ChannelMessage(kind=STATE_PATCHED, origin=self.instance_id))

    def receive(self, message: ChannelMessage) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(message)

    def close(self) -> None:
        self._bus.detach(self)
