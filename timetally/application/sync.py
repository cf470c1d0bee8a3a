"""Sync broadcaster: converges instances that share one durable store."""

from __future__ import annotations

import logging

from timetally.constants import STATE_PATCHED
from timetally.ports.storage import ChannelMessage, SyncChannelPort

from .persistence import PersistenceGateway
from .store import ChangeOrigin, StateChange, StateStore

logger = logging.getLogger(__name__)


class SyncBroadcaster:
    """Publishes a change signal per local transaction and reloads on foreign ones.

    Consistency is last writer wins on the whole snapshot: a reload replaces
    the local state with whatever is durable, with no field-level merge.
    """

    __slots__ = ("_store", "_gateway", "_channel", "_reload_count")

    def __init__(self, store: StateStore, gateway: PersistenceGateway, channel: SyncChannelPort) -> None:
        self._store = store
        self._gateway = gateway
        self._channel = channel
        self._reload_count = 0
        channel.subscribe(self._on_message)

    @property
    def reload_count(self) -> int:
        return self._reload_count

    def on_change(self, change: StateChange) -> None:
        """Store observer: signal siblings after every local transaction."""
        if change.origin is ChangeOrigin.LOCAL:
            self._channel.publish(STATE_PATCHED)

    def reload(self) -> bool:
        """Pull durable state into the store; return True when anything was applied."""
        with self._store.lock:
            if self._gateway.has_pending:
                # A newer local snapshot is about to be written and will win.
                logger.debug("Reload deferred: local write pending")
                return False

            state = self._gateway.reload_if_changed()
            if state is None:
                return False

            self._store.replace(state, origin=ChangeOrigin.REMOTE)
            self._reload_count += 1
        logger.debug("Reloaded state written by another instance")
        return True

    def _on_message(self, message: ChannelMessage) -> None:
        if message.kind != STATE_PATCHED:
            return
        if message.origin == self._channel.instance_id:
            return
        self.reload()
