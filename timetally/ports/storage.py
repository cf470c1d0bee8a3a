"""Durable storage and change-channel ports used by persistence and sync."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol


class StateStoragePort(Protocol):
    """One opaque durable record per installation."""

    def read(self) -> str | None:
        """Return the stored record, or None when nothing was written yet."""

    def write(self, payload: str) -> None:
        """Replace the stored record atomically."""


@dataclass(frozen=True, slots=True)
class ChannelMessage:
    """Change signal; receivers re-read durable state instead of trusting a payload."""

    kind: str
    origin: str


ChannelListener = Callable[[ChannelMessage], None]


class SyncChannelPort(Protocol):
    """Named broadcast topic shared by every instance using the same durable store."""

    instance_id: str

    def publish(self, kind: str) -> None:
        """Broadcast a signal of ``kind`` to every other instance."""

    def subscribe(self, listener: ChannelListener) -> None:
        """Deliver signals from other instances (and external storage changes) to ``listener``."""

    def acknowledge_local_write(self) -> None:
        """Record that this instance just wrote durable state, so the write is not echoed back."""

    def close(self) -> None:
        """Stop watching and release resources."""
