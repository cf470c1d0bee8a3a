"""Ports consumed by the TimeTally engine."""

from timetally.ports.media import MediaControlPort
from timetally.ports.notifications import NotificationPort
from timetally.ports.storage import (
    ChannelListener,
    ChannelMessage,
    StateStoragePort,
    SyncChannelPort,
)

__all__ = [
    "ChannelListener",
    "ChannelMessage",
    "MediaControlPort",
    "NotificationPort",
    "StateStoragePort",
    "SyncChannelPort",
]
