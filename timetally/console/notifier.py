"""Ports that forward speech, beep, and media cues into the event hub."""

from __future__ import annotations

from timetally.console.events import EventHub
from timetally.ports.media import MediaControlPort
from timetally.ports.notifications import NotificationPort


class EventingNotifier(NotificationPort):
    """Bridges announcements and beeps to front-end events."""

    __slots__ = ("_event_hub",)

    def __init__(self, event_hub: EventHub) -> None:
        self._event_hub = event_hub

    def announce(self, text: str, voice_id: str = "") -> None:
        self._event_hub.publish(
            event_type="voice",
            message=f"{text} [{voice_id}]" if voice_id else text,
            source="notifier",
        )

    def beep(self) -> None:
        self._event_hub.publish(event_type="beep", message="Beep", source="notifier")


class EventingMediaControl(MediaControlPort):
    """Bridges media playback requests to front-end events."""

    __slots__ = ("_event_hub",)

    def __init__(self, event_hub: EventHub) -> None:
        self._event_hub = event_hub

    def play_media(self, key: str) -> None:
        self._event_hub.publish(event_type="media_play", message=key, source="media")

    def pause_all_media(self) -> None:
        self._event_hub.publish(event_type="media_pause", message="all", source="media")
