"""Notification port abstractions for speech and audio adapters."""

from __future__ import annotations

from typing import Protocol


class NotificationPort(Protocol):
    """Port for spoken announcements and the completion beep."""

    def announce(self, text: str, voice_id: str = "") -> None:
        """Speak ``text`` with the requested voice (empty for the default voice)."""

    def beep(self) -> None:
        """Play the short completion sound."""
