"""Media control port for embedded per-task video players."""

from __future__ import annotations

from typing import Protocol


class MediaControlPort(Protocol):
    """Port for starting and stopping embedded media, addressed by media key."""

    def play_media(self, key: str) -> None:
        """Start playback of the player registered under ``key``."""

    def pause_all_media(self) -> None:
        """Pause every player so at most one task's media plays."""
