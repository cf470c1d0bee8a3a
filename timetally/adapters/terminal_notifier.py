"""Terminal adapters for speech, beep, and media cues (stdout + bell)."""

from __future__ import annotations

from datetime import datetime, timezone

from timetally.ports.media import MediaControlPort
from timetally.ports.notifications import NotificationPort


def _stamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class TerminalNotifier(NotificationPort):
    """Prints announcements; rings the terminal bell on beep."""

    __slots__ = ()

    def announce(self, text: str, voice_id: str = "") -> None:
        voice = f" ({voice_id})" if voice_id else ""
        print(f"[{_stamp()}] [voice{voice}] {text}")

    def beep(self) -> None:
        print(f"[{_stamp()}] [beep]\a")


class TerminalMediaControl(MediaControlPort):
    """Prints media requests; the terminal has no embedded players."""

    __slots__ = ("_playing",)

    def __init__(self) -> None:
        self._playing: str | None = None

    def play_media(self, key: str) -> None:
        self._playing = key
        print(f"[{_stamp()}] [media] play {key}")

    def pause_all_media(self) -> None:
        if self._playing is None:
            return
        print(f"[{_stamp()}] [media] pause {self._playing}")
        self._playing = None
