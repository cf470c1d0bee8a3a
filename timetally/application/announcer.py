"""Turns scheduler transitions into voice, beep, and media cues."""

from __future__ import annotations

import random

from timetally.constants import AFFIRMATIONS, FALLBACK_COMPLETION_MESSAGE
from timetally.domain.config import AnnounceMode, ListConfig
from timetally.domain.formatting import spoken_duration
from timetally.domain.media import media_key
from timetally.domain.task import Task
from timetally.ports.media import MediaControlPort
from timetally.ports.notifications import NotificationPort


def start_announcement(task: Task, mode: AnnounceMode) -> str:
    duration = spoken_duration(task.remaining)
    if mode is AnnounceMode.NAME_AND_DURATION:
        return f"Starting {task.name} for {duration}"
    if mode is AnnounceMode.NAME_ONLY:
        return f"Starting {task.name}"
    if mode is AnnounceMode.DURATION_ONLY:
        return f"Starting {duration}"
    return ""


class Announcer:
    """Applies a list's config to decide which cues reach the ports."""

    __slots__ = ("_notifier", "_media", "_rng")

    def __init__(
        self,
        notifier: NotificationPort,
        media: MediaControlPort,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self._notifier = notifier
        self._media = media
        self._rng = rng or random.Random()

    def task_started(self, list_name: str, task_index: int, task: Task, config: ListConfig) -> None:
        # Only one task's media may play at a time.
        self._media.pause_all_media()
        self._speak(start_announcement(task, config.announce_mode), config)
        if task.media is not None:
            self._media.play_media(media_key(list_name, task_index))

    def task_completed(self, config: ListConfig) -> None:
        if config.beep_enabled:
            self._notifier.beep()
        self._speak(self.completion_message(config), config)

    def stop_media(self) -> None:
        self._media.pause_all_media()

    def completion_message(self, config: ListConfig) -> str:
        if config.announce_mode is AnnounceMode.CUSTOM_ON_COMPLETE:
            return config.custom_message or FALLBACK_COMPLETION_MESSAGE
        if config.announce_mode is AnnounceMode.RANDOM_AFFIRMATION_ON_COMPLETE:
            return self._rng.choice(AFFIRMATIONS)
        return ""

    def _speak(self, text: str, config: ListConfig) -> None:
        if not config.voice_enabled or not text:
            return
        self._notifier.announce(text, config.voice_id)
