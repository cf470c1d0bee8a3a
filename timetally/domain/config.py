"""Per-list notification settings."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from timetally.constants import DEFAULT_CUSTOM_MESSAGE


class AnnounceMode(str, Enum):
    """What the voice says when a task starts or completes."""

    NAME_AND_DURATION = "name_and_duration"
    NAME_ONLY = "name_only"
    DURATION_ONLY = "duration_only"
    CUSTOM_ON_COMPLETE = "custom_on_complete"
    RANDOM_AFFIRMATION_ON_COMPLETE = "random_affirmation_on_complete"

    @property
    def label(self) -> str:
        return {
            AnnounceMode.NAME_AND_DURATION: "Task name + duration at start",
            AnnounceMode.NAME_ONLY: "Task name at start",
            AnnounceMode.DURATION_ONLY: "Duration at start",
            AnnounceMode.CUSTOM_ON_COMPLETE: "Custom message on completion",
            AnnounceMode.RANDOM_AFFIRMATION_ON_COMPLETE: "Random affirmation on completion",
        }[self]

    @classmethod
    def from_value(cls, value: "AnnounceMode | str") -> "AnnounceMode":
        if isinstance(value, AnnounceMode):
            return value

        normalized = value.strip()
        # Mode names written by the browser build of TimeTally.
        aliases = {
            "taskNamePlusDurationStart": cls.NAME_AND_DURATION,
            "taskNameStart": cls.NAME_ONLY,
            "durationStart": cls.DURATION_ONLY,
            "customCompletion": cls.CUSTOM_ON_COMPLETE,
            "randomAffirmation": cls.RANDOM_AFFIRMATION_ON_COMPLETE,
            "name": cls.NAME_ONLY,
            "duration": cls.DURATION_ONLY,
            "custom": cls.CUSTOM_ON_COMPLETE,
            "affirmation": cls.RANDOM_AFFIRMATION_ON_COMPLETE,
        }
        if normalized in aliases:
            return aliases[normalized]
        return cls(normalized.lower())


@dataclass(slots=True)
class ListConfig:
    """Notification settings owned by exactly one task list."""

    beep_enabled: bool = True
    voice_enabled: bool = False
    voice_id: str = ""
    announce_mode: AnnounceMode = AnnounceMode.NAME_AND_DURATION
    custom_message: str = DEFAULT_CUSTOM_MESSAGE
