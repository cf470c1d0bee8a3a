"""Task domain entity: one countdown unit."""

from __future__ import annotations

import math
from dataclasses import dataclass

from timetally.constants import SECONDS_PER_UNIT

from .errors import InvalidTaskInput


@dataclass(slots=True)
class MediaRef:
    """Embedded media inferred from (or imported alongside) a task name."""

    media_id: str
    source_url: str


@dataclass(slots=True)
class Task:
    """Timed unit of work; ``remaining`` counts down from ``total_duration``."""

    name: str
    total_duration: int
    remaining: float
    enabled: bool = True
    media: MediaRef | None = None

    @classmethod
    def create(cls, name: str, duration: float, *, unit: str = "seconds") -> "Task":
        clean_name = validate_task_name(name)
        total = to_seconds(duration, unit)
        return cls(name=clean_name, total_duration=total, remaining=float(total))

    @property
    def elapsed(self) -> float:
        return self.total_duration - self.remaining

    def reset(self) -> None:
        self.remaining = float(self.total_duration)

    def clamp_remaining(self) -> None:
        self.remaining = min(float(self.total_duration), max(0.0, float(self.remaining)))


def validate_task_name(name: str) -> str:
    clean = (name or "").strip()
    if not clean:
        raise InvalidTaskInput("Task name is required")
    return clean


def to_seconds(amount: float, unit: str = "seconds") -> int:
    """Convert a positive amount in ``unit`` to whole seconds (at least 1)."""
    multiplier = SECONDS_PER_UNIT.get(str(unit).strip().lower())
    if multiplier is None:
        options = ", ".join(SECONDS_PER_UNIT)
        raise InvalidTaskInput(f"Unknown time unit {unit!r}. Supported units: {options}")

    if isinstance(amount, bool):
        raise InvalidTaskInput("Task duration must be a number")
    try:
        value = float(amount)
    except (TypeError, ValueError) as exc:
        raise InvalidTaskInput(f"Task duration must be a number, got {amount!r}") from exc

    if not math.isfinite(value) or value <= 0:
        raise InvalidTaskInput(f"Task duration must be positive, got {amount!r}")

    seconds = round_half_up(value * multiplier)
    if seconds < 1:
        raise InvalidTaskInput(f"Task duration must be at least one second, got {amount!r}")
    return seconds


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
