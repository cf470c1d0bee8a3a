"""Human-readable durations and list progress."""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import datetime, timedelta

from .task import Task, round_half_up


def format_clock(total_seconds: float) -> str:
    """``H:MM:SS`` when an hour or more, otherwise ``M:SS``."""
    seconds = max(0, math.floor(total_seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def spoken_duration(total_seconds: float) -> str:
    """Duration spelled out for speech, e.g. ``1 hour 5 minutes 3 seconds``."""
    seconds = max(0, round_half_up(total_seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)

    parts: list[str] = []
    if hours:
        parts.append(f"{hours} {'hour' if hours == 1 else 'hours'}")
    if minutes:
        parts.append(f"{minutes} {'minute' if minutes == 1 else 'minutes'}")
    if secs or (not hours and not minutes):
        parts.append(f"{secs} {'second' if secs == 1 else 'seconds'}")
    return " ".join(parts)


def enabled_remaining(tasks: Sequence[Task]) -> float:
    return sum(task.remaining for task in tasks if task.enabled)


def progress_percent(tasks: Sequence[Task]) -> int:
    total = sum(task.total_duration for task in tasks)
    if total <= 0:
        return 0
    done = sum(task.elapsed for task in tasks)
    return min(100, round_half_up(done / total * 100))


def eta_text(tasks: Sequence[Task], now: datetime) -> str:
    """``ETA: HH:MM · H:MM:SS remaining`` for enabled tasks, or empty when nothing is left."""
    left = enabled_remaining(tasks)
    if left <= 0:
        return ""
    finish = now + timedelta(seconds=left)
    return f"ETA: {finish:%H:%M} · {format_clock(left)} remaining"
