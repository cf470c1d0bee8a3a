"""Shared constants for the TimeTally engine."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------
TICK_INTERVAL_SECONDS = 0.2

# ---------------------------------------------------------------------------
# Persistence / sync
# ---------------------------------------------------------------------------
SAVE_DEBOUNCE_SECONDS = 0.15
SYNC_POLL_SECONDS = 0.25
STATE_FORMAT_VERSION = 1
STATE_FILE_NAME = "state.json"
SYNC_TOPIC = "timetally-state"
STATE_PATCHED = "state_patched"

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
DEFAULT_LIST_NAME = "default"
IMPORTED_LIST_NAME = "imported"
IMPORTED_TASK_NAME = "Task"
DEFAULT_CUSTOM_MESSAGE = "Task completed!"
FALLBACK_COMPLETION_MESSAGE = "Task completed"

AFFIRMATIONS: tuple[str, ...] = (
    "Great job!",
    "Well done!",
    "You did it!",
    "Keep it up!",
    "Nice work!",
)

SECONDS_PER_UNIT: dict[str, int] = {
    "seconds": 1,
    "minutes": 60,
    "hours": 3600,
}
