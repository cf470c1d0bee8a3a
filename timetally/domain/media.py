"""Media-link detection for task names.

A task whose name contains a supported video link gets a ``MediaRef``
derived from that link. The derivation is pure, so the repair pass can run
it after every mutation without changing anything the second time.
"""

from __future__ import annotations

import re

from .task import MediaRef, Task

_VIDEO_ID = r"([A-Za-z0-9_-]{11})(?![A-Za-z0-9_-])"

_YOUTUBE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"(?:https?://)?(?:www\.|m\.|music\.)?youtube\.com/watch\?(?:[^\s#]*?&)?v=" + _VIDEO_ID,
        re.IGNORECASE,
    ),
    re.compile(r"(?:https?://)?(?:www\.)?youtu\.be/" + _VIDEO_ID, re.IGNORECASE),
    re.compile(
        r"(?:https?://)?(?:www\.|m\.)?youtube(?:-nocookie)?\.com/(?:embed|shorts|live|v)/" + _VIDEO_ID,
        re.IGNORECASE,
    ),
)


def watch_url(media_id: str) -> str:
    return f"https://www.youtube.com/watch?v={media_id}"


def infer_media(name: str) -> MediaRef | None:
    """Return the media reference encoded in ``name``, if any."""
    if not name:
        return None

    best: re.Match[str] | None = None
    for pattern in _YOUTUBE_PATTERNS:
        match = pattern.search(name)
        if match is not None and (best is None or match.start() < best.start()):
            best = match

    if best is None:
        return None
    media_id = best.group(1)
    return MediaRef(media_id=media_id, source_url=watch_url(media_id))


def attach_inferred_media(task: Task) -> bool:
    """Fill in missing media metadata for ``task``; return True when it changed."""
    if task.media is not None:
        return False
    inferred = infer_media(task.name)
    if inferred is None:
        return False
    task.media = inferred
    return True


def media_key(list_name: str, task_index: int) -> str:
    """Stable key addressing one task's rendered media player."""
    return f"{list_name}#{task_index}"
