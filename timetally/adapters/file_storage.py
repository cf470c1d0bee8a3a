"""Durable storage adapters for the persistence gateway."""

from __future__ import annotations

import logging
from pathlib import Path
from threading import Lock

logger = logging.getLogger(__name__)

FileSignature = tuple[int, int, int]


def file_signature(path: Path) -> FileSignature | None:
    """Identity of the file's current contents as seen by ``stat``; None when absent."""
    try:
        stat = path.stat()
    except OSError:
        return None
    return (stat.st_mtime_ns, stat.st_size, stat.st_ino)


def write_text_atomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = path.with_suffix(f"{path.suffix}.tmp")
    temp_path.write_text(text, encoding="utf-8")
    temp_path.replace(path)


class FileStateStorage:
    """JSON state record kept in one file, replaced atomically on every write."""

    __slots__ = ("_path",)

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser().resolve()

    def read(self) -> str | None:
        if not self._path.exists():
            return None
        try:
            return self._path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read %s: %s", self._path, exc)
            return None

    def write(self, payload: str) -> None:
        write_text_atomic(self._path, payload)


class MemoryStateStorage:
    """In-process record; several runtimes may share one instance."""

    __slots__ = ("_payload", "_revision", "_lock")

    def __init__(self, payload: str | None = None) -> None:
        self._payload = payload
        self._revision = 0
        self._lock = Lock()

    @property
    def revision(self) -> int:
        with self._lock:
            return self._revision

    def read(self) -> str | None:
        with self._lock:
            return self._payload

    def write(self, payload: str) -> None:
        with self._lock:
            self._payload = payload
            self._revision += 1
