"""Configuration loading for the console host."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, TypeVar

from timetally.constants import SAVE_DEBOUNCE_SECONDS, SYNC_POLL_SECONDS, TICK_INTERVAL_SECONDS

T = TypeVar("T")

_SWITCHES = {
    "1": True,
    "true": True,
    "yes": True,
    "on": True,
    "y": True,
    "0": False,
    "false": False,
    "no": False,
    "off": False,
    "n": False,
}
_SYNC_MODES = ("file", "none")


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Runtime configuration for one TimeTally instance."""

    data_dir: str = ".timetally"
    env_file: str = ".env"
    tick_interval_ms: int = int(TICK_INTERVAL_SECONDS * 1000)
    save_debounce_ms: int = int(SAVE_DEBOUNCE_SECONDS * 1000)
    sync_poll_ms: int = int(SYNC_POLL_SECONDS * 1000)
    sync_mode: str = "file"
    enable_timers: bool = True
    enable_bell: bool = True

    @property
    def tick_interval_seconds(self) -> float:
        return self.tick_interval_ms / 1000.0

    @property
    def save_debounce_seconds(self) -> float:
        return self.save_debounce_ms / 1000.0

    @property
    def sync_poll_seconds(self) -> float:
        return self.sync_poll_ms / 1000.0

    @property
    def sync_enabled(self) -> bool:
        return self.sync_mode == "file"


def load_app_config(env_file: str = ".env") -> AppConfig:
    """Build an ``AppConfig`` from ``TIMETALLY_*`` keys; unusable values keep their defaults."""

    env = read_env_file(env_file)
    defaults = AppConfig()

    def _millis(key: str, default: int, minimum: int) -> int:
        return _lookup(env, key, default, lambda raw: _at_least(int(raw), minimum))

    return AppConfig(
        data_dir=_lookup(env, "TIMETALLY_DATA_DIR", defaults.data_dir, str),
        env_file=env_file,
        tick_interval_ms=_millis("TIMETALLY_TICK_INTERVAL_MS", defaults.tick_interval_ms, 10),
        save_debounce_ms=_millis("TIMETALLY_SAVE_DEBOUNCE_MS", defaults.save_debounce_ms, 0),
        sync_poll_ms=_millis("TIMETALLY_SYNC_POLL_MS", defaults.sync_poll_ms, 10),
        sync_mode=_lookup(env, "TIMETALLY_SYNC", defaults.sync_mode, _sync_mode),
        enable_timers=_lookup(env, "TIMETALLY_ENABLE_TIMERS", defaults.enable_timers, _switch),
        enable_bell=_lookup(env, "TIMETALLY_BELL", defaults.enable_bell, _switch),
    )


def read_env_file(path: str) -> dict[str, str]:
    """Read ``KEY=VALUE`` lines; ``export`` prefixes, comments, and surrounding quotes are allowed."""
    env_path = Path(path).expanduser()
    if not env_path.is_file():
        return {}

    env: dict[str, str] = {}
    for line in env_path.read_text(encoding="utf-8").splitlines():
        entry = _parse_env_line(line)
        if entry is not None:
            env[entry[0]] = entry[1]
    return env


def _parse_env_line(line: str) -> tuple[str, str] | None:
    text = line.strip()
    if text.startswith("export "):
        text = text[len("export "):].lstrip()
    if not text or text.startswith("#") or "=" not in text:
        return None

    key, _, value = text.partition("=")
    key, value = key.strip(), value.strip()
    if not key:
        return None
    if len(value) >= 2 and value[0] in "'\"" and value[-1] == value[0]:
        value = value[1:-1]
    return key, value


def _lookup(env: dict[str, str], key: str, default: T, parse: Callable[[str], T]) -> T:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        return parse(raw)
    except ValueError:
        return default


def _at_least(value: int, minimum: int) -> int:
    if value < minimum:
        raise ValueError(f"{value} is below {minimum}")
    return value


def _sync_mode(raw: str) -> str:
    mode = raw.lower()
    if mode not in _SYNC_MODES:
        raise ValueError(f"Unknown sync mode {raw!r}")
    return mode


def _switch(raw: str) -> bool:
    try:
        return _SWITCHES[raw.lower()]
    except KeyError:
        raise ValueError(f"Not an on/off value: {raw!r}") from None
