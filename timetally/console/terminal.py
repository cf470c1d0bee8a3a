"""Terminal front end for interactive operation."""

from __future__ import annotations

import json
import re
import shlex
from typing import Any

from timetally.console.facade import TimerFacade
from timetally.domain.errors import TimeTallyError

_DURATION_RE = re.compile(r"^(?P<amount>\d+(?:\.\d+)?)(?P<suffix>[smh]?)$", re.IGNORECASE)
_SUFFIX_UNITS = {"": "seconds", "s": "seconds", "m": "minutes", "h": "hours"}
_UNIT_WORDS = {
    "s": "seconds",
    "sec": "seconds",
    "secs": "seconds",
    "second": "seconds",
    "seconds": "seconds",
    "m": "minutes",
    "min": "minutes",
    "mins": "minutes",
    "minute": "minutes",
    "minutes": "minutes",
    "h": "hours",
    "hr": "hours",
    "hrs": "hours",
    "hour": "hours",
    "hours": "hours",
}

HELP_TEXT = """\
lists | use <list> | newlist <name> | renamelist <old> <new> | rmlist <name> | mvlist <from> <to>
tasks | add <duration> [unit] <name> | edit <i> <name> | time <i> <duration> [unit]
toggle <i> | rm <i> | mv <from> <to>
start | pause | skip | done | restart | status
beep on|off | voice on|off | voiceid <id> | mode <mode> | message <text> | config
export <path> | import <path> | dark | events | diag | help | quit
Durations: 90, 90s, 5m, 1.5h or an amount followed by seconds/minutes/hours."""


def parse_duration(tokens: list[str]) -> tuple[float, str, int]:
    """Parse ``5m`` or ``5 minutes`` from the head of ``tokens``.

    Returns ``(amount, unit, consumed_token_count)``.
    """
    if not tokens:
        raise ValueError("A duration is required")
    match = _DURATION_RE.match(tokens[0])
    if match is None:
        raise ValueError(f"Not a duration: {tokens[0]!r}")

    amount = float(match.group("amount"))
    suffix = match.group("suffix").lower()
    if not suffix and len(tokens) > 1 and tokens[1].lower() in _UNIT_WORDS:
        return amount, _UNIT_WORDS[tokens[1].lower()], 2
    return amount, _SUFFIX_UNITS[suffix], 1


def _parse_switch(value: str) -> bool:
    lowered = value.lower()
    if lowered in {"on", "yes", "true", "1"}:
        return True
    if lowered in {"off", "no", "false", "0"}:
        return False
    raise ValueError(f"Expected on/off, got {value!r}")


class TerminalFrontend:
    """Line-oriented REPL over the facade; cues are printed as they are drained."""

    __slots__ = ("_facade", "_running", "_subscriber_id", "_enable_bell")

    def __init__(self, facade: TimerFacade, *, enable_bell: bool = True) -> None:
        self._facade = facade
        self._enable_bell = enable_bell
        self._running = False
        self._subscriber_id: int | None = facade.subscribe_events()

    def start(self) -> None:
        self._running = True
        if self._subscriber_id is None:
            self._subscriber_id = self._facade.subscribe_events()
        print("TimeTally terminal started. Type 'help' for commands.")
        self._print(self._facade.timer_status())

        while self._running:
            self._print_events()
            try:
                raw = input("timetally> ").strip()
            except EOFError:
                break
            except KeyboardInterrupt:
                break

            if not raw:
                continue
            if not self.handle(raw):
                break

        self.stop()

    def stop(self) -> None:
        self._running = False
        if self._subscriber_id is not None:
            self._facade.unsubscribe_events(self._subscriber_id)
            self._subscriber_id = None

    def handle(self, raw: str) -> bool:
        """Run one command line; return False when the user asked to quit."""
        try:
            parts = shlex.split(raw)
        except ValueError as exc:
            print(f"Error: {exc}")
            return True
        if not parts:
            return True

        command, args = parts[0].lower(), parts[1:]
        if command in {"quit", "exit"}:
            return False
        if command == "help":
            print(HELP_TEXT)
            return True

        try:
            result = self._dispatch(command, args)
        except (TimeTallyError, ValueError, KeyError, IndexError, OSError) as exc:
            print(f"Error: {exc}")
        else:
            if result is not None:
                self._print(result)
        self._print_events()
        return True

    def _dispatch(self, command: str, args: list[str]) -> Any:
        facade = self._facade
        if command == "lists":
            return facade.list_lists()
        if command == "use":
            return facade.select_list(name=_rest(args, "list name"))
        if command == "newlist":
            return facade.add_list(name=_rest(args, "list name"))
        if command == "renamelist":
            old_name, new_name = _exactly(args, 2, "renamelist <old> <new>")
            return facade.rename_list(old_name=old_name, new_name=new_name)
        if command == "rmlist":
            return facade.delete_list(name=_rest(args, "list name"))
        if command == "mvlist":
            from_index, to_index = _exactly(args, 2, "mvlist <from> <to>")
            return facade.reorder_lists(from_index=int(from_index), to_index=int(to_index))

        if command == "tasks":
            return facade.list_tasks()
        if command == "add":
            amount, unit, consumed = parse_duration(args)
            return facade.add_task(name=_rest(args[consumed:], "task name"), duration=amount, unit=unit)
        if command == "edit":
            if len(args) < 2:
                raise ValueError("Usage: edit <i> <name>")
            return facade.edit_task(index=int(args[0]), name=" ".join(args[1:]))
        if command == "time":
            if not args:
                raise ValueError("Usage: time <i> <duration> [unit]")
            amount, unit, _ = parse_duration(args[1:])
            return facade.edit_task(index=int(args[0]), duration=amount, unit=unit)
        if command == "toggle":
            return facade.toggle_task(index=int(_rest(args, "task index")))
        if command == "rm":
            return facade.remove_task(index=int(_rest(args, "task index")))
        if command == "mv":
            from_index, to_index = _exactly(args, 2, "mv <from> <to>")
            return facade.reorder_tasks(from_index=int(from_index), to_index=int(to_index))

        if command == "start":
            return facade.start()
        if command == "pause":
            return facade.pause()
        if command == "skip":
            return facade.skip()
        if command == "done":
            return facade.complete_early()
        if command == "restart":
            return facade.restart()
        if command == "status":
            return facade.timer_status()

        if command == "config":
            return facade.get_config()
        if command == "beep":
            return facade.update_config(beep_enabled=_parse_switch(_rest(args, "on|off")))
        if command == "voice":
            return facade.update_config(voice_enabled=_parse_switch(_rest(args, "on|off")))
        if command == "voiceid":
            return facade.update_config(voice_id=" ".join(args))
        if command == "mode":
            return facade.update_config(announce_mode=_rest(args, "announce mode"))
        if command == "message":
            return facade.update_config(custom_message=" ".join(args))
        if command == "dark":
            return facade.toggle_dark()

        if command == "export":
            return facade.export_file(path=_rest(args, "path"))
        if command == "import":
            return facade.import_file(path=_rest(args, "path"))
        if command == "events":
            return facade.list_events(limit=20)
        if command == "diag":
            return facade.diagnostics()

        raise ValueError(f"Unknown command {command!r}. Type 'help'.")

    def _print_events(self) -> None:
        if self._subscriber_id is None:
            return
        for event in self._facade.drain_events(self._subscriber_id):
            print(f"[{event['type']}] {event['message']}")
            if event["type"] == "beep" and self._enable_bell:
                print("\a", end="", flush=True)

    @staticmethod
    def _print(payload: Any) -> None:
        print(json.dumps(payload, indent=2))


def _rest(args: list[str], what: str) -> str:
    text = " ".join(args).strip()
    if not text:
        raise ValueError(f"Missing {what}")
    return text


def _exactly(args: list[str], count: int, usage: str) -> list[str]:
    if len(args) != count:
        raise ValueError(f"Usage: {usage}")
    return args
