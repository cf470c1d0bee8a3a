from __future__ import annotations

import unittest
from datetime import datetime
from threading import Thread
from typing import Callable

from timetally.adapters.file_storage import MemoryStateStorage
from timetally.application.runtime import TimeTallyRuntime
from timetally.application.scheduler import SchedulerState
from timetally.domain.config import AnnounceMode
from timetally.domain.errors import InvalidListName, InvalidTaskInput
from timetally.domain.state import TaskList, default_state


class SilentCues:
    def announce(self, text: str, voice_id: str = "") -> None:
        pass

    def beep(self) -> None:
        pass

    def play_media(self, key: str) -> None:
        pass

    def pause_all_media(self) -> None:
        pass


class RuntimeListTests(unittest.TestCase):
    def setUp(self) -> None:
        cues = SilentCues()
        self.runtime = TimeTallyRuntime(
            storage=MemoryStateStorage(),
            notifier=cues,
            media=cues,
            enable_timers=False,
        )

    def tearDown(self) -> None:
        self.runtime.close()

    def test_add_list_becomes_active_with_default_config(self) -> None:
        self.runtime.add_list("  Work  ")

        self.assertEqual(self.runtime.list_names(), ["default", "Work"])
        self.assertEqual(self.runtime.snapshot.active_list_name, "Work")
        self.assertFalse(self.runtime.get_config("Work").voice_enabled)

    def test_duplicate_or_blank_list_name_is_rejected(self) -> None:
        with self.assertRaises(InvalidListName):
            self.runtime.add_list("default")
        with self.assertRaises(InvalidListName):
            self.runtime.add_list("   ")

    def test_rename_list_keeps_position_and_active_flag(self) -> None:
        self.runtime.add_list("work")
        self.runtime.add_list("home")
        self.runtime.select_list("work")

        self.runtime.rename_list("work", "office")

        self.assertEqual(self.runtime.list_names(), ["default", "office", "home"])
        self.assertEqual(self.runtime.snapshot.active_list_name, "office")
        with self.assertRaises(KeyError):
            self.runtime.rename_list("missing", "other")

    def test_last_list_cannot_be_deleted(self) -> None:
        self.assertFalse(self.runtime.delete_list("default"))
        self.assertEqual(self.runtime.list_names(), ["default"])

    def test_deleting_active_list_selects_first_list(self) -> None:
        self.runtime.add_list("work")
        self.runtime.add_task("Email", 60)
        self.runtime.start()

        self.assertTrue(self.runtime.delete_list("work"))

        self.assertEqual(self.runtime.snapshot.active_list_name, "default")
        self.assertEqual(self.runtime.snapshot.active_task_index, 0)
        self.assertIs(self.runtime.status, SchedulerState.PAUSED)

    def test_select_list_resets_cursor_and_pauses(self) -> None:
        self.runtime.add_task("A", 10)
        self.runtime.add_task("B", 10)
        self.runtime.start()
        self.runtime.skip()
        self.runtime.add_list("other")

        self.assertTrue(self.runtime.select_list("default"))
        self.assertFalse(self.runtime.select_list("default"))

        self.assertEqual(self.runtime.snapshot.active_task_index, 0)
        self.assertIs(self.runtime.status, SchedulerState.PAUSED)

    def test_reorder_lists_ignores_out_of_range(self) -> None:
        self.runtime.add_list("work")

        self.assertFalse(self.runtime.reorder_lists(0, 5))
        self.assertTrue(self.runtime.reorder_lists(1, 0))
        self.assertEqual(self.runtime.list_names(), ["work", "default"])

    def test_configs_are_per_list(self) -> None:
        self.runtime.add_list("work")
        self.runtime.update_config(list_name="work", voice_enabled=True, announce_mode="name")

        self.assertTrue(self.runtime.get_config("work").voice_enabled)
        self.assertIs(self.runtime.get_config("work").announce_mode, AnnounceMode.NAME_ONLY)
        self.assertFalse(self.runtime.get_config("default").voice_enabled)

    def test_ui_flags_toggle(self) -> None:
        self.assertFalse(self.runtime.toggle_dark())
        self.assertTrue(self.runtime.toggle_help())
        self.assertTrue(self.runtime.toggle_options())
        self.assertTrue(self.runtime.toggle_dark())


class InterruptingCues(SilentCues):
    """Runs ``on_pause`` once, from inside the next media pause."""

    def __init__(self) -> None:
        self.on_pause: Callable[[], None] | None = None

    def pause_all_media(self) -> None:
        if self.on_pause is not None:
            hook, self.on_pause = self.on_pause, None
            hook()


class RuntimeConcurrentReloadTests(unittest.TestCase):
    def setUp(self) -> None:
        self.cues = InterruptingCues()
        self.runtime = TimeTallyRuntime(
            storage=MemoryStateStorage(),
            notifier=self.cues,
            media=self.cues,
            enable_timers=False,
        )
        self.runtime.add_list("work")
        self.runtime.add_task("Email", 60)
        self.runtime.start()

    def tearDown(self) -> None:
        self.runtime.close()

    def test_reload_between_check_and_delete_leaves_state_unchanged(self) -> None:
        self.cues.on_pause = lambda: self.runtime.store.replace(default_state())

        self.assertFalse(self.runtime.delete_list("work"))
        self.assertEqual(self.runtime.list_names(), ["default"])

    def test_reload_between_check_and_add_keeps_incoming_list(self) -> None:
        incoming = default_state()
        incoming.lists["home"] = TaskList()
        incoming.list_order.append("home")
        self.cues.on_pause = lambda: self.runtime.store.replace(incoming)

        with self.assertRaises(InvalidListName):
            self.runtime.add_list("home")
        self.assertEqual(self.runtime.list_names(), ["default", "home"])

    def test_reload_from_another_thread_waits_for_delete(self) -> None:
        reloader = Thread(target=self.runtime.store.replace, args=(default_state(),), daemon=True)
        blocked: list[bool] = []

        def _reload_elsewhere() -> None:
            reloader.start()
            reloader.join(timeout=0.2)
            blocked.append(reloader.is_alive())

        self.cues.on_pause = _reload_elsewhere

        self.assertTrue(self.runtime.delete_list("work"))
        reloader.join(timeout=5)

        self.assertEqual(blocked, [True])
        self.assertFalse(reloader.is_alive())
        self.assertEqual(self.runtime.list_names(), ["default"])


class RuntimeTaskTests(unittest.TestCase):
    def setUp(self) -> None:
        cues = SilentCues()
        self.runtime = TimeTallyRuntime(
            storage=MemoryStateStorage(),
            notifier=cues,
            media=cues,
            enable_timers=False,
        )

    def tearDown(self) -> None:
        self.runtime.close()

    def _names(self) -> list[str]:
        return [task.name for task in self.runtime.list_tasks()]

    def _set_cursor(self, index: int) -> None:
        self.runtime.store.transact(lambda state: setattr(state, "active_task_index", index))

    def test_invalid_task_input_never_reaches_store(self) -> None:
        version = self.runtime.store.version

        for name, duration, unit in (
            ("", 10, "seconds"),
            ("   ", 10, "seconds"),
            ("Run", 0, "seconds"),
            ("Run", -5, "seconds"),
            ("Run", float("nan"), "seconds"),
            ("Run", 0.2, "seconds"),
            ("Run", 10, "days"),
            ("Run", "soon", "seconds"),
        ):
            with self.subTest(name=name, duration=duration, unit=unit):
                with self.assertRaises(InvalidTaskInput):
                    self.runtime.add_task(name, duration, unit=unit)

        self.assertEqual(self.runtime.store.version, version)
        self.assertEqual(self._names(), [])

    def test_units_convert_to_whole_seconds(self) -> None:
        self.assertEqual(self.runtime.add_task("Minutes", 1.5, unit="minutes").total_duration, 90)
        self.assertEqual(self.runtime.add_task("Hours", 1, unit="hours").total_duration, 3600)
        self.assertEqual(self.runtime.add_task("Seconds", 2.5).total_duration, 3)

    def test_delete_shifts_cursor_to_same_task(self) -> None:
        for name in ("A", "B", "C", "D"):
            self.runtime.add_task(name, 10)
        self._set_cursor(2)

        removed = self.runtime.remove_task(0)

        self.assertEqual(removed.name if removed else None, "A")
        self.assertEqual(self.runtime.snapshot.active_task_index, 1)
        self.assertEqual(self.runtime.get_active_task().name, "C")

    def test_removing_missing_task_returns_none(self) -> None:
        self.assertIsNone(self.runtime.remove_task(3))

    def test_insert_before_cursor_keeps_active_task(self) -> None:
        self.runtime.add_task("A", 10)
        self.runtime.add_task("B", 10)
        self._set_cursor(1)

        self.runtime.add_task("First", 10, index=0)

        self.assertEqual(self._names(), ["First", "A", "B"])
        self.assertEqual(self.runtime.get_active_task().name, "B")

    def test_reorder_tasks_moves_cursor_with_active_task(self) -> None:
        for name in ("A", "B", "C"):
            self.runtime.add_task(name, 10)
        self._set_cursor(0)

        self.assertTrue(self.runtime.reorder_tasks(0, 2))
        self.assertFalse(self.runtime.reorder_tasks(0, 9))

        self.assertEqual(self._names(), ["B", "C", "A"])
        self.assertEqual(self.runtime.snapshot.active_task_index, 2)

    def test_edit_duration_resets_remaining(self) -> None:
        self.runtime.add_task("A", 10)
        self.runtime.start()
        self.runtime.tick(4)

        renamed = self.runtime.edit_task(0, name="A2")
        self.assertEqual(renamed.remaining if renamed else None, 6.0)

        edited = self.runtime.edit_task(0, duration=2, unit="minutes")
        self.assertEqual(edited.total_duration if edited else None, 120)
        self.assertEqual(edited.remaining if edited else None, 120.0)
        self.assertIsNone(self.runtime.edit_task(5, name="missing"))

    def test_rename_refreshes_media(self) -> None:
        self.runtime.add_task("Song https://youtu.be/dQw4w9WgXcQ", 60)
        self.assertEqual(self.runtime.list_tasks()[0].media.media_id, "dQw4w9WgXcQ")

        self.runtime.edit_task(0, name="Song https://youtu.be/AAAAAAAAAAA")
        self.assertEqual(self.runtime.list_tasks()[0].media.media_id, "AAAAAAAAAAA")

        self.runtime.edit_task(0, name="Quiet")
        self.assertIsNone(self.runtime.list_tasks()[0].media)

    def test_toggle_task(self) -> None:
        self.runtime.add_task("A", 10)

        self.assertFalse(self.runtime.toggle_task(0).enabled)
        self.assertTrue(self.runtime.toggle_task(0).enabled)
        self.assertIsNone(self.runtime.toggle_task(4))

    def test_returned_tasks_are_copies(self) -> None:
        self.runtime.add_task("A", 10)

        copy_of_task = self.runtime.list_tasks()[0]
        copy_of_task.remaining = 1.0

        self.assertEqual(self.runtime.list_tasks()[0].remaining, 10.0)

    def test_progress_and_eta(self) -> None:
        self.runtime.add_task("A", 60)
        self.runtime.add_task("B", 60)
        self.runtime.add_task("Off", 600, enabled=False)
        self.runtime.start()
        self.runtime.tick(60)
        self.runtime.tick(12)

        self.assertEqual(self.runtime.progress(), 10)
        self.assertEqual(self.runtime.remaining_seconds(), 48.0)
        self.assertEqual(
            self.runtime.eta(datetime(2026, 1, 1, 9, 0, 0)),
            "ETA: 09:00 · 0:48 remaining",
        )

    def test_eta_is_empty_when_nothing_left(self) -> None:
        self.assertEqual(self.runtime.eta(datetime(2026, 1, 1, 9, 0)), "")


if __name__ == "__main__":
    unittest.main()
