from __future__ import annotations

import copy
import json
import tempfile
import unittest
from pathlib import Path

from timetally.adapters.file_storage import FileStateStorage, MemoryStateStorage
from timetally.application.persistence import PersistenceGateway, decode_state, encode_state
from timetally.application.runtime import TimeTallyRuntime
from timetally.application.store import ChangeOrigin, StateChange
from timetally.constants import STATE_FILE_NAME
from timetally.domain.config import AnnounceMode
from timetally.domain.errors import MalformedPersistedState
from timetally.domain.repair import normalize_state
from timetally.domain.state import TaskList, default_state
from timetally.domain.task import MediaRef, Task


class BrokenStorage:
    def read(self) -> str | None:
        return None

    def write(self, payload: str) -> None:
        raise OSError("disk full")


class PersistenceGatewayTests(unittest.TestCase):
    def setUp(self) -> None:
        self.storage = MemoryStateStorage()
        self.gateway = PersistenceGateway(self.storage, enable_timers=False)

    def test_saves_coalesce_into_one_write_of_latest_state(self) -> None:
        first = default_state()
        second = default_state()
        second.active_tasks.append(Task.create("Latest", 45))

        self.gateway.save(first)
        self.gateway.save(second)
        self.assertTrue(self.gateway.has_pending)
        self.assertEqual(self.storage.revision, 0)

        self.assertTrue(self.gateway.flush())
        self.assertFalse(self.gateway.flush())

        self.assertEqual(self.storage.revision, 1)
        loaded = decode_state(self.storage.read() or "")
        self.assertEqual([task.name for task in loaded.active_tasks], ["Latest"])

    def test_remote_changes_are_not_written_back(self) -> None:
        state = default_state()
        self.gateway.on_change(StateChange(state=state, version=1, origin=ChangeOrigin.REMOTE))
        self.assertFalse(self.gateway.has_pending)

        self.gateway.on_change(StateChange(state=state, version=2, origin=ChangeOrigin.LOCAL))
        self.assertTrue(self.gateway.has_pending)

    def test_load_without_record_returns_default_state(self) -> None:
        state = self.gateway.load()

        self.assertEqual(state.list_order, ["default"])
        self.assertEqual(state.active_list_name, "default")
        self.assertEqual(state.active_tasks, [])

    def test_load_of_unreadable_record_falls_back_to_default(self) -> None:
        gateway = PersistenceGateway(MemoryStateStorage("{not json"), enable_timers=False)

        with self.assertLogs("timetally.application.persistence", level="WARNING"):
            state = gateway.load()

        self.assertEqual(state.list_order, ["default"])

    def test_decode_rejects_record_without_lists(self) -> None:
        with self.assertRaises(MalformedPersistedState):
            decode_state(json.dumps({"version": 1}))
        with self.assertRaises(MalformedPersistedState):
            decode_state("[]")

    def test_failed_write_is_logged_and_reported(self) -> None:
        gateway = PersistenceGateway(BrokenStorage(), enable_timers=False)
        gateway.save(default_state())

        with self.assertLogs("timetally.application.persistence", level="WARNING"):
            self.assertFalse(gateway.flush())

    def test_write_listeners_run_after_each_write(self) -> None:
        writes: list[int] = []
        self.gateway.add_write_listener(lambda: writes.append(self.storage.revision))

        self.gateway.save(default_state())
        self.gateway.flush()

        self.assertEqual(writes, [1])

    def test_record_round_trip_keeps_configs_and_ui_flags(self) -> None:
        state = default_state()
        state.lists["work"] = TaskList(tasks=[Task(name="Email", total_duration=60, remaining=12.5, enabled=False)])
        state.list_order.append("work")
        state.lists["work"].config.announce_mode = AnnounceMode.CUSTOM_ON_COMPLETE
        state.lists["work"].config.custom_message = "Inbox zero"
        state.active_list_name = "work"
        state.show_help = True

        loaded = decode_state(encode_state(state))

        self.assertEqual(loaded.list_order, ["default", "work"])
        self.assertEqual(loaded.active_list_name, "work")
        self.assertEqual(loaded.lists["work"].tasks, state.lists["work"].tasks)
        self.assertEqual(loaded.lists["work"].config, state.lists["work"].config)
        self.assertTrue(loaded.show_help)
        self.assertTrue(loaded.dark)

    def test_legacy_record_is_migrated(self) -> None:
        legacy = {
            "lists": {
                "morning": [
                    {"name": "Stretch", "time": 120, "remaining": 300, "enabled": True},
                    {"name": "Bad", "time": 0},
                ],
            },
            "currentList": "morning",
            "currentTaskIndex": 4,
            "listConfigs": {
                "morning": {
                    "ttsEnabled": True,
                    "selectedVoiceName": "Samantha",
                    "ttsMode": "customCompletion",
                    "ttsCustomMessage": "Done!",
                },
            },
            "dark": False,
        }
        storage = MemoryStateStorage(json.dumps(legacy))

        state = PersistenceGateway(storage, enable_timers=False).load()

        self.assertEqual(state.list_order, ["morning"])
        self.assertEqual(state.active_list_name, "morning")
        self.assertEqual(state.active_task_index, 0)
        self.assertEqual([task.name for task in state.active_tasks], ["Stretch"])
        self.assertEqual(state.active_tasks[0].remaining, 120.0)
        config = state.active_config
        self.assertTrue(config.voice_enabled)
        self.assertEqual(config.voice_id, "Samantha")
        self.assertIs(config.announce_mode, AnnounceMode.CUSTOM_ON_COMPLETE)
        self.assertEqual(config.custom_message, "Done!")
        self.assertFalse(state.dark)

    def test_repair_attaches_media_and_is_idempotent(self) -> None:
        state = default_state()
        state.active_tasks.append(Task.create("Focus https://www.youtube.com/watch?v=abcdefghijk", 60))
        state.active_tasks.append(Task.create("Plain", 60))

        once = normalize_state(copy.deepcopy(state))
        twice = normalize_state(copy.deepcopy(once))

        self.assertEqual(
            once.active_tasks[0].media,
            MediaRef(media_id="abcdefghijk", source_url="https://www.youtube.com/watch?v=abcdefghijk"),
        )
        self.assertIsNone(once.active_tasks[1].media)
        self.assertEqual(once, twice)

    def test_repair_restores_missing_lists(self) -> None:
        state = default_state()
        state.lists.clear()
        state.list_order = ["ghost"]
        state.active_list_name = "ghost"

        normalize_state(state)

        self.assertEqual(state.list_order, ["default"])
        self.assertEqual(state.active_list_name, "default")


class FilePersistenceTests(unittest.TestCase):
    def test_runtime_state_survives_restart(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            first = TimeTallyRuntime(data_dir=temp_dir, enable_timers=False)
            first.add_list("gym")
            first.add_task("Squats", 2, unit="minutes")
            first.close()

            self.assertTrue((Path(temp_dir) / STATE_FILE_NAME).exists())

            second = TimeTallyRuntime(data_dir=temp_dir, enable_timers=False)
            try:
                self.assertEqual(second.list_names(), ["default", "gym"])
                self.assertEqual(second.snapshot.active_list_name, "gym")
                self.assertEqual(second.list_tasks()[0].total_duration, 120)
            finally:
                second.close()

    def test_file_storage_reads_none_when_missing(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            storage = FileStateStorage(Path(temp_dir) / "nested" / STATE_FILE_NAME)
            self.assertIsNone(storage.read())
            self.assertIsNone(storage.signature())

            storage.write('{"lists": {}}')

            self.assertEqual(storage.read(), '{"lists": {}}')
            self.assertIsNotNone(storage.signature())


if __name__ == "__main__":
    unittest.main()
