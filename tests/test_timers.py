from __future__ import annotations

import tempfile
import time
import unittest
from pathlib import Path
from typing import Callable

from timetally.adapters.file_channel import FileSyncChannel
from timetally.adapters.file_storage import FileStateStorage, MemoryStateStorage
from timetally.application.persistence import PersistenceGateway, decode_state
from timetally.application.runtime import TimeTallyRuntime
from timetally.application.scheduler import SchedulerState
from timetally.constants import STATE_FILE_NAME
from timetally.domain.state import default_state
from timetally.domain.task import Task

WAIT_TIMEOUT = 5.0


def wait_until(predicate: Callable[[], bool], timeout: float = WAIT_TIMEOUT) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class SilentCues:
    def announce(self, text: str, voice_id: str = "") -> None:
        pass

    def beep(self) -> None:
        pass

    def play_media(self, key: str) -> None:
        pass

    def pause_all_media(self) -> None:
        pass


class TickTimerTests(unittest.TestCase):
    def setUp(self) -> None:
        cues = SilentCues()
        self.runtime = TimeTallyRuntime(
            storage=MemoryStateStorage(),
            notifier=cues,
            media=cues,
            tick_interval=0.02,
            save_debounce=0.01,
        )

    def tearDown(self) -> None:
        self.runtime.close()

    def _remaining(self) -> float:
        return self.runtime.list_tasks()[0].remaining

    def test_timer_rearms_and_counts_down(self) -> None:
        self.runtime.add_task("Plank", 60)
        self.runtime.start()

        # Three ticks at least: the timer has to re-arm itself after each one.
        self.assertTrue(wait_until(lambda: self._remaining() <= 60 - 0.06))
        self.assertIs(self.runtime.status, SchedulerState.RUNNING)

    def test_no_tick_applies_after_pause_returns(self) -> None:
        self.runtime.add_task("Plank", 60)
        self.runtime.start()
        self.assertTrue(wait_until(lambda: self._remaining() < 60))

        self.assertTrue(self.runtime.pause())
        frozen = self._remaining()
        time.sleep(0.15)

        self.assertEqual(self._remaining(), frozen)
        self.assertIs(self.runtime.status, SchedulerState.PAUSED)

    def test_close_stops_ticking(self) -> None:
        self.runtime.add_task("Plank", 60)
        self.runtime.start()
        self.assertTrue(wait_until(lambda: self._remaining() < 60))

        self.runtime.close()
        frozen = self._remaining()
        time.sleep(0.1)

        self.assertEqual(self._remaining(), frozen)


class DebounceTimerTests(unittest.TestCase):
    def test_saves_within_one_window_produce_one_write(self) -> None:
        storage = MemoryStateStorage()
        gateway = PersistenceGateway(storage, debounce_seconds=0.05)
        writes: list[int] = []
        gateway.add_write_listener(lambda: writes.append(storage.revision))

        for name in ("First", "Second", "Latest"):
            state = default_state()
            state.active_tasks.append(Task.create(name, 30))
            gateway.save(state)

        self.assertTrue(wait_until(lambda: storage.revision >= 1))
        time.sleep(0.1)

        self.assertEqual(storage.revision, 1)
        self.assertEqual(writes, [1])
        self.assertFalse(gateway.has_pending)
        written = decode_state(storage.read() or "")
        self.assertEqual([task.name for task in written.active_tasks], ["Latest"])

    def test_save_after_a_write_opens_a_new_window(self) -> None:
        storage = MemoryStateStorage()
        gateway = PersistenceGateway(storage, debounce_seconds=0.02)

        gateway.save(default_state())
        self.assertTrue(wait_until(lambda: storage.revision == 1))
        gateway.save(default_state())

        self.assertTrue(wait_until(lambda: storage.revision == 2))


class PollTimerTests(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_dir = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._temp_dir.name)
        self.runtimes: list[TimeTallyRuntime] = []

    def tearDown(self) -> None:
        for runtime in self.runtimes:
            runtime.close()
        self._temp_dir.cleanup()

    def _runtime(self, instance_id: str) -> TimeTallyRuntime:
        cues = SilentCues()
        runtime = TimeTallyRuntime(
            storage=FileStateStorage(self.data_dir / STATE_FILE_NAME),
            channel=FileSyncChannel(self.data_dir, instance_id=instance_id, poll_interval=0.02),
            notifier=cues,
            media=cues,
            save_debounce=0.01,
        )
        self.runtimes.append(runtime)
        return runtime

    def test_poll_timer_delivers_sibling_change(self) -> None:
        first = self._runtime("first")
        second = self._runtime("second")

        first.add_task("Lunges", 45)

        self.assertTrue(wait_until(lambda: [task.name for task in second.list_tasks()] == ["Lunges"]))
        self.assertGreaterEqual(second.broadcaster.reload_count, 1)
        self.assertEqual(first.broadcaster.reload_count, 0)

    def test_closed_channel_stops_polling(self) -> None:
        first = self._runtime("first")
        second = self._runtime("second")
        second.channel.close()

        first.add_task("Lunges", 45)
        self.assertTrue(wait_until(lambda: not first.gateway.has_pending))
        time.sleep(0.1)

        self.assertEqual(second.list_tasks(), [])
        self.assertEqual(second.broadcaster.reload_count, 0)


if __name__ == "__main__":
    unittest.main()
