"""Host runtime that wires config, the timer runtime, and the terminal front end."""

from __future__ import annotations

import atexit
import logging
from pathlib import Path

from timetally.adapters.file_channel import FileSyncChannel
from timetally.application.runtime import TimeTallyRuntime
from timetally.console.config import AppConfig
from timetally.console.events import EventHub
from timetally.console.facade import TimerFacade
from timetally.console.notifier import EventingMediaControl, EventingNotifier
from timetally.console.terminal import TerminalFrontend
from timetally.constants import STATE_FILE_NAME

logger = logging.getLogger(__name__)


class AppHost:
    """Bootstraps the runtime, facade, and terminal front end for one instance."""

    __slots__ = (
        "config",
        "event_hub",
        "notifier",
        "media",
        "channel",
        "runtime",
        "facade",
        "frontend",
    )

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self.event_hub = EventHub()
        self.notifier = EventingNotifier(self.event_hub)
        self.media = EventingMediaControl(self.event_hub)
        self.channel: FileSyncChannel | None = None
        if config.sync_enabled:
            self.channel = FileSyncChannel(
                config.data_dir,
                state_file=STATE_FILE_NAME,
                poll_interval=config.sync_poll_seconds,
                enable_timers=config.enable_timers,
            )

        try:
            self.runtime = TimeTallyRuntime(
                data_dir=config.data_dir,
                channel=self.channel,
                notifier=self.notifier,
                media=self.media,
                enable_timers=config.enable_timers,
                tick_interval=config.tick_interval_seconds,
                save_debounce=config.save_debounce_seconds,
            )
        except Exception:
            if self.channel is not None:
                self.channel.close()
            raise

        # Last pending write still lands if the process exits without stop().
        atexit.register(self.runtime.close)

        self.facade = TimerFacade(runtime=self.runtime, event_hub=self.event_hub)
        self.frontend = TerminalFrontend(self.facade, enable_bell=config.enable_bell)
        state_path = Path(config.data_dir).expanduser() / STATE_FILE_NAME
        if state_path.exists():
            self.facade.publish_info(f"Loaded lists from '{config.data_dir}'.")
        else:
            self.facade.publish_info(f"Starting with a fresh '{self.runtime.snapshot.active_list_name}' list.")
        logger.debug("Host ready (data_dir=%s, sync=%s)", config.data_dir, config.sync_mode)

    def start(self) -> None:
        self.frontend.start()

    def stop(self) -> None:
        try:
            self.frontend.stop()
        finally:
            self.runtime.close()
            atexit.unregister(self.runtime.close)
