"""Transactional state store: the single mutation entry point."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from threading import RLock
from typing import Callable, TypeVar

from timetally.domain.repair import normalize_state
from timetally.domain.state import AppState, default_state

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ChangeOrigin(str, Enum):
    """Where a transaction came from."""

    LOCAL = "local"
    REMOTE = "remote"


class ObserverStage(IntEnum):
    """Observer notification order within one transaction."""

    PERSIST = 0
    BROADCAST = 1
    VIEW = 2


@dataclass(frozen=True, slots=True)
class StateChange:
    """Published snapshot handed to observers after a transaction."""

    state: AppState
    version: int
    origin: ChangeOrigin


StateObserver = Callable[[StateChange], None]


class StateStore:
    """Copy-on-write store publishing one consistent ``AppState`` snapshot.

    ``transact`` copies the published state, lets the mutator edit the copy,
    normalizes it, swaps it in, and notifies observers once, in stage order.
    The published snapshot is never edited in place, so readers can keep a
    reference to it as long as they do not mutate it.
    """

    __slots__ = ("_state", "_version", "_observers", "_next_observer_seq", "_lock", "_normalizer")

    def __init__(
        self,
        initial: AppState | None = None,
        *,
        normalizer: Callable[[AppState], AppState] = normalize_state,
    ) -> None:
        state = copy.deepcopy(initial) if initial is not None else default_state()
        normalizer(state)
        self._state = state
        self._version = 0
        self._observers: list[tuple[int, int, StateObserver]] = []
        self._next_observer_seq = 0
        self._lock = RLock()
        self._normalizer = normalizer

    @property
    def lock(self) -> RLock:
        """Lock serializing every mutation in this process."""
        return self._lock

    @property
    def snapshot(self) -> AppState:
        with self._lock:
            return self._state

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def read(self, query: Callable[[AppState], T]) -> T:
        """Evaluate ``query`` against the current snapshot without letting a transaction interleave."""
        with self._lock:
            return query(self._state)

    def add_observer(self, observer: StateObserver, *, stage: ObserverStage = ObserverStage.VIEW) -> None:
        with self._lock:
            self._observers.append((int(stage), self._next_observer_seq, observer))
            self._next_observer_seq += 1
            self._observers.sort(key=lambda item: (item[0], item[1]))

    def remove_observer(self, observer: StateObserver) -> None:
        with self._lock:
            self._observers = [item for item in self._observers if item[2] is not observer]

    def transact(
        self,
        mutator: Callable[[AppState], T],
        *,
        origin: ChangeOrigin = ChangeOrigin.LOCAL,
    ) -> T:
        """Apply ``mutator`` to a private copy and publish it atomically.

        An exception raised by ``mutator`` propagates and leaves the
        published state untouched.
        """
        with self._lock:
            draft = copy.deepcopy(self._state)
            result = mutator(draft)
            self._normalizer(draft)

            self._state = draft
            self._version += 1
            change = StateChange(state=draft, version=self._version, origin=origin)
            logger.debug("Published state version %d (%s)", change.version, origin.value)

            for _, _, observer in list(self._observers):
                try:
                    observer(change)
                except Exception:
                    logger.exception("State observer %r failed for version %d", observer, change.version)
            return result

    def replace(self, state: AppState, *, origin: ChangeOrigin = ChangeOrigin.REMOTE) -> None:
        """Swap in a whole snapshot (last writer wins); used by sync reloads."""
        incoming = copy.deepcopy(state)

        def _swap(draft: AppState) -> None:
            draft.lists = incoming.lists
            draft.list_order = incoming.list_order
            draft.active_list_name = incoming.active_list_name
            draft.active_task_index = incoming.active_task_index
            draft.dark = incoming.dark
            draft.show_help = incoming.show_help
            draft.show_options = incoming.show_options

        self.transact(_swap, origin=origin)
