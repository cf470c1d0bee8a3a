"""Normalization pass applied after every transaction, load, and import."""

from __future__ import annotations

from timetally.constants import DEFAULT_LIST_NAME

from .media import attach_inferred_media
from .state import AppState, TaskList


def repair_media(state: AppState) -> int:
    """Attach inferred media metadata wherever it is missing; return how many tasks changed."""
    changed = 0
    for task_list in state.lists.values():
        for task in task_list.tasks:
            if attach_inferred_media(task):
                changed += 1
    return changed


def repair_invariants(state: AppState) -> None:
    """Restore list-order, active-list, cursor, and duration-bound invariants in place."""
    if not state.lists:
        state.lists[DEFAULT_LIST_NAME] = TaskList()

    seen: set[str] = set()
    order: list[str] = []
    for name in state.list_order:
        if name in state.lists and name not in seen:
            seen.add(name)
            order.append(name)
    for name in state.lists:
        if name not in seen:
            seen.add(name)
            order.append(name)
    state.list_order = order

    if state.active_list_name not in state.lists:
        state.active_list_name = state.list_order[0]

    for task_list in state.lists.values():
        for task in task_list.tasks:
            task.clamp_remaining()

    tasks = state.active_tasks
    if not 0 <= state.active_task_index < len(tasks):
        state.active_task_index = 0


def normalize_state(state: AppState) -> AppState:
    repair_invariants(state)
    repair_media(state)
    return state
