"""Reorder engine: ordered moves that keep the active-task cursor stable.

Every structural edit of a task sequence (move, insert, remove) routes the
cursor through one of the functions below, so the cursor keeps denoting the
same logical task, or a well-defined neighbour when that task is gone.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

from .task import Task

T = TypeVar("T")


def is_valid_move(length: int, from_index: int, to_index: int) -> bool:
    if from_index == to_index:
        return False
    return 0 <= from_index < length and 0 <= to_index < length


def reorder(sequence: Sequence[T], from_index: int, to_index: int) -> list[T]:
    """Return a copy of ``sequence`` with one element moved from ``from_index`` to ``to_index``.

    Out-of-range or identical indices return an unchanged copy.
    """
    items = list(sequence)
    if not is_valid_move(len(items), from_index, to_index):
        return items
    item = items.pop(from_index)
    items.insert(to_index, item)
    return items


def adjust_cursor(cursor: int, from_index: int, to_index: int) -> int:
    """Cursor position after moving the element at ``from_index`` to ``to_index``."""
    if cursor == from_index:
        return to_index
    if from_index < cursor <= to_index:
        return cursor - 1
    if to_index <= cursor < from_index:
        return cursor + 1
    return cursor


def move_with_cursor(
    sequence: Sequence[T],
    from_index: int,
    to_index: int,
    cursor: int,
) -> tuple[list[T], int]:
    """Apply ``reorder`` and ``adjust_cursor`` together; invalid moves change neither."""
    if not is_valid_move(len(sequence), from_index, to_index):
        return list(sequence), cursor
    return reorder(sequence, from_index, to_index), adjust_cursor(cursor, from_index, to_index)


def next_enabled_index(tasks: Sequence[Task], start: int) -> int | None:
    """First enabled position at or after ``start``; scans forward only, never wraps."""
    for index in range(max(0, start), len(tasks)):
        if tasks[index].enabled:
            return index
    return None


def first_enabled_index(tasks: Sequence[Task]) -> int | None:
    return next_enabled_index(tasks, 0)


def cursor_after_removal(cursor: int, removed_index: int, remaining: Sequence[Task]) -> int:
    """Cursor after the task at ``removed_index`` was deleted; ``remaining`` is the shortened list."""
    if removed_index < cursor:
        cursor -= 1
    elif removed_index == cursor:
        first = first_enabled_index(remaining)
        cursor = first if first is not None else 0

    if cursor < 0 or cursor >= len(remaining):
        return 0
    return cursor


def cursor_after_insert(cursor: int, inserted_index: int, length_before: int) -> int:
    """Cursor after inserting one element at ``inserted_index``."""
    if length_before == 0:
        return 0
    if inserted_index <= cursor:
        return cursor + 1
    return cursor
