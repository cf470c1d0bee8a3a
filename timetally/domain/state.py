"""Aggregate root: every list, task, config, and UI flag of one installation."""

from __future__ import annotations

from dataclasses import dataclass, field

from timetally.constants import DEFAULT_LIST_NAME

from .config import ListConfig
from .task import Task


@dataclass(slots=True)
class TaskList:
    """Ordered tasks paired with the list's notification config."""

    tasks: list[Task] = field(default_factory=list)
    config: ListConfig = field(default_factory=ListConfig)


@dataclass(slots=True)
class AppState:
    """Application state; mutate only inside ``StateStore.transact``."""

    lists: dict[str, TaskList]
    list_order: list[str]
    active_list_name: str
    active_task_index: int = 0
    dark: bool = True
    show_help: bool = False
    show_options: bool = False

    @property
    def active_list(self) -> TaskList:
        return self.lists[self.active_list_name]

    @property
    def active_tasks(self) -> list[Task]:
        task_list = self.lists.get(self.active_list_name)
        return task_list.tasks if task_list is not None else []

    @property
    def active_config(self) -> ListConfig:
        task_list = self.lists.get(self.active_list_name)
        return task_list.config if task_list is not None else ListConfig()

    @property
    def active_task(self) -> Task | None:
        tasks = self.active_tasks
        if 0 <= self.active_task_index < len(tasks):
            return tasks[self.active_task_index]
        return None


def default_state() -> AppState:
    """One empty default list with default config."""
    return AppState(
        lists={DEFAULT_LIST_NAME: TaskList()},
        list_order=[DEFAULT_LIST_NAME],
        active_list_name=DEFAULT_LIST_NAME,
    )
