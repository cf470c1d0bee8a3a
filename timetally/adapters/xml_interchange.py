"""XML import/export of task lists.

Document shape::

    <timetally>
      <list name="LISTNAME">
        <task name="..." time="SECONDS" remaining="SECONDS" enabled="0|1"
              mediaId="OPTIONAL" mediaUrl="OPTIONAL"/>
      </list>
    </timetally>
"""

from __future__ import annotations

import copy
import logging
import math
import xml.etree.ElementTree as ET
from dataclasses import dataclass

from timetally.constants import IMPORTED_LIST_NAME, IMPORTED_TASK_NAME
from timetally.domain.errors import MalformedImport
from timetally.domain.media import watch_url
from timetally.domain.state import AppState, TaskList
from timetally.domain.task import MediaRef, Task, round_half_up

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'


@dataclass(frozen=True, slots=True)
class ImportedList:
    name: str
    tasks: tuple[Task, ...]


def export_document(state: AppState) -> str:
    """Serialize every list in display order; remaining time rounds to whole seconds."""
    root = ET.Element("timetally")
    for name in state.list_order:
        task_list = state.lists.get(name)
        if task_list is None:
            continue
        list_el = ET.SubElement(root, "list", {"name": name})
        for task in task_list.tasks:
            attrs = {
                "name": task.name,
                "time": str(task.total_duration),
                "remaining": str(round_half_up(task.remaining)),
                "enabled": "1" if task.enabled else "0",
            }
            if task.media is not None:
                attrs["mediaId"] = task.media.media_id
                attrs["mediaUrl"] = task.media.source_url
            ET.SubElement(list_el, "task", attrs)
    return XML_DECLARATION + ET.tostring(root, encoding="unicode")


def parse_document(text: str) -> list[ImportedList]:
    """Parse an interchange document; raise ``MalformedImport`` when it has no lists."""
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise MalformedImport(f"not a well-formed XML document: {exc}") from exc

    imported: list[ImportedList] = []
    for list_el in root.iter("list"):
        name = list_el.get("name") or IMPORTED_LIST_NAME
        tasks = tuple(task for el in list_el.iter("task") if (task := _parse_task(el, name)) is not None)
        imported.append(ImportedList(name=name, tasks=tasks))

    if not imported:
        raise MalformedImport("document contains no <list> elements")
    return imported


def merge_import(state: AppState, imported: list[ImportedList]) -> int:
    """Append imported tasks, creating missing lists; return how many tasks were added.

    Runs inside a transaction, so media metadata for tasks without a
    ``mediaId`` is inferred by the store's repair pass.
    """
    added = 0
    for entry in imported:
        task_list = state.lists.get(entry.name)
        if task_list is None:
            task_list = TaskList()
            state.lists[entry.name] = task_list
            state.list_order.append(entry.name)
        task_list.tasks.extend(copy.deepcopy(task) for task in entry.tasks)
        added += len(entry.tasks)
    return added


def _parse_task(el: ET.Element, list_name: str) -> Task | None:
    total = _parse_number(el.get("time"))
    if total is None or round_half_up(total) < 1:
        logger.warning("Skipping task %r in list %r: invalid time %r", el.get("name"), list_name, el.get("time"))
        return None
    total_duration = round_half_up(total)

    remaining = _parse_number(el.get("remaining"))
    if remaining is None or remaining <= 0:
        remaining = float(total_duration)

    media: MediaRef | None = None
    media_id = el.get("mediaId")
    if media_id:
        media = MediaRef(media_id=media_id, source_url=el.get("mediaUrl") or watch_url(media_id))

    task = Task(
        name=el.get("name") or IMPORTED_TASK_NAME,
        total_duration=total_duration,
        remaining=remaining,
        enabled=(el.get("enabled") or "1") == "1",
        media=media,
    )
    task.clamp_remaining()
    return task


def _parse_number(raw: str | None) -> float | None:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value
