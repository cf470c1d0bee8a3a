"""Infrastructure adapters for the TimeTally engine."""

from timetally.adapters.file_channel import FileSyncChannel
from timetally.adapters.file_storage import FileStateStorage, MemoryStateStorage
from timetally.adapters.local_channel import LocalSyncBus, LocalSyncChannel
from timetally.adapters.terminal_notifier import TerminalMediaControl, TerminalNotifier
from timetally.adapters.xml_interchange import export_document, merge_import, parse_document

__all__ = [
    "FileStateStorage",
    "FileSyncChannel",
    "LocalSyncBus",
    "LocalSyncChannel",
    "MemoryStateStorage",
    "TerminalMediaControl",
    "TerminalNotifier",
    "export_document",
    "merge_import",
    "parse_document",
]
