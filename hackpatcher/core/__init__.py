"""Batch orchestration: directory walking, per-entry actions and log sinks."""

from .actions import EntryAction, ExtensionScanAction, PatchAction, UnarchiveAction
from ..utils.log_sink import LogSink, open_log
from .walker import BatchSummary, process_directory

__all__ = [
    "EntryAction",
    "ExtensionScanAction",
    "PatchAction",
    "UnarchiveAction",
    "LogSink",
    "open_log",
    "BatchSummary",
    "process_directory",
]
