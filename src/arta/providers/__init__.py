"""
System query and action providers.

The interpreter talks to a SystemProvider; tests substitute a subclass that
returns canned records.
"""

from pathlib import Path
from typing import List, Optional

from ..ast import QueryTarget, WhereClause
from .records import (
    CpuInfo, MemoryInfo, DiskEntry, DiskInfo, NetworkInterface, NetworkInfo,
    SystemInfo, BatteryEntry, BatteryInfo, ProcessInfo, FileEntry, ContentInfo,
    ActionResult, to_dict,
)
from .filters import Lookup, evaluate_where
from . import queries, actions


class SystemProvider:
    """Live psutil/filesystem provider with configurable safety ceilings."""

    def __init__(self, max_delete_files: int = actions.MAX_FILES_PER_OPERATION,
                 max_kill_processes: int = actions.MAX_PROCESSES_PER_OPERATION):
        self.max_delete_files = max_delete_files
        self.max_kill_processes = max_kill_processes

    def query(self, target: QueryTarget, fields: Optional[List[str]] = None,
              path: Optional[Path] = None, where: Optional[WhereClause] = None,
              lookup: Optional[Lookup] = None):
        return queries.query(target, fields, path, where, lookup)

    def delete_files(self, path: Path, where: Optional[WhereClause], dry_run: bool,
                     lookup: Optional[Lookup] = None) -> ActionResult:
        return actions.delete_files(path, where, dry_run, lookup, self.max_delete_files)

    def kill_processes(self, where: Optional[WhereClause], dry_run: bool,
                       lookup: Optional[Lookup] = None) -> ActionResult:
        return actions.kill_processes(where, dry_run, lookup, self.max_kill_processes)


__all__ = [
    "SystemProvider",
    "CpuInfo", "MemoryInfo", "DiskEntry", "DiskInfo", "NetworkInterface",
    "NetworkInfo", "SystemInfo", "BatteryEntry", "BatteryInfo", "ProcessInfo",
    "FileEntry", "ContentInfo", "ActionResult", "to_dict",
    "Lookup", "evaluate_where",
]
