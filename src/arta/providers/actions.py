"""
Destructive actions: deleting files and terminating processes.

Both actions refuse to run without a filter or when the filter matches more
than a fixed ceiling.  With dry_run set they only report what they would do.
"""

import logging
from pathlib import Path
from typing import List, Optional

import psutil

from ..ast import WhereClause
from ..errors import ExecutionError, PathNotFound, PermissionDenied, SecurityError, ArtaIOError
from .filters import Lookup, evaluate_where
from .queries import list_processes, process_fields
from .records import ActionResult, ProcessInfo

logger = logging.getLogger(__name__)

MAX_FILES_PER_OPERATION = 100
MAX_PROCESSES_PER_OPERATION = 10

PROTECTED_PROCESSES = (
    "init",
    "systemd",
    "kernel",
    "launchd",
    "WindowServer",
    "loginwindow",
    "kernel_task",
    "syslogd",
    "notifyd",
)


def is_protected_process(name: str) -> bool:
    lowered = name.lower()
    return any(p.lower() in lowered for p in PROTECTED_PROCESSES)


def _matching_files(base: Path, where: WhereClause, lookup: Optional[Lookup]) -> List[tuple]:
    matched = []
    try:
        for child in sorted(base.iterdir()):
            if not child.is_file():
                continue
            size = child.stat().st_size
            fields = {
                "name": child.name,
                "size": size,
                "extension": child.suffix[1:],
                "ext": child.suffix[1:],
            }
            if evaluate_where(fields, where, lookup, ignore_case=True):
                matched.append((child, size))
    except PermissionError:
        raise PermissionDenied(str(base))
    except OSError as e:
        raise ArtaIOError(e)
    return matched


def delete_files(path, where: Optional[WhereClause], dry_run: bool,
                 lookup: Optional[Lookup] = None,
                 max_files: int = MAX_FILES_PER_OPERATION) -> ActionResult:
    """
    Delete regular files directly inside `path` that pass the filter.

    Subdirectories are never descended into or removed.
    """
    base = Path(path)
    if not base.exists():
        raise PathNotFound(str(base))
    if not base.is_dir():
        raise ExecutionError(f"{base} is not a directory")
    if where is None:
        raise SecurityError(
            "DELETE without WHERE clause is too dangerous. Add a WHERE clause to filter files."
        )

    matched = _matching_files(base, where, lookup)
    if len(matched) > max_files:
        raise SecurityError(
            f"Too many files to delete ({len(matched)} > {max_files}). "
            "Please use a more specific WHERE clause."
        )

    details = []
    deleted = 0
    for file_path, size in matched:
        if dry_run:
            details.append(f"Would delete: {file_path} ({size} bytes)")
            continue
        try:
            file_path.unlink()
        except OSError as e:
            logger.warning("failed to delete %s: %s", file_path, e)
            details.append(f"Failed to delete {file_path}: {e}")
        else:
            details.append(f"Deleted: {file_path}")
            deleted += 1

    return ActionResult(
        action_type="DELETE FILES",
        affected_count=len(matched) if dry_run else deleted,
        dry_run=dry_run,
        details=details,
    )


def _terminate(proc: ProcessInfo) -> tuple:
    """(killed, detail line) for one SIGTERM attempt."""
    try:
        psutil.Process(proc.pid).terminate()
    except psutil.NoSuchProcess:
        return False, f"Process no longer exists: {proc.name} (PID {proc.pid})"
    except psutil.AccessDenied:
        return False, f"Failed to kill: {proc.name} (PID {proc.pid})"
    return True, f"Killed: {proc.name} (PID {proc.pid})"


def kill_processes(where: Optional[WhereClause], dry_run: bool,
                   lookup: Optional[Lookup] = None,
                   max_processes: int = MAX_PROCESSES_PER_OPERATION,
                   processes: Optional[List[ProcessInfo]] = None) -> ActionResult:
    """
    Send SIGTERM to processes passing the filter.

    Protected system processes are silently excluded from the match.
    `processes` replaces the live process snapshot when given.
    """
    if where is None:
        raise SecurityError("KILL PROCESS requires a WHERE clause.")

    if processes is None:
        processes = list_processes(interval=0)
    matched = [p for p in processes
               if evaluate_where(process_fields(p), where, lookup, ignore_case=True)
               and not is_protected_process(p.name)]

    if len(matched) > max_processes:
        raise SecurityError(
            f"Too many processes to kill ({len(matched)} > {max_processes}). "
            "Please use a more specific WHERE clause."
        )

    details = []
    killed = 0
    for proc in matched:
        if dry_run:
            details.append(f"Would kill: {proc.name} (PID {proc.pid})")
            continue
        ok, line = _terminate(proc)
        if ok:
            killed += 1
        details.append(line)

    if not matched:
        details.append("No matching processes found")

    return ActionResult(
        action_type="KILL PROCESS",
        affected_count=len(matched) if dry_run else killed,
        dry_run=dry_run,
        details=details,
    )
