"""
Read-only system queries backed by psutil and the filesystem.

Every query returns one of the record dataclasses in providers.records.
Errors from the operating system are mapped onto the Arta exception
taxonomy; processes that vanish or deny access while being enumerated are
skipped.
"""

import logging
import platform
import socket
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import psutil

from ..ast import QueryTarget, WhereClause, CompareOp, ValueKind
from ..errors import ExecutionError, PathNotFound, PermissionDenied, ArtaIOError, InvalidField
from .filters import Lookup, evaluate_where, compare_strings, resolve_literal
from .records import (
    CpuInfo, MemoryInfo, DiskEntry, DiskInfo, NetworkInterface, NetworkInfo,
    SystemInfo, BatteryEntry, BatteryInfo, ProcessInfo, FileEntry, ContentInfo,
)

logger = logging.getLogger(__name__)

# Seconds between the two samples needed for meaningful CPU percentages
CPU_SAMPLE_INTERVAL = 0.2

# CONTENT without a filter returns at most this many lines
MAX_CONTENT_LINES = 100

# Field names a SELECT may request, per target
QUERY_FIELDS: Dict[QueryTarget, tuple] = {
    QueryTarget.CPU: ("cores", "usage", "brand", "frequency"),
    QueryTarget.MEMORY: ("total", "used", "free", "available", "usage_percent"),
    QueryTarget.DISK: ("name", "mount_point", "total", "used", "free",
                       "usage_percent", "file_system"),
    QueryTarget.NETWORK: ("name", "received", "transmitted",
                          "packets_received", "packets_transmitted"),
    QueryTarget.SYSTEM: ("hostname", "os_name", "os_version", "kernel_version", "uptime"),
    QueryTarget.BATTERY: ("state", "percentage", "time_to_empty", "time_to_full"),
    QueryTarget.PROCESS: ("pid", "name", "cpu", "memory", "status", "user"),
    QueryTarget.FILES: ("name", "path", "size", "is_dir", "modified", "extension"),
    QueryTarget.CONTENT: ("file_path", "lines", "total_lines", "file_size"),
}


def check_fields(target: QueryTarget, fields: Optional[List[str]]) -> None:
    """Raise InvalidField for a requested field the target does not have."""
    if fields is None:
        return
    known = QUERY_FIELDS[target]
    for name in fields:
        if name.lower() not in known:
            raise InvalidField(str(target), name)


def format_duration(seconds: int) -> str:
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


# --- scalar targets ---

def query_cpu(interval: float = CPU_SAMPLE_INTERVAL) -> CpuInfo:
    usage = psutil.cpu_percent(interval=interval)
    freq = psutil.cpu_freq()
    brand = platform.processor() or platform.machine() or "Unknown"
    return CpuInfo(
        cores=psutil.cpu_count(logical=True) or 0,
        usage=float(usage),
        brand=brand,
        frequency=int(freq.current) if freq is not None else 0,
    )


def query_memory() -> MemoryInfo:
    vm = psutil.virtual_memory()
    usage = (vm.used / vm.total * 100.0) if vm.total else 0.0
    return MemoryInfo(
        total=vm.total,
        used=vm.used,
        free=vm.free,
        available=vm.available,
        usage_percent=usage,
    )


def query_disk(from_path: Optional[str] = None) -> DiskInfo:
    """Mounted disks, optionally only those whose mount point starts with from_path."""
    disks = []
    for part in psutil.disk_partitions(all=False):
        if from_path is not None and not part.mountpoint.startswith(from_path):
            continue
        try:
            usage = psutil.disk_usage(part.mountpoint)
        except OSError as e:
            logger.debug("skipping %s: %s", part.mountpoint, e)
            continue
        free = usage.free
        used = max(usage.total - free, 0)
        percent = (used / usage.total * 100.0) if usage.total else 0.0
        disks.append(DiskEntry(
            name=part.device,
            mount_point=part.mountpoint,
            total=usage.total,
            used=used,
            free=free,
            usage_percent=percent,
            file_system=part.fstype,
        ))
    return DiskInfo(disks)


def query_network() -> NetworkInfo:
    counters = psutil.net_io_counters(pernic=True)
    interfaces = [
        NetworkInterface(
            name=name,
            received=c.bytes_recv,
            transmitted=c.bytes_sent,
            packets_received=c.packets_recv,
            packets_transmitted=c.packets_sent,
        )
        for name, c in sorted(counters.items())
    ]
    return NetworkInfo(interfaces)


def query_system() -> SystemInfo:
    return SystemInfo(
        hostname=socket.gethostname(),
        os_name=platform.system(),
        os_version=platform.version(),
        kernel_version=platform.release(),
        uptime=int(time.time() - psutil.boot_time()),
    )


def query_battery() -> BatteryInfo:
    """Battery state; an empty list on machines without one."""
    sensors_battery = getattr(psutil, "sensors_battery", None)
    battery = sensors_battery() if sensors_battery is not None else None
    if battery is None:
        return BatteryInfo([])

    if battery.power_plugged is None:
        state = "Unknown"
    elif battery.power_plugged:
        state = "Full" if battery.percent >= 100 else "Charging"
    else:
        state = "Discharging"

    time_to_empty = None
    if not battery.power_plugged and battery.secsleft not in (
            psutil.POWER_TIME_UNLIMITED, psutil.POWER_TIME_UNKNOWN):
        time_to_empty = format_duration(int(battery.secsleft))

    return BatteryInfo([BatteryEntry(state, float(battery.percent), time_to_empty, None)])


# --- list targets ---

def process_fields(proc: ProcessInfo) -> dict:
    return {
        "pid": proc.pid,
        "name": proc.name,
        "cpu": proc.cpu,
        "memory": proc.memory,
        "status": proc.status,
        "user": proc.user,
    }


def list_processes(interval: float = CPU_SAMPLE_INTERVAL) -> List[ProcessInfo]:
    """
    Snapshot all processes. CPU percentages need two samples, so each
    process is primed, then read again after `interval` seconds.
    """
    procs = []
    for proc in psutil.process_iter():
        try:
            proc.cpu_percent(None)
            procs.append(proc)
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue
    if interval > 0:
        time.sleep(interval)

    result = []
    for proc in procs:
        try:
            with proc.oneshot():
                try:
                    user = proc.username()
                except (psutil.AccessDenied, KeyError):
                    user = None
                result.append(ProcessInfo(
                    pid=proc.pid,
                    name=proc.name(),
                    cpu=float(proc.cpu_percent(None)),
                    memory=proc.memory_info().rss,
                    status=proc.status(),
                    user=user,
                ))
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess) as e:
            logger.debug("skipping pid %s: %s", proc.pid, e)
            continue
    return result


def query_processes(where: Optional[WhereClause] = None, lookup: Optional[Lookup] = None,
                    interval: float = CPU_SAMPLE_INTERVAL) -> List[ProcessInfo]:
    """Processes passing the filter, highest CPU first."""
    procs = [p for p in list_processes(interval)
             if evaluate_where(process_fields(p), where, lookup)]
    procs.sort(key=lambda p: p.cpu, reverse=True)
    return procs


def file_fields(entry: FileEntry) -> dict:
    return {
        "name": entry.name,
        "path": entry.path,
        "size": entry.size,
        "is_dir": entry.is_dir,
        "modified": entry.modified,
        "extension": entry.extension,
        "ext": entry.extension,
    }


def _require_dir(path: Path) -> None:
    if not path.exists():
        raise PathNotFound(str(path))
    if not path.is_dir():
        raise ExecutionError(f"'{path}' is not a directory")


def _file_entry(path: Path) -> FileEntry:
    st = path.stat()
    modified = datetime.fromtimestamp(st.st_mtime).strftime("%Y-%m-%d %H:%M")
    return FileEntry(
        name=path.name,
        path=str(path),
        size=st.st_size,
        is_dir=path.is_dir(),
        modified=modified,
        extension=path.suffix[1:] if path.suffix else None,
    )


def query_files(path: Path, where: Optional[WhereClause] = None,
                lookup: Optional[Lookup] = None) -> List[FileEntry]:
    """
    Entries directly inside a directory, filtered, sorted by name. Entries
    that cannot be stat'ed (dangling links, files removed mid-scan) are skipped.
    """
    path = Path(path)
    _require_dir(path)
    try:
        children = list(path.iterdir())
    except PermissionError:
        raise PermissionDenied(str(path))
    except OSError as e:
        raise ArtaIOError(e)

    entries = []
    for child in children:
        try:
            entry = _file_entry(child)
        except OSError as e:
            logger.debug("skipping %s: %s", child, e)
            continue
        if evaluate_where(file_fields(entry), where, lookup, ignore_case=True):
            entries.append(entry)
    entries.sort(key=lambda e: e.name)
    return entries


def _content_matcher(where: Optional[WhereClause], lookup: Optional[Lookup]):
    """Line predicate from the first `content`/`line` condition, or None."""
    if where is None or not where.conditions:
        return None
    condition = where.conditions[0].condition
    if condition.field.lower() not in ("content", "line"):
        return None
    value, kind = resolve_literal(condition.value, lookup)
    if kind not in (ValueKind.STRING, ValueKind.PATH):
        return None
    pattern = str(value)
    op = condition.operator
    if op in (CompareOp.EQ, CompareOp.CONTAINS):
        return lambda line: pattern in line
    if op == CompareOp.NE:
        return lambda line: pattern not in line
    return lambda line: compare_strings(line, pattern, op)


def query_content(path: Path, where: Optional[WhereClause] = None,
                  lookup: Optional[Lookup] = None) -> ContentInfo:
    """Numbered lines of a text file: the first 100, or those matching the filter."""
    path = Path(path)
    if not path.exists():
        raise PathNotFound(str(path))
    if not path.is_file():
        raise ExecutionError(f"'{path}' is not a file")

    matcher = _content_matcher(where, lookup)
    lines = []
    total = 0
    try:
        size = path.stat().st_size
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            for total, line in enumerate(f, start=1):
                line = line.rstrip("\r\n")
                if matcher is not None:
                    if matcher(line):
                        lines.append(f"{total:>4}: {line}")
                elif len(lines) < MAX_CONTENT_LINES:
                    lines.append(f"{total:>4}: {line}")
    except PermissionError:
        raise PermissionDenied(str(path))
    except OSError as e:
        raise ArtaIOError(e)
    return ContentInfo(str(path), lines, total, size)


def query(target: QueryTarget, fields: Optional[List[str]] = None,
          path: Optional[Path] = None, where: Optional[WhereClause] = None,
          lookup: Optional[Lookup] = None):
    """
    Run a query against the live system.

    Args:
        target: What to read
        fields: Requested field names, or None for all
        path: Directory for FILES, file for CONTENT, mount prefix for DISK
        where: Optional filter (PROCESS, FILES, CONTENT)
        lookup: Resolves variable references inside the filter

    Returns:
        A record dataclass, or a list of them for PROCESS and FILES
    """
    check_fields(target, fields)
    if target == QueryTarget.CPU:
        return query_cpu()
    if target == QueryTarget.MEMORY:
        return query_memory()
    if target == QueryTarget.DISK:
        return query_disk(str(path) if path is not None else None)
    if target == QueryTarget.NETWORK:
        return query_network()
    if target == QueryTarget.SYSTEM:
        return query_system()
    if target == QueryTarget.BATTERY:
        return query_battery()
    if target == QueryTarget.PROCESS:
        return query_processes(where, lookup)
    if target == QueryTarget.FILES:
        return query_files(path, where, lookup)
    if target == QueryTarget.CONTENT:
        return query_content(path, where, lookup)
    raise ExecutionError(f"Unsupported query target: {target}")
