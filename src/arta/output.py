"""
Rendering of execution results as human-readable text or JSON.
"""

import json
from dataclasses import is_dataclass, asdict
from typing import Any, List, Optional

from .runtime.values import ExecutionResult, ResultKind, format_bytes

MAX_PROCESS_ROWS = 20
MAX_FILE_ROWS = 50


def truncate(s: str, max_len: int) -> str:
    if len(s) <= max_len:
        return s
    return s[:max(max_len - 3, 0)] + "..."


def _heading(title: str) -> str:
    return f"{title}\n{'-' * len(title)}\n"


def _keyed_lines(rows: List[tuple], fields: Optional[List[str]]) -> str:
    """'Label: value' lines, restricted to the requested fields when given."""
    wanted = {f.lower() for f in fields} if fields is not None else None
    width = max(len(label) for _, label, _ in rows) + 1
    lines = []
    for key, label, value in rows:
        if wanted is not None and key not in wanted:
            continue
        lines.append(f"{label + ':':<{width}} {value}")
    return "\n".join(lines)


def _format_cpu(info, fields) -> str:
    return _heading("CPU Information") + _keyed_lines([
        ("cores", "Cores", info.cores),
        ("usage", "Usage", f"{info.usage:.1f}%"),
        ("brand", "Brand", info.brand),
        ("frequency", "Frequency", f"{info.frequency} MHz"),
    ], fields)


def _format_memory(info, fields) -> str:
    return _heading("Memory Information") + _keyed_lines([
        ("total", "Total", format_bytes(info.total)),
        ("used", "Used", format_bytes(info.used)),
        ("free", "Free", format_bytes(info.free)),
        ("available", "Available", format_bytes(info.available)),
        ("usage_percent", "Usage", f"{info.usage_percent:.1f}%"),
    ], fields)


def _format_system(info, fields) -> str:
    hours, minutes = info.uptime // 3600, (info.uptime % 3600) // 60
    return _heading("System Information") + _keyed_lines([
        ("hostname", "Hostname", info.hostname),
        ("os_name", "OS", info.os_name),
        ("os_version", "OS version", info.os_version),
        ("kernel_version", "Kernel", info.kernel_version),
        ("uptime", "Uptime", f"{hours}h {minutes}m"),
    ], fields)


def _format_disk(info) -> str:
    out = _heading("Disk Information")
    for disk in info.disks:
        out += (f"\n{disk.mount_point} ({disk.file_system})\n"
                f"  Total: {format_bytes(disk.total)} | Used: {format_bytes(disk.used)} | "
                f"Free: {format_bytes(disk.free)} | Usage: {disk.usage_percent:.1f}%\n")
    return out


def _format_network(info) -> str:
    out = _heading("Network Interfaces")
    for iface in info.interfaces:
        out += (f"\n{iface.name}\n"
                f"  Received: {format_bytes(iface.received)} | "
                f"Transmitted: {format_bytes(iface.transmitted)}\n")
    return out


def _format_battery(info) -> str:
    if not info.batteries:
        return "No batteries found"
    out = _heading("Battery Information")
    for i, battery in enumerate(info.batteries, start=1):
        out += f"\nBattery {i}\n  State: {battery.state} | Charge: {battery.percentage:.1f}%"
        if battery.time_to_empty:
            out += f" | Time to empty: {battery.time_to_empty}"
        if battery.time_to_full:
            out += f" | Time to full: {battery.time_to_full}"
        out += "\n"
    return out


def _format_processes(processes) -> str:
    if not processes:
        return "No matching processes found"
    out = _heading("Processes")
    out += f"{'PID':<8} {'NAME':<20} {'CPU%':>8} {'MEMORY':>12}\n"
    out += "-" * 52 + "\n"
    for proc in processes[:MAX_PROCESS_ROWS]:
        out += (f"{proc.pid:<8} {truncate(proc.name, 20):<20} "
                f"{proc.cpu:>7.1f}% {format_bytes(proc.memory):>12}\n")
    if len(processes) > MAX_PROCESS_ROWS:
        out += f"\n... and {len(processes) - MAX_PROCESS_ROWS} more processes\n"
    return out


def _format_files(files) -> str:
    if not files:
        return "No files found"
    out = _heading("Files")
    out += f"{'NAME':<30} {'SIZE':>12} {'MODIFIED':<20}\n"
    out += "-" * 64 + "\n"
    for entry in files[:MAX_FILE_ROWS]:
        name = entry.name + "/" if entry.is_dir else entry.name
        size = "-" if entry.is_dir else format_bytes(entry.size)
        out += f"{truncate(name, 30):<30} {size:>12} {entry.modified or '-':<20}\n"
    if len(files) > MAX_FILE_ROWS:
        out += f"\n... and {len(files) - MAX_FILE_ROWS} more files\n"
    return out


def _format_content(content) -> str:
    out = (f"File: {content.file_path}\n"
           f"Size: {format_bytes(content.file_size)} | Lines: {content.total_lines}\n"
           f"{'-' * 60}\n")
    for line in content.lines:
        out += line + "\n"
    if len(content.lines) < content.total_lines:
        out += f"\n... {content.total_lines - len(content.lines)} more lines\n"
    return out


def _format_action(action) -> str:
    out = f"{action.action_type} Result\n{'-' * (len(action.action_type) + 7)}\n"
    if action.dry_run:
        out += "[DRY RUN] No changes were made\n\n"
    out += f"Affected: {action.affected_count} items\n\n"
    for detail in action.details:
        out += f"  {detail}\n"
    return out


def _format_context(info) -> str:
    sections = []
    if info.current_folder:
        text = _heading("Current Context") + f"Folder: {info.current_folder}\n"
        if info.current_file:
            text += f"File:   {info.current_file}\n"
        text += f"Depth:  {info.folder_depth}\n"
        sections.append(text)
    if info.variables:
        sections.append(_heading("Variables")
                        + "".join(f"  {name} = {value}\n" for name, value in info.variables))
    if info.history:
        sections.append(_heading("History")
                        + "".join(f"  {entry}\n" for entry in info.history))
    if not sections:
        return "No context information"
    return "\n".join(sections)


def _format_container(info) -> str:
    out = f"Container: {info.operation}\n{'-' * (len(info.operation) + 11)}\n"
    if info.container_name:
        out += f"Name: {info.container_name}\n"
    out += f"{info.message}\n"
    if info.containers is not None:
        out += f"\n{'NAME':<20} {'ALLOW_ACTIONS':>13} {'READONLY':>12} {'ACTIVE':>8}\n"
        out += "-" * 56 + "\n"
        for c in info.containers:
            out += (f"{c.name:<20} {'yes' if c.allow_actions else 'no':>13} "
                    f"{'yes' if c.readonly else 'no':>12} {'*' if c.is_active else '':>8}\n")
    return out


def format_human(result: ExecutionResult) -> str:
    """Render a result as text for a terminal."""
    kind, data = result.kind, result.data
    if kind == ResultKind.CPU:
        return _format_cpu(data, result.fields)
    if kind == ResultKind.MEMORY:
        return _format_memory(data, result.fields)
    if kind == ResultKind.SYSTEM:
        return _format_system(data, result.fields)
    if kind == ResultKind.DISK:
        return _format_disk(data)
    if kind == ResultKind.NETWORK:
        return _format_network(data)
    if kind == ResultKind.BATTERY:
        return _format_battery(data)
    if kind == ResultKind.PROCESSES:
        return _format_processes(data)
    if kind == ResultKind.FILES:
        return _format_files(data)
    if kind == ResultKind.CONTENT:
        return _format_content(data)
    if kind == ResultKind.ACTION:
        return _format_action(data)
    if kind == ResultKind.CONTEXT:
        return _format_context(data)
    if kind == ResultKind.CONTAINER:
        return _format_container(data)
    if kind == ResultKind.MULTIPLE:
        return "\n---\n\n".join(format_human(r) for r in data)
    if kind == ResultKind.EMPTY:
        return ""
    return str(data)


def _project(record: dict, fields: Optional[List[str]]) -> dict:
    if fields is None:
        return record
    wanted = {f.lower() for f in fields}
    return {k: v for k, v in record.items() if k in wanted}


def to_jsonable(result: ExecutionResult) -> Any:
    """Plain JSON-ready data for a result."""
    data = result.data
    if result.kind == ResultKind.MULTIPLE:
        return [to_jsonable(r) for r in data]
    if result.kind == ResultKind.EMPTY:
        return None
    if isinstance(data, list):
        return [_project(asdict(item), result.fields) if is_dataclass(item) else item
                for item in data]
    if is_dataclass(data):
        record = asdict(data)
        for key in ("disks", "interfaces", "batteries"):
            if key in record:
                record[key] = [_project(item, result.fields) for item in record[key]]
                return record
        return _project(record, result.fields)
    return data


def format_json(result: ExecutionResult) -> str:
    if result.kind in (ResultKind.MESSAGE, ResultKind.EXPLANATION):
        payload = {"message": result.data}
    else:
        payload = to_jsonable(result)
    return json.dumps(payload, indent=2, default=str)


def format_result(result: ExecutionResult, mode: str = "human") -> str:
    """
    Render a result.

    Args:
        result: The result to render
        mode: "human" or "json"
    """
    if mode == "json":
        return format_json(result)
    return format_human(result)
