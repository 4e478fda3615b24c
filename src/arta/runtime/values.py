"""
Runtime values and execution results.

Variables bound with LET, injected from the command line or shadowed by a FOR
loop are held as Value objects tagged with the literal kind they came from.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from ..ast import ValueKind


BYTE_UNITS = ["B", "KB", "MB", "GB", "TB"]


def format_bytes(n: float) -> str:
    """Human-readable 1024-based byte count, e.g. '1.5 GB'."""
    n = float(n)
    if abs(n) < 1024:
        return f"{int(n)} B"
    for unit in BYTE_UNITS[1:]:
        n /= 1024.0
        if abs(n) < 1024 or unit == BYTE_UNITS[-1]:
            return f"{n:.1f} {unit}"


def format_number(n: float) -> str:
    """Display a float without a trailing '.0' when it is integral."""
    if float(n).is_integer():
        return str(int(n))
    return repr(float(n))


@dataclass
class Value:
    """
    A variable value with the kind of literal it came from.

    `data` holds the Python object: str for strings and paths, float for
    numbers, int for sizes (bytes), bool for booleans.
    """
    data: Any
    kind: ValueKind

    def __repr__(self) -> str:
        return f"Value({self.data!r}, {self.kind.value})"

    def __str__(self) -> str:
        if self.kind == ValueKind.NUMBER:
            return format_number(self.data)
        if self.kind == ValueKind.SIZE:
            return format_bytes(self.data)
        if self.kind == ValueKind.BOOLEAN:
            return "true" if self.data else "false"
        return str(self.data)

    @property
    def is_numeric(self) -> bool:
        return self.kind in (ValueKind.NUMBER, ValueKind.SIZE)

    def as_number(self) -> Optional[float]:
        """Numeric view of the value, or None when it has none."""
        if self.is_numeric:
            return float(self.data)
        return None

    def to_literal(self) -> str:
        """Source text that LET can parse back into an equal value."""
        if self.kind == ValueKind.NUMBER:
            return format_number(self.data)
        if self.kind == ValueKind.SIZE:
            return f"{self.data}B"
        if self.kind == ValueKind.BOOLEAN:
            return "true" if self.data else "false"
        escaped = str(self.data).replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'


# Convenience constructors

def string_val(s: str) -> Value:
    """Create a text value."""
    return Value(str(s), ValueKind.STRING)


def number_val(x: float) -> Value:
    """Create a number value."""
    return Value(float(x), ValueKind.NUMBER)


def size_val(n: int) -> Value:
    """Create a byte-count value."""
    return Value(int(n), ValueKind.SIZE)


def bool_val(b: bool) -> Value:
    """Create a boolean value."""
    return Value(bool(b), ValueKind.BOOLEAN)


def path_val(p) -> Value:
    """Create a path value."""
    return Value(str(p), ValueKind.PATH)


def sniff_value(text: str) -> Value:
    """
    Type-sniff a command-line `key=value` argument: number, then boolean,
    then path when it starts with '/', else text.
    """
    try:
        return number_val(float(text))
    except ValueError:
        pass
    if text.lower() == "true":
        return bool_val(True)
    if text.lower() == "false":
        return bool_val(False)
    if text.startswith("/"):
        return path_val(Path(text))
    return string_val(text)


class ResultKind(Enum):
    """Shape of an ExecutionResult's data."""
    CPU = "cpu"
    MEMORY = "memory"
    DISK = "disk"
    NETWORK = "network"
    SYSTEM = "system"
    BATTERY = "battery"
    PROCESSES = "processes"
    FILES = "files"
    CONTENT = "content"
    ACTION = "action"
    CONTEXT = "context"
    CONTAINER = "container"
    EXPLANATION = "explanation"
    MESSAGE = "message"
    MULTIPLE = "multiple"
    EMPTY = "empty"


@dataclass
class ExecutionResult:
    """Result of executing one command."""
    kind: ResultKind
    data: Any = None
    message: Optional[str] = None
    fields: Optional[list] = None    # requested SELECT fields, None for all

    @property
    def is_empty(self) -> bool:
        return self.kind == ResultKind.EMPTY


def message_result(text: str) -> ExecutionResult:
    return ExecutionResult(ResultKind.MESSAGE, text)


def empty_result(message: Optional[str] = None) -> ExecutionResult:
    return ExecutionResult(ResultKind.EMPTY, None, message)


@dataclass
class ContextInfo:
    """Snapshot shown by SHOW CONTEXT / VARIABLES / HISTORY."""
    current_folder: Optional[str] = None
    current_file: Optional[str] = None
    folder_depth: int = 0
    variables: list = field(default_factory=list)   # (name, display) pairs
    history: list = field(default_factory=list)     # formatted lines


@dataclass
class ContainerResultInfo:
    """Outcome of a container operation."""
    operation: str
    message: str
    container_name: Optional[str] = None
    containers: Optional[list] = None     # ContainerInfo rows for LIST
