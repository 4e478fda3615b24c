"""
Per-session execution state.

An Environment owns the folder stack, the optional focused file, the variable
bindings and an append-only history of context changes.  It is passed
explicitly to the interpreter; nothing here is global.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, TYPE_CHECKING

from .errors import ExecutionError, PathNotFound, PermissionDenied, ArtaIOError

if TYPE_CHECKING:
    from .runtime.values import Value


@dataclass
class HistoryEntry:
    """One context change: what happened, where, and when."""
    action: str
    path: Optional[Path]
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        where = f" {self.path}" if self.path is not None else ""
        return f"{self.timestamp:%H:%M:%S}: {self.action}{where}"


def _canonical(path: Path) -> Path:
    try:
        return path.resolve(strict=True)
    except PermissionError:
        raise PermissionDenied(str(path))
    except FileNotFoundError:
        raise PathNotFound(str(path))
    except OSError as e:
        raise ArtaIOError(e)


class Environment:
    """
    Folder/file context stack, variables and history.

    The folder stack is never empty: its first element is the folder the
    environment was created in and EXIT never pops it.
    """

    def __init__(self, start_folder: Optional[Path] = None, readonly: bool = False):
        start = Path(start_folder) if start_folder is not None else Path(os.getcwd())
        self.start_folder = _canonical(start.expanduser())
        self.folder_stack: List[Path] = [self.start_folder]
        self.current_file: Optional[Path] = None
        self.variables: Dict[str, "Value"] = {}
        self.history: List[HistoryEntry] = []
        self.readonly = readonly

    def __repr__(self) -> str:
        return (f"Environment(folder={self.current_folder}, "
                f"file={self.current_file}, vars={len(self.variables)})")

    @property
    def current_folder(self) -> Path:
        return self.folder_stack[-1]

    @property
    def folder_depth(self) -> int:
        return len(self.folder_stack)

    def resolve_path(self, path) -> Path:
        """Expand '~' and join relative paths onto the current folder."""
        p = Path(str(path)).expanduser()
        if p.is_absolute():
            return p
        return self.current_folder / p

    def _record(self, action: str, path: Optional[Path] = None) -> None:
        self.history.append(HistoryEntry(action, path))

    # --- context stack ---

    def enter_folder(self, path) -> Path:
        """Push a folder; it must exist and be a directory."""
        resolved = self.resolve_path(path)
        if not resolved.exists():
            raise PathNotFound(str(resolved))
        if not resolved.is_dir():
            raise ExecutionError(f"'{resolved}' is not a directory")
        canonical = _canonical(resolved)
        self.folder_stack.append(canonical)
        self.current_file = None
        self._record("ENTER FOLDER", canonical)
        return canonical

    def enter_file(self, path) -> Path:
        """Focus a file; it must exist and be a regular file."""
        resolved = self.resolve_path(path)
        if not resolved.exists():
            raise PathNotFound(str(resolved))
        if not resolved.is_file():
            raise ExecutionError(f"'{resolved}' is not a file")
        canonical = _canonical(resolved)
        self.current_file = canonical
        self._record("ENTER FILE", canonical)
        return canonical

    def exit_context(self) -> Path:
        """
        Leave the innermost context: the focused file if there is one,
        otherwise the top folder. Returns the context now in effect.
        """
        if self.current_file is not None:
            left = self.current_file
            self.current_file = None
            self._record("EXIT FILE", left)
            return self.current_folder
        if len(self.folder_stack) > 1:
            left = self.folder_stack.pop()
            self._record("EXIT FOLDER", left)
            return self.current_folder
        raise ExecutionError("Already at root context, cannot exit further")

    def reset(self) -> None:
        """Return to the start folder with no focused file."""
        self.folder_stack = [self.start_folder]
        self.current_file = None
        self._record("RESET CONTEXT", self.start_folder)

    # --- variables ---

    def set_variable(self, name: str, value: "Value") -> None:
        if self.readonly:
            raise ExecutionError("Cannot modify variables in a read-only container")
        self.variables[name] = value

    def bind(self, name: str, value: "Value") -> None:
        """Bind without the read-only check (loop variables, injected arguments)."""
        self.variables[name] = value

    def get_variable(self, name: str) -> Optional["Value"]:
        return self.variables.get(name)

    def has_variable(self, name: str) -> bool:
        return name in self.variables
