"""
Pre-execution safety validator for Arta scripts.

Walks the AST without executing anything and reports policy problems:
- destructive actions when actions are not allowed
- DELETE FILES without a filter, or aimed at a system folder
- destructive actions anywhere inside a LIFE block
- actions in a container created without ALLOW ACTIONS
- control flow nested deeper than the configured maximum
"""

from dataclasses import dataclass
from enum import Enum
from typing import List

from .ast import (
    Script, Command, ActionCommand, DeleteFilesCommand,
    LifeMonitor, CreateContainer, child_bodies,
)

SYSTEM_PATHS = ("/", "/bin", "/etc", "/usr", "/var", "/home")


class ValidationSeverity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class ValidationIssue:
    """One problem found in a script."""
    severity: ValidationSeverity
    line: int
    message: str

    @property
    def is_error(self) -> bool:
        return self.severity == ValidationSeverity.ERROR

    def __str__(self) -> str:
        prefix = "ERROR" if self.is_error else "WARNING"
        return f"{prefix} (line {self.line}): {self.message}"


@dataclass
class ValidationOptions:
    allow_actions: bool = False
    allow_life_actions: bool = False
    max_nesting_depth: int = 10


class Validator:
    """
    Static checker for scripts.

    Usage:
        issues = Validator(ValidationOptions(allow_actions=True)).validate(script)
    """

    def __init__(self, options: ValidationOptions = None):
        self.options = options or ValidationOptions()
        self.issues: List[ValidationIssue] = []

    def validate(self, script: Script) -> List[ValidationIssue]:
        self.issues = []
        for command in script.statements:
            self._check_command(command, 0, False)
        return self.issues

    def _error(self, command: Command, message: str) -> None:
        self.issues.append(ValidationIssue(ValidationSeverity.ERROR, command.line, message))

    def _warning(self, command: Command, message: str) -> None:
        self.issues.append(ValidationIssue(ValidationSeverity.WARNING, command.line, message))

    def _check_command(self, command: Command, depth: int, in_life: bool) -> None:
        if depth > self.options.max_nesting_depth:
            self._error(command, f"Maximum nesting depth ({self.options.max_nesting_depth}) exceeded")
            return

        if isinstance(command, ActionCommand):
            self._check_action(command)
            if in_life and not self.options.allow_life_actions:
                self._error(command, "LIFE blocks cannot contain destructive actions by default")
        elif isinstance(command, LifeMonitor):
            in_life = True
        elif isinstance(command, CreateContainer) and not command.allow_actions:
            for inner in command.body:
                if isinstance(inner, ActionCommand):
                    self._warning(inner, f"{inner.action_name} action in container "
                                         f"'{command.name}' without ALLOW ACTIONS option")

        for body in child_bodies(command):
            for inner in body:
                self._check_command(inner, depth + 1, in_life)

    def _check_action(self, action: ActionCommand) -> None:
        if not self.options.allow_actions:
            self._error(action, f"{action.action_name} action found. "
                                f"Use --allow-actions to enable destructive actions")
        if isinstance(action, DeleteFilesCommand):
            if action.where is None:
                self._warning(action, "DELETE FILES without WHERE clause will delete ALL files!")
            if action.path in SYSTEM_PATHS:
                self._warning(action, f"DELETE FILES targeting system path: {action.path}")


def validate_script(script: Script, options: ValidationOptions = None) -> List[ValidationIssue]:
    """Validate a script. Never executes anything."""
    return Validator(options).validate(script)


def has_errors(issues: List[ValidationIssue]) -> bool:
    return any(issue.is_error for issue in issues)


def has_warnings(issues: List[ValidationIssue]) -> bool:
    return any(not issue.is_error for issue in issues)
