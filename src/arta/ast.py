"""
Abstract Syntax Tree (AST) node definitions for the Arta query language.

A parsed script is a list of Command nodes.  The set of command kinds is
closed; the interpreter, validator and explainer each dispatch over it with
isinstance checks.  Nodes are never mutated after parsing.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Union, Any
from abc import ABC
from .tokens import SourceSpan


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: SourceSpan  # Source location for error reporting

    @property
    def line(self) -> int:
        return self.span.start.line

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)


class AstVisitor(ABC):
    """Base class for AST visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        """Default visit method."""
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


# =============================================================================
# Enumerations
# =============================================================================

class QueryTarget(Enum):
    """What a SELECT reads."""
    CPU = "CPU"
    MEMORY = "MEMORY"
    DISK = "DISK"
    NETWORK = "NETWORK"
    SYSTEM = "SYSTEM"
    BATTERY = "BATTERY"
    PROCESS = "PROCESS"
    FILES = "FILES"
    CONTENT = "CONTENT"

    def __str__(self) -> str:
        return self.value


class LifeTarget(Enum):
    """Resources a LIFE MONITOR block can watch."""
    BATTERY = "BATTERY"
    MEMORY = "MEMORY"
    CPU = "CPU"
    DISK = "DISK"
    NETWORK = "NETWORK"
    PROCESSES = "PROCESSES"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_name(cls, name: str) -> Optional["LifeTarget"]:
        """Look up a target by case-insensitive name (PROCESS and PROCESSES both work)."""
        key = name.strip().upper()
        if key == "PROCESS":
            key = "PROCESSES"
        try:
            return cls(key)
        except ValueError:
            return None


class CompareOp(Enum):
    """Comparison operators usable in WHERE and IF conditions."""
    EQ = "="
    NE = "!="
    GT = ">"
    GE = ">="
    LT = "<"
    LE = "<="
    LIKE = "LIKE"
    CONTAINS = "CONTAINS"
    MATCHES = "MATCHES"

    def __str__(self) -> str:
        return self.value

    @property
    def is_numeric(self) -> bool:
        return self in (CompareOp.EQ, CompareOp.NE, CompareOp.GT,
                        CompareOp.GE, CompareOp.LT, CompareOp.LE)


class LogicalOp(Enum):
    """Link between two conditions in a filter chain."""
    AND = "AND"
    OR = "OR"

    def __str__(self) -> str:
        return self.value


class ShowTarget(Enum):
    """What SHOW displays."""
    CONTEXT = "CONTEXT"
    VARIABLES = "VARIABLES"
    HISTORY = "HISTORY"

    def __str__(self) -> str:
        return self.value


class ValueKind(Enum):
    """Kinds of literal values."""
    STRING = "string"
    NUMBER = "number"
    SIZE = "size"
    BOOLEAN = "boolean"
    PATH = "path"
    IDENTIFIER = "identifier"   # variable reference


# =============================================================================
# Values and Filters
# =============================================================================

@dataclass
class Literal(AstNode):
    """A literal value or a variable reference."""
    value: Union[str, float, int, bool]
    kind: ValueKind

    def __str__(self) -> str:
        if self.kind == ValueKind.STRING:
            return f'"{self.value}"'
        if self.kind == ValueKind.NUMBER:
            return f"{self.value:g}"
        if self.kind == ValueKind.SIZE:
            return f"{self.value}B"
        if self.kind == ValueKind.BOOLEAN:
            return "true" if self.value else "false"
        return str(self.value)


@dataclass
class Condition(AstNode):
    """A single comparison: field op value."""
    field: str
    operator: CompareOp
    value: Literal

    def __str__(self) -> str:
        return f"{self.field} {self.operator} {self.value}"


@dataclass
class ConditionExpr(AstNode):
    """A comparison optionally linked to the rest of the chain."""
    condition: Condition
    logical_op: Optional[LogicalOp] = None
    next: Optional["ConditionExpr"] = None

    def links(self) -> List["ConditionExpr"]:
        """Flatten the right-recursive chain into order of evaluation."""
        chain = []
        node = self
        while node is not None:
            chain.append(node)
            node = node.next
        return chain

    def __str__(self) -> str:
        parts = []
        for node in self.links():
            parts.append(str(node.condition))
            if node.logical_op is not None and node.next is not None:
                parts.append(str(node.logical_op))
        return " ".join(parts)


@dataclass
class WhereClause(AstNode):
    """A filter: conjunction of condition chains."""
    conditions: List[ConditionExpr]

    def __str__(self) -> str:
        return " AND ".join(str(c) for c in self.conditions)


# =============================================================================
# Commands
# =============================================================================

@dataclass
class Command(AstNode):
    """Base class for all executable statements."""
    pass


@dataclass
class QueryCommand(Command):
    """SELECT <target> <fields> [FROM path] [WHERE ...]"""
    target: QueryTarget
    fields: Optional[List[str]] = None    # None means '*'
    from_path: Optional[str] = None
    where: Optional[WhereClause] = None

    @property
    def field_list(self) -> str:
        return "*" if self.fields is None else ", ".join(self.fields)


@dataclass
class ActionCommand(Command):
    """Base class for destructive actions."""

    @property
    def action_name(self) -> str:
        raise NotImplementedError


@dataclass
class DeleteFilesCommand(ActionCommand):
    """DELETE FILES FROM path [WHERE ...]"""
    path: str = ""
    where: Optional[WhereClause] = None

    @property
    def action_name(self) -> str:
        return "DELETE FILES"


@dataclass
class KillProcessCommand(ActionCommand):
    """KILL PROCESS WHERE ..."""
    where: Optional[WhereClause] = None

    @property
    def action_name(self) -> str:
        return "KILL PROCESS"


@dataclass
class ContextCommand(Command):
    """Base class for folder/file context operations."""
    pass


@dataclass
class EnterFolder(ContextCommand):
    path: str


@dataclass
class EnterFile(ContextCommand):
    path: str


@dataclass
class ExitContext(ContextCommand):
    pass


@dataclass
class ResetContext(ContextCommand):
    pass


@dataclass
class ShowCommand(ContextCommand):
    target: ShowTarget


@dataclass
class LetStatement(Command):
    """LET name = value"""
    name: str
    value: Literal


@dataclass
class ForLoop(Command):
    """FOR var IN <query> DO ... END FOR"""
    variable: str
    source: QueryCommand
    body: List[Command] = field(default_factory=list)


@dataclass
class IfCondition(AstNode):
    """SELECT <target> <field> <op> <value> as used by IF."""
    target: QueryTarget
    field: str
    operator: CompareOp
    value: Literal

    def __str__(self) -> str:
        return f"{self.target} {self.field} {self.operator} {self.value}"


@dataclass
class IfStatement(Command):
    """IF SELECT ... THEN ... [ELSE ...] END IF"""
    condition: IfCondition
    then_body: List[Command] = field(default_factory=list)
    else_body: Optional[List[Command]] = None


@dataclass
class LifeMonitor(Command):
    """LIFE MONITOR <resource> DO ... END LIFE"""
    target: LifeTarget
    body: List[Command] = field(default_factory=list)


@dataclass
class PrintExpr(AstNode):
    """Base class for PRINT operands."""
    pass


@dataclass
class PrintString(PrintExpr):
    text: str


@dataclass
class PrintVariable(PrintExpr):
    name: str


@dataclass
class PrintQueryField(PrintExpr):
    target: QueryTarget
    field: str


@dataclass
class PrintCommand(Command):
    """PRINT expr, expr, ..."""
    expressions: List[PrintExpr] = field(default_factory=list)


@dataclass
class ContainerCommand(Command):
    """Base class for container operations."""
    pass


@dataclass
class CreateContainer(ContainerCommand):
    """CREATE CONTAINER name [WITH ALLOW ACTIONS, READONLY] DO ... END CONTAINER"""
    name: str
    allow_actions: bool = False
    readonly: bool = False
    body: List[Command] = field(default_factory=list)


@dataclass
class SwitchContainer(ContainerCommand):
    name: str


@dataclass
class ListContainers(ContainerCommand):
    pass


@dataclass
class DestroyContainer(ContainerCommand):
    name: str


@dataclass
class ExportContainer(ContainerCommand):
    name: str
    path: str


@dataclass
class ExplainCommand(Command):
    """EXPLAIN <statement>"""
    inner: Command


@dataclass
class Script(AstNode):
    """A parsed script: statements in source order."""
    statements: List[Command] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.statements)

    def __iter__(self):
        return iter(self.statements)


def child_bodies(command: Command) -> List[List[Command]]:
    """Nested statement lists owned by a command (empty for leaf commands)."""
    if isinstance(command, ForLoop):
        return [command.body]
    if isinstance(command, IfStatement):
        bodies = [command.then_body]
        if command.else_body is not None:
            bodies.append(command.else_body)
        return bodies
    if isinstance(command, LifeMonitor):
        return [command.body]
    if isinstance(command, CreateContainer):
        return [command.body]
    return []
