"""
Arta exceptions and diagnostics.

Front-end errors (lexer and parser) carry a Diagnostic with a source span and
a code:
- E0xx: Lexer errors
- E1xx: Parser errors

Runtime errors are plain exception classes rooted at ArtaError, so a caller
can catch everything the language raises with a single except clause.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"
    WARNING = "warning"


@dataclass
class Diagnostic:
    """A single diagnostic message (error or warning)."""
    code: str                       # E001, E101, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: SourceSpan
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        loc = f"{self.span.start}"
        parts.append(f"{loc}: {self.severity.value}[{self.code}]: {self.message}")

        if show_source and self.source_line is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            end_col = self.span.end.column if self.span.start.line == self.span.end.line else len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "range": {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            },
            "hints": self.hints,
        }


class ArtaError(Exception):
    """Base exception for everything the language raises."""
    pass


class ParseError(ArtaError):
    """Malformed source text."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    def __str__(self) -> str:
        return f"Parse error at {self.diagnostic.span.start}: {self.diagnostic.message}"


class LexerError(ParseError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(ParseError):
    """Error during parsing (E1xx)."""
    pass


class ExecutionError(ArtaError):
    """Semantic failure while executing a command."""
    pass


class InvalidTarget(ExecutionError):
    """Unknown query or monitor target."""

    def __init__(self, target: str):
        self.target = target
        super().__init__(f"Invalid target: {target}")


class InvalidField(ExecutionError):
    """Unknown field for a query target."""

    def __init__(self, target: str, field_name: str):
        self.target = target
        self.field_name = field_name
        super().__init__(f"Unknown {target} field: {field_name}")


class SecurityError(ArtaError):
    """Policy violation: missing filter, match count over ceiling."""

    def __str__(self) -> str:
        return f"Security error: {self.args[0]}"


class ActionsDisabled(SecurityError, ExecutionError):
    """A destructive action was requested without allow_actions or dry_run."""

    def __init__(self):
        super().__init__(
            "Actions not enabled. Use --allow-actions flag to enable system modifications"
        )


class PathNotFound(ArtaError):
    """A path given to a context operation, query or action does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Path not found: {path}")


class PermissionDenied(ArtaError):
    """The operating system refused access."""

    def __init__(self, what: str):
        super().__init__(f"Permission denied: {what}")


class ArtaIOError(ArtaError):
    """I/O failure wrapped from the provider layer."""

    def __init__(self, error: OSError):
        self.error = error
        super().__init__(f"IO error: {error}")


class ConfigError(ArtaError):
    """Invalid configuration file."""
    pass


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Unexpected character."""
    diag = Diagnostic(
        code="E001",
        message=f"unexpected character '{char}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    diag = Diagnostic(
        code="E002",
        message="unterminated string literal",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["string literals must be closed with a double quote on the same line"],
    )
    return LexerError(diag)


def error_invalid_number_literal(text: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E006: Invalid number or size literal."""
    diag = Diagnostic(
        code="E006",
        message=f"invalid number literal '{text}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["size literals take one of the suffixes B, KB, MB, GB, TB"],
    )
    return LexerError(diag)


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParserError:
    """E101: Unexpected token."""
    diag = Diagnostic(
        code="E101",
        message=f"expected {expected}, found {found}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_unexpected_eof(expected: str, span: SourceSpan) -> ParserError:
    """E102: Unexpected end of input."""
    diag = Diagnostic(
        code="E102",
        message=f"unexpected end of input, expected {expected}",
        severity=ErrorSeverity.ERROR,
        span=span,
    )
    return ParserError(diag)


def error_invalid_statement(found: str, span: SourceSpan,
                            source_line: str = None) -> ParserError:
    """E103: Token cannot start a statement."""
    diag = Diagnostic(
        code="E103",
        message=f"invalid statement starting with {found}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["statements start with SELECT, DELETE, KILL, EXPLAIN, LET, ENTER, EXIT, "
               "RESET, SHOW, FOR, IF, LIFE, PRINT, CREATE, SWITCH, LIST, DESTROY or EXPORT"],
    )
    return ParserError(diag)
