"""
Token types for the Arta query language lexer.

Keywords are case-insensitive: the lexer upper-cases a word before looking it
up in KEYWORDS.  Keyword tokens keep their original lexeme so the parser can
still use them as plain names (field names such as ``cpu`` or ``name``,
variables such as ``file``).
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the Arta lexer."""

    # --- Literals ---
    NUMBER = auto()             # 80, 1.5, -3
    SIZE = auto()               # 100MB, 1.5GB (value is bytes)
    STRING = auto()             # "hello"
    BOOL_LITERAL = auto()       # true, false

    # --- Names ---
    IDENTIFIER = auto()         # name, f.size, my_var
    PATH = auto()               # /tmp, ~/logs, ./x, a/b.txt

    # --- Statement keywords ---
    SELECT = auto()
    FROM = auto()
    WHERE = auto()
    AND = auto()
    OR = auto()
    DELETE = auto()
    KILL = auto()
    EXPLAIN = auto()
    LET = auto()
    ENTER = auto()
    EXIT = auto()
    RESET = auto()
    SHOW = auto()
    FOR = auto()
    IN = auto()
    DO = auto()
    END = auto()
    IF = auto()
    THEN = auto()
    ELSE = auto()
    LIFE = auto()
    MONITOR = auto()
    PRINT = auto()
    CREATE = auto()
    SWITCH = auto()
    LIST = auto()
    DESTROY = auto()
    EXPORT = auto()
    TO = auto()
    WITH = auto()
    ALLOW = auto()
    ACTIONS = auto()
    READONLY = auto()

    # --- Object keywords ---
    CPU = auto()
    MEMORY = auto()
    DISK = auto()
    NETWORK = auto()
    SYSTEM = auto()
    BATTERY = auto()
    PROCESS = auto()            # PROCESS / PROCESSES
    FILES = auto()
    FILE = auto()
    FOLDER = auto()
    CONTENT = auto()
    CONTEXT = auto()
    VARIABLES = auto()
    HISTORY = auto()
    CONTAINER = auto()
    CONTAINERS = auto()

    # --- Comparison operators ---
    EQ = auto()                 # =
    NE = auto()                 # !=
    GT = auto()                 # >
    GE = auto()                 # >=
    LT = auto()                 # <
    LE = auto()                 # <=
    LIKE = auto()
    CONTAINS = auto()
    MATCHES = auto()

    # --- Punctuation ---
    STAR = auto()               # *
    COMMA = auto()              # ,
    SEMICOLON = auto()          # ;
    NEWLINE = auto()

    EOF = auto()


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # The actual value (float, int bytes, str, bool)
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    def __str__(self) -> str:
        if self.type in (TokenType.NUMBER, TokenType.SIZE, TokenType.STRING,
                         TokenType.IDENTIFIER, TokenType.PATH):
            return f"{self.type.name}({self.value!r})"
        return self.type.name

    def describe(self) -> str:
        """Short human description used in parser error messages."""
        if self.type == TokenType.EOF:
            return "end of input"
        if self.type == TokenType.NEWLINE:
            return "end of line"
        return f"'{self.lexeme}'"


# Keyword mapping - upper-cased word to token type
KEYWORDS: dict[str, TokenType] = {
    "SELECT": TokenType.SELECT,
    "FROM": TokenType.FROM,
    "WHERE": TokenType.WHERE,
    "AND": TokenType.AND,
    "OR": TokenType.OR,
    "DELETE": TokenType.DELETE,
    "KILL": TokenType.KILL,
    "EXPLAIN": TokenType.EXPLAIN,
    "LET": TokenType.LET,
    "ENTER": TokenType.ENTER,
    "EXIT": TokenType.EXIT,
    "RESET": TokenType.RESET,
    "SHOW": TokenType.SHOW,
    "FOR": TokenType.FOR,
    "IN": TokenType.IN,
    "DO": TokenType.DO,
    "END": TokenType.END,
    "IF": TokenType.IF,
    "THEN": TokenType.THEN,
    "ELSE": TokenType.ELSE,
    "LIFE": TokenType.LIFE,
    "MONITOR": TokenType.MONITOR,
    "PRINT": TokenType.PRINT,
    "CREATE": TokenType.CREATE,
    "SWITCH": TokenType.SWITCH,
    "LIST": TokenType.LIST,
    "DESTROY": TokenType.DESTROY,
    "EXPORT": TokenType.EXPORT,
    "TO": TokenType.TO,
    "WITH": TokenType.WITH,
    "ALLOW": TokenType.ALLOW,
    "ACTIONS": TokenType.ACTIONS,
    "READONLY": TokenType.READONLY,

    "CPU": TokenType.CPU,
    "MEMORY": TokenType.MEMORY,
    "DISK": TokenType.DISK,
    "NETWORK": TokenType.NETWORK,
    "SYSTEM": TokenType.SYSTEM,
    "BATTERY": TokenType.BATTERY,
    "PROCESS": TokenType.PROCESS,
    "PROCESSES": TokenType.PROCESS,
    "FILES": TokenType.FILES,
    "FILE": TokenType.FILE,
    "FOLDER": TokenType.FOLDER,
    "CONTENT": TokenType.CONTENT,
    "CONTEXT": TokenType.CONTEXT,
    "VARIABLES": TokenType.VARIABLES,
    "HISTORY": TokenType.HISTORY,
    "CONTAINER": TokenType.CONTAINER,
    "CONTAINERS": TokenType.CONTAINERS,

    "LIKE": TokenType.LIKE,
    "CONTAINS": TokenType.CONTAINS,
    "MATCHES": TokenType.MATCHES,

    "TRUE": TokenType.BOOL_LITERAL,
    "FALSE": TokenType.BOOL_LITERAL,
}


# Byte multipliers for size literals (1024-based)
SIZE_UNITS: dict[str, int] = {
    "B": 1,
    "KB": 1024,
    "MB": 1024 ** 2,
    "GB": 1024 ** 3,
    "TB": 1024 ** 4,
}


def is_keyword_token(token_type: TokenType) -> bool:
    """Check if a token type is a keyword (usable as a plain name)."""
    return token_type in _KEYWORD_TYPES and token_type != TokenType.BOOL_LITERAL


_KEYWORD_TYPES = frozenset(KEYWORDS.values())
