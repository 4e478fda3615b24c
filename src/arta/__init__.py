"""
Arta - query and script your system with SQL-like commands.

This package provides:
- Lexer / Parser: Source text to an AST of commands
- Validator: Static safety checks run before a script executes
- Interpreter: Executes commands against an Environment
- Containers: Named, isolated Environments with permission flags
- Live monitoring: LIFE MONITOR blocks and the `arta life` command

Usage:
    from arta import parse_script, validate_script, ScriptRunner, RunPolicy

    script = parse_script('''
    LET logs = /var/log
    SELECT FILES * FROM logs WHERE size > 10MB
    ''')
    if not has_errors(validate_script(script)):
        result = ScriptRunner(RunPolicy(dry_run=True)).run_script(script)
"""

__version__ = "0.3.0"

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
)

from .lexer import (
    Lexer,
    tokenize,
    parse_size,
)

from .parser import (
    Parser,
    parse_script,
    parse_command,
)

from .ast import (
    AstNode,
    AstVisitor,
    Command,
    Script,
    QueryTarget,
    LifeTarget,
    CompareOp,
    LogicalOp,
    ShowTarget,
    ValueKind,
    Literal,
    Condition,
    ConditionExpr,
    WhereClause,
    QueryCommand,
    ActionCommand,
    DeleteFilesCommand,
    KillProcessCommand,
    EnterFolder,
    EnterFile,
    ExitContext,
    ResetContext,
    ShowCommand,
    LetStatement,
    ForLoop,
    IfCondition,
    IfStatement,
    LifeMonitor,
    PrintString,
    PrintVariable,
    PrintQueryField,
    PrintCommand,
    CreateContainer,
    SwitchContainer,
    ListContainers,
    DestroyContainer,
    ExportContainer,
    ExplainCommand,
    child_bodies,
)

from .errors import (
    ErrorSeverity,
    Diagnostic,
    ArtaError,
    ParseError,
    LexerError,
    ParserError,
    ExecutionError,
    InvalidTarget,
    InvalidField,
    SecurityError,
    ActionsDisabled,
    PathNotFound,
    PermissionDenied,
    ArtaIOError,
    ConfigError,
)

from .environment import (
    Environment,
    HistoryEntry,
)

from .containers import (
    DEFAULT_CONTAINER,
    Container,
    ContainerInfo,
    ContainerRegistry,
)

from .validator import (
    ValidationSeverity,
    ValidationIssue,
    ValidationOptions,
    Validator,
    validate_script,
    has_errors,
    has_warnings,
)

from .runtime import (
    Value,
    ResultKind,
    ExecutionResult,
    RunPolicy,
    Interpreter,
    execute,
    LiveMonitor,
    CancellationToken,
    run_simple_monitor,
    explain_command,
    explain_script,
    ScriptResult,
    ScriptRunner,
)

from .output import format_result

from .config import (
    ArtaConfig,
    load_config,
)

__all__ = [
    # Tokens
    'Token',
    'TokenType',
    'SourceLocation',
    'SourceSpan',
    'KEYWORDS',
    # Lexer / parser
    'Lexer',
    'tokenize',
    'parse_size',
    'Parser',
    'parse_script',
    'parse_command',
    # AST
    'AstNode',
    'AstVisitor',
    'Command',
    'Script',
    'QueryTarget',
    'LifeTarget',
    'CompareOp',
    'LogicalOp',
    'ShowTarget',
    'ValueKind',
    'Literal',
    'Condition',
    'ConditionExpr',
    'WhereClause',
    'QueryCommand',
    'ActionCommand',
    'DeleteFilesCommand',
    'KillProcessCommand',
    'EnterFolder',
    'EnterFile',
    'ExitContext',
    'ResetContext',
    'ShowCommand',
    'LetStatement',
    'ForLoop',
    'IfCondition',
    'IfStatement',
    'LifeMonitor',
    'PrintString',
    'PrintVariable',
    'PrintQueryField',
    'PrintCommand',
    'CreateContainer',
    'SwitchContainer',
    'ListContainers',
    'DestroyContainer',
    'ExportContainer',
    'ExplainCommand',
    'child_bodies',
    # Errors
    'ErrorSeverity',
    'Diagnostic',
    'ArtaError',
    'ParseError',
    'LexerError',
    'ParserError',
    'ExecutionError',
    'InvalidTarget',
    'InvalidField',
    'SecurityError',
    'ActionsDisabled',
    'PathNotFound',
    'PermissionDenied',
    'ArtaIOError',
    'ConfigError',
    # Environment / containers
    'Environment',
    'HistoryEntry',
    'DEFAULT_CONTAINER',
    'Container',
    'ContainerInfo',
    'ContainerRegistry',
    # Validator
    'ValidationSeverity',
    'ValidationIssue',
    'ValidationOptions',
    'Validator',
    'validate_script',
    'has_errors',
    'has_warnings',
    # Runtime
    'Value',
    'ResultKind',
    'ExecutionResult',
    'RunPolicy',
    'Interpreter',
    'execute',
    'LiveMonitor',
    'CancellationToken',
    'run_simple_monitor',
    'explain_command',
    'explain_script',
    'ScriptResult',
    'ScriptRunner',
    'format_result',
    # Config
    'ArtaConfig',
    'load_config',
]
