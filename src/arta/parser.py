"""
Recursive descent parser for the Arta query language.

Converts a token stream into a list of Command nodes.  Statements are
separated by ';' or newlines; blocks are opened by DO/THEN and closed by an
END keyword naming the construct (END FOR, END IF, END LIFE, END CONTAINER).
"""

from typing import List, Optional
from .tokens import Token, TokenType, SourceSpan, is_keyword_token
from .lexer import tokenize
from .ast import (
    # Enumerations
    QueryTarget, LifeTarget, CompareOp, LogicalOp, ShowTarget, ValueKind,
    # Values and filters
    Literal, Condition, ConditionExpr, WhereClause,
    # Commands
    Command, QueryCommand, DeleteFilesCommand, KillProcessCommand,
    EnterFolder, EnterFile, ExitContext, ResetContext, ShowCommand,
    LetStatement, ForLoop, IfCondition, IfStatement, LifeMonitor,
    PrintExpr, PrintString, PrintVariable, PrintQueryField, PrintCommand,
    CreateContainer, SwitchContainer, ListContainers, DestroyContainer,
    ExportContainer, ExplainCommand, Script,
)
from .errors import (
    error_unexpected_token,
    error_unexpected_eof,
    error_invalid_statement,
)


QUERY_TARGETS = {
    TokenType.CPU: QueryTarget.CPU,
    TokenType.MEMORY: QueryTarget.MEMORY,
    TokenType.DISK: QueryTarget.DISK,
    TokenType.NETWORK: QueryTarget.NETWORK,
    TokenType.SYSTEM: QueryTarget.SYSTEM,
    TokenType.BATTERY: QueryTarget.BATTERY,
    TokenType.PROCESS: QueryTarget.PROCESS,
    TokenType.FILES: QueryTarget.FILES,
    TokenType.CONTENT: QueryTarget.CONTENT,
}

LIFE_TARGETS = {
    TokenType.BATTERY: LifeTarget.BATTERY,
    TokenType.MEMORY: LifeTarget.MEMORY,
    TokenType.CPU: LifeTarget.CPU,
    TokenType.DISK: LifeTarget.DISK,
    TokenType.NETWORK: LifeTarget.NETWORK,
    TokenType.PROCESS: LifeTarget.PROCESSES,
}

COMPARE_OPS = {
    TokenType.EQ: CompareOp.EQ,
    TokenType.NE: CompareOp.NE,
    TokenType.GT: CompareOp.GT,
    TokenType.GE: CompareOp.GE,
    TokenType.LT: CompareOp.LT,
    TokenType.LE: CompareOp.LE,
    TokenType.LIKE: CompareOp.LIKE,
    TokenType.CONTAINS: CompareOp.CONTAINS,
    TokenType.MATCHES: CompareOp.MATCHES,
}

SHOW_TARGETS = {
    TokenType.CONTEXT: ShowTarget.CONTEXT,
    TokenType.VARIABLES: ShowTarget.VARIABLES,
    TokenType.HISTORY: ShowTarget.HISTORY,
}

SEPARATORS = (TokenType.NEWLINE, TokenType.SEMICOLON)

# Keywords that structure a statement and never stand in for a name
RESERVED = frozenset({
    TokenType.SELECT, TokenType.FROM, TokenType.WHERE, TokenType.AND, TokenType.OR,
    TokenType.DO, TokenType.THEN, TokenType.ELSE, TokenType.END, TokenType.IN,
    TokenType.TO, TokenType.WITH,
})


class Parser:
    """
    Recursive descent parser for the Arta query language.

    Usage:
        parser = Parser(tokens)
        script = parser.parse_script()

    Keywords double as plain names wherever a name is expected, so
    ``WHERE cpu > 10`` and ``FOR file IN ...`` parse even though CPU and
    FILE are keywords.
    """

    def __init__(self, tokens: List[Token], filename: Optional[str] = None, source: Optional[str] = None):
        self.tokens = tokens
        self.filename = filename
        self.source = source
        self.pos = 0

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _peek(self, offset: int = 0) -> Token:
        """Peek at token at current position + offset."""
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[idx]

    def _is_at_end(self) -> bool:
        """Check if at end of tokens."""
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self._current().type == token_type

    def _check_any(self, *token_types: TokenType) -> bool:
        """Check if current token is any of given types."""
        return self._current().type in token_types

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _skip_separators(self) -> None:
        """Skip any NEWLINE and ';' tokens."""
        while self._check_any(*SEPARATORS):
            self._advance()

    def _source_line(self, token: Token) -> Optional[str]:
        if self.source is None:
            return None
        lines = self.source.splitlines()
        line = token.span.start.line
        if 1 <= line <= len(lines):
            return lines[line - 1]
        return None

    def _error(self, expected: str) -> None:
        """Raise a parser error."""
        token = self._current()
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(expected, token.span)
        raise error_unexpected_token(expected, token.describe(), token.span,
                                     self._source_line(token))

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to the last consumed token."""
        prev_pos = max(0, self.pos - 1)
        end_token = self.tokens[prev_pos]
        return SourceSpan(start.span.start, end_token.span.end)

    def _is_name(self, token: Token) -> bool:
        if token.type in RESERVED:
            return False
        return token.type == TokenType.IDENTIFIER or is_keyword_token(token.type)

    def _parse_name(self, expected: str) -> str:
        """Parse an identifier; keywords are accepted as names."""
        if self._is_name(self._current()):
            return self._advance().lexeme
        self._error(expected)

    def _parse_path(self, expected: str = "path") -> str:
        """Parse a quoted string, bare path or identifier in path position."""
        token = self._current()
        if token.type == TokenType.STRING:
            return self._advance().value
        if token.type == TokenType.PATH or self._is_name(token):
            return self._advance().lexeme
        self._error(expected)

    def _parse_end(self, closer: TokenType, expected: str) -> None:
        """Parse a keyword-specific block closer such as END FOR."""
        self._consume(TokenType.END, f"'{expected}'")
        self._consume(closer, f"'{expected}'")

    # =========================================================================
    # Values and Filters
    # =========================================================================

    def _parse_value(self) -> Literal:
        """Parse a comparison value: string, number, size, boolean or variable."""
        token = self._current()
        if token.type == TokenType.STRING:
            self._advance()
            return Literal(token.span, token.value, ValueKind.STRING)
        if token.type == TokenType.NUMBER:
            self._advance()
            return Literal(token.span, token.value, ValueKind.NUMBER)
        if token.type == TokenType.SIZE:
            self._advance()
            return Literal(token.span, token.value, ValueKind.SIZE)
        if token.type == TokenType.BOOL_LITERAL:
            self._advance()
            return Literal(token.span, token.value, ValueKind.BOOLEAN)
        if token.type == TokenType.PATH:
            self._advance()
            return Literal(token.span, token.lexeme, ValueKind.STRING)
        if self._is_name(token):
            self._advance()
            return Literal(token.span, token.lexeme, ValueKind.IDENTIFIER)
        self._error("value")

    def _parse_compare_op(self) -> CompareOp:
        token = self._current()
        if token.type in COMPARE_OPS:
            self._advance()
            return COMPARE_OPS[token.type]
        self._error("comparison operator")

    def _parse_condition(self) -> Condition:
        """Parse field op value."""
        start = self._current()
        field_name = self._parse_name("field name")
        operator = self._parse_compare_op()
        value = self._parse_value()
        return Condition(self._span_from(start), field_name, operator, value)

    def _parse_condition_expr(self) -> ConditionExpr:
        """Parse a condition and, right-recursively, any AND/OR continuation."""
        start = self._current()
        condition = self._parse_condition()
        link = self._match(TokenType.AND, TokenType.OR)
        if link is None:
            return ConditionExpr(self._span_from(start), condition)
        logical_op = LogicalOp.AND if link.type == TokenType.AND else LogicalOp.OR
        rest = self._parse_condition_expr()
        return ConditionExpr(self._span_from(start), condition, logical_op, rest)

    def _parse_where_clause(self) -> WhereClause:
        start = self._consume(TokenType.WHERE, "'WHERE'")
        chain = self._parse_condition_expr()
        return WhereClause(self._span_from(start), [chain])

    def _parse_optional_where(self) -> Optional[WhereClause]:
        if self._check(TokenType.WHERE):
            return self._parse_where_clause()
        return None

    # =========================================================================
    # Statements
    # =========================================================================

    def _parse_statement(self) -> Command:
        """Parse a single statement."""
        token = self._current()
        dispatch = {
            TokenType.SELECT: self._parse_query,
            TokenType.DELETE: self._parse_delete,
            TokenType.KILL: self._parse_kill,
            TokenType.EXPLAIN: self._parse_explain,
            TokenType.LET: self._parse_let,
            TokenType.ENTER: self._parse_enter,
            TokenType.EXIT: self._parse_exit,
            TokenType.RESET: self._parse_reset,
            TokenType.SHOW: self._parse_show,
            TokenType.FOR: self._parse_for,
            TokenType.IF: self._parse_if,
            TokenType.LIFE: self._parse_life,
            TokenType.PRINT: self._parse_print,
            TokenType.CREATE: self._parse_create_container,
            TokenType.SWITCH: self._parse_switch_container,
            TokenType.LIST: self._parse_list_containers,
            TokenType.DESTROY: self._parse_destroy_container,
            TokenType.EXPORT: self._parse_export_container,
        }
        handler = dispatch.get(token.type)
        if handler is None:
            if token.type == TokenType.EOF:
                raise error_unexpected_eof("statement", token.span)
            raise error_invalid_statement(token.describe(), token.span, self._source_line(token))
        return handler()

    def _parse_query(self) -> QueryCommand:
        """Parse SELECT <target> (*|fields) [FROM path] [WHERE ...]."""
        start = self._consume(TokenType.SELECT, "'SELECT'")
        target_token = self._current()
        if target_token.type not in QUERY_TARGETS:
            self._error("query target (CPU, MEMORY, DISK, NETWORK, SYSTEM, BATTERY, "
                        "PROCESS, FILES, CONTENT)")
        self._advance()
        target = QUERY_TARGETS[target_token.type]

        fields = None
        if not self._match(TokenType.STAR):
            fields = [self._parse_name("'*' or field name")]
            while self._match(TokenType.COMMA):
                fields.append(self._parse_name("field name"))

        from_path = None
        if self._match(TokenType.FROM):
            from_path = self._parse_path()

        where = self._parse_optional_where()

        return QueryCommand(
            span=self._span_from(start),
            target=target,
            fields=fields,
            from_path=from_path,
            where=where,
        )

    def _parse_delete(self) -> DeleteFilesCommand:
        """Parse DELETE FILES FROM path [WHERE ...]."""
        start = self._advance()  # consume 'DELETE'
        self._consume(TokenType.FILES, "'FILES'")
        self._consume(TokenType.FROM, "'FROM'")
        path = self._parse_path()
        where = self._parse_optional_where()
        return DeleteFilesCommand(span=self._span_from(start), path=path, where=where)

    def _parse_kill(self) -> KillProcessCommand:
        """Parse KILL PROCESS WHERE ... (the filter is mandatory)."""
        start = self._advance()  # consume 'KILL'
        self._consume(TokenType.PROCESS, "'PROCESS'")
        where = self._parse_where_clause()
        return KillProcessCommand(span=self._span_from(start), where=where)

    def _parse_explain(self) -> ExplainCommand:
        start = self._advance()  # consume 'EXPLAIN'
        inner = self._parse_statement()
        return ExplainCommand(span=self._span_from(start), inner=inner)

    def _parse_let(self) -> LetStatement:
        """
        Parse LET name = value.

        Quoted strings starting with '/' or '~/' and bare paths bind paths; a
        bare identifier binds its text.
        """
        start = self._advance()  # consume 'LET'
        name = self._parse_name("variable name")
        self._consume(TokenType.EQ, "'='")

        token = self._current()
        if token.type == TokenType.STRING:
            self._advance()
            kind = ValueKind.PATH if token.value.startswith(("/", "~/")) else ValueKind.STRING
            value = Literal(token.span, token.value, kind)
        elif token.type == TokenType.PATH:
            self._advance()
            value = Literal(token.span, token.lexeme, ValueKind.PATH)
        elif self._is_name(token):
            self._advance()
            value = Literal(token.span, token.lexeme, ValueKind.STRING)
        else:
            value = self._parse_value()

        return LetStatement(span=self._span_from(start), name=name, value=value)

    def _parse_enter(self) -> Command:
        """Parse ENTER FOLDER path | ENTER FILE path."""
        start = self._advance()  # consume 'ENTER'
        if self._match(TokenType.FOLDER):
            path = self._parse_path()
            return EnterFolder(span=self._span_from(start), path=path)
        if self._match(TokenType.FILE):
            path = self._parse_path()
            return EnterFile(span=self._span_from(start), path=path)
        self._error("'FOLDER' or 'FILE'")

    def _parse_exit(self) -> ExitContext:
        start = self._advance()  # consume 'EXIT'
        self._match(TokenType.CONTEXT)
        return ExitContext(span=self._span_from(start))

    def _parse_reset(self) -> ResetContext:
        start = self._advance()  # consume 'RESET'
        self._match(TokenType.CONTEXT)
        return ResetContext(span=self._span_from(start))

    def _parse_show(self) -> ShowCommand:
        start = self._advance()  # consume 'SHOW'
        token = self._current()
        if token.type not in SHOW_TARGETS:
            self._error("'CONTEXT', 'VARIABLES' or 'HISTORY'")
        self._advance()
        return ShowCommand(span=self._span_from(start), target=SHOW_TARGETS[token.type])

    def _parse_block(self, *terminators: TokenType) -> List[Command]:
        """
        Parse statements up to (not including) the first END, or ELSE when
        ELSE is among the terminators.
        """
        body = []
        self._skip_separators()
        while not self._check_any(TokenType.END, *terminators):
            if self._is_at_end():
                self._error("'END'")
            body.append(self._parse_statement())
            if self._check_any(TokenType.END, *terminators):
                break
            if not self._check_any(*SEPARATORS):
                self._error("';', newline or 'END'")
            self._skip_separators()
        return body

    def _parse_for(self) -> ForLoop:
        """Parse FOR var IN SELECT ... DO ... END FOR."""
        start = self._advance()  # consume 'FOR'
        variable = self._parse_name("loop variable")
        self._consume(TokenType.IN, "'IN'")
        if not self._check(TokenType.SELECT):
            self._error("'SELECT'")
        source = self._parse_query()
        self._consume(TokenType.DO, "'DO'")
        body = self._parse_block()
        self._parse_end(TokenType.FOR, "END FOR")
        return ForLoop(span=self._span_from(start), variable=variable, source=source, body=body)

    def _parse_if(self) -> IfStatement:
        """Parse IF SELECT target field op value THEN ... [ELSE ...] END IF."""
        start = self._advance()  # consume 'IF'
        cond_start = self._consume(TokenType.SELECT, "'SELECT'")
        target_token = self._current()
        if target_token.type not in QUERY_TARGETS:
            self._error("query target")
        self._advance()
        field_name = self._parse_name("field name")
        operator = self._parse_compare_op()
        value = self._parse_value()
        condition = IfCondition(
            span=self._span_from(cond_start),
            target=QUERY_TARGETS[target_token.type],
            field=field_name,
            operator=operator,
            value=value,
        )

        self._consume(TokenType.THEN, "'THEN'")
        then_body = self._parse_block(TokenType.ELSE)
        else_body = None
        if self._match(TokenType.ELSE):
            else_body = self._parse_block()
        self._parse_end(TokenType.IF, "END IF")

        return IfStatement(
            span=self._span_from(start),
            condition=condition,
            then_body=then_body,
            else_body=else_body,
        )

    def _parse_life(self) -> LifeMonitor:
        """Parse LIFE MONITOR resource DO ... END LIFE."""
        start = self._advance()  # consume 'LIFE'
        self._consume(TokenType.MONITOR, "'MONITOR'")
        token = self._current()
        if token.type not in LIFE_TARGETS:
            self._error("monitor target (BATTERY, MEMORY, CPU, DISK, NETWORK, PROCESSES)")
        self._advance()
        self._consume(TokenType.DO, "'DO'")
        body = self._parse_block()
        self._parse_end(TokenType.LIFE, "END LIFE")
        return LifeMonitor(span=self._span_from(start), target=LIFE_TARGETS[token.type], body=body)

    def _parse_print_expr(self) -> PrintExpr:
        """Parse "text", a variable name, or TARGET field."""
        token = self._current()
        if token.type == TokenType.STRING:
            self._advance()
            return PrintString(token.span, token.value)
        if token.type in QUERY_TARGETS and self._is_name(self._peek(1)):
            self._advance()
            field_name = self._advance().lexeme
            return PrintQueryField(self._span_from(token), QUERY_TARGETS[token.type], field_name)
        if self._is_name(token):
            self._advance()
            return PrintVariable(token.span, token.lexeme)
        self._error("string, variable or TARGET field")

    def _parse_print(self) -> PrintCommand:
        start = self._advance()  # consume 'PRINT'
        expressions = [self._parse_print_expr()]
        while self._match(TokenType.COMMA):
            expressions.append(self._parse_print_expr())
        return PrintCommand(span=self._span_from(start), expressions=expressions)

    def _parse_container_name(self) -> str:
        token = self._current()
        if token.type == TokenType.STRING:
            return self._advance().value
        return self._parse_name("container name")

    def _parse_create_container(self) -> CreateContainer:
        """Parse CREATE CONTAINER name [WITH opt, opt] DO ... END CONTAINER."""
        start = self._advance()  # consume 'CREATE'
        self._consume(TokenType.CONTAINER, "'CONTAINER'")
        name = self._parse_container_name()

        allow_actions = False
        readonly = False
        if self._match(TokenType.WITH):
            while True:
                if self._match(TokenType.ALLOW):
                    self._consume(TokenType.ACTIONS, "'ACTIONS'")
                    allow_actions = True
                elif self._match(TokenType.READONLY):
                    readonly = True
                else:
                    self._error("'ALLOW ACTIONS' or 'READONLY'")
                if not self._match(TokenType.COMMA):
                    break

        self._consume(TokenType.DO, "'DO'")
        body = self._parse_block()
        self._parse_end(TokenType.CONTAINER, "END CONTAINER")
        return CreateContainer(
            span=self._span_from(start),
            name=name,
            allow_actions=allow_actions,
            readonly=readonly,
            body=body,
        )

    def _parse_switch_container(self) -> SwitchContainer:
        start = self._advance()  # consume 'SWITCH'
        self._consume(TokenType.CONTAINER, "'CONTAINER'")
        return SwitchContainer(span=self._span_from(start), name=self._parse_container_name())

    def _parse_list_containers(self) -> ListContainers:
        start = self._advance()  # consume 'LIST'
        self._consume(TokenType.CONTAINERS, "'CONTAINERS'")
        return ListContainers(span=self._span_from(start))

    def _parse_destroy_container(self) -> DestroyContainer:
        start = self._advance()  # consume 'DESTROY'
        self._consume(TokenType.CONTAINER, "'CONTAINER'")
        return DestroyContainer(span=self._span_from(start), name=self._parse_container_name())

    def _parse_export_container(self) -> ExportContainer:
        start = self._advance()  # consume 'EXPORT'
        self._consume(TokenType.CONTAINER, "'CONTAINER'")
        name = self._parse_container_name()
        self._consume(TokenType.TO, "'TO'")
        path = self._parse_path()
        return ExportContainer(span=self._span_from(start), name=name, path=path)

    # =========================================================================
    # Entry Points
    # =========================================================================

    def parse_script(self) -> Script:
        """Parse every statement; the first malformed one fails the whole script."""
        start = self._current()
        statements = []
        self._skip_separators()
        while not self._is_at_end():
            statements.append(self._parse_statement())
            if self._is_at_end():
                break
            if not self._check_any(*SEPARATORS):
                self._error("';' or newline")
            self._skip_separators()
        return Script(span=self._span_from(start), statements=statements)

    def parse_command(self) -> Command:
        """Parse exactly one statement, allowing surrounding separators."""
        self._skip_separators()
        command = self._parse_statement()
        self._skip_separators()
        if not self._is_at_end():
            self._error("end of input")
        return command


def parse_script(text: str, filename: Optional[str] = None) -> Script:
    """Tokenize and parse a whole script."""
    return Parser(tokenize(text, filename), filename, text).parse_script()


def parse_command(text: str) -> Command:
    """Tokenize and parse a single statement."""
    return Parser(tokenize(text), source=text).parse_command()
