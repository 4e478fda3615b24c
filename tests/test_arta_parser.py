"""
Tests for the Arta parser.
"""

import textwrap

import pytest

from arta import (
    parse_command, parse_script, ParseError, ParserError,
    QueryCommand, QueryTarget, DeleteFilesCommand, KillProcessCommand,
    EnterFolder, EnterFile, ExitContext, ResetContext, ShowCommand, ShowTarget,
    LetStatement, ForLoop, IfStatement, LifeMonitor, LifeTarget,
    PrintCommand, PrintString, PrintVariable, PrintQueryField,
    CreateContainer, SwitchContainer, ListContainers, DestroyContainer, ExportContainer,
    ExplainCommand, CompareOp, LogicalOp, ValueKind,
)


class TestQueries:
    """SELECT statements."""

    def test_select_all(self):
        """Test SELECT with '*'."""
        cmd = parse_command("SELECT MEMORY *")
        assert isinstance(cmd, QueryCommand)
        assert cmd.target == QueryTarget.MEMORY
        assert cmd.fields is None

    def test_select_fields(self):
        """Test a field list."""
        cmd = parse_command("select cpu usage, cores")
        assert cmd.target == QueryTarget.CPU
        assert cmd.fields == ["usage", "cores"]

    def test_select_from_and_where(self):
        """Test FROM with a bare path and a WHERE chain."""
        cmd = parse_command('SELECT FILES * FROM /tmp WHERE size > 10MB AND name LIKE "%.log"')
        assert cmd.from_path == "/tmp"
        chain = cmd.where.conditions[0]
        assert chain.condition.field == "size"
        assert chain.condition.operator == CompareOp.GT
        assert chain.condition.value.kind == ValueKind.SIZE
        assert chain.condition.value.value == 10 * 1024 ** 2
        assert chain.logical_op == LogicalOp.AND
        assert chain.next.condition.operator == CompareOp.LIKE
        assert chain.next.condition.value.value == "%.log"

    def test_keyword_as_field_name(self):
        """Test a keyword such as 'cpu' used as a filter field."""
        cmd = parse_command("SELECT PROCESS * WHERE cpu > 50 OR memory > 1GB")
        links = cmd.where.conditions[0].links()
        assert [l.condition.field for l in links] == ["cpu", "memory"]
        assert links[0].logical_op == LogicalOp.OR

    def test_identifier_value(self):
        """Test a bare word value is a variable reference."""
        cmd = parse_command("SELECT FILES * WHERE extension = ext")
        assert cmd.where.conditions[0].condition.value.kind == ValueKind.IDENTIFIER

    def test_quoted_from_path(self):
        """Test FROM with a quoted path containing a space."""
        cmd = parse_command('SELECT CONTENT * FROM "/tmp/my notes.txt"')
        assert cmd.from_path == "/tmp/my notes.txt"

    def test_missing_target(self):
        """Test an unknown target is rejected."""
        with pytest.raises(ParserError) as exc:
            parse_command("SELECT WIDGETS *")
        assert exc.value.diagnostic.code == "E101"


class TestActions:
    """DELETE and KILL."""

    def test_delete_files(self):
        """Test DELETE FILES with a filter."""
        cmd = parse_command('DELETE FILES FROM ./build WHERE extension = "tmp"')
        assert isinstance(cmd, DeleteFilesCommand)
        assert cmd.path == "./build"
        assert cmd.where is not None
        assert cmd.action_name == "DELETE FILES"

    def test_delete_without_where_parses(self):
        """Test DELETE FILES without WHERE parses (the validator warns)."""
        cmd = parse_command("DELETE FILES FROM /tmp/x")
        assert cmd.where is None

    def test_kill_requires_where(self):
        """Test KILL PROCESS without WHERE is a parse error."""
        with pytest.raises(ParseError):
            parse_command("KILL PROCESS")

    def test_kill_process(self):
        """Test KILL PROCESS with a filter."""
        cmd = parse_command('KILL PROCESS WHERE name = "sleep"')
        assert isinstance(cmd, KillProcessCommand)


class TestContextStatements:
    """ENTER, EXIT, RESET, SHOW, LET."""

    def test_enter_folder_and_file(self):
        """Test ENTER FOLDER and ENTER FILE."""
        assert isinstance(parse_command("ENTER FOLDER ~/logs"), EnterFolder)
        cmd = parse_command('ENTER FILE "app.log"')
        assert isinstance(cmd, EnterFile)
        assert cmd.path == "app.log"

    def test_exit_reset_optional_context(self):
        """Test EXIT/RESET with and without CONTEXT."""
        assert isinstance(parse_command("EXIT"), ExitContext)
        assert isinstance(parse_command("EXIT CONTEXT"), ExitContext)
        assert isinstance(parse_command("RESET CONTEXT"), ResetContext)

    def test_show(self):
        """Test the three SHOW targets."""
        assert parse_command("SHOW VARIABLES").target == ShowTarget.VARIABLES
        assert parse_command("SHOW HISTORY").target == ShowTarget.HISTORY
        assert isinstance(parse_command("SHOW CONTEXT"), ShowCommand)

    @pytest.mark.parametrize("source, kind, value", [
        ('LET dir = "/var/log"', ValueKind.PATH, "/var/log"),
        ('LET home = "~/x"', ValueKind.PATH, "~/x"),
        ("LET dir = /tmp", ValueKind.PATH, "/tmp"),
        ('LET greeting = "hello"', ValueKind.STRING, "hello"),
        ("LET mode = fast", ValueKind.STRING, "fast"),
        ("LET limit = 80", ValueKind.NUMBER, 80.0),
        ("LET big = 1GB", ValueKind.SIZE, 1024 ** 3),
        ("LET flag = true", ValueKind.BOOLEAN, True),
    ])
    def test_let_kinds(self, source, kind, value):
        """Test which literal kind LET binds."""
        cmd = parse_command(source)
        assert isinstance(cmd, LetStatement)
        assert cmd.value.kind == kind
        assert cmd.value.value == value


class TestBlocks:
    """FOR, IF, LIFE and CREATE CONTAINER blocks."""

    def test_for_loop(self):
        """Test a FOR loop over a FILES query."""
        script = parse_script(textwrap.dedent('''
            FOR f IN SELECT FILES * FROM /tmp WHERE size > 1MB DO
                PRINT "big:", f.name
            END FOR
        '''))
        loop = script.statements[0]
        assert isinstance(loop, ForLoop)
        assert loop.variable == "f"
        assert loop.source.target == QueryTarget.FILES
        assert len(loop.body) == 1

    def test_if_else(self):
        """Test IF with an ELSE branch."""
        script = parse_script(textwrap.dedent('''
            IF SELECT MEMORY used_percent > 90 THEN
                PRINT "high"
            ELSE
                PRINT "ok"; SHOW CONTEXT
            END IF
        '''))
        stmt = script.statements[0]
        assert isinstance(stmt, IfStatement)
        assert stmt.condition.target == QueryTarget.MEMORY
        assert stmt.condition.field == "used_percent"
        assert len(stmt.then_body) == 1
        assert len(stmt.else_body) == 2

    def test_if_without_else(self):
        """Test IF without ELSE leaves else_body unset."""
        stmt = parse_command("IF SELECT CPU usage > 50 THEN PRINT \"busy\" END IF")
        assert stmt.else_body is None

    def test_life_monitor(self):
        """Test LIFE MONITOR with a PROCESSES target."""
        stmt = parse_command("LIFE MONITOR PROCESSES DO SHOW CONTEXT END LIFE")
        assert isinstance(stmt, LifeMonitor)
        assert stmt.target == LifeTarget.PROCESSES

    def test_create_container_options(self):
        """Test WITH ALLOW ACTIONS, READONLY."""
        script = parse_script(textwrap.dedent('''
            CREATE CONTAINER "sandbox" WITH ALLOW ACTIONS, READONLY DO
                LET x = 1
            END CONTAINER
        '''))
        stmt = script.statements[0]
        assert isinstance(stmt, CreateContainer)
        assert stmt.name == "sandbox"
        assert stmt.allow_actions and stmt.readonly
        assert len(stmt.body) == 1

    def test_unclosed_block(self):
        """Test a FOR without END FOR fails at end of input."""
        with pytest.raises(ParserError) as exc:
            parse_script("FOR f IN SELECT FILES * DO\n PRINT f\n")
        assert exc.value.diagnostic.code == "E102"

    def test_wrong_closer(self):
        """Test END IF cannot close a FOR block."""
        with pytest.raises(ParserError):
            parse_script("FOR f IN SELECT FILES * DO\n PRINT f\nEND IF")


class TestOtherStatements:
    """PRINT, container operations and EXPLAIN."""

    def test_print_expressions(self):
        """Test the three PRINT expression kinds."""
        cmd = parse_command('PRINT "Battery:", BATTERY level, name')
        assert isinstance(cmd, PrintCommand)
        kinds = [type(e) for e in cmd.expressions]
        assert kinds == [PrintString, PrintQueryField, PrintVariable]
        assert cmd.expressions[1].target == QueryTarget.BATTERY
        assert cmd.expressions[1].field == "level"

    def test_container_operations(self):
        """Test SWITCH, LIST, DESTROY and EXPORT."""
        assert parse_command("SWITCH CONTAINER work").name == "work"
        assert isinstance(parse_command("LIST CONTAINERS"), ListContainers)
        assert isinstance(parse_command('DESTROY CONTAINER "work"'), DestroyContainer)
        cmd = parse_command('EXPORT CONTAINER work TO "work.arta"')
        assert isinstance(cmd, ExportContainer)
        assert cmd.path == "work.arta"
        assert isinstance(parse_command("SWITCH CONTAINER default"), SwitchContainer)

    def test_explain_wraps_statement(self):
        """Test EXPLAIN holds the inner statement."""
        cmd = parse_command("EXPLAIN DELETE FILES FROM /tmp")
        assert isinstance(cmd, ExplainCommand)
        assert isinstance(cmd.inner, DeleteFilesCommand)


class TestScripts:
    """Whole scripts: separators, comments, failure."""

    def test_separators_and_comments(self):
        """Test ';' and newlines, a trailing ';' and comment lines."""
        script = parse_script(textwrap.dedent('''
            -- setup
            LET a = 1; LET b = 2;
            # query
            SELECT CPU *  // trailing comment
        '''))
        assert len(script) == 3

    def test_statement_lines(self):
        """Test each statement records its source line."""
        script = parse_script("LET a = 1\n\nSHOW VARIABLES")
        assert [s.line for s in script] == [1, 3]

    def test_first_error_fails_whole_script(self):
        """Test one bad statement fails the parse."""
        with pytest.raises(ParseError):
            parse_script("LET a = 1\nFROBNICATE\nLET b = 2")

    def test_invalid_statement_code(self):
        """Test a non-statement word reports E103."""
        with pytest.raises(ParserError) as exc:
            parse_script("hello world")
        assert exc.value.diagnostic.code == "E103"

    def test_two_statements_on_one_line(self):
        """Test two statements without a separator are rejected."""
        with pytest.raises(ParserError):
            parse_script("EXIT RESET")

    def test_empty_script(self):
        """Test an empty or comment-only script has no statements."""
        assert len(parse_script("-- nothing\n")) == 0
