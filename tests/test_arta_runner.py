"""
Tests for the script runner and result rendering.
"""

import json
import textwrap

import pytest

from arta import (
    parse_script, ContainerRegistry, ValueKind, ExecutionError, ArtaIOError,
)
from arta.output import format_result, to_jsonable
from arta.providers import (
    MemoryInfo, DiskEntry, DiskInfo, BatteryInfo, ProcessInfo, ActionResult,
)
from arta.runtime import (
    RunPolicy, ScriptRunner, ExecutionResult, ResultKind, message_result,
    empty_result, explain_script,
)
from arta.runtime.runner import parse_arg

GB = 1024 ** 3


@pytest.fixture
def emitted():
    return []


@pytest.fixture
def runner(tmp_path, provider, emitted):
    return ScriptRunner(RunPolicy(), ContainerRegistry(tmp_path), provider, emit=emitted.append)


def script(source):
    return parse_script(textwrap.dedent(source))


class TestRunScript:
    """Running parsed scripts."""

    def test_results_are_emitted_in_order(self, runner, emitted):
        """Test every non-empty result is rendered as it is produced."""
        outcome = runner.run_script(script('''
            LET who = "arta"
            PRINT "hi", who
        '''))
        assert outcome.success
        assert outcome.statements_executed == 2
        assert len(outcome.results) == 2
        assert emitted == ["Variable 'who' set to arta", "hi arta"]

    def test_stops_at_first_error(self, runner, emitted):
        """Test a failing statement ends the run with its message."""
        outcome = runner.run_script(script('''
            LET a = 1
            EXIT
            LET b = 2
        '''))
        assert not outcome.success
        assert outcome.statements_executed == 1
        assert "Already at root context" in outcome.error
        assert not runner.registry.active_environment.has_variable("b")

    def test_switch_changes_environment(self, runner, emitted):
        """Test statements after SWITCH CONTAINER run in that container."""
        outcome = runner.run_script(script('''
            CREATE CONTAINER work DO
                LET x = 7
            END CONTAINER
            SWITCH CONTAINER work
            PRINT x
        '''))
        assert outcome.success
        assert emitted[-1] == "7"

    def test_json_mode(self, tmp_path, provider, emitted):
        """Test messages render as JSON objects in json mode."""
        runner = ScriptRunner(RunPolicy(output_mode="json"), ContainerRegistry(tmp_path),
                              provider, emit=emitted.append)
        runner.run_script(script('PRINT "hi"'))
        assert json.loads(emitted[0]) == {"message": "hi"}


class TestArguments:
    """key=value script arguments."""

    def test_values_are_sniffed(self, runner):
        """Test numbers, booleans, absolute paths and text."""
        runner.with_args(["n=5", "flag=true", "dir=/tmp", "who=bob", "eq=a=b"])
        runner.inject_args()
        env = runner.registry.active_environment
        assert env.get_variable("n").kind == ValueKind.NUMBER
        assert env.get_variable("n").data == 5.0
        assert env.get_variable("flag").data is True
        assert env.get_variable("dir").kind == ValueKind.PATH
        assert env.get_variable("who").kind == ValueKind.STRING
        assert env.get_variable("eq").data == "a=b"

    def test_bad_argument(self):
        """Test an argument without '=' is rejected."""
        with pytest.raises(ExecutionError, match="expected key=value"):
            parse_arg("oops")

    def test_arguments_reach_the_script(self, tmp_path, runner, emitted):
        """Test run_file binds arguments before the first statement."""
        path = tmp_path / "greet.arta"
        path.write_text('PRINT "hello", who\n')
        outcome = runner.with_args(["who=bob"]).run_file(path)
        assert outcome.success
        assert emitted == ["hello bob"]


class TestRunFile:
    """Loading script files."""

    def test_extension_required(self, tmp_path, runner):
        """Test only .arta files are run."""
        path = tmp_path / "script.txt"
        path.write_text("LET a = 1\n")
        with pytest.raises(ExecutionError, match=r"\.arta extension"):
            runner.run_file(path)

    def test_missing_file(self, tmp_path, runner):
        """Test an unreadable file raises ArtaIOError."""
        with pytest.raises(ArtaIOError):
            runner.run_file(tmp_path / "missing.arta")

    def test_use_container(self, runner):
        """Test use_container creates once and activates."""
        runner.use_container("work")
        runner.use_container("work")
        assert runner.registry.active_name == "work"
        assert len(runner.registry) == 2


class TestExplainScript:
    """Numbered statement summaries."""

    def test_numbered_lines(self):
        """Test one summary per top-level statement."""
        lines = explain_script(script('''
            SELECT CPU *
            DELETE FILES FROM /tmp WHERE size > 1MB
            ENTER FOLDER /var/log
        '''))
        assert lines == [
            "1. SELECT CPU *",
            "2. DELETE FILES FROM /tmp with filtering",
            "3. ENTER FOLDER /var/log",
        ]


MEMORY = MemoryInfo(total=16 * GB, used=8 * GB, free=6 * GB, available=7 * GB,
                    usage_percent=50.0)


class TestHumanOutput:
    """Text rendering."""

    def test_requested_fields_only(self):
        """Test a SELECT field list limits the printed lines."""
        text = format_result(ExecutionResult(ResultKind.MEMORY, MEMORY, fields=["total"]))
        assert text.startswith("Memory Information\n------------------\n")
        assert "16.0 GB" in text
        assert "Used" not in text

    def test_no_batteries(self):
        """Test the battery message for machines without one."""
        assert format_result(ExecutionResult(ResultKind.BATTERY, BatteryInfo([]))) == \
            "No batteries found"

    def test_process_rows_limited(self):
        """Test long process lists are cut with a count of the rest."""
        procs = [ProcessInfo(i, f"worker{i}", 1.0, 1024, "running") for i in range(25)]
        text = format_result(ExecutionResult(ResultKind.PROCESSES, procs))
        assert "worker19" in text
        assert "worker20" not in text
        assert "... and 5 more processes" in text

    def test_dry_run_action(self):
        """Test the dry-run banner and details."""
        action = ActionResult("DELETE FILES", 2, True, ["Would delete: /tmp/a (1 bytes)"])
        text = format_result(ExecutionResult(ResultKind.ACTION, action))
        assert text.startswith("DELETE FILES Result\n")
        assert "[DRY RUN] No changes were made" in text
        assert "Affected: 2 items" in text
        assert "  Would delete: /tmp/a (1 bytes)" in text

    def test_multiple_and_empty(self):
        """Test results joined by a separator, and empty rendering to nothing."""
        multiple = ExecutionResult(ResultKind.MULTIPLE,
                                   [message_result("a"), message_result("b")])
        assert format_result(multiple) == "a\n---\n\nb"
        assert format_result(empty_result()) == ""


class TestJsonOutput:
    """JSON rendering."""

    def test_projection(self):
        """Test requested fields project the JSON record."""
        result = ExecutionResult(ResultKind.MEMORY, MEMORY, fields=["total", "used"])
        assert json.loads(format_result(result, "json")) == {"total": 16 * GB, "used": 8 * GB}

    def test_nested_projection(self):
        """Test list-holding records project each entry."""
        disks = DiskInfo([DiskEntry("sda1", "/", 10, 5, 5, 50.0, "ext4")])
        result = ExecutionResult(ResultKind.DISK, disks, fields=["name"])
        assert to_jsonable(result) == {"disks": [{"name": "sda1"}]}

    def test_list_results(self):
        """Test process lists become lists of objects."""
        procs = [ProcessInfo(7, "sleep", 0.0, 10, "sleeping", "alice")]
        data = json.loads(format_result(ExecutionResult(ResultKind.PROCESSES, procs), "json"))
        assert data == [{"pid": 7, "name": "sleep", "cpu": 0.0, "memory": 10,
                         "status": "sleeping", "user": "alice"}]
