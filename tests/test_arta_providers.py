"""
Tests for WHERE evaluation, filesystem queries and the destructive actions.
"""

import pytest

from arta import (
    parse_command, QueryTarget, ValueKind,
    SecurityError, PathNotFound, InvalidField,
)
from arta.providers import ProcessInfo, evaluate_where
from arta.providers import actions, queries


def where(text):
    return parse_command(f"SELECT PROCESS * WHERE {text}").where


class TestWhereEvaluation:
    """Field comparisons and condition chains."""

    def test_like(self):
        """Test LIKE with '%' wildcards, case-sensitive unless asked."""
        clause = where('name LIKE "%.log"')
        assert evaluate_where({"name": "app.log"}, clause)
        assert not evaluate_where({"name": "app.txt"}, clause)
        assert not evaluate_where({"name": "APP.LOG"}, clause)
        assert evaluate_where({"name": "APP.LOG"}, clause, ignore_case=True)

    def test_like_escapes_regex_characters(self):
        """Test characters other than '%' match literally."""
        clause = where('name LIKE "a.c%"')
        assert evaluate_where({"name": "a.cfg"}, clause)
        assert not evaluate_where({"name": "abcfg"}, clause)

    def test_contains_and_matches(self):
        """Test CONTAINS is a substring test and MATCHES a regex search."""
        assert evaluate_where({"name": "python3"}, where('name CONTAINS "thon"'))
        assert evaluate_where({"name": "python3"}, where('name MATCHES "^py.*[0-9]$"'))
        assert not evaluate_where({"name": "python3"}, where('name MATCHES "^java"'))

    def test_invalid_regex_does_not_match(self):
        """Test a malformed MATCHES pattern simply fails to match."""
        assert not evaluate_where({"name": "x(y"}, where('name MATCHES "("'))

    def test_numbers_and_sizes(self):
        """Test numeric comparisons accept NUMBER and SIZE values."""
        assert evaluate_where({"size": 2048}, where("size > 1KB"))
        assert not evaluate_where({"size": 512}, where("size >= 1KB"))
        assert evaluate_where({"cpu": 10.0005}, where("cpu = 10"))
        assert evaluate_where({"cpu": 10.5}, where("cpu != 10"))

    def test_type_mismatch_does_not_match(self):
        """Test a number field against a string value never matches."""
        assert not evaluate_where({"size": 10}, where('size = "10"'))
        assert not evaluate_where({"name": "10"}, where("name = 10"))

    def test_left_to_right_chain(self):
        """Test AND/OR combine strictly left to right."""
        clause = where('pid = 1 OR pid = 2 AND name = "x"')
        # (pid = 1 OR pid = 2) AND name = "x"
        assert not evaluate_where({"pid": 1, "name": "y"}, clause)
        assert evaluate_where({"pid": 2, "name": "x"}, clause)

    def test_and_chain(self):
        """Test every AND link must hold."""
        clause = where('name = "sleep" AND user = "alice"')
        assert evaluate_where({"name": "sleep", "user": "alice"}, clause)
        assert not evaluate_where({"name": "sleep", "user": "bob"}, clause)

    def test_unknown_field_does_not_filter(self):
        """Test a field the record lacks passes the condition."""
        assert evaluate_where({"name": "sleep"}, where('colour = "red"'))

    def test_missing_value_does_not_match(self):
        """Test a None field value fails any comparison."""
        assert not evaluate_where({"user": None}, where('user = "root"'))
        assert not evaluate_where({"user": None}, where('user != "root"'))

    def test_variable_lookup(self):
        """Test identifiers resolve through the lookup, else compare as text."""
        clause = where("name = target")
        bound = {"target": ("python3", ValueKind.STRING)}
        assert evaluate_where({"name": "python3"}, clause, bound.get)
        assert not evaluate_where({"name": "target"}, clause, bound.get)
        assert evaluate_where({"name": "target"}, clause)

    def test_no_clause(self):
        """Test a missing clause matches everything."""
        assert evaluate_where({"name": "anything"}, None)


@pytest.fixture
def folder(tmp_path):
    (tmp_path / "a.log").write_text("one\n")
    (tmp_path / "B.LOG").write_text("two two\n")
    (tmp_path / "c.txt").write_text("x" * 4096)
    (tmp_path / "logs").mkdir()
    (tmp_path / "logs" / "inner.log").write_text("inner\n")
    return tmp_path


class TestFileQueries:
    """FILES and CONTENT queries."""

    def test_files_sorted_by_name(self, folder):
        """Test entries come back sorted, directories included."""
        names = [e.name for e in queries.query_files(folder)]
        assert names == ["B.LOG", "a.log", "c.txt", "logs"]

    def test_files_filter_ignores_case(self, folder):
        """Test FILES filters compare text case-insensitively."""
        entries = queries.query_files(folder, where('extension = "log"'))
        assert [e.name for e in entries] == ["B.LOG", "a.log"]

    def test_file_entry_fields(self, folder):
        """Test size, extension and the directory flag."""
        by_name = {e.name: e for e in queries.query_files(folder)}
        assert by_name["c.txt"].size == 4096
        assert by_name["c.txt"].extension == "txt"
        assert by_name["logs"].is_dir
        assert by_name["logs"].extension is None

    def test_files_skip_dangling_link(self, tmp_path):
        """Test an entry that cannot be stat'ed is left out of the listing."""
        (tmp_path / "a.txt").write_text("a\n")
        (tmp_path / "broken").symlink_to(tmp_path / "missing-target")
        assert [e.name for e in queries.query_files(tmp_path)] == ["a.txt"]

    def test_files_missing_folder(self, tmp_path):
        """Test PathNotFound for a folder that does not exist."""
        with pytest.raises(PathNotFound):
            queries.query_files(tmp_path / "nope")

    def test_content_caps_lines(self, tmp_path):
        """Test CONTENT without a filter returns the first 100 numbered lines."""
        target = tmp_path / "big.txt"
        target.write_text("".join(f"line {i}\n" for i in range(1, 151)))
        info = queries.query_content(target)
        assert info.total_lines == 150
        assert len(info.lines) == queries.MAX_CONTENT_LINES
        assert info.lines[0] == "   1: line 1"
        assert info.lines[-1] == " 100: line 100"

    def test_content_filter(self, tmp_path):
        """Test a content filter keeps matching lines with their numbers."""
        target = tmp_path / "app.log"
        target.write_text("INFO start\nERROR disk\nINFO ok\nERROR net\n")
        info = queries.query_content(target, where('content CONTAINS "ERROR"'))
        assert info.lines == ["   2: ERROR disk", "   4: ERROR net"]
        assert info.total_lines == 4

    def test_check_fields(self):
        """Test an unknown requested field raises InvalidField."""
        queries.check_fields(QueryTarget.CPU, ["usage", "CORES"])
        with pytest.raises(InvalidField):
            queries.check_fields(QueryTarget.CPU, ["colour"])


class TestDeleteFiles:
    """DELETE FILES safeguards."""

    def test_requires_where(self, folder):
        """Test deleting without a filter is refused."""
        with pytest.raises(SecurityError, match="WHERE"):
            actions.delete_files(folder, None, dry_run=True)

    def test_dry_run_keeps_files(self, folder):
        """Test a dry run reports but leaves files in place."""
        result = actions.delete_files(folder, where('extension = "log"'), dry_run=True)
        assert result.dry_run
        assert result.affected_count == 2
        assert (folder / "a.log").exists()
        assert result.details[0].startswith("Would delete: ")

    def test_deletes_only_direct_files(self, folder):
        """Test matching files are removed and subfolders are untouched."""
        result = actions.delete_files(folder, where('name LIKE "%.log"'), dry_run=False)
        assert result.affected_count == 2
        assert not (folder / "a.log").exists()
        assert (folder / "logs" / "inner.log").exists()
        assert (folder / "c.txt").exists()

    def test_ceiling(self, folder):
        """Test too many matches are refused before anything is deleted."""
        with pytest.raises(SecurityError, match="Too many files to delete"):
            actions.delete_files(folder, where("size > 0"), dry_run=False, max_files=1)
        assert (folder / "a.log").exists()

    def test_missing_folder(self, tmp_path):
        """Test PathNotFound for a missing folder."""
        with pytest.raises(PathNotFound):
            actions.delete_files(tmp_path / "nope", where('name = "x"'), dry_run=True)


class TestKillProcesses:
    """KILL PROCESS safeguards."""

    PROCESSES = [
        ProcessInfo(101, "sleep", 0.5, 1024, "sleeping", "alice"),
        ProcessInfo(102, "sleep", 0.1, 1024, "sleeping", "bob"),
        ProcessInfo(1, "systemd", 0.1, 1024, "sleeping", "root"),
    ]

    def test_requires_where(self):
        """Test killing without a filter is refused."""
        with pytest.raises(SecurityError, match="requires a WHERE clause"):
            actions.kill_processes(None, dry_run=True, processes=self.PROCESSES)

    def test_dry_run(self):
        """Test a dry run lists the processes it would signal."""
        result = actions.kill_processes(where('name = "sleep"'), dry_run=True,
                                        processes=self.PROCESSES)
        assert result.affected_count == 2
        assert result.details == [
            "Would kill: sleep (PID 101)",
            "Would kill: sleep (PID 102)",
        ]

    def test_protected_processes_excluded(self):
        """Test protected system processes never match."""
        result = actions.kill_processes(where("pid = 1"), dry_run=True,
                                        processes=self.PROCESSES)
        assert result.affected_count == 0
        assert result.details == ["No matching processes found"]

    def test_ceiling(self):
        """Test too many matches are refused."""
        with pytest.raises(SecurityError, match="Too many processes to kill"):
            actions.kill_processes(where('name = "sleep"'), dry_run=True,
                                   max_processes=1, processes=self.PROCESSES)

    def test_is_protected_process(self):
        """Test the protected-name check is a case-insensitive substring test."""
        assert actions.is_protected_process("systemd-journald")
        assert actions.is_protected_process("KERNEL_TASK")
        assert not actions.is_protected_process("python3")
