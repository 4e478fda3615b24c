"""
Tests for the execution Environment and the container registry.
"""

import pytest

from arta import (
    Environment, ContainerRegistry, DEFAULT_CONTAINER,
    ExecutionError, PathNotFound, parse_script, ValueKind,
)
from arta.runtime import number_val, string_val, path_val, size_val, bool_val


@pytest.fixture
def tree(tmp_path):
    (tmp_path / "a" / "b").mkdir(parents=True)
    (tmp_path / "a" / "notes.txt").write_text("hello\n")
    return tmp_path.resolve()


class TestContextStack:
    """ENTER / EXIT / RESET on the folder stack."""

    def test_starts_at_start_folder(self, tree):
        """Test a new environment sits at its start folder, depth 1."""
        env = Environment(tree)
        assert env.current_folder == tree
        assert env.folder_depth == 1
        assert env.current_file is None

    def test_enter_then_exit_restores_folder(self, tree):
        """Test entering then exiting returns to the previous folder."""
        env = Environment(tree)
        env.enter_folder("a")
        env.enter_folder("b")
        assert env.current_folder == tree / "a" / "b"
        assert env.exit_context() == tree / "a"
        assert env.exit_context() == tree
        assert env.folder_depth == 1

    def test_exit_at_root_fails(self, tree):
        """Test EXIT with nothing to leave is an error."""
        env = Environment(tree)
        with pytest.raises(ExecutionError, match="Already at root context"):
            env.exit_context()

    def test_exit_leaves_file_first(self, tree):
        """Test EXIT clears the focused file before popping a folder."""
        env = Environment(tree)
        env.enter_folder("a")
        env.enter_file("notes.txt")
        assert env.current_file == tree / "a" / "notes.txt"
        assert env.exit_context() == tree / "a"
        assert env.current_file is None
        assert env.folder_depth == 2

    def test_enter_folder_clears_file(self, tree):
        """Test entering a folder drops the focused file."""
        env = Environment(tree / "a")
        env.enter_file("notes.txt")
        env.enter_folder("b")
        assert env.current_file is None

    def test_missing_path(self, tree):
        """Test PathNotFound for a folder that does not exist."""
        env = Environment(tree)
        with pytest.raises(PathNotFound):
            env.enter_folder("nope")

    def test_wrong_kind(self, tree):
        """Test a file is not a folder and a folder is not a file."""
        env = Environment(tree)
        with pytest.raises(ExecutionError, match="is not a directory"):
            env.enter_folder("a/notes.txt")
        with pytest.raises(ExecutionError, match="is not a file"):
            env.enter_file("a")

    def test_absolute_paths_pass_through(self, tree):
        """Test an absolute path ignores the current folder."""
        env = Environment(tree / "a")
        assert env.enter_folder(str(tree / "a" / "b")) == tree / "a" / "b"

    def test_reset(self, tree):
        """Test RESET returns to the start folder with no file."""
        env = Environment(tree)
        env.enter_folder("a")
        env.enter_file("notes.txt")
        env.reset()
        assert env.current_folder == tree
        assert env.folder_depth == 1
        assert env.current_file is None

    def test_history_is_append_only(self, tree):
        """Test every context change is recorded in order."""
        env = Environment(tree)
        env.enter_folder("a")
        env.exit_context()
        env.reset()
        assert [h.action for h in env.history] == [
            "ENTER FOLDER", "EXIT FOLDER", "RESET CONTEXT",
        ]
        assert "ENTER FOLDER" in str(env.history[0])


class TestVariables:
    """Variable bindings."""

    def test_set_and_overwrite(self, tree):
        """Test LET-style binding overwrites."""
        env = Environment(tree)
        env.set_variable("x", number_val(1))
        env.set_variable("x", number_val(2))
        assert env.get_variable("x").data == 2.0
        assert env.has_variable("x")
        assert env.get_variable("missing") is None

    def test_readonly_rejects_set(self, tree):
        """Test a read-only environment refuses new bindings."""
        env = Environment(tree, readonly=True)
        with pytest.raises(ExecutionError, match="read-only"):
            env.set_variable("x", number_val(1))

    def test_bind_ignores_readonly(self, tree):
        """Test bind() works on a read-only environment."""
        env = Environment(tree, readonly=True)
        env.bind("f.name", string_val("a"))
        assert env.get_variable("f.name").data == "a"


class TestContainerRegistry:
    """Container lifecycle."""

    def test_default_exists_and_is_active(self, tree):
        """Test a new registry holds only the active default container."""
        registry = ContainerRegistry(tree)
        assert DEFAULT_CONTAINER in registry
        assert registry.active_name == DEFAULT_CONTAINER
        assert len(registry) == 1

    def test_default_cannot_be_destroyed(self, tree):
        """Test destroying 'default' always fails."""
        registry = ContainerRegistry(tree)
        with pytest.raises(ExecutionError, match="Cannot destroy the default container"):
            registry.destroy(DEFAULT_CONTAINER)
        assert DEFAULT_CONTAINER in registry

    def test_duplicate_create(self, tree):
        """Test container names are unique."""
        registry = ContainerRegistry(tree)
        registry.create("work")
        with pytest.raises(ExecutionError, match="Container 'work' already exists"):
            registry.create("work")

    def test_switch_and_destroy_absent(self, tree):
        """Test SWITCH and DESTROY of an unknown name."""
        registry = ContainerRegistry(tree)
        with pytest.raises(ExecutionError, match="does not exist"):
            registry.switch("ghost")
        with pytest.raises(ExecutionError, match="does not exist"):
            registry.destroy("ghost")

    def test_destroy_active_reactivates_default(self, tree):
        """Test destroying the active container makes 'default' active."""
        registry = ContainerRegistry(tree)
        registry.create("work")
        registry.switch("work")
        assert registry.active_name == "work"
        registry.destroy("work")
        assert registry.active_name == DEFAULT_CONTAINER
        assert "work" not in registry

    def test_environments_are_isolated(self, tree):
        """Test each container owns its own variables and folders."""
        registry = ContainerRegistry(tree)
        work = registry.create("work")
        work.environment.set_variable("x", number_val(1))
        work.environment.enter_folder("a")
        default_env = registry.get(DEFAULT_CONTAINER).environment
        assert not default_env.has_variable("x")
        assert default_env.current_folder == tree

    def test_list_marks_active(self, tree):
        """Test LIST reports flags and the active container in creation order."""
        registry = ContainerRegistry(tree)
        registry.create("safe", allow_actions=False, readonly=True)
        registry.switch("safe")
        rows = registry.list()
        assert [r.name for r in rows] == [DEFAULT_CONTAINER, "safe"]
        assert rows[1].readonly and rows[1].is_active
        assert not rows[0].is_active


class TestExport:
    """EXPORT CONTAINER writes a replayable script."""

    def test_export_text_layout(self, tree):
        """Test header comments, LET lines and the final ENTER FOLDER."""
        registry = ContainerRegistry(tree)
        env = registry.create("work", allow_actions=True).environment
        env.set_variable("limit", number_val(80))
        env.enter_folder("a")
        lines = registry.export_text("work").splitlines()
        assert lines[0] == "-- Exported container: work"
        assert lines[1].startswith("-- Created: ")
        assert lines[2] == "-- Allow actions: true"
        assert lines[3] == "-- Readonly: false"
        assert lines[4] == ""
        assert "LET limit = 80;" in lines
        assert lines[-1] == f'ENTER FOLDER "{tree / "a"}";'

    def test_export_skips_loop_shadows(self, tree):
        """Test dotted loop variables are not exported."""
        registry = ContainerRegistry(tree)
        env = registry.create("work").environment
        env.bind("f.size", size_val(10))
        assert "f.size" not in registry.export_text("work")

    def test_exported_literals_round_trip(self, tree):
        """Test the exported script parses back to equal values."""
        registry = ContainerRegistry(tree)
        env = registry.create("work").environment
        env.set_variable("n", number_val(2.5))
        env.set_variable("s", string_val('say "hi"'))
        env.set_variable("p", path_val("/var/log"))
        env.set_variable("big", size_val(1536))
        env.set_variable("on", bool_val(True))

        script = parse_script(registry.export_text("work"))
        bound = {stmt.name: stmt.value for stmt in script.statements[:-1]}
        assert bound["n"].value == 2.5
        assert bound["s"].value == 'say "hi"'
        assert bound["p"].kind == ValueKind.PATH and bound["p"].value == "/var/log"
        assert bound["big"].value == 1536
        assert bound["on"].value is True

    def test_export_writes_file(self, tree):
        """Test export() writes relative to the active folder."""
        registry = ContainerRegistry(tree)
        registry.create("work")
        target = registry.export("work", "work.arta")
        assert target == tree / "work.arta"
        assert target.read_text().startswith("-- Exported container: work")
