"""
Script execution: run a parsed script or an .arta file statement by statement.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .values import ExecutionResult, sniff_value
from .interpreter import Interpreter, RunPolicy
from .explain import explain_script

from ..ast import Script
from ..containers import ContainerRegistry
from ..errors import ArtaError, ExecutionError, ArtaIOError
from ..parser import parse_script
from ..output import format_result

logger = logging.getLogger(__name__)

SCRIPT_EXTENSION = ".arta"


@dataclass
class ScriptResult:
    """Outcome of running a script."""
    results: List[ExecutionResult] = field(default_factory=list)
    statements_executed: int = 0
    success: bool = True
    error: Optional[str] = None


def parse_arg(arg: str) -> tuple:
    """Split a 'key=value' argument into (key, raw value)."""
    if "=" not in arg:
        raise ExecutionError(f"Invalid argument format: {arg} (expected key=value)")
    key, value = arg.split("=", 1)
    return key.strip(), value.strip()


class ScriptRunner:
    """
    Runs scripts against a container registry.

    Usage:
        runner = ScriptRunner(RunPolicy(dry_run=True)).with_args(["dir=/tmp"])
        result = runner.run_file("cleanup.arta")

    Each non-empty result is rendered and handed to `emit` as it is produced.
    """

    def __init__(self, policy: Optional[RunPolicy] = None,
                 registry: Optional[ContainerRegistry] = None,
                 provider=None, emit: Callable[[str], None] = print):
        self.policy = policy or RunPolicy()
        self.registry = registry if registry is not None else ContainerRegistry()
        self.emit = emit
        self.interpreter = Interpreter(self.registry, provider, output=self._show)
        self.script_args: Dict[str, str] = {}

    def with_args(self, args: List[str]) -> "ScriptRunner":
        for arg in args:
            key, value = parse_arg(arg)
            self.script_args[key] = value
        return self

    def use_container(self, name: str) -> None:
        """Make `name` the active container, creating it when absent."""
        if name not in self.registry:
            self.registry.create(name)
        self.registry.switch(name)

    def inject_args(self) -> None:
        env = self.registry.active_environment
        for key, value in self.script_args.items():
            env.bind(key, sniff_value(value))

    def _show(self, result: ExecutionResult) -> None:
        if result.is_empty:
            return
        self.emit(format_result(result, self.policy.output_mode))

    def run_file(self, path) -> ScriptResult:
        """
        Parse and run an .arta file.

        Raises:
            ExecutionError: If the file does not have the .arta extension
            ArtaIOError: If the file cannot be read
            ParseError: If the file does not parse
        """
        path = Path(path)
        if path.suffix != SCRIPT_EXTENSION:
            raise ExecutionError(f"Script file must have .arta extension: {path}")
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ArtaIOError(e)
        script = parse_script(content, str(path))
        self.inject_args()
        logger.info("running %s (%d statements)", path, len(script))
        return self.run_script(script)

    def run_script(self, script: Script) -> ScriptResult:
        """Run statements in order, stopping at the first error."""
        outcome = ScriptResult()
        for statement in script.statements:
            # SWITCH CONTAINER changes the environment for what follows
            env = self.registry.active_environment
            try:
                result = self.interpreter.execute(statement, self.policy, env)
            except ArtaError as e:
                logger.debug("statement at line %d failed: %s", statement.line, e)
                outcome.success = False
                outcome.error = str(e)
                return outcome
            outcome.results.append(result)
            outcome.statements_executed += 1
            self._show(result)
        return outcome


__all__ = ["ScriptResult", "ScriptRunner", "parse_arg", "explain_script", "SCRIPT_EXTENSION"]
