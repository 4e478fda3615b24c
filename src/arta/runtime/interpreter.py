"""
Tree-walking interpreter for Arta commands.

Each command is dispatched on its node type and executed against an explicit
Environment under a RunPolicy.  System state is read and modified only
through a SystemProvider; container operations go through a
ContainerRegistry.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from .values import (
    Value, ExecutionResult, ResultKind, ContextInfo, ContainerResultInfo,
    message_result, empty_result, format_bytes,
    string_val, number_val, size_val, bool_val, path_val,
)
from .explain import explain_command
from .monitor import LiveMonitor, sample_state, sigint_cancels

from ..ast import (
    Command, QueryCommand, QueryTarget, ActionCommand, DeleteFilesCommand,
    EnterFolder, EnterFile, ExitContext, ResetContext, ShowCommand, ShowTarget,
    LetStatement, ForLoop, IfStatement, IfCondition, LifeMonitor, CompareOp,
    PrintCommand, PrintString, PrintVariable, PrintQueryField,
    CreateContainer, SwitchContainer, ListContainers, DestroyContainer, ExportContainer,
    ExplainCommand, Literal, ValueKind,
)
from ..containers import ContainerRegistry
from ..environment import Environment
from ..errors import ExecutionError, ActionsDisabled, SecurityError, InvalidField
from ..providers import SystemProvider, FileEntry, ProcessInfo
from ..providers.filters import EPSILON

logger = logging.getLogger(__name__)

QUERY_RESULT_KINDS = {
    QueryTarget.CPU: ResultKind.CPU,
    QueryTarget.MEMORY: ResultKind.MEMORY,
    QueryTarget.DISK: ResultKind.DISK,
    QueryTarget.NETWORK: ResultKind.NETWORK,
    QueryTarget.SYSTEM: ResultKind.SYSTEM,
    QueryTarget.BATTERY: ResultKind.BATTERY,
    QueryTarget.PROCESS: ResultKind.PROCESSES,
    QueryTarget.FILES: ResultKind.FILES,
    QueryTarget.CONTENT: ResultKind.CONTENT,
}


@dataclass
class RunPolicy:
    """How commands may run: preview only, destructive actions, output shape."""
    dry_run: bool = False
    allow_actions: bool = False
    output_mode: str = "human"     # "human" or "json"
    verbose: bool = False
    life_interval: float = 1.0     # seconds between LIFE samples


class Interpreter:
    """
    Executes commands one at a time.

    Args:
        registry: Containers available to CREATE/SWITCH/... (a fresh registry
            with only "default" when omitted)
        provider: Source of system data and actions
        output: Receives each non-empty result produced inside a LIFE body
        monitor_factory: Builds the LiveMonitor for LIFE blocks; called with
            (target, interval, sampler)
    """

    def __init__(self, registry: Optional[ContainerRegistry] = None,
                 provider: Optional[SystemProvider] = None,
                 output: Optional[Callable[[ExecutionResult], None]] = None,
                 monitor_factory: Optional[Callable[..., LiveMonitor]] = None):
        self.registry = registry if registry is not None else ContainerRegistry()
        self.provider = provider if provider is not None else SystemProvider()
        self.output = output
        self.monitor_factory = monitor_factory or LiveMonitor

    def execute(self, command: Command, policy: RunPolicy,
                environment: Environment) -> ExecutionResult:
        """Execute one command. Errors propagate as ArtaError subclasses."""
        logger.debug("executing %s at line %d", type(command).__name__, command.line)
        if isinstance(command, QueryCommand):
            return self._execute_query(command, environment)
        elif isinstance(command, ActionCommand):
            return self._execute_action(command, policy, environment)
        elif isinstance(command, (EnterFolder, EnterFile, ExitContext, ResetContext)):
            return self._execute_context(command, environment)
        elif isinstance(command, ShowCommand):
            return self._execute_show(command, environment)
        elif isinstance(command, LetStatement):
            return self._execute_let(command, environment)
        elif isinstance(command, ForLoop):
            return self._execute_for(command, policy, environment)
        elif isinstance(command, IfStatement):
            return self._execute_if(command, policy, environment)
        elif isinstance(command, LifeMonitor):
            return self._execute_life(command, policy, environment)
        elif isinstance(command, PrintCommand):
            return self._execute_print(command, environment)
        elif isinstance(command, (CreateContainer, SwitchContainer, ListContainers,
                                  DestroyContainer, ExportContainer)):
            return self._execute_container(command, policy)
        elif isinstance(command, ExplainCommand):
            return ExecutionResult(ResultKind.EXPLANATION, explain_command(command.inner))
        raise ExecutionError(f"Unsupported command: {type(command).__name__}")

    def execute_block(self, body: List[Command], policy: RunPolicy,
                      environment: Environment) -> List[ExecutionResult]:
        return [self.execute(cmd, policy, environment) for cmd in body]

    # --- helpers ---

    @staticmethod
    def _lookup(environment: Environment):
        def lookup(name: str):
            value = environment.get_variable(name)
            if value is None:
                return None
            return value.data, value.kind
        return lookup

    @staticmethod
    def _substitute(text: str, environment: Environment) -> str:
        """A path argument that names a variable stands for its value."""
        value = environment.get_variable(text)
        if value is not None:
            return str(value.data) if value.kind in (ValueKind.STRING, ValueKind.PATH) else str(value)
        return text

    def _resolve(self, text: str, environment: Environment) -> Path:
        return environment.resolve_path(self._substitute(text, environment))

    # --- queries ---

    def _execute_query(self, query: QueryCommand, environment: Environment) -> ExecutionResult:
        path = None
        if query.target == QueryTarget.FILES:
            if query.from_path is not None:
                path = self._resolve(query.from_path, environment)
            else:
                path = environment.current_folder
        elif query.target == QueryTarget.CONTENT:
            if query.from_path is not None:
                path = self._resolve(query.from_path, environment)
            elif environment.current_file is not None:
                path = environment.current_file
            else:
                raise ExecutionError(
                    "No file in context. Use 'ENTER FILE <path>' or "
                    "'SELECT CONTENT * FROM <path>'"
                )
        elif query.target == QueryTarget.DISK and query.from_path is not None:
            path = Path(self._substitute(query.from_path, environment)).expanduser()

        data = self.provider.query(query.target, query.fields, path, query.where,
                                   self._lookup(environment))
        return ExecutionResult(QUERY_RESULT_KINDS[query.target], data, fields=query.fields)

    # --- actions ---

    def _execute_action(self, action: ActionCommand, policy: RunPolicy,
                        environment: Environment) -> ExecutionResult:
        if not policy.allow_actions and not policy.dry_run:
            raise ActionsDisabled()
        if environment.readonly and not policy.dry_run:
            raise SecurityError(f"{action.action_name} is not permitted in a read-only container")

        lookup = self._lookup(environment)
        if isinstance(action, DeleteFilesCommand):
            path = self._resolve(action.path, environment)
            outcome = self.provider.delete_files(path, action.where, policy.dry_run, lookup)
        else:
            outcome = self.provider.kill_processes(action.where, policy.dry_run, lookup)
        logger.info("%s: %d affected (dry_run=%s)", outcome.action_type,
                    outcome.affected_count, outcome.dry_run)
        return ExecutionResult(ResultKind.ACTION, outcome)

    # --- context ---

    def _execute_context(self, command, environment: Environment) -> ExecutionResult:
        if isinstance(command, EnterFolder):
            folder = environment.enter_folder(self._substitute(command.path, environment))
            return message_result(f"Entered folder: {folder}")
        if isinstance(command, EnterFile):
            file = environment.enter_file(self._substitute(command.path, environment))
            return message_result(f"Entered file: {file}")
        if isinstance(command, ExitContext):
            now = environment.exit_context()
            return message_result(f"Exited to: {now}")
        environment.reset()
        return message_result("Context reset to initial state")

    def _execute_show(self, command: ShowCommand, environment: Environment) -> ExecutionResult:
        variables = [(name, str(value)) for name, value in sorted(environment.variables.items())]
        if command.target == ShowTarget.CONTEXT:
            info = ContextInfo(
                current_folder=str(environment.current_folder),
                current_file=str(environment.current_file) if environment.current_file else None,
                folder_depth=environment.folder_depth,
                variables=variables,
            )
        elif command.target == ShowTarget.VARIABLES:
            info = ContextInfo(variables=variables)
        else:
            info = ContextInfo(history=[str(entry) for entry in environment.history])
        return ExecutionResult(ResultKind.CONTEXT, info)

    # --- variables and control flow ---

    @staticmethod
    def _literal_value(literal: Literal) -> Value:
        if literal.kind == ValueKind.NUMBER:
            return number_val(literal.value)
        if literal.kind == ValueKind.SIZE:
            return size_val(literal.value)
        if literal.kind == ValueKind.BOOLEAN:
            return bool_val(literal.value)
        if literal.kind == ValueKind.PATH:
            return path_val(literal.value)
        return string_val(literal.value)

    def _execute_let(self, stmt: LetStatement, environment: Environment) -> ExecutionResult:
        value = self._literal_value(stmt.value)
        environment.set_variable(stmt.name, value)
        return message_result(f"Variable '{stmt.name}' set to {value}")

    @staticmethod
    def _bind_file(var: str, entry: FileEntry, environment: Environment) -> None:
        environment.bind(var, path_val(entry.path))
        environment.bind(f"{var}.name", string_val(entry.name))
        environment.bind(f"{var}.path", path_val(entry.path))
        environment.bind(f"{var}.size", size_val(entry.size))
        if entry.extension is not None:
            environment.bind(f"{var}.extension", string_val(entry.extension))
        environment.bind(f"{var}.is_dir", bool_val(entry.is_dir))

    @staticmethod
    def _bind_process(var: str, proc: ProcessInfo, environment: Environment) -> None:
        environment.bind(var, string_val(proc.name))
        environment.bind(f"{var}.name", string_val(proc.name))
        environment.bind(f"{var}.pid", number_val(proc.pid))
        environment.bind(f"{var}.cpu", number_val(proc.cpu))
        environment.bind(f"{var}.memory", size_val(proc.memory))

    def _execute_for(self, loop: ForLoop, policy: RunPolicy,
                     environment: Environment) -> ExecutionResult:
        source = self._execute_query(loop.source, environment)
        if source.kind == ResultKind.FILES:
            bind = self._bind_file
        elif source.kind == ResultKind.PROCESSES:
            bind = self._bind_process
        else:
            raise ExecutionError("FOR loop source must be a FILES or PROCESS query")

        results = []
        for item in source.data:
            bind(loop.variable, item, environment)
            results.extend(self.execute_block(loop.body, policy, environment))

        if not source.data:
            return message_result("FOR loop completed (no items)")
        return ExecutionResult(ResultKind.MULTIPLE, results, "FOR loop completed")

    def _condition_field(self, condition: IfCondition) -> float:
        """Freshly query the condition's target and read the field as a number."""
        target = condition.target
        name = condition.field.lower()
        if target == QueryTarget.MEMORY:
            info = self.provider.query(QueryTarget.MEMORY)
            fields = {
                ("total", "total_bytes"): info.total,
                ("used", "used_bytes"): info.used,
                ("free", "free_bytes"): info.free,
                ("available", "available_bytes"): info.available,
                ("used_percent", "percent", "usage", "usage_percent"): info.usage_percent,
            }
        elif target == QueryTarget.CPU:
            info = self.provider.query(QueryTarget.CPU)
            fields = {
                ("usage", "percent", "used_percent", "usage_percent"): info.usage,
                ("cores", "core_count"): info.cores,
                ("frequency", "frequency_mhz"): info.frequency,
            }
        elif target == QueryTarget.DISK:
            info = self.provider.query(QueryTarget.DISK)
            if not info.disks:
                raise ExecutionError("No disks found")
            disk = info.disks[0]
            fields = {
                ("total", "total_bytes"): disk.total,
                ("used", "used_bytes"): disk.used,
                ("free", "free_bytes", "available", "available_bytes"): disk.free,
                ("used_percent", "percent", "usage"): disk.usage_percent,
            }
        elif target == QueryTarget.BATTERY:
            info = self.provider.query(QueryTarget.BATTERY)
            if not info.batteries:
                # no battery: treat as always powered
                return 100.0
            fields = {
                ("percent", "charge", "level", "charge_percent", "percentage"):
                    info.batteries[0].percentage,
            }
        else:
            raise ExecutionError(f"IF condition not supported for {target} queries")

        for aliases, value in fields.items():
            if name in aliases:
                return float(value)
        raise InvalidField(str(target), condition.field)

    @staticmethod
    def _condition_operand(literal: Literal, environment: Environment) -> float:
        if literal.kind in (ValueKind.NUMBER, ValueKind.SIZE):
            return float(literal.value)
        if literal.kind == ValueKind.IDENTIFIER:
            value = environment.get_variable(literal.value)
            if value is None:
                raise ExecutionError(f"Unknown variable: {literal.value}")
            if not value.is_numeric:
                raise ExecutionError(f"Variable '{literal.value}' is not a number")
            return value.as_number()
        raise ExecutionError("IF condition value must be a number or size")

    def _evaluate_condition(self, condition: IfCondition, environment: Environment) -> bool:
        actual = self._condition_field(condition)
        expected = self._condition_operand(condition.value, environment)
        op = condition.operator
        if not op.is_numeric:
            raise ExecutionError("IF condition only supports numeric comparisons")
        if op == CompareOp.EQ:
            return abs(actual - expected) < EPSILON
        if op == CompareOp.NE:
            return abs(actual - expected) >= EPSILON
        if op == CompareOp.GT:
            return actual > expected
        if op == CompareOp.GE:
            return actual >= expected
        if op == CompareOp.LT:
            return actual < expected
        return actual <= expected

    def _execute_if(self, stmt: IfStatement, policy: RunPolicy,
                    environment: Environment) -> ExecutionResult:
        if self._evaluate_condition(stmt.condition, environment):
            body = stmt.then_body
        elif stmt.else_body is not None:
            body = stmt.else_body
        else:
            return empty_result("IF condition was false")

        results = self.execute_block(body, policy, environment)
        if len(results) == 1:
            return results[0]
        return ExecutionResult(ResultKind.MULTIPLE, results)

    def _execute_life(self, life: LifeMonitor, policy: RunPolicy,
                      environment: Environment) -> ExecutionResult:
        monitor = self.monitor_factory(
            life.target, policy.life_interval,
            lambda: sample_state(life.target, self.provider),
        )

        def on_change(state):
            for result in self.execute_block(life.body, policy, environment):
                if self.output is not None and not result.is_empty:
                    self.output(result)

        with sigint_cancels(monitor.token):
            monitor.start(on_change)
        return message_result("LIFE monitoring completed")

    # --- print ---

    def _query_field_text(self, target: QueryTarget, field: str) -> str:
        name = field.lower()
        if target == QueryTarget.BATTERY:
            info = self.provider.query(QueryTarget.BATTERY)
            if not info.batteries:
                return "No battery"
            battery = info.batteries[0]
            if name in ("level", "percent", "percentage", "charge"):
                return f"{int(battery.percentage)}%"
            if name in ("state", "status"):
                return battery.state
            if name in ("time_to_empty", "remaining"):
                return battery.time_to_empty or "N/A"
            if name == "time_to_full":
                return battery.time_to_full or "N/A"
        elif target == QueryTarget.MEMORY:
            info = self.provider.query(QueryTarget.MEMORY)
            if name in ("total", "used", "free", "available"):
                return format_bytes(getattr(info, name))
            if name in ("usage", "percent", "used_percent"):
                return f"{info.usage_percent:.1f}%"
        elif target == QueryTarget.CPU:
            info = self.provider.query(QueryTarget.CPU)
            if name in ("usage", "percent"):
                return f"{info.usage:.1f}%"
            if name == "cores":
                return str(info.cores)
            if name in ("frequency", "frequency_mhz"):
                return f"{info.frequency} MHz"
            if name in ("name", "brand"):
                return info.brand
        elif target == QueryTarget.DISK:
            info = self.provider.query(QueryTarget.DISK)
            if not info.disks:
                return "No disks"
            disk = info.disks[0]
            if name in ("total", "used"):
                return format_bytes(getattr(disk, name))
            if name in ("free", "available"):
                return format_bytes(disk.free)
            if name in ("usage", "percent", "used_percent"):
                return f"{disk.usage_percent:.1f}%"
            if name in ("name", "mount", "mount_point"):
                return disk.mount_point
        elif target == QueryTarget.SYSTEM:
            info = self.provider.query(QueryTarget.SYSTEM)
            if name in ("hostname", "name"):
                return info.hostname
            if name in ("os", "os_name"):
                return info.os_name
            if name in ("os_version", "version"):
                return info.os_version
            if name in ("kernel", "kernel_version"):
                return info.kernel_version
            if name in ("uptime", "uptime_secs"):
                return f"{info.uptime} seconds"
        elif target == QueryTarget.NETWORK:
            info = self.provider.query(QueryTarget.NETWORK)
            if not info.interfaces:
                return "No network interfaces"
            iface = info.interfaces[0]
            if name == "name":
                return iface.name
            if name in ("sent", "bytes_sent", "transmitted"):
                return format_bytes(iface.transmitted)
            if name in ("recv", "received", "bytes_recv"):
                return format_bytes(iface.received)
        else:
            raise ExecutionError(f"PRINT not supported for {target} queries")
        raise InvalidField(str(target), field)

    def _execute_print(self, command: PrintCommand, environment: Environment) -> ExecutionResult:
        parts = []
        for expr in command.expressions:
            if isinstance(expr, PrintString):
                parts.append(expr.text)
            elif isinstance(expr, PrintVariable):
                value = environment.get_variable(expr.name)
                parts.append(str(value) if value is not None else f"<undefined: {expr.name}>")
            elif isinstance(expr, PrintQueryField):
                parts.append(self._query_field_text(expr.target, expr.field))
        return message_result(" ".join(parts))

    # --- containers ---

    def _container_result(self, operation: str, message: str, name: Optional[str] = None,
                          containers=None) -> ExecutionResult:
        return ExecutionResult(
            ResultKind.CONTAINER,
            ContainerResultInfo(operation, message, name, containers),
        )

    def _execute_container(self, command, policy: RunPolicy) -> ExecutionResult:
        registry = self.registry
        if isinstance(command, CreateContainer):
            container = registry.create(command.name, command.allow_actions, command.readonly)
            try:
                self.execute_block(command.body, policy, container.environment)
            except Exception:
                registry.destroy(command.name)
                raise
            container.environment.readonly = command.readonly
            return self._container_result(
                "CREATE",
                f"Container '{command.name}' created with {len(command.body)} "
                f"initialization commands",
                command.name,
            )
        if isinstance(command, SwitchContainer):
            registry.switch(command.name)
            return self._container_result(
                "SWITCH", f"Switched to container '{command.name}'", command.name)
        if isinstance(command, ListContainers):
            return self._container_result("LIST", "Container list", containers=registry.list())
        if isinstance(command, DestroyContainer):
            registry.destroy(command.name)
            return self._container_result(
                "DESTROY", f"Container '{command.name}' destroyed", command.name)
        target = registry.export(command.name, command.path)
        return self._container_result(
            "EXPORT", f"Container '{command.name}' exported to '{target}'", command.name)


def execute(command: Command, policy: Optional[RunPolicy] = None,
            environment: Optional[Environment] = None) -> ExecutionResult:
    """
    Convenience function: execute one command with a throwaway interpreter.

    Args:
        command: Parsed command
        policy: Run policy (read-only defaults when omitted)
        environment: Environment to run against (a fresh one when omitted)

    Returns:
        ExecutionResult

    Raises:
        ArtaError: If execution fails
    """
    interpreter = Interpreter()
    if environment is None:
        environment = interpreter.registry.active_environment
    return interpreter.execute(command, policy or RunPolicy(), environment)
