"""
Arta runtime - tree-walking interpreter and script execution.

This module provides:
- Interpreter: Executes commands against an Environment under a RunPolicy
- Value / ExecutionResult: Runtime values and command results
- LiveMonitor: Polling change detection behind LIFE MONITOR
- ScriptRunner: Runs scripts and .arta files with injected arguments
- Explain helpers: Describe statements without running them
"""

from .values import (
    Value,
    ResultKind,
    ExecutionResult,
    ContextInfo,
    ContainerResultInfo,
    string_val,
    number_val,
    size_val,
    bool_val,
    path_val,
    sniff_value,
    message_result,
    empty_result,
    format_bytes,
)

from .explain import (
    Explainer,
    Summarizer,
    explain_command,
    explain_script,
)

from .monitor import (
    BatteryState,
    MemoryState,
    CpuState,
    DiskState,
    NetworkState,
    ProcessesState,
    has_changed,
    format_state,
    sample_state,
    CancellationToken,
    sigint_cancels,
    LiveMonitor,
    run_simple_monitor,
)

from .interpreter import (
    RunPolicy,
    Interpreter,
    execute,
)

from .runner import (
    ScriptResult,
    ScriptRunner,
)

__all__ = [
    # Values
    'Value',
    'ResultKind',
    'ExecutionResult',
    'ContextInfo',
    'ContainerResultInfo',
    'string_val',
    'number_val',
    'size_val',
    'bool_val',
    'path_val',
    'sniff_value',
    'message_result',
    'empty_result',
    'format_bytes',
    # Explain
    'Explainer',
    'Summarizer',
    'explain_command',
    'explain_script',
    # Monitor
    'BatteryState',
    'MemoryState',
    'CpuState',
    'DiskState',
    'NetworkState',
    'ProcessesState',
    'has_changed',
    'format_state',
    'sample_state',
    'CancellationToken',
    'sigint_cancels',
    'LiveMonitor',
    'run_simple_monitor',
    # Interpreter
    'RunPolicy',
    'Interpreter',
    'execute',
    # Runner
    'ScriptResult',
    'ScriptRunner',
]
