"""
Live monitoring of a system resource.

A LiveMonitor samples one resource at a fixed interval and invokes a callback
only when the new sample differs materially from the previous one.  The loop
is cooperative: a CancellationToken is checked once per iteration, and a
SIGINT handler installed with `sigint_cancels` does nothing but flip it.
"""

import json
import logging
import signal
import sys
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional, Union

from ..ast import LifeTarget, QueryTarget
from ..errors import InvalidTarget
from ..providers import SystemProvider

logger = logging.getLogger(__name__)

GB = 1024.0 ** 3
MB = 1024.0 ** 2


# =============================================================================
# Monitor states
# =============================================================================

@dataclass(frozen=True)
class BatteryState:
    percentage: float
    charging: bool


@dataclass(frozen=True)
class MemoryState:
    used: int
    total: int


@dataclass(frozen=True)
class CpuState:
    usage: float


@dataclass(frozen=True)
class DiskState:
    used: int
    total: int


@dataclass(frozen=True)
class NetworkState:
    bytes_sent: int
    bytes_recv: int


@dataclass(frozen=True)
class ProcessesState:
    count: int


MonitorState = Union[BatteryState, MemoryState, CpuState, DiskState, NetworkState, ProcessesState]

STATE_NAMES = {
    BatteryState: "battery",
    MemoryState: "memory",
    CpuState: "cpu",
    DiskState: "disk",
    NetworkState: "network",
    ProcessesState: "processes",
}


def has_changed(current: MonitorState, previous: Optional[MonitorState]) -> bool:
    """
    True when `current` differs materially from `previous`.

    The first sample (no previous) and a change of resource kind always count
    as changed.
    """
    if previous is None or type(current) is not type(previous):
        return True
    if isinstance(current, BatteryState):
        return (current.charging != previous.charging
                or abs(current.percentage - previous.percentage) >= 1.0)
    if isinstance(current, (MemoryState, DiskState)):
        return abs(current.used - previous.used) > previous.used / 100.0
    if isinstance(current, CpuState):
        return abs(current.usage - previous.usage) >= 1.0
    if isinstance(current, NetworkState):
        return (current.bytes_sent != previous.bytes_sent
                or current.bytes_recv != previous.bytes_recv)
    if isinstance(current, ProcessesState):
        return current.count != previous.count
    return True


def _percent(used: int, total: int) -> float:
    return (used / total * 100.0) if total else 0.0


def format_state(state: MonitorState, output_mode: str = "human",
                 now: Optional[datetime] = None) -> str:
    """Render one sample as a timestamped line or a JSON object."""
    if output_mode == "json":
        data = {"type": STATE_NAMES[type(state)]}
        data.update(asdict(state))
        if isinstance(state, (MemoryState, DiskState)):
            data["used_percent"] = _percent(state.used, state.total)
        data["timestamp"] = (now or datetime.now(timezone.utc)).isoformat()
        return json.dumps(data, indent=2)

    stamp = (now or datetime.now()).strftime("%H:%M:%S")
    if isinstance(state, BatteryState):
        status = "Charging" if state.charging else "Discharging"
        return f"[{stamp}] Battery: {state.percentage:.0f}% ({status})"
    if isinstance(state, MemoryState):
        return (f"[{stamp}] Memory: {state.used / GB:.1f} GB / {state.total / GB:.1f} GB "
                f"({_percent(state.used, state.total):.1f}%)")
    if isinstance(state, CpuState):
        return f"[{stamp}] CPU: {state.usage:.1f}%"
    if isinstance(state, DiskState):
        return (f"[{stamp}] Disk: {state.used / GB:.1f} GB / {state.total / GB:.1f} GB "
                f"({_percent(state.used, state.total):.1f}%)")
    if isinstance(state, NetworkState):
        return (f"[{stamp}] Network: Sent {state.bytes_sent / MB:.1f} MB, "
                f"Recv {state.bytes_recv / MB:.1f} MB")
    return f"[{stamp}] Processes: {state.count}"


def print_state(state: MonitorState, output_mode: str = "human", out=None) -> None:
    print(format_state(state, output_mode), file=out or sys.stdout)


# =============================================================================
# Sampling
# =============================================================================

def sample_state(target: LifeTarget, provider) -> MonitorState:
    """Take one sample of `target` through a SystemProvider."""
    if target == LifeTarget.BATTERY:
        info = provider.query(QueryTarget.BATTERY)
        if not info.batteries:
            return BatteryState(100.0, False)
        battery = info.batteries[0]
        return BatteryState(battery.percentage, battery.charging)
    if target == LifeTarget.MEMORY:
        info = provider.query(QueryTarget.MEMORY)
        return MemoryState(info.used, info.total)
    if target == LifeTarget.CPU:
        return CpuState(provider.query(QueryTarget.CPU).usage)
    if target == LifeTarget.DISK:
        info = provider.query(QueryTarget.DISK)
        if not info.disks:
            return DiskState(0, 0)
        return DiskState(info.disks[0].used, info.disks[0].total)
    if target == LifeTarget.NETWORK:
        info = provider.query(QueryTarget.NETWORK)
        return NetworkState(
            sum(i.transmitted for i in info.interfaces),
            sum(i.received for i in info.interfaces),
        )
    return ProcessesState(len(provider.query(QueryTarget.PROCESS)))


class CancellationToken:
    """A flag shared between the monitor loop and whoever may stop it."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


@contextmanager
def sigint_cancels(token: CancellationToken):
    """
    While active, Ctrl+C cancels `token` instead of raising KeyboardInterrupt.

    Signal handlers can only be installed from the main thread; elsewhere
    this is a no-op.
    """
    if threading.current_thread() is not threading.main_thread():
        yield token
        return
    previous = signal.signal(signal.SIGINT, lambda signum, frame: token.cancel())
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)


class MonitorPhase(Enum):
    IDLE = "idle"
    SAMPLING = "sampling"


class LiveMonitor:
    """
    Polls one resource and reports material changes.

    Usage:
        monitor = LiveMonitor(LifeTarget.CPU, interval=2.0, sampler=...)
        with sigint_cancels(monitor.token):
            monitor.start(lambda state: print_state(state))

    `sampler` returns the current MonitorState; `sleeper` is called with the
    interval between samples (time.sleep by default).
    """

    def __init__(self, target: LifeTarget, interval: float = 1.0,
                 sampler: Callable[[], MonitorState] = None,
                 sleeper: Callable[[float], None] = time.sleep,
                 token: Optional[CancellationToken] = None):
        if sampler is None:
            raise ValueError("LiveMonitor needs a sampler")
        self.target = target
        self.interval = interval
        self.sampler = sampler
        self.sleeper = sleeper
        self.token = token or CancellationToken()
        self.phase = MonitorPhase.IDLE
        self.last_state: Optional[MonitorState] = None

    @property
    def is_running(self) -> bool:
        return self.phase == MonitorPhase.SAMPLING

    def stop(self) -> None:
        self.token.cancel()

    def start(self, on_change: Callable[[MonitorState], None]) -> int:
        """
        Sample until cancelled, calling `on_change` for each material change.

        Returns the number of times `on_change` was invoked. Exceptions from
        the sampler or the callback stop the loop and propagate.
        """
        self.phase = MonitorPhase.SAMPLING
        self.last_state = None
        fired = 0
        logger.info("monitoring %s every %ss", self.target, self.interval)
        try:
            while not self.token.cancelled:
                current = self.sampler()
                if has_changed(current, self.last_state):
                    on_change(current)
                    fired += 1
                    self.last_state = current
                self.sleeper(self.interval)
        finally:
            self.phase = MonitorPhase.IDLE
            logger.info("monitoring %s stopped after %d update(s)", self.target, fired)
        return fired


def run_simple_monitor(target_name: str, interval: float = 1.0, output_mode: str = "human",
                       provider=None, sleeper: Callable[[float], None] = time.sleep,
                       token: Optional[CancellationToken] = None, out=None) -> int:
    """
    Print samples of a resource on change until Ctrl+C.

    Raises:
        InvalidTarget: If target_name is not a monitorable resource
    """
    target = LifeTarget.from_name(target_name)
    if target is None:
        raise InvalidTarget(target_name)
    if provider is None:
        provider = SystemProvider()
    out = out or sys.stdout

    monitor = LiveMonitor(target, interval, lambda: sample_state(target, provider),
                          sleeper, token)
    print(f"Monitoring {target}... (Press Ctrl+C to stop)\n", file=out)
    with sigint_cancels(monitor.token):
        fired = monitor.start(lambda state: print_state(state, output_mode, out))
    print("\nMonitoring stopped.", file=out)
    return fired
