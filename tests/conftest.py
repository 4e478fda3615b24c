"""
Shared fixtures: a SystemProvider with canned system data.
"""

import pytest

from arta import QueryTarget
from arta.providers import (
    SystemProvider, CpuInfo, MemoryInfo, DiskEntry, DiskInfo, NetworkInfo,
    NetworkInterface, SystemInfo, BatteryInfo, ProcessInfo, evaluate_where,
)
from arta.providers import actions, queries

GB = 1024 ** 3


class FakeProvider(SystemProvider):
    """
    Canned CPU/memory/disk/battery/process data; FILES and CONTENT still read
    the real filesystem. `cpu_values` feeds successive CPU usage samples.
    """

    def __init__(self, cpu_values=None, batteries=None, processes=None):
        super().__init__()
        self.cpu_values = iter(cpu_values) if cpu_values is not None else None
        self.batteries = batteries or []
        self.processes = processes if processes is not None else [
            ProcessInfo(101, "sleep", 0.5, 2 * 1024 ** 2, "sleeping", "alice"),
            ProcessInfo(202, "python3", 35.0, 80 * 1024 ** 2, "running", "alice"),
            ProcessInfo(1, "systemd", 0.1, 10 * 1024 ** 2, "sleeping", "root"),
        ]
        self.queries = []

    def query(self, target, fields=None, path=None, where=None, lookup=None):
        queries.check_fields(target, fields)
        self.queries.append(target)
        if target == QueryTarget.CPU:
            usage = next(self.cpu_values) if self.cpu_values is not None else 12.5
            return CpuInfo(cores=8, usage=usage, brand="Fake CPU", frequency=2400)
        if target == QueryTarget.MEMORY:
            return MemoryInfo(total=16 * GB, used=8 * GB, free=6 * GB,
                              available=7 * GB, usage_percent=50.0)
        if target == QueryTarget.DISK:
            return DiskInfo([DiskEntry("sda1", "/", 500 * GB, 100 * GB, 400 * GB, 20.0, "ext4")])
        if target == QueryTarget.NETWORK:
            return NetworkInfo([NetworkInterface("eth0", 5000, 7000, 50, 70)])
        if target == QueryTarget.SYSTEM:
            return SystemInfo("testhost", "Linux", "6.1", "6.1.0", 7260)
        if target == QueryTarget.BATTERY:
            return BatteryInfo(list(self.batteries))
        if target == QueryTarget.PROCESS:
            return [p for p in self.processes
                    if evaluate_where(queries.process_fields(p), where, lookup)]
        return super().query(target, fields, path, where, lookup)

    def kill_processes(self, where, dry_run, lookup=None):
        return actions.kill_processes(where, dry_run, lookup, self.max_kill_processes,
                                      processes=self.processes)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def make_provider():
    return FakeProvider
