"""
Typed records returned by the query and action providers.
"""

from dataclasses import dataclass, field, asdict
from typing import List, Optional


@dataclass
class CpuInfo:
    cores: int
    usage: float            # percent
    brand: str
    frequency: int          # MHz


@dataclass
class MemoryInfo:
    total: int
    used: int
    free: int
    available: int
    usage_percent: float


@dataclass
class DiskEntry:
    name: str
    mount_point: str
    total: int
    used: int
    free: int
    usage_percent: float
    file_system: str


@dataclass
class DiskInfo:
    disks: List[DiskEntry] = field(default_factory=list)


@dataclass
class NetworkInterface:
    name: str
    received: int
    transmitted: int
    packets_received: int
    packets_transmitted: int


@dataclass
class NetworkInfo:
    interfaces: List[NetworkInterface] = field(default_factory=list)


@dataclass
class SystemInfo:
    hostname: str
    os_name: str
    os_version: str
    kernel_version: str
    uptime: int             # seconds


@dataclass
class BatteryEntry:
    state: str              # Charging, Discharging, Full, Unknown
    percentage: float
    time_to_empty: Optional[str] = None
    time_to_full: Optional[str] = None

    @property
    def charging(self) -> bool:
        return self.state == "Charging"


@dataclass
class BatteryInfo:
    batteries: List[BatteryEntry] = field(default_factory=list)


@dataclass
class ProcessInfo:
    pid: int
    name: str
    cpu: float
    memory: int             # resident bytes
    status: str
    user: Optional[str] = None


@dataclass
class FileEntry:
    name: str
    path: str
    size: int
    is_dir: bool
    modified: Optional[str] = None
    extension: Optional[str] = None


@dataclass
class ContentInfo:
    file_path: str
    lines: List[str]
    total_lines: int
    file_size: int


@dataclass
class ActionResult:
    """Outcome of a destructive action (or its dry-run preview)."""
    action_type: str
    affected_count: int
    dry_run: bool
    details: List[str] = field(default_factory=list)


def to_dict(record) -> dict:
    """JSON-ready view of any record dataclass."""
    return asdict(record)
