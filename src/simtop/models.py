"""Data models for simtop."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ProcessState(Enum):
    """Lifecycle state of a simulated process."""

    RUNNING = "Running"
    SLEEPING = "Sleeping"
    WAITING = "Waiting"
    ZOMBIE = "Zombie"


class AlertKind(Enum):
    """Kinds of alert raised by the classifier."""

    HIGH_CPU = "HighCpu"
    HIGH_MEMORY = "HighMemory"
    ZOMBIE_PROCESS = "ZombieProcess"


class SortKey(Enum):
    """Sort keys for the process view."""

    CPU = "cpu"
    MEMORY = "memory"
    NAME = "name"
    PID = "pid"


@dataclass(slots=True)
class ProcessRecord:
    """A simulated process. Metrics and state are mutated in place by ticks."""

    pid: int
    name: str
    cpu_percent: float
    memory_mb: float
    state: ProcessState
    owner: str
    started_at: datetime


@dataclass(slots=True, frozen=True)
class SystemStats:
    """System-wide statistics derived from a population."""

    cpu_usage_percent: float
    memory_usage_mb: float
    total_memory_mb: float
    active_process_count: int
    total_process_count: int

    @property
    def memory_usage_percent(self) -> float:
        """Memory in use as a percentage of total capacity."""
        if self.total_memory_mb <= 0:
            return 0.0
        return self.memory_usage_mb / self.total_memory_mb * 100


@dataclass(slots=True, frozen=True)
class AlertEvent:
    """Alert raised for one process. value is None for zombie alerts."""

    kind: AlertKind
    pid: int
    name: str
    value: float | None = None

    @property
    def message(self) -> str:
        """Human-readable alert text."""
        if self.kind is AlertKind.HIGH_CPU:
            return f"High CPU: {self.name} ({self.value:.1f}%)"
        if self.kind is AlertKind.HIGH_MEMORY:
            return f"High Memory: {self.name} ({self.value:.0f} MB)"
        return f"Zombie Process: {self.name}"


@dataclass(slots=True, frozen=True)
class DashboardSnapshot:
    """Everything the view needs to render one frame."""

    stats: SystemStats
    alerts: list[AlertEvent]
    processes: list[ProcessRecord]
    filter_text: str
    sort_key: SortKey
