"""Process simulation engine for simtop.

The population is a plain list of ProcessRecord. Everything derived from it
(SystemStats, alerts, the filtered/sorted view) is recomputed from scratch by
pure functions; ProcessSimulator owns the population and reruns them after
every mutation.
"""

import random
from collections.abc import Callable, Iterable, Sequence
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Protocol

import structlog

from simtop.config import AlertsConfig, Config, SimulationConfig
from simtop.models import (
    AlertEvent,
    AlertKind,
    DashboardSnapshot,
    ProcessRecord,
    ProcessState,
    SortKey,
    SystemStats,
)

log = structlog.get_logger()

ALL_STATES = list(ProcessState)
# Zombies only come from generation
EVOLVE_STATES = [ProcessState.RUNNING, ProcessState.SLEEPING, ProcessState.WAITING]


class RandomSource(Protocol):
    """Anything producing uniform floats in [0, 1)."""

    def random(self) -> float: ...


def _uniform(rng: RandomSource, low: float, high: float) -> float:
    return low + (high - low) * rng.random()


def _choice(rng: RandomSource, options: Sequence[ProcessState]) -> ProcessState:
    index = min(int(rng.random() * len(options)), len(options) - 1)
    return options[index]


# ─────────────────────────────────────────────────────────────────────────────
# Generation and evolution
# ─────────────────────────────────────────────────────────────────────────────


def generate_population(
    catalog: Sequence[str],
    rng: RandomSource,
    clock: Callable[[], datetime] = datetime.now,
    settings: SimulationConfig | None = None,
) -> list[ProcessRecord]:
    """Create one process per catalog name, with pids assigned in catalog order."""
    settings = settings or SimulationConfig()
    now = clock()
    population = []
    for index, name in enumerate(catalog):
        cpu = _uniform(rng, 0, settings.max_cpu_percent)
        memory = _uniform(rng, 0, settings.max_memory_mb)
        state = _choice(rng, ALL_STATES)
        age_ms = _uniform(rng, 0, settings.max_age_ms)
        population.append(
            ProcessRecord(
                pid=settings.pid_base + index,
                name=name,
                cpu_percent=round(cpu, 1),
                memory_mb=round(memory, 1),
                state=state,
                owner="root" if index % 3 == 0 else "user",
                started_at=now - timedelta(milliseconds=age_ms),
            )
        )
    return population


def evolve(
    population: Iterable[ProcessRecord],
    rng: RandomSource,
    settings: SimulationConfig | None = None,
) -> None:
    """Advance every process by one tick, in place.

    Metrics take a bounded random walk clamped at zero. With a small
    probability a non-zombie process switches to a random live state.
    """
    settings = settings or SimulationConfig()
    for proc in population:
        proc.cpu_percent = max(0.0, proc.cpu_percent + _uniform(rng, -1, 1) * settings.cpu_jitter)
        proc.memory_mb = max(0.0, proc.memory_mb + _uniform(rng, -1, 1) * settings.memory_jitter)
        if proc.state is ProcessState.ZOMBIE:
            continue
        if rng.random() < settings.state_change_probability:
            proc.state = _choice(rng, EVOLVE_STATES)


# ─────────────────────────────────────────────────────────────────────────────
# Derived state
# ─────────────────────────────────────────────────────────────────────────────


def compute_stats(
    population: Sequence[ProcessRecord], total_memory_mb: float = 16384.0
) -> SystemStats:
    """Aggregate system-wide statistics. Total over any population, including empty."""
    count = len(population)
    cpu_usage = 0.0
    if count > 0:
        cpu_usage = min(100.0, sum(p.cpu_percent for p in population) / count)
    return SystemStats(
        cpu_usage_percent=cpu_usage,
        memory_usage_mb=sum(p.memory_mb for p in population),
        total_memory_mb=total_memory_mb,
        active_process_count=sum(1 for p in population if p.state is ProcessState.RUNNING),
        total_process_count=count,
    )


def classify_alerts(
    population: Iterable[ProcessRecord],
    thresholds: AlertsConfig | None = None,
) -> list[AlertEvent]:
    """Return every alert for the population, in population order.

    A single process can raise up to three alerts (cpu, memory, zombie).
    """
    thresholds = thresholds or AlertsConfig()
    alerts = []
    for proc in population:
        if proc.cpu_percent > thresholds.cpu_percent:
            alerts.append(AlertEvent(AlertKind.HIGH_CPU, proc.pid, proc.name, proc.cpu_percent))
        if proc.memory_mb > thresholds.memory_mb:
            alerts.append(AlertEvent(AlertKind.HIGH_MEMORY, proc.pid, proc.name, proc.memory_mb))
        if proc.state is ProcessState.ZOMBIE:
            alerts.append(AlertEvent(AlertKind.ZOMBIE_PROCESS, proc.pid, proc.name))
    return alerts


# ─────────────────────────────────────────────────────────────────────────────
# Query layer
# ─────────────────────────────────────────────────────────────────────────────


def parse_sort_key(key: SortKey | str | None) -> SortKey:
    """Resolve a sort key, falling back to PID for anything unrecognized."""
    if isinstance(key, SortKey):
        return key
    try:
        return SortKey(str(key).lower())
    except ValueError:
        return SortKey.PID


def filter_processes(population: Iterable[ProcessRecord], text: str) -> list[ProcessRecord]:
    """Keep processes whose name (case-insensitive) or pid contains text."""
    if not text:
        return list(population)
    needle = text.lower()
    return [p for p in population if needle in p.name.lower() or text in str(p.pid)]


def sort_processes(
    processes: Iterable[ProcessRecord], key: SortKey | str | None
) -> list[ProcessRecord]:
    """Stable sort: cpu/memory descending, name/pid ascending."""
    sort_key = parse_sort_key(key)
    if sort_key is SortKey.CPU:
        return sorted(processes, key=lambda p: p.cpu_percent, reverse=True)
    if sort_key is SortKey.MEMORY:
        return sorted(processes, key=lambda p: p.memory_mb, reverse=True)
    if sort_key is SortKey.NAME:
        return sorted(processes, key=lambda p: (p.name.casefold(), p.name.swapcase()))
    return sorted(processes, key=lambda p: p.pid)


def query_processes(
    population: Iterable[ProcessRecord], text: str, key: SortKey | str | None
) -> list[ProcessRecord]:
    """Filter then sort."""
    return sort_processes(filter_processes(population, text), key)


def kill_process(population: list[ProcessRecord], pid: int) -> ProcessRecord | None:
    """Remove the process with pid. Returns it, or None if it was not present."""
    for index, proc in enumerate(population):
        if proc.pid == pid:
            return population.pop(index)
    return None


# ─────────────────────────────────────────────────────────────────────────────
# Engine
# ─────────────────────────────────────────────────────────────────────────────


class ProcessSimulator:
    """
    Owns the simulated population and its derived state.

    Every mutation (tick, kill, reset) recomputes stats and alerts before
    returning, so readers never observe stale derived state.
    """

    def __init__(
        self,
        config: Config | None = None,
        rng: RandomSource | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """
        Initialize the simulator and generate the initial population.

        Args:
            config: Application config. Defaults to Config().
            rng: Random source. Defaults to random.Random seeded from
                config.simulation.seed (unseeded when the seed is 0).
            clock: Wall-clock provider used for process start times.
        """
        self._config = config or Config()
        settings = self._config.simulation
        self._rng = rng or random.Random(settings.seed or None)
        self._clock = clock
        self._filter_text = ""
        self._sort_key = SortKey.CPU
        self._population: list[ProcessRecord] = []
        self._stats = compute_stats([], settings.total_memory_mb)
        self._alerts: list[AlertEvent] = []
        self.reset()

    @property
    def config(self) -> Config:
        """Get the simulator config."""
        return self._config

    @property
    def population(self) -> list[ProcessRecord]:
        """The live population, in creation order."""
        return list(self._population)

    @property
    def stats(self) -> SystemStats:
        """Statistics for the current population."""
        return self._stats

    @property
    def alerts(self) -> list[AlertEvent]:
        """All alerts for the current population."""
        return list(self._alerts)

    @property
    def filter_text(self) -> str:
        """Get the current filter text."""
        return self._filter_text

    @property
    def sort_key(self) -> SortKey:
        """Get the current sort key."""
        return self._sort_key

    def set_filter(self, text: str | None) -> None:
        """Set the free-text filter. None or empty matches everything."""
        self._filter_text = text or ""

    def set_sort_key(self, key: SortKey | str | None) -> SortKey:
        """Set the sort key and return the resolved value."""
        self._sort_key = parse_sort_key(key)
        return self._sort_key

    def get(self, pid: int) -> ProcessRecord | None:
        """Look up a live process by pid."""
        for proc in self._population:
            if proc.pid == pid:
                return proc
        return None

    def reset(self) -> None:
        """Regenerate the population from the catalog."""
        settings = self._config.simulation
        self._population = generate_population(settings.catalog, self._rng, self._clock, settings)
        self._recompute()
        log.info("population_generated", count=len(self._population))

    def tick(self) -> None:
        """Advance the simulation by one step."""
        evolve(self._population, self._rng, self._config.simulation)
        self._recompute()

    def kill(self, pid: int) -> ProcessRecord | None:
        """
        Terminate a process.

        Unknown pids are ignored. Returns the removed process so the caller
        can drop any selection that refers to it.
        """
        removed = kill_process(self._population, pid)
        if removed is None:
            log.debug("kill_ignored", pid=pid)
            return None
        self._recompute()
        log.info("process_killed", pid=removed.pid, name=removed.name)
        return removed

    def view(self) -> list[ProcessRecord]:
        """The filtered and sorted process list."""
        return query_processes(self._population, self._filter_text, self._sort_key)

    def snapshot(self) -> DashboardSnapshot:
        """Bundle the current derived state for rendering.

        Records are copied so a kept snapshot does not change on later ticks.
        """
        return DashboardSnapshot(
            stats=self._stats,
            alerts=list(self._alerts),
            processes=[replace(p) for p in self.view()],
            filter_text=self._filter_text,
            sort_key=self._sort_key,
        )

    def _recompute(self) -> None:
        self._stats = compute_stats(self._population, self._config.simulation.total_memory_mb)
        self._alerts = classify_alerts(self._population, self._config.alerts)
