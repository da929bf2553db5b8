"""Periodic simulation driver for simtop."""

import asyncio
from collections.abc import Callable

import structlog

from simtop.models import DashboardSnapshot
from simtop.simulator import ProcessSimulator

log = structlog.get_logger()


class SimulationTicker:
    """
    Drives a ProcessSimulator on a fixed interval.

    Runs as a single asyncio task on the caller's event loop, so ticks never
    overlap with each other or with commands issued from the same loop.
    Each tick's snapshot is handed to the optional on_tick callback.
    """

    def __init__(
        self,
        simulator: ProcessSimulator,
        on_tick: Callable[[DashboardSnapshot], None] | None = None,
        interval: float = 2.0,
    ) -> None:
        """
        Initialize the SimulationTicker.

        Args:
            simulator: Simulator to advance.
            on_tick: Called with the new snapshot after every tick.
            interval: Seconds between ticks. Default 2.0s.
        """
        self._simulator = simulator
        self._on_tick = on_tick
        self._interval = max(0.1, interval)
        self._task: asyncio.Task[None] | None = None
        self._tick_count = 0

    @property
    def interval(self) -> float:
        """Get the current tick interval."""
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        """Set the tick interval."""
        self._interval = max(0.1, value)  # Minimum 0.1 seconds

    @property
    def is_running(self) -> bool:
        """Check if the tick task is running."""
        return self._task is not None and not self._task.done()

    @property
    def tick_count(self) -> int:
        """Number of ticks performed so far."""
        return self._tick_count

    def start(self) -> None:
        """Start ticking. Must be called from within a running event loop."""
        if self.is_running:
            return

        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._tick_loop(), name="SimulationTicker")
        log.info("ticker_started", interval=self._interval)

    def stop(self) -> None:
        """Cancel the tick task. Safe to call when not running."""
        if self._task is None:
            return
        self._task.cancel()
        self._task = None
        log.info("ticker_stopped", ticks=self._tick_count)

    def step(self) -> DashboardSnapshot:
        """Advance the simulation by exactly one tick and publish the result."""
        self._simulator.tick()
        self._tick_count += 1
        snapshot = self._simulator.snapshot()
        if self._on_tick is not None:
            self._on_tick(snapshot)
        return snapshot

    async def _tick_loop(self) -> None:
        """Main loop: wait one interval, then tick."""
        while True:
            await asyncio.sleep(self._interval)
            try:
                self.step()
            except Exception:
                # A failing consumer must not stop the simulation
                log.exception("tick_failed", tick=self._tick_count)
