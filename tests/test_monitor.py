"""Tests for the SimulationTicker class."""

import asyncio
import random

import pytest

from simtop.models import DashboardSnapshot
from simtop.monitor import SimulationTicker
from simtop.simulator import ProcessSimulator


@pytest.fixture
def simulator() -> ProcessSimulator:
    return ProcessSimulator(rng=random.Random(1))


class TestSimulationTicker:
    """Tests for SimulationTicker class."""

    def test_ticker_creation(self, simulator):
        """Test SimulationTicker can be instantiated."""
        ticker = SimulationTicker(simulator)

        assert ticker.interval == 2.0
        assert ticker.tick_count == 0
        assert not ticker.is_running

    def test_ticker_custom_interval(self, simulator):
        ticker = SimulationTicker(simulator, interval=0.5)
        assert ticker.interval == 0.5

    def test_interval_minimum(self, simulator):
        """Test interval has a minimum value."""
        ticker = SimulationTicker(simulator, interval=0.0)
        assert ticker.interval == 0.1

        ticker.interval = 0.01
        assert ticker.interval >= 0.1

    def test_step_advances_once(self, simulator):
        """step() ticks synchronously and returns the new snapshot."""
        ticker = SimulationTicker(simulator)
        before = [p.cpu_percent for p in simulator.population]

        snapshot = ticker.step()

        assert isinstance(snapshot, DashboardSnapshot)
        assert ticker.tick_count == 1
        assert [p.cpu_percent for p in simulator.population] != before
        assert snapshot.stats == simulator.stats

    def test_step_calls_on_tick(self, simulator):
        received: list[DashboardSnapshot] = []
        ticker = SimulationTicker(simulator, on_tick=received.append)

        ticker.step()
        ticker.step()

        assert len(received) == 2
        assert received[-1].stats == simulator.stats

    def test_stop_when_not_running(self, simulator):
        """Stopping an idle ticker is safe."""
        ticker = SimulationTicker(simulator)
        ticker.stop()
        assert not ticker.is_running

    def test_start_requires_event_loop(self, simulator):
        ticker = SimulationTicker(simulator)
        with pytest.raises(RuntimeError):
            ticker.start()


@pytest.mark.asyncio
async def test_ticker_start_stop(simulator):
    """Test SimulationTicker can be started and stopped."""
    ticker = SimulationTicker(simulator, interval=0.1)

    ticker.start()
    assert ticker.is_running

    ticker.stop()
    assert not ticker.is_running


@pytest.mark.asyncio
async def test_ticker_start_idempotent(simulator):
    """Test starting an already running ticker is safe."""
    ticker = SimulationTicker(simulator, interval=0.1)

    ticker.start()
    task1 = ticker._task

    ticker.start()  # Should not create a new task
    task2 = ticker._task

    assert task1 is task2
    assert task1.get_name() == "SimulationTicker"
    ticker.stop()


@pytest.mark.asyncio
async def test_ticker_ticks_periodically(simulator):
    """Test the ticker publishes snapshots while running."""
    received: list[DashboardSnapshot] = []
    two_ticks = asyncio.Event()

    def on_tick(snapshot: DashboardSnapshot) -> None:
        received.append(snapshot)
        if len(received) >= 2:
            two_ticks.set()

    ticker = SimulationTicker(simulator, on_tick=on_tick, interval=0.1)

    ticker.start()
    try:
        await asyncio.wait_for(two_ticks.wait(), timeout=5.0)
    finally:
        ticker.stop()

    assert len(received) >= 2
    assert ticker.tick_count == len(received)


@pytest.mark.asyncio
async def test_no_ticks_after_stop(simulator):
    """A stopped ticker never mutates the population again."""
    ticker = SimulationTicker(simulator, interval=0.1)

    ticker.start()
    await asyncio.sleep(0.25)
    ticker.stop()
    count = ticker.tick_count
    population = [(p.cpu_percent, p.memory_mb) for p in simulator.population]

    await asyncio.sleep(0.3)

    assert ticker.tick_count == count
    assert [(p.cpu_percent, p.memory_mb) for p in simulator.population] == population


@pytest.mark.asyncio
async def test_ticker_survives_failing_callback(simulator):
    """Test the loop keeps running when a consumer raises."""
    calls = 0
    two_ticks = asyncio.Event()

    def on_tick(snapshot: DashboardSnapshot) -> None:
        nonlocal calls
        calls += 1
        if calls >= 2:
            two_ticks.set()
        raise RuntimeError("render failed")

    ticker = SimulationTicker(simulator, on_tick=on_tick, interval=0.1)

    ticker.start()
    try:
        await asyncio.wait_for(two_ticks.wait(), timeout=5.0)
        assert ticker.is_running
    finally:
        ticker.stop()

    assert calls >= 2
