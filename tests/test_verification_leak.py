"""Verification Test: Memory Leak Check.

Derived state is rebuilt on every tick, so old SystemStats and AlertEvent
lists must be released rather than accumulating. Run many ticks and check
that the resident set size stays flat.
"""

import gc
import os
import random

import psutil

from simtop.monitor import SimulationTicker
from simtop.simulator import ProcessSimulator


def get_current_memory_mb() -> float:
    """Get current process memory usage in MB."""
    process = psutil.Process()
    return process.memory_info().rss / (1024 * 1024)


class TestMemoryLeakCheck:
    """Memory leak verification suite tests."""

    def test_ticks_do_not_leak(self):
        """
        Test that repeated ticks don't grow memory.

        The thresholds are relaxed for the test environment; unbounded growth
        from retained snapshots would still exceed them by a wide margin.
        """
        is_ci = os.environ.get("CI", "false").lower() == "true"
        ticks = 5000 if is_ci else 20000
        max_delta_mb = 8.0 if is_ci else 5.0

        simulator = ProcessSimulator(rng=random.Random(5))
        ticker = SimulationTicker(simulator)

        # Warm up allocator pools before measuring
        for _ in range(500):
            ticker.step()
        gc.collect()
        initial_memory = get_current_memory_mb()

        for _ in range(ticks):
            ticker.step()
            simulator.view()

        gc.collect()
        memory_delta = get_current_memory_mb() - initial_memory

        assert memory_delta < max_delta_mb, (
            f"Memory increased by {memory_delta:.2f}MB over {ticks} ticks, "
            f"expected < {max_delta_mb}MB"
        )

    def test_kill_releases_process(self):
        """A killed process is not referenced by the simulator anymore."""
        simulator = ProcessSimulator(rng=random.Random(6))
        victim = simulator.get(1000)

        simulator.kill(1000)
        simulator.tick()

        assert all(p is not victim for p in simulator.population)
        assert all(a.pid != 1000 for a in simulator.alerts)
        assert all(p is not victim for p in simulator.snapshot().processes)
