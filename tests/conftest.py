"""Shared fixtures for simtop tests."""

import logging
import logging.handlers
from datetime import datetime

import pytest
import structlog

from simtop.config import Config
from simtop.models import ProcessRecord, ProcessState

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0)


class SequenceRandom:
    """Random source that replays a fixed list of values, cycling."""

    def __init__(self, values: list[float]) -> None:
        self._values = values
        self._index = 0
        self.calls = 0

    def random(self) -> float:
        value = self._values[self._index % len(self._values)]
        self._index += 1
        self.calls += 1
        return value


@pytest.fixture
def sequence_random():
    """Build a SequenceRandom from a list of values."""
    return SequenceRandom


@pytest.fixture
def fixed_clock():
    """Clock that always returns FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def make_process():
    """Factory for ProcessRecord with sensible defaults."""

    def _make(
        pid: int,
        name: str = "proc",
        cpu: float = 0.0,
        memory: float = 0.0,
        state: ProcessState = ProcessState.RUNNING,
        owner: str = "user",
    ) -> ProcessRecord:
        return ProcessRecord(
            pid=pid,
            name=name,
            cpu_percent=cpu,
            memory_mb=memory,
            state=state,
            owner=owner,
            started_at=FIXED_NOW,
        )

    return _make


@pytest.fixture
def quiet_config() -> Config:
    """Seeded config whose ticker will not fire during a short test."""
    config = Config()
    config.simulation.seed = 7
    config.simulation.tick_interval = 60.0
    return config


@pytest.fixture(autouse=True)
def reset_logging():
    """Keep structlog quiet and cheap, then undo any setup done by a test."""
    structlog.configure(
        processors=[structlog.processors.KeyValueRenderer()],
        logger_factory=structlog.ReturnLoggerFactory(),
    )
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in root.handlers[:]:
        if isinstance(handler, logging.handlers.RotatingFileHandler):
            root.removeHandler(handler)
            handler.close()
