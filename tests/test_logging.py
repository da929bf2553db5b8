"""Tests for logging setup and console helpers."""

import json
import logging
import logging.handlers
from pathlib import Path

import structlog

from simtop import logging as sim_log
from simtop.config import Config


def test_configure_writes_json_lines(tmp_path: Path):
    """Structlog events land in the log file as JSON."""
    log_path = tmp_path / "logs" / "simtop.log"
    sim_log.configure(Config(), log_path)

    structlog.get_logger().info("process_killed", pid=1003, name="node.exe")
    for handler in logging.getLogger().handlers:
        handler.flush()

    record = json.loads(log_path.read_text().strip().splitlines()[-1])
    assert record["event"] == "process_killed"
    assert record["pid"] == 1003
    assert record["level"] == "info"
    assert "ts" in record


def test_configure_uses_rotating_handler(tmp_path: Path):
    config = Config()
    config.logging.log_max_bytes = 1234
    sim_log.configure(config, tmp_path / "simtop.log")

    handlers = [
        h
        for h in logging.getLogger().handlers
        if isinstance(h, logging.handlers.RotatingFileHandler)
    ]
    assert len(handlers) == 1
    assert handlers[0].maxBytes == 1234


def test_configure_twice_closes_old_handler(tmp_path: Path):
    sim_log.configure(Config(), tmp_path / "first.log")
    (first,) = [
        h
        for h in logging.getLogger().handlers
        if isinstance(h, logging.handlers.RotatingFileHandler)
    ]

    sim_log.configure(Config(), tmp_path / "second.log")

    assert first not in logging.getLogger().handlers
    assert first.stream is None


def test_configure_respects_level(tmp_path: Path):
    config = Config()
    config.logging.level = "warning"
    log_path = tmp_path / "simtop.log"
    sim_log.configure(config, log_path)

    structlog.get_logger().info("hidden")
    structlog.get_logger().warning("shown")
    for handler in logging.getLogger().handlers:
        handler.flush()

    text = log_path.read_text()
    assert "shown" in text
    assert "hidden" not in text


def test_console_helpers(capsys):
    sim_log.info("hello")
    sim_log.warn("careful")
    sim_log.error("broken", sim_log.Icon.FAIL)

    out = capsys.readouterr().out
    assert "hello" in out
    assert "careful" in out
    assert "broken" in out


def test_dashboard_starting(capsys):
    sim_log.dashboard_starting(15, 2.0, 42)
    out = capsys.readouterr().out
    assert "15" in out
    assert "seed" in out
