"""Console and file logging for simtop.

Console output (CLI only) uses Rich markup. While the dashboard is running
Textual owns the terminal, so structured events go to a JSON Lines file via
structlog instead.
"""

from __future__ import annotations

import logging
import logging.handlers
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from rich.console import Console

if TYPE_CHECKING:
    from simtop.config import Config

_console = Console(highlight=False)


class Icon:
    """Icon vocabulary for console output."""

    OK = "[bold green]✓[/]"
    FAIL = "[bold red]✗[/]"
    START = "[cyan]▶[/]"
    SAVE = "💾"


_LEVEL_STYLES = {
    "info": "[bright_blue]\\[info][/]",
    "warn": "[yellow]\\[warn][/]",
    "error": "[bold red]\\[err][/] ",
}


def log(level: str, msg: str, icon: str = "") -> None:
    """Print a log message with timestamp and level.

    Args:
        level: Log level (info, warn, error)
        msg: Message to print (can include Rich markup)
        icon: Optional icon to show after level (e.g., Icon.OK)
    """
    ts = datetime.now().strftime("%H:%M:%S")
    lvl = _LEVEL_STYLES.get(level, f"[{level}]")
    icon_part = f" {icon}" if icon else ""
    _console.print(f"[dim]{ts}[/] {lvl}{icon_part} {msg}")


def info(msg: str, icon: str = "") -> None:
    """Log an info message."""
    log("info", msg, icon)


def warn(msg: str, icon: str = "") -> None:
    """Log a warning message."""
    log("warn", msg, icon)


def error(msg: str, icon: str = "") -> None:
    """Log an error message."""
    log("error", msg, icon)


def dashboard_starting(process_count: int, interval: float, seed: int) -> None:
    """Log dashboard launch."""
    seed_part = f", seed [cyan]{seed}[/]" if seed else ""
    info(
        f"Simulating [cyan]{process_count}[/] processes every [cyan]{interval}s[/]{seed_part}",
        Icon.START,
    )


def dashboard_stopped(ticks: int) -> None:
    """Log dashboard shutdown."""
    info(f"Dashboard stopped [dim]({ticks} ticks)[/]", Icon.OK)


def config_created(path: str) -> None:
    """Log config file created."""
    info(f"Created config at [cyan]{path}[/]", Icon.SAVE)


def config_exists(path: str) -> None:
    """Log config file left untouched."""
    warn(f"Config already exists at [cyan]{path}[/] [dim](use --force to overwrite)[/]")


def config_invalid(error_msg: str) -> None:
    """Log config file rejected."""
    error(f"Invalid config: {error_msg}", Icon.FAIL)


def configure(config: Config, log_path: Path | None = None) -> None:
    """Configure structlog to write JSON Lines to a rotating log file.

    Args:
        config: Application config (log level and rotation settings)
        log_path: Override for config.log_path
    """
    log_path = log_path or config.log_path
    log_path.parent.mkdir(parents=True, exist_ok=True)
    level = logging.getLevelName(config.logging.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    file_handler = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=config.logging.log_max_bytes,
        backupCount=config.logging.log_backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
                structlog.processors.add_log_level,
                structlog.processors.format_exc_info,
            ],
        )
    )

    stdlib_root = logging.getLogger()
    stdlib_root.setLevel(level)
    for handler in stdlib_root.handlers[:]:
        stdlib_root.removeHandler(handler)
        handler.close()
    stdlib_root.addHandler(file_handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso", utc=False, key="ts"),
            structlog.processors.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
