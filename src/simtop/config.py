"""Configuration system for simtop."""

from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import tomlkit

DEFAULT_CATALOG = [
    "chrome.exe",
    "firefox.exe",
    "code.exe",
    "node.exe",
    "python.exe",
    "docker.exe",
    "postgres.exe",
    "nginx.exe",
    "java.exe",
    "explorer.exe",
    "system",
    "svchost.exe",
    "Teams.exe",
    "Slack.exe",
    "Spotify.exe",
]


@dataclass
class SimulationConfig:
    """Simulator configuration."""

    tick_interval: float = 2.0  # Seconds between evolution ticks
    seed: int = 0  # 0 = unseeded
    pid_base: int = 1000
    total_memory_mb: float = 16384.0
    catalog: list[str] = field(default_factory=lambda: list(DEFAULT_CATALOG))
    # Evolution
    state_change_probability: float = 0.05
    cpu_jitter: float = 5.0  # Per-tick cpu delta is U(-jitter, jitter)
    memory_jitter: float = 50.0
    # Generation
    max_cpu_percent: float = 100.0
    max_memory_mb: float = 2048.0
    max_age_ms: int = 86_400_000  # Processes started within the last day


@dataclass
class AlertsConfig:
    """Alert thresholds. Both comparisons are strict."""

    cpu_percent: float = 80.0
    memory_mb: float = 1500.0
    max_displayed: int = 3  # Alerts shown by the dashboard


@dataclass
class LoggingConfig:
    """Log file configuration."""

    level: str = "INFO"
    log_max_bytes: int = 5 * 1024 * 1024
    log_backup_count: int = 3


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table recursively."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if is_dataclass(value) and not isinstance(value, type):
            table.add(f.name, _dataclass_to_table(value))
        else:
            table.add(f.name, value)
    return table


@dataclass
class Config:
    """Main configuration container."""

    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    alerts: AlertsConfig = field(default_factory=AlertsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "simtop"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def state_dir(self) -> Path:
        """State directory for logs."""
        return Path.home() / ".local" / "state" / "simtop"

    @property
    def log_path(self) -> Path:
        """Dashboard log path."""
        return self.state_dir / "simtop.log"

    def dumps(self) -> str:
        """Render the config as a TOML document."""
        doc = tomlkit.document()
        for name in ("simulation", "alerts", "logging"):
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())
        return tomlkit.dumps(doc)

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.dumps())

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        All defaults come from the dataclass definitions, so Config() and
        Config.load() of an empty file are identical.
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f).unwrap()
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        return cls(
            simulation=_load_section(SimulationConfig, data.get("simulation", {})),
            alerts=_load_section(AlertsConfig, data.get("alerts", {})),
            logging=_load_section(LoggingConfig, data.get("logging", {})),
        )


def _load_section(section_cls, data: dict):
    """Build a section dataclass from TOML data, using defaults for missing fields."""
    defaults = section_cls()
    kwargs = {}
    for f in fields(section_cls):
        value = data.get(f.name, getattr(defaults, f.name))
        default = getattr(defaults, f.name)
        if isinstance(default, float) and isinstance(value, int):
            value = float(value)
        elif isinstance(default, list):
            if not isinstance(value, list):
                kind = type(value).__name__
                raise ValueError(f"{section_cls.__name__}.{f.name} must be a list, got {kind}")
            value = [str(item) for item in value]
        kwargs[f.name] = value
    return section_cls(**kwargs)
