"""CLI commands for simtop."""

from pathlib import Path

import click

from simtop.config import Config
from simtop.models import SortKey


def _load_config(config_path: Path | None) -> Config:
    """Load config, exiting with an error message if it is malformed."""
    from simtop import logging as sim_log

    try:
        return Config.load(config_path)
    except ValueError as e:
        sim_log.config_invalid(str(e))
        raise SystemExit(1) from e


@click.group()
@click.version_option(package_name="simtop")
def main() -> None:
    """Simulated process monitor."""
    pass


@main.command()
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Config file")
@click.option("--seed", type=int, help="Seed for a reproducible simulation")
@click.option("--interval", type=float, help="Seconds between ticks")
def tui(config_path: Path | None, seed: int | None, interval: float | None) -> None:
    """Launch interactive dashboard."""
    from simtop import logging as sim_log
    from simtop.app import SimtopApp

    config = _load_config(config_path)
    if seed is not None:
        config.simulation.seed = seed
    if interval is not None:
        config.simulation.tick_interval = interval

    sim_log.configure(config)
    sim_log.dashboard_starting(
        len(config.simulation.catalog), config.simulation.tick_interval, config.simulation.seed
    )
    app = SimtopApp(config)
    app.run()
    sim_log.dashboard_stopped(app.tick_count)


@main.command()
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Config file")
@click.option("--ticks", "-n", default=0, type=click.IntRange(min=0), help="Ticks to simulate")
@click.option("--seed", type=int, help="Seed for a reproducible simulation")
@click.option(
    "--sort",
    "sort_key",
    default=SortKey.CPU.value,
    type=click.Choice([key.value for key in SortKey]),
    help="Sort order",
)
@click.option("--filter", "filter_text", default="", help="Filter by name or PID")
def snapshot(
    config_path: Path | None,
    ticks: int,
    seed: int | None,
    sort_key: str,
    filter_text: str,
) -> None:
    """Print one frame of the simulation without the dashboard."""
    from simtop import logging as sim_log
    from simtop.simulator import ProcessSimulator

    config = _load_config(config_path)
    if seed is not None:
        config.simulation.seed = seed
    sim_log.configure(config)

    simulator = ProcessSimulator(config)
    for _ in range(ticks):
        simulator.tick()
    simulator.set_filter(filter_text)
    simulator.set_sort_key(sort_key)
    frame = simulator.snapshot()

    stats = frame.stats
    click.echo(
        f"CPU: {stats.cpu_usage_percent:.1f}%  "
        f"Memory: {stats.memory_usage_mb / 1024:.1f} GB of {stats.total_memory_mb / 1024:.1f} GB "
        f"({stats.memory_usage_percent:.1f}%)  "
        f"Active: {stats.active_process_count}  Total: {stats.total_process_count}"
    )

    if frame.alerts:
        click.echo(f"\nActive alerts ({len(frame.alerts)}):")
        for alert in frame.alerts:
            click.echo(f"  - {alert.message}")

    click.echo(f"\n{'PID':>6}  {'NAME':<14} {'STATE':<9} {'CPU%':>6} {'MEM MB':>8}  USER")
    for proc in frame.processes:
        click.echo(
            f"{proc.pid:>6}  {proc.name:<14} {proc.state.value:<9} "
            f"{proc.cpu_percent:>6.1f} {proc.memory_mb:>8.1f}  {proc.owner}"
        )


@main.group()
def config() -> None:
    """Manage the config file."""
    pass


@config.command("init")
@click.option("--path", type=click.Path(path_type=Path), help="Where to write the config")
@click.option("--force", is_flag=True, help="Overwrite an existing config")
def config_init(path: Path | None, force: bool) -> None:
    """Write a config file with default values."""
    from simtop import logging as sim_log

    defaults = Config()
    path = path or defaults.config_path
    if path.exists() and not force:
        sim_log.config_exists(str(path))
        return
    defaults.save(path)
    sim_log.config_created(str(path))


@config.command("show")
@click.option("--path", type=click.Path(path_type=Path), help="Config file to show")
def config_show(path: Path | None) -> None:
    """Print the effective configuration."""
    click.echo(_load_config(path).dumps())
