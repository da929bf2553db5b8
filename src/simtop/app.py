"""simtop - Main Textual application."""

from datetime import datetime

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, DataTable, Footer, Input, Label, Static

from simtop.config import AlertsConfig, Config
from simtop.models import (
    AlertEvent,
    DashboardSnapshot,
    ProcessRecord,
    ProcessState,
    SortKey,
    SystemStats,
)
from simtop.monitor import SimulationTicker
from simtop.simulator import ProcessSimulator

STATE_STYLES = {
    ProcessState.RUNNING: "bold green",
    ProcessState.SLEEPING: "blue",
    ProcessState.WAITING: "yellow",
    ProcessState.ZOMBIE: "bold red",
}


def format_memory(memory_mb: float) -> str:
    """Format megabytes as gigabytes with one decimal."""
    return f"{memory_mb / 1024:.1f} GB"


def format_start_time(started_at: datetime) -> str:
    """Format a process start time as wall-clock time."""
    return started_at.strftime("%H:%M:%S")


def _bar(percent: float, color: str) -> str:
    bar_len = min(max(int(percent / 5), 0), 20)  # Cap at 20 chars
    return f"[{color}]█[/{color}]" * bar_len + "[dim]░[/dim]" * (20 - bar_len)


class HeaderStats(Static):
    """Header widget showing CPU, memory and process counts."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 4;
        padding: 0 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__(*args, **kwargs)
        self._stats: SystemStats | None = None

    @property
    def stats(self) -> SystemStats | None:
        """Get the statistics currently displayed."""
        return self._stats

    def compose(self) -> ComposeResult:
        """Compose the header stats layout."""
        yield Horizontal(
            Static(self._get_cpu_info(), id="cpu-info"),
            Static(self._get_mem_info(), id="mem-info"),
        )

    def update_stats(self, stats: SystemStats) -> None:
        """Update the statistics display."""
        self._stats = stats
        self.query_one("#cpu-info", Static).update(self._get_cpu_info())
        self.query_one("#mem-info", Static).update(self._get_mem_info())

    def _get_cpu_info(self) -> str:
        """Get CPU and process count display."""
        if self._stats is None:
            return "Loading CPU info..."
        cpu = self._stats.cpu_usage_percent
        color = "red" if cpu > 80 else "green"
        return (
            f"CPU \\[{_bar(cpu, color)}] {cpu:5.1f}%\n"
            f"Active: {self._stats.active_process_count}  "
            f"Total: {self._stats.total_process_count}"
        )

    def _get_mem_info(self) -> str:
        """Get memory display."""
        if self._stats is None:
            return "Loading memory info..."
        percent = self._stats.memory_usage_percent
        color = "red" if percent > 80 else "cyan"
        return (
            f"Mem \\[{_bar(percent, color)}] {percent:5.1f}%\n"
            f"{format_memory(self._stats.memory_usage_mb)} "
            f"of {format_memory(self._stats.total_memory_mb)}"
        )


class AlertsPanel(Static):
    """Shows the alert count and the first few alerts."""

    DEFAULT_CSS = """
    AlertsPanel {
        height: auto;
        padding: 0 1;
        color: $error;
    }
    """

    def __init__(self, *args, max_displayed: int = 3, **kwargs) -> None:
        """Initialize AlertsPanel."""
        super().__init__(*args, **kwargs)
        self._max_displayed = max_displayed
        self._alerts: list[AlertEvent] = []

    @property
    def alerts(self) -> list[AlertEvent]:
        """Get all alerts last passed to the panel."""
        return self._alerts

    @property
    def displayed(self) -> list[AlertEvent]:
        """Get the alerts actually rendered."""
        return self._alerts[: self._max_displayed]

    def update_alerts(self, alerts: list[AlertEvent]) -> None:
        """Replace the alerts shown."""
        self._alerts = alerts
        if not alerts:
            self.update("[dim]No active alerts[/dim]")
            return
        lines = [f"[b]Active Alerts ({len(alerts)})[/b]"]
        lines.extend(f"  ⚠ {alert.message}" for alert in self.displayed)
        self.update("\n".join(lines))


class ProcessTable(Container):
    """Container for the process data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, thresholds: AlertsConfig | None = None, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._thresholds = thresholds or AlertsConfig()
        self._row_pids: list[int] = []

    @property
    def row_pids(self) -> list[int]:
        """PIDs in display order."""
        return list(self._row_pids)

    @property
    def highlighted_pid(self) -> int | None:
        """PID of the row under the cursor, if any."""
        table = self.query_one("#process-table", DataTable)
        row = table.cursor_row
        if 0 <= row < len(self._row_pids):
            return self._row_pids[row]
        return None

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        self._ensure_columns(self.query_one("#process-table", DataTable))

    def _ensure_columns(self, table: DataTable) -> None:
        if table.columns:
            return
        table.cursor_type = "row"
        table.add_column("PID", key="pid", width=6)
        table.add_column("Process Name", key="name", width=16)
        table.add_column("State", key="state", width=9)
        table.add_column("CPU %", key="cpu", width=7)
        table.add_column("Memory (MB)", key="memory", width=11)
        table.add_column("User", key="user", width=6)
        table.add_column("Start Time", key="started", width=10)

    def update_processes(self, processes: list[ProcessRecord]) -> None:
        """
        Replace the table contents with processes, in the given order.

        The cursor stays on the same pid when that process is still listed.
        """
        table = self.query_one("#process-table", DataTable)
        self._ensure_columns(table)
        keep_pid = self.highlighted_pid

        table.clear()
        for proc in processes:
            table.add_row(*self._cells(proc), key=str(proc.pid))
        self._row_pids = [proc.pid for proc in processes]

        if keep_pid in self._row_pids:
            table.move_cursor(row=self._row_pids.index(keep_pid))

    def _cells(self, proc: ProcessRecord) -> tuple:
        hot_cpu = proc.cpu_percent > self._thresholds.cpu_percent
        hot_mem = proc.memory_mb > self._thresholds.memory_mb
        return (
            str(proc.pid),
            proc.name,
            Text(proc.state.value, style=STATE_STYLES[proc.state]),
            Text(f"{proc.cpu_percent:.1f}%", style="bold red" if hot_cpu else ""),
            Text(f"{proc.memory_mb:.0f}", style="bold red" if hot_mem else ""),
            proc.owner,
            format_start_time(proc.started_at),
        )


class ProcessDetails(Static):
    """Details of the selected process."""

    DEFAULT_CSS = """
    ProcessDetails {
        height: auto;
        padding: 0 1;
        border-top: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ProcessDetails."""
        super().__init__(*args, **kwargs)
        self._process: ProcessRecord | None = None

    @property
    def process(self) -> ProcessRecord | None:
        """Get the process shown, if any."""
        return self._process

    def show_process(self, proc: ProcessRecord | None) -> None:
        """Show proc, or a hint when nothing is selected."""
        self._process = proc
        if proc is None:
            self.update("[dim]Press Enter on a process to see details[/dim]")
            return
        self.update(
            f"[b]{proc.name}[/b] (PID {proc.pid})  "
            f"State: {proc.state.value}  User: {proc.owner}  "
            f"CPU: {proc.cpu_percent:.1f}%  Memory: {proc.memory_mb:.1f} MB  "
            f"Started: {format_start_time(proc.started_at)}"
        )


class ConfirmKillScreen(ModalScreen[bool]):
    """Asks the user to confirm killing a process."""

    DEFAULT_CSS = """
    ConfirmKillScreen {
        align: center middle;
    }

    #dialog {
        width: 50;
        height: auto;
        padding: 1 2;
        border: thick $error;
        background: $surface;
    }

    #dialog Horizontal {
        height: auto;
        margin-top: 1;
    }
    """

    BINDINGS = [
        ("y", "confirm", "Kill"),
        ("n", "cancel", "Cancel"),
        ("escape", "cancel", "Cancel"),
    ]

    def __init__(self, proc: ProcessRecord) -> None:
        """Initialize ConfirmKillScreen."""
        super().__init__()
        self._proc = proc

    def compose(self) -> ComposeResult:
        """Compose the dialog."""
        yield Vertical(
            Label(f"Kill process {self._proc.name} (PID: {self._proc.pid})?"),
            Horizontal(
                Button("Kill", variant="error", id="confirm"),
                Button("Cancel", id="cancel"),
            ),
            id="dialog",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Dismiss with the user's choice."""
        self.dismiss(event.button.id == "confirm")

    def action_confirm(self) -> None:
        """Confirm the kill."""
        self.dismiss(True)

    def action_cancel(self) -> None:
        """Abort the kill."""
        self.dismiss(False)


class SimtopApp(App):
    """Main simtop application."""

    TITLE = "simtop"
    SUB_TITLE = "Simulated Process Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        height: auto;
        min-height: 3;
    }

    Horizontal {
        height: auto;
    }

    #cpu-info {
        width: 1fr;
        padding-right: 2;
    }

    #mem-info {
        width: 1fr;
        padding-left: 2;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("f3", "search", "Search"),
        Binding("slash", "search", "Search", show=False),
        Binding("escape", "focus_table", "Table", show=False),
        ("f5", "tick", "Step"),
        ("f6", "sort", "Sort"),
        ("f9", "kill", "Kill"),
    ]

    def __init__(
        self,
        config: Config | None = None,
        simulator: ProcessSimulator | None = None,
    ) -> None:
        """Initialize the SimtopApp."""
        super().__init__()
        self._config = config or (simulator.config if simulator else Config())
        self._simulator = simulator or ProcessSimulator(self._config)
        self._ticker = SimulationTicker(
            self._simulator,
            on_tick=self._update_ui,
            interval=self._config.simulation.tick_interval,
        )
        self._selected_pid: int | None = None

    @property
    def simulator(self) -> ProcessSimulator:
        """Get the simulator driving the dashboard."""
        return self._simulator

    @property
    def selected_pid(self) -> int | None:
        """Get the pid shown in the details panel."""
        return self._selected_pid

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats")
        yield AlertsPanel(id="alerts", max_displayed=self._config.alerts.max_displayed)
        yield Input(placeholder="Search processes...", id="search")
        yield ProcessTable(thresholds=self._config.alerts)
        yield ProcessDetails(id="details")
        yield Footer()

    def on_mount(self) -> None:
        """Render the initial population and start ticking."""
        self._update_ui(self._simulator.snapshot())
        self._ticker.start()
        self.query_one("#process-table", DataTable).focus()

    def on_unmount(self) -> None:
        """Stop ticking once the app is torn down."""
        self._ticker.stop()

    def _refresh_view(self) -> None:
        """Re-render from the simulator's current state."""
        self._update_ui(self._simulator.snapshot())

    def _update_ui(self, snapshot: DashboardSnapshot) -> None:
        """Update the UI with a new dashboard snapshot."""
        self.query_one("#header-stats", HeaderStats).update_stats(snapshot.stats)
        self.query_one("#alerts", AlertsPanel).update_alerts(snapshot.alerts)
        self.query_one(ProcessTable).update_processes(snapshot.processes)

        # The selected process may have been killed
        selected = None
        if self._selected_pid is not None:
            selected = self._simulator.get(self._selected_pid)
            if selected is None:
                self._selected_pid = None
        self.query_one("#details", ProcessDetails).show_process(selected)

    def on_input_changed(self, event: Input.Changed) -> None:
        """Forward search text to the simulator."""
        if event.input.id != "search":
            return
        self._simulator.set_filter(event.value)
        self._refresh_view()

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        """Show details for the chosen row."""
        self._selected_pid = int(event.row_key.value)
        self.query_one("#details", ProcessDetails).show_process(
            self._simulator.get(self._selected_pid)
        )

    def action_sort(self) -> None:
        """Cycle through sort keys."""
        keys = list(SortKey)
        current_index = keys.index(self._simulator.sort_key)
        new_sort_key = self._simulator.set_sort_key(keys[(current_index + 1) % len(keys)])
        self._refresh_view()
        self.notify(f"Sort: {new_sort_key.value.upper()}")

    def action_search(self) -> None:
        """Focus the search box."""
        self.query_one("#search", Input).focus()

    def action_focus_table(self) -> None:
        """Return focus to the process table."""
        self.query_one("#process-table", DataTable).focus()

    def action_tick(self) -> None:
        """Advance the simulation by one tick immediately."""
        self._ticker.step()

    def action_kill(self) -> None:
        """Ask for confirmation, then kill the highlighted process."""
        pid = self.query_one(ProcessTable).highlighted_pid
        proc = self._simulator.get(pid) if pid is not None else None
        if proc is None:
            self.notify("No process selected", severity="warning")
            return

        def on_confirm(confirmed: bool | None) -> None:
            if confirmed:
                self.kill_process(proc.pid)

        self.push_screen(ConfirmKillScreen(proc), on_confirm)

    def kill_process(self, pid: int) -> None:
        """Kill pid and drop it from the selection."""
        removed = self._simulator.kill(pid)
        if self._selected_pid == pid:
            self._selected_pid = None
        self._refresh_view()
        if removed is not None:
            self.notify(f"Killed {removed.name} (PID {removed.pid})")

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._ticker.stop()
        self.exit()

    @property
    def tick_count(self) -> int:
        """Ticks performed since launch."""
        return self._ticker.tick_count
