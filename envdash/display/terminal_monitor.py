"""
Terminal Monitor for the telemetry overview
Live terminal interface using the Rich library. Reads filter edits
from stdin while redrawing the synchronized view.
"""

import asyncio
import logging
import sys
from datetime import datetime
from typing import Optional

from rich.align import Align
from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from envdash.sync.controller import ViewState
from envdash.sync.view import OverviewView
from .commands import HELP_TEXT, apply_command

logger = logging.getLogger(__name__)

MAX_ROWS = 15


class TerminalMonitor:
    """Terminal display of one overview using Rich"""

    def __init__(self, view: OverviewView, console: Optional[Console] = None):
        self.view = view
        self.console = console or Console()
        self.message = HELP_TEXT

        self._commands: "asyncio.Queue[str]" = asyncio.Queue()
        self._running = False

    def render(self) -> Layout:
        """Build the full display for the current state"""
        state = self.view.state

        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="stats", size=5),
            Layout(name="readings"),
            Layout(name="footer", size=3),
        )

        layout["header"].update(self._create_header(state))
        layout["stats"].update(self._create_stats_panel(state))
        layout["readings"].update(self._create_readings_panel(state))
        layout["footer"].update(Panel(Text(self.message, style="white"), style="cyan"))

        return layout

    def _create_header(self, state: ViewState) -> Panel:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        header_text = Text()
        header_text.append("SENSOR DATA OVERVIEW", style="bold cyan")
        header_text.append(f" - {timestamp}", style="white")
        if state.is_live:
            header_text.append(" - LIVE", style="bold green")
        else:
            header_text.append(f" - {state.filter.date.isoformat()}", style="bold yellow")

        return Panel(Align.center(header_text), style="cyan")

    def _create_stats_panel(self, state: ViewState) -> Panel:
        """Stat cards: device plus the latest polled values"""
        values = self.view.summary.display_values()

        table = Table(show_header=True, header_style="bold cyan", box=None, expand=True)
        table.add_column("Device")
        table.add_column("Temperature")
        table.add_column("Humidity")
        table.add_column("CO2 Level")
        table.add_row(
            Text(state.filter.node_id, style="#10B981"),
            Text(values["temperature"], style="#6366F1"),
            Text(values["humidity"], style="#8B5CF6"),
            Text(values["co2"], style="#EC4899"),
        )

        return Panel(table, title="LATEST", style="cyan")

    def _create_readings_panel(self, state: ViewState) -> Panel:
        if state.status_text:
            return Panel(
                Align.center(Text(state.status_text, style="grey70")),
                title="READINGS",
                style="cyan",
            )

        table = Table(show_header=True, header_style="bold cyan", box=None, expand=True)
        table.add_column("Time")
        table.add_column("Temperature", justify="right")
        table.add_column("Humidity", justify="right")
        table.add_column("CO2", justify="right")

        rows = state.readings[-MAX_ROWS:]
        for reading in rows:
            table.add_row(
                reading.timestamp.strftime("%H:%M:%S"),
                f"{reading.temperature:.1f}",
                f"{reading.humidity:.1f}",
                f"{reading.co2:.0f}",
            )

        title = f"READINGS ({len(rows)} of {len(state.readings)})"
        return Panel(table, title=title, style="cyan")

    def handle_line(self, line: str) -> bool:
        """Apply one typed command. Returns False when the user quits."""
        result = apply_command(self.view.controller, line)
        if result.message:
            self.message = result.message
        return result.keep_running

    def _on_stdin(self):
        line = sys.stdin.readline()
        # Empty string means EOF
        self._commands.put_nowait(line if line else "quit")

    async def run(self, refresh_interval: float = 0.5):
        """Show the view until the user quits"""
        loop = asyncio.get_running_loop()
        loop.add_reader(sys.stdin.fileno(), self._on_stdin)
        self._running = True

        try:
            with Live(self.render(), console=self.console, refresh_per_second=4) as live:
                while self._running:
                    try:
                        line = await asyncio.wait_for(self._commands.get(), refresh_interval)
                        self._running = self.handle_line(line)
                    except asyncio.TimeoutError:
                        pass
                    live.update(self.render())
        finally:
            loop.remove_reader(sys.stdin.fileno())
