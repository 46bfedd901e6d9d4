"""Terminal display service."""

import argparse
import asyncio
import sys

from .terminal_monitor import TerminalMonitor


async def _run(config, node=None, date=None):
    from envdash.sync.view import OverviewView

    view = OverviewView(config)
    if node:
        view.controller.set_node(node)
    if date:
        view.controller.set_date(date)

    async with view:
        await TerminalMonitor(view).run()


def main():
    """Entry point for the terminal monitor."""
    from envdash.shared.logging import setup_logging
    from envdash.sync.config import load_config

    parser = argparse.ArgumentParser(description="Live sensor telemetry overview")
    parser.add_argument("-c", "--config", help="Path to YAML config file")
    parser.add_argument("--node", help="Node to show initially")
    parser.add_argument("--date", help="Show a historical day (YYYY-MM-DD) instead of live data")
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.log_level, filename=config.log_file or "envdash.log")

    try:
        asyncio.run(_run(config, node=args.node, date=args.date))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        pass


__all__ = ["TerminalMonitor", "main"]
