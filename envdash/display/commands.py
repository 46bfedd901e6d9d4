"""Filter edit commands typed into the terminal monitor."""

import logging
from dataclasses import dataclass

from envdash.sync.controller import ViewStateController

logger = logging.getLogger(__name__)

HELP_TEXT = "node <id> | date <YYYY-MM-DD> | live | reset | quit"


@dataclass
class CommandResult:
    """Outcome of one command line."""
    keep_running: bool = True
    message: str = ""


def apply_command(controller: ViewStateController, line: str) -> CommandResult:
    """Apply one command line to the view's filter.

    Invalid input never raises; the problem is reported in the message.
    """
    parts = line.strip().split()
    if not parts:
        return CommandResult()

    command, args = parts[0].lower(), parts[1:]

    try:
        if command in ("quit", "exit", "q"):
            return CommandResult(keep_running=False, message="Bye")
        if command == "help":
            return CommandResult(message=HELP_TEXT)
        if command == "node":
            if len(args) != 1:
                return CommandResult(message=f"Usage: node <id> ({', '.join(controller.nodes)})")
            controller.set_node(args[0])
            return CommandResult(message=f"Node set to {args[0]}")
        if command == "date":
            if len(args) > 1:
                return CommandResult(message="Usage: date <YYYY-MM-DD>")
            controller.set_date(args[0] if args else None)
            return CommandResult(message=f"Showing {controller.filter}")
        if command == "live":
            controller.set_date(None)
            return CommandResult(message="Live mode")
        if command == "reset":
            controller.reset()
            return CommandResult(message="Filters reset")
    except ValueError as e:
        logger.warning(f"Rejected command '{line.strip()}': {e}")
        return CommandResult(message=str(e))

    return CommandResult(message=f"Unknown command '{command}'. {HELP_TEXT}")
