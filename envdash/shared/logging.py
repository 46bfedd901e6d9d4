"""Logging configuration utilities."""

import logging
from typing import List, Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Transport libraries log every packet at INFO
NOISY_LOGGERS = ["socketio", "engineio", "aiohttp", "asyncio"]


def setup_logging(
    level: str = "INFO",
    format_string: Optional[str] = None,
    quiet_loggers: Optional[List[str]] = None,
    filename: Optional[str] = None,
) -> None:
    """Configure logging for envdash.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        format_string: Custom format string for log messages.
        quiet_loggers: Extra logger names to set to WARNING level.
        filename: Write log records to this file instead of stderr. The
            terminal monitor uses this so log lines don't tear the display.
    """
    if format_string is None:
        format_string = DEFAULT_FORMAT

    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=format_string,
        filename=filename,
    )

    quiet_loggers = (quiet_loggers or []) + NOISY_LOGGERS

    for logger_name in quiet_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
