"""Shared utilities for envdash."""

from .models import Filter, LatestSummary, Reading, parse_date, parse_readings
from .config import load_yaml_config, get_config_path
from .logging import setup_logging

__all__ = [
    "Filter",
    "LatestSummary",
    "Reading",
    "parse_date",
    "parse_readings",
    "load_yaml_config",
    "get_config_path",
    "setup_logging",
]
