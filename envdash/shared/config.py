"""Configuration loading utilities."""

import os
from pathlib import Path
from typing import Optional, Union

import yaml
from dotenv import load_dotenv

CONFIG_ENV_VAR = "ENVDASH_CONFIG"


def get_config_path(config_path: Optional[Union[str, Path]] = None) -> Optional[Path]:
    """Resolve the configuration file to load.

    Args:
        config_path: Explicit path. If None, falls back to the
            ENVDASH_CONFIG environment variable.

    Returns:
        Path to the configuration file, or None when neither is set.
    """
    if config_path is None:
        config_path = os.getenv(CONFIG_ENV_VAR)
    if not config_path:
        return None
    return Path(config_path)


def load_yaml_config(
    config_path: Optional[Union[str, Path]] = None,
    load_env: bool = True,
) -> dict:
    """Load a YAML configuration file.

    Args:
        config_path: Path to config file. If None, uses get_config_path().
        load_env: Whether to load a .env file first.

    Returns:
        Configuration dictionary, empty when no file is configured.

    Raises:
        FileNotFoundError: If an explicitly configured file doesn't exist.
        yaml.YAMLError: If config file is invalid YAML.
    """
    if load_env:
        load_dotenv()

    path = get_config_path(config_path)
    if path is None:
        return {}

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data
