"""Configuration for the telemetry view."""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from envdash.shared.config import load_yaml_config

DEFAULT_SERVER_URL = "https://dashboard-backend-mhif.onrender.com/"
DEFAULT_NODES = ["ESP32-1", "ESP32-2"]


@dataclass
class DashboardConfig:
    """Configuration for one telemetry view."""

    # Remote telemetry service
    server_url: str = DEFAULT_SERVER_URL
    api_url: Optional[str] = None  # defaults to server_url
    socketio_path: str = "socket.io"
    connect_timeout: float = 10.0  # seconds
    request_timeout: float = 10.0  # seconds

    # Known sensor nodes, not discovered dynamically
    nodes: List[str] = field(default_factory=lambda: list(DEFAULT_NODES))
    default_node: str = DEFAULT_NODES[0]

    # Summary poller
    poll_interval_ms: int = 5000

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @property
    def base_api_url(self) -> str:
        return (self.api_url or self.server_url).rstrip("/")

    @property
    def poll_interval(self) -> float:
        """Poll interval in seconds."""
        return self.poll_interval_ms / 1000.0

    def validate(self) -> None:
        """Check the configuration is usable.

        Raises:
            ValueError: If a setting is out of range or inconsistent.
        """
        if not self.nodes:
            raise ValueError("At least one node must be configured")
        if len(set(self.nodes)) != len(self.nodes):
            raise ValueError(f"Duplicate node ids in {self.nodes}")
        if self.default_node not in self.nodes:
            raise ValueError(
                f"default_node '{self.default_node}' is not one of {self.nodes}"
            )
        if self.poll_interval_ms <= 0:
            raise ValueError(f"poll_interval_ms must be positive, got {self.poll_interval_ms}")
        if self.connect_timeout <= 0 or self.request_timeout <= 0:
            raise ValueError("Timeouts must be positive")

    @classmethod
    def from_dict(cls, data: dict) -> "DashboardConfig":
        """Create config from dictionary."""
        nodes = data.get("nodes")
        if nodes is None:
            nodes = DEFAULT_NODES
        elif isinstance(nodes, str):
            nodes = [n.strip() for n in nodes.split(",") if n.strip()]
        elif not isinstance(nodes, (list, tuple)):
            raise ValueError(f"nodes must be a list or comma-separated string, got {nodes!r}")

        return cls(
            server_url=data.get("server_url", DEFAULT_SERVER_URL),
            api_url=data.get("api_url"),
            socketio_path=data.get("socketio_path", "socket.io"),
            connect_timeout=float(data.get("connect_timeout", 10.0)),
            request_timeout=float(data.get("request_timeout", 10.0)),
            nodes=list(nodes),
            default_node=data.get("default_node", nodes[0] if nodes else ""),
            poll_interval_ms=int(data.get("poll_interval_ms", 5000)),
            log_level=data.get("log_level", "INFO"),
            log_file=data.get("log_file"),
        )


def load_config(config_path: Optional[str] = None) -> DashboardConfig:
    """Load configuration from YAML file and environment.

    Args:
        config_path: Path to YAML config file. If not provided,
                    looks for the ENVDASH_CONFIG env var, then
                    falls back to the defaults.

    Returns:
        Validated DashboardConfig instance.
    """
    config = DashboardConfig.from_dict(load_yaml_config(config_path))

    # Environment variable overrides
    if server_url := os.environ.get("ENVDASH_SERVER_URL"):
        config.server_url = server_url
    if api_url := os.environ.get("ENVDASH_API_URL"):
        config.api_url = api_url
    if default_node := os.environ.get("ENVDASH_DEFAULT_NODE"):
        config.default_node = default_node
    if log_level := os.environ.get("LOG_LEVEL"):
        config.log_level = log_level

    config.validate()
    return config
