"""Push-channel transport to the remote telemetry service."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List

import socketio
from socketio import exceptions as sio_exceptions

from .config import DashboardConfig

logger = logging.getLogger(__name__)

# Socket.IO event names used by the telemetry backend
EVENT_SENSOR_UPDATE = "sensorDataUpdate"
EVENT_GET_BY_DATE = "getDataByDate"
EVENT_DATA_BY_DATE = "sensorDataByDate"

EventHandler = Callable[[Any], None]


class Transport(ABC):
    """One push-channel connection."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection. Raises on failure."""
        pass

    @abstractmethod
    def on(self, event: str, handler: EventHandler) -> None:
        """Register a handler for an incoming event."""
        pass

    @abstractmethod
    def off_all(self) -> None:
        """Unregister every handler."""
        pass

    @abstractmethod
    async def emit(self, event: str, data: Any) -> None:
        """Send an event to the server."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the connection. Safe to call when not connected."""
        pass


class SocketIOTransport(Transport):
    """Transport backed by a python-socketio AsyncClient."""

    def __init__(
        self,
        url: str,
        socketio_path: str = "socket.io",
        connect_timeout: float = 10.0,
    ):
        """Initialize the transport.

        Args:
            url: Base URL of the Socket.IO server.
            socketio_path: Socket.IO endpoint path on the server.
            connect_timeout: Seconds to wait for the namespace connection.
        """
        self.url = url
        self.socketio_path = socketio_path
        self.connect_timeout = connect_timeout

        self._client = socketio.AsyncClient(reconnection=True)
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._client.on("connect", self._on_connect)
        self._client.on("disconnect", self._on_disconnect)

    def _on_connect(self):
        logger.info(f"Connected to telemetry service at {self.url}")

    def _on_disconnect(self, *args):
        logger.info(f"Disconnected from telemetry service at {self.url}")

    def _make_dispatcher(self, event: str):
        """Create the single socketio handler that fans out to our handlers."""
        def dispatch(*args):
            data = args[0] if args else None
            for handler in list(self._handlers.get(event, [])):
                handler(data)

        return dispatch

    async def connect(self) -> None:
        logger.debug(f"Connecting to {self.url} (path={self.socketio_path})")
        await self._client.connect(
            self.url,
            socketio_path=self.socketio_path,
            wait_timeout=self.connect_timeout,
        )

    def on(self, event: str, handler: EventHandler) -> None:
        if event not in self._handlers:
            self._handlers[event] = []
            self._client.on(event, self._make_dispatcher(event))
        self._handlers[event].append(handler)

    def off_all(self) -> None:
        for handlers in self._handlers.values():
            handlers.clear()

    async def emit(self, event: str, data: Any) -> None:
        await self._client.emit(event, data)

    async def disconnect(self) -> None:
        self.off_all()
        try:
            await self._client.disconnect()
        except (sio_exceptions.SocketIOError, OSError) as e:
            logger.warning(f"Error disconnecting from {self.url}: {e}")

    @property
    def is_connected(self) -> bool:
        return self._client.connected


def socketio_transport_factory(config: DashboardConfig) -> Callable[[], Transport]:
    """Build a factory that creates a fresh Socket.IO transport per session."""
    def factory() -> Transport:
        return SocketIOTransport(
            url=config.server_url,
            socketio_path=config.socketio_path,
            connect_timeout=config.connect_timeout,
        )

    return factory
