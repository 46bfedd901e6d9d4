"""REST client for the telemetry service."""

import logging
from typing import List, Optional
from urllib.parse import quote

import aiohttp

from envdash.shared.models import Reading, parse_readings

logger = logging.getLogger(__name__)


class TelemetryAPI:
    """Fetches readings over HTTP.

    Owns its aiohttp session unless one is passed in.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    def readings_url(self, node_id: str) -> str:
        return f"{self.base_url}/api/sensor-data/{quote(node_id, safe='')}"

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def fetch_readings(self, node_id: str) -> List[Reading]:
        """Get the readings of a node, most recent first.

        Raises:
            aiohttp.ClientError: On network errors or non-2xx responses.
            asyncio.TimeoutError: If the request takes too long.
            ValueError: If the body isn't a JSON array.
        """
        url = self.readings_url(node_id)
        async with self._get_session().get(url) as response:
            response.raise_for_status()
            data = await response.json()

        if not isinstance(data, list):
            raise ValueError(f"Expected a JSON array from {url}, got {type(data).__name__}")

        readings = list(parse_readings(data))
        logger.debug(f"Fetched {len(readings)} readings for {node_id}")
        return readings

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "TelemetryAPI":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
