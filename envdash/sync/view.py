"""One active overview: view state controller plus summary poller."""

import logging
from typing import Callable, Optional

from envdash.shared.models import LatestSummary
from .api import TelemetryAPI
from .config import DashboardConfig
from .controller import ViewState, ViewStateController
from .poller import Fetcher, SummaryPoller
from .transport import Transport, socketio_transport_factory

logger = logging.getLogger(__name__)


class OverviewView:
    """Owns the session and the poll timer of a single view.

    Both are released on every exit path of ``aclose()``.
    """

    def __init__(
        self,
        config: DashboardConfig,
        transport_factory: Optional[Callable[[], Transport]] = None,
        fetcher: Optional[Fetcher] = None,
    ):
        """Initialize the view.

        Args:
            config: Dashboard configuration.
            transport_factory: Push-channel transport factory. Defaults to
                Socket.IO against config.server_url.
            fetcher: Readings fetcher for the poller. Defaults to the REST
                API at config.base_api_url.
        """
        self.config = config
        self.api: Optional[TelemetryAPI] = None

        if transport_factory is None:
            transport_factory = socketio_transport_factory(config)
        if fetcher is None:
            self.api = TelemetryAPI(config.base_api_url, timeout=config.request_timeout)
            fetcher = self.api.fetch_readings

        self.controller = ViewStateController(
            nodes=config.nodes,
            default_node=config.default_node,
            transport_factory=transport_factory,
        )
        self.poller = SummaryPoller(
            fetcher,
            interval=config.poll_interval,
            on_readings=self.controller.seed_readings,
        )
        self.controller.add_listener(self._follow_node)

    @property
    def state(self) -> ViewState:
        return self.controller.state

    @property
    def summary(self) -> LatestSummary:
        return self.poller.summary

    def start(self) -> None:
        """Open the first session and start polling the selected node."""
        self.controller.start()
        self.poller.start(self.controller.filter.node_id)

    def _follow_node(self, state: ViewState) -> None:
        if self.poller.node_id is not None and state.filter.node_id != self.poller.node_id:
            self.poller.set_node(state.filter.node_id)

    async def aclose(self) -> None:
        try:
            await self.poller.stop()
        finally:
            try:
                await self.controller.aclose()
            finally:
                if self.api is not None:
                    await self.api.close()
        logger.info("Overview view closed")

    async def __aenter__(self) -> "OverviewView":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
