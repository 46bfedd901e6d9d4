"""Summary poller.

Periodically pulls the readings of the selected node and keeps the most
recent one as the LatestSummary shown on the stat cards.
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from envdash.shared.models import LatestSummary, Reading

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[List[Reading]]]
SummaryListener = Callable[[LatestSummary], None]
ReadingsListener = Callable[[str, List[Reading]], None]


class SummaryPoller:
    """Polls one node at a fixed interval."""

    def __init__(
        self,
        fetcher: Fetcher,
        interval: float = 5.0,
        on_update: Optional[SummaryListener] = None,
        on_readings: Optional[ReadingsListener] = None,
    ):
        """Initialize the poller.

        Args:
            fetcher: Coroutine function returning a node's readings,
                most recent first.
            interval: Seconds between polls.
            on_update: Called with the new summary after each successful poll.
            on_readings: Called with (node_id, readings) for the same polls.
        """
        self.fetcher = fetcher
        self.interval = interval
        self.on_update = on_update
        self.on_readings = on_readings

        self.node_id: Optional[str] = None
        self.summary = LatestSummary.loading()
        self.last_successful_fetch: Optional[datetime] = None

        self.timers_started = 0
        self.timers_cancelled = 0

        self._task: Optional[asyncio.Task] = None
        self._generation = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, node_id: str) -> None:
        """Start polling a node, replacing any timer for another node."""
        if self.running and node_id == self.node_id:
            return
        self._cancel_timer()

        self.node_id = node_id
        self._generation += 1
        self._task = asyncio.get_running_loop().create_task(
            self._run(node_id, self._generation)
        )
        self.timers_started += 1
        logger.info(f"Polling {node_id} every {self.interval:g}s")

    def set_node(self, node_id: str) -> None:
        """Follow a node change; no-op if the node is the same."""
        self.start(node_id)

    async def stop(self) -> None:
        """Stop polling and wait for the timer task to finish."""
        task = self._cancel_timer()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def _cancel_timer(self) -> Optional[asyncio.Task]:
        task, self._task = self._task, None
        # Results still in flight for the old timer are dropped
        self._generation += 1
        if task is None:
            return None
        if not task.done():
            task.cancel()
            self.timers_cancelled += 1
            logger.debug(f"Cancelled poll timer for {self.node_id}")
        return task

    async def _run(self, node_id: str, generation: int) -> None:
        while True:
            await self.poll_once(node_id, generation)
            await asyncio.sleep(self.interval)

    async def poll_once(self, node_id: str, generation: Optional[int] = None) -> bool:
        """Fetch once and update the summary.

        Returns:
            True if the summary was updated.
        """
        try:
            readings = await self.fetcher(node_id)
        except Exception as e:
            logger.error(f"Error fetching sensor data for {node_id}: {e}")
            return False

        if generation is not None and generation != self._generation:
            logger.debug(f"Dropping poll result for {node_id} from an old timer")
            return False
        if node_id != self.node_id:
            logger.debug(f"Dropping poll result for {node_id}, now polling {self.node_id}")
            return False
        if not readings:
            logger.debug(f"No readings yet for {node_id}")
            return False

        # Server returns newest first
        self.summary = LatestSummary.from_reading(readings[0])
        self.last_successful_fetch = datetime.now()

        if self.on_update is not None:
            try:
                self.on_update(self.summary)
            except Exception as e:
                logger.error(f"Summary listener failed: {e}")
        if self.on_readings is not None:
            try:
                self.on_readings(node_id, readings)
            except Exception as e:
                logger.error(f"Readings listener failed: {e}")
        return True
