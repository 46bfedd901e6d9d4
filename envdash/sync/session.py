"""Transport session manager.

A session is the lifetime of one push-channel connection tied to one
Filter value. At most one session is current at a time; anything that
arrives on a session after it has been closed or replaced is dropped.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Set

from envdash.shared.models import Filter
from .transport import (
    EVENT_DATA_BY_DATE,
    EVENT_GET_BY_DATE,
    EVENT_SENSOR_UPDATE,
    Transport,
)

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Lifecycle states of a session."""
    CONNECTING = "connecting"
    OPEN = "open"
    FAILED = "failed"  # connect failed, nothing will arrive
    CLOSED = "closed"


@dataclass(eq=False)
class Session:
    """Handle for one push-channel connection."""
    id: int
    filter: Filter
    transport: Transport
    state: SessionState = SessionState.CONNECTING
    query_pending: bool = False
    connect_task: Optional[asyncio.Task] = field(default=None, repr=False)

    @property
    def closed(self) -> bool:
        return self.state == SessionState.CLOSED

    @property
    def is_live(self) -> bool:
        return self.filter.is_live


SessionCallback = Callable[[Session, Any], None]


class SessionManager:
    """Owns the single push-channel session of a view."""

    def __init__(
        self,
        transport_factory: Callable[[], Transport],
        on_broadcast: SessionCallback,
        on_history: SessionCallback,
        on_error: Optional[SessionCallback] = None,
    ):
        """Initialize the session manager.

        Args:
            transport_factory: Creates a fresh, unconnected transport.
            on_broadcast: Called with (session, batch) for each live
                broadcast on the current live session.
            on_history: Called with (session, payload) for the response
                to the historical query of the current session.
            on_error: Called with (session, exception) when the current
                session fails to connect or to send its query.
        """
        self.transport_factory = transport_factory
        self.on_broadcast = on_broadcast
        self.on_history = on_history
        self.on_error = on_error

        self.current: Optional[Session] = None
        self.opened_count = 0
        self.closed_count = 0

        self._ids = itertools.count(1)
        self._release_tasks: Set[asyncio.Task] = set()

    @property
    def open_count(self) -> int:
        """Number of sessions opened and not yet closed."""
        return self.opened_count - self.closed_count

    def is_current(self, session: Session) -> bool:
        """True while results from this session may still be applied."""
        return session is self.current and not session.closed

    def open_session(self, view_filter: Filter) -> Session:
        """Open a session for a filter and make it current.

        Connecting happens in a background task on the running loop;
        the returned session is current immediately.
        """
        if self.current is not None and not self.current.closed:
            logger.warning(
                f"Session {self.current.id} still open when opening a new one, closing it"
            )
            self.close_session(self.current)

        session = Session(
            id=next(self._ids),
            filter=view_filter,
            transport=self.transport_factory(),
        )
        self.current = session
        self.opened_count += 1
        logger.info(f"Opening session {session.id} for {view_filter}")

        session.connect_task = asyncio.get_running_loop().create_task(
            self._establish(session)
        )
        return session

    def close_session(self, session: Session) -> None:
        """Close a session and drop everything still in flight on it.

        Idempotent, and safe whether or not the session ever connected.
        """
        if session.closed:
            return

        session.state = SessionState.CLOSED
        self.closed_count += 1
        if session.query_pending:
            logger.debug(f"Session {session.id} closed with a query in flight, dropping it")
        session.query_pending = False

        if session.connect_task is not None and not session.connect_task.done():
            session.connect_task.cancel()
        session.transport.off_all()

        if self.current is session:
            self.current = None

        task = asyncio.get_running_loop().create_task(self._release(session))
        self._release_tasks.add(task)
        task.add_done_callback(self._release_tasks.discard)
        logger.info(f"Closed session {session.id} ({session.filter})")

    async def aclose(self) -> None:
        """Close the current session and wait for every transport to be released."""
        if self.current is not None:
            self.close_session(self.current)
        if self._release_tasks:
            await asyncio.gather(*list(self._release_tasks), return_exceptions=True)

    async def _establish(self, session: Session) -> None:
        """Connect, subscribe and, in historical mode, send the date query."""
        transport = session.transport
        try:
            await transport.connect()
        except Exception as e:
            logger.error(f"Session {session.id} failed to connect: {e}")
            if not session.closed:
                session.state = SessionState.FAILED
            self._report_error(session, e)
            return

        if session.closed:
            return
        session.state = SessionState.OPEN

        transport.on(EVENT_SENSOR_UPDATE, lambda data: self._handle_broadcast(session, data))

        if session.filter.date is None:
            return

        transport.on(EVENT_DATA_BY_DATE, lambda data: self._handle_history(session, data))
        session.query_pending = True
        payload = session.filter.query_payload()
        logger.debug(f"Session {session.id} requesting {EVENT_GET_BY_DATE} {payload}")
        try:
            await transport.emit(EVENT_GET_BY_DATE, payload)
        except Exception as e:
            logger.error(f"Session {session.id} failed to send history query: {e}")
            session.query_pending = False
            self._report_error(session, e)

    async def _release(self, session: Session) -> None:
        # Let a cancelled connect attempt finish unwinding before disconnecting
        if session.connect_task is not None:
            await asyncio.gather(session.connect_task, return_exceptions=True)
        try:
            await session.transport.disconnect()
        except Exception as e:
            logger.warning(f"Error releasing session {session.id}: {e}")
        logger.debug(f"Session {session.id} transport released")

    def _handle_broadcast(self, session: Session, data: Any) -> None:
        if not self.is_current(session):
            logger.debug(f"Dropping broadcast on superseded session {session.id}")
            return
        if not session.is_live:
            return
        self.on_broadcast(session, data)

    def _handle_history(self, session: Session, data: Any) -> None:
        if not self.is_current(session):
            logger.debug(f"Dropping history response on superseded session {session.id}")
            return
        if not session.query_pending:
            logger.debug(f"Session {session.id} got an unexpected history response, ignoring")
            return
        session.query_pending = False
        self.on_history(session, data)

    def _report_error(self, session: Session, error: Exception) -> None:
        if self.on_error is not None and self.is_current(session):
            self.on_error(session, error)
