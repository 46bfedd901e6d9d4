"""View state controller.

Holds the selected node, the selected date, the loading flag and the
readings shown for them, and rebuilds the push-channel session every
time the filter changes.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from envdash.shared.models import Filter, Reading, parse_readings
from .session import Session, SessionManager
from .transport import Transport

logger = logging.getLogger(__name__)

LOADING_STATUS = "Fetching data for selected filters..."
WAITING_STATUS = "Waiting for data..."


@dataclass(frozen=True)
class ViewState:
    """Snapshot of everything the presentation layer needs.

    ``readings_filter`` is the filter whose session produced ``readings``.
    Readings left over from a previous filter are kept but not shown.
    """
    filter: Filter
    readings: Tuple[Reading, ...] = ()
    loading: bool = False
    session_id: Optional[int] = None
    readings_filter: Optional[Filter] = None

    @property
    def is_live(self) -> bool:
        return self.filter.is_live

    @property
    def has_current_readings(self) -> bool:
        """True if the readings were produced for the selected filter."""
        return self.readings_filter == self.filter

    @property
    def status_text(self) -> Optional[str]:
        """Placeholder text to show instead of charts, if any."""
        if self.loading:
            return LOADING_STATUS
        if not self.readings or not self.has_current_readings:
            return WAITING_STATUS
        return None


def filter_for_node(batch: Iterable[Any], node_id: str) -> Tuple[Reading, ...]:
    """Keep the readings of one node from a broadcast batch, in order."""
    return tuple(r for r in _as_readings(batch) if r.node_id == node_id)


def _as_readings(batch: Iterable[Any]) -> Sequence[Reading]:
    items = list(batch)
    if all(isinstance(item, Reading) for item in items):
        return items
    return parse_readings(items)


def is_error_payload(payload: Any) -> bool:
    """True if a history response signals failure instead of carrying readings."""
    if isinstance(payload, dict):
        return True
    return not isinstance(payload, (list, tuple))


StateListener = Callable[[ViewState], None]


class ViewStateController:
    """Drives live and historical mode for a single view."""

    def __init__(
        self,
        nodes: Sequence[str],
        default_node: str,
        transport_factory: Callable[[], Transport],
    ):
        """Initialize the controller.

        Args:
            nodes: Known node ids; edits to any other id are rejected.
            default_node: Node selected initially and after reset().
            transport_factory: Creates one push-channel transport per session.
        """
        if default_node not in nodes:
            raise ValueError(f"Default node '{default_node}' is not one of {list(nodes)}")

        self.nodes = list(nodes)
        self.default_node = default_node
        self.sessions = SessionManager(
            transport_factory,
            on_broadcast=self._on_broadcast,
            on_history=self._on_history,
            on_error=self._on_session_error,
        )

        self._state = ViewState(filter=Filter(node_id=default_node))
        self._session: Optional[Session] = None
        self._started = False
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def filter(self) -> Filter:
        return self._state.filter

    def snapshot(self) -> ViewState:
        return self._state

    def add_listener(self, listener: StateListener) -> None:
        """Call listener with the new state after every applied change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def started(self) -> bool:
        return self._started

    def start(self) -> Session:
        """Open the first session for the current filter."""
        if self._started and self._session is not None:
            return self._session
        self._started = True
        return self.reconcile(None, self._state.filter)

    async def aclose(self) -> None:
        """Tear down the session and release the transport."""
        self._started = False
        self._session = None
        await self.sessions.aclose()

    def set_node(self, node_id: str) -> None:
        """Select a node. Raises ValueError for an unknown node."""
        if node_id not in self.nodes:
            raise ValueError(f"Unknown node '{node_id}', expected one of {self.nodes}")
        self._apply_filter(self._state.filter.with_node(node_id))

    def set_date(self, value) -> None:
        """Select a calendar date; None or "" switches to live mode."""
        self._apply_filter(self._state.filter.with_date(value))

    def reset(self) -> None:
        """Back to live mode on the default node.

        Always rebuilds the session, even when the filter is already the
        default one.
        """
        self._apply_filter(Filter(node_id=self.default_node), force=True)

    def _apply_filter(self, new_filter: Filter, force: bool = False) -> None:
        if not self._started:
            self._set_state(filter=new_filter)
            return
        if new_filter == self._state.filter and not force:
            logger.debug(f"Filter unchanged ({new_filter}), keeping session")
            return
        self.reconcile(self._session, new_filter)

    def reconcile(self, old_session: Optional[Session], new_filter: Filter) -> Session:
        """Close the old session, then open one for the new filter.

        Readings are kept, but no longer count as current, until the new
        session delivers. The loading flag is raised only for historical mode.
        """
        if old_session is not None:
            self.sessions.close_session(old_session)

        session = self.sessions.open_session(new_filter)
        self._session = session
        logger.info(
            f"View now {'live' if new_filter.is_live else 'historical'} for {new_filter}"
        )
        self._set_state(
            filter=new_filter,
            loading=not new_filter.is_live,
            session_id=session.id,
        )
        return session

    def seed_readings(self, node_id: str, readings: Sequence[Reading]) -> bool:
        """Show readings pulled over REST until the push channel delivers.

        Applied only in live mode, for the selected node, while nothing has
        arrived yet for the current filter.

        Returns:
            True if the readings were applied.
        """
        current = self._state.filter
        if not self._started or not current.is_live or current.node_id != node_id:
            return False
        if self._state.has_current_readings:
            return False
        seeded = filter_for_node(readings, node_id)
        if not seeded:
            return False
        logger.info(f"Showing {len(seeded)} fetched readings for {current} until live data arrives")
        self._set_state(readings=seeded, readings_filter=current)
        return True

    def _accepts(self, session: Session) -> bool:
        if session is not self._session or session.closed:
            logger.debug(f"Ignoring data from superseded session {session.id}")
            return False
        return True

    def _on_broadcast(self, session: Session, batch: Any) -> None:
        if not self._accepts(session) or not session.is_live:
            return
        if not isinstance(batch, (list, tuple)):
            logger.warning(f"Ignoring broadcast with unexpected payload type {type(batch).__name__}")
            return
        readings = filter_for_node(batch, session.filter.node_id)
        logger.debug(
            f"Live batch: {len(readings)} of {len(batch)} readings for {session.filter.node_id}"
        )
        self._set_state(readings=readings, readings_filter=session.filter)

    def _on_history(self, session: Session, payload: Any) -> None:
        if not self._accepts(session):
            return
        if is_error_payload(payload):
            logger.warning(f"History query for {session.filter} failed: {payload}")
            self._set_state(loading=False)
            return
        readings = parse_readings(payload)
        logger.info(f"Loaded {len(readings)} readings for {session.filter}")
        self._set_state(readings=readings, readings_filter=session.filter, loading=False)

    def _on_session_error(self, session: Session, error: Exception) -> None:
        if not self._accepts(session):
            return
        if self._state.loading:
            self._set_state(loading=False)

    def _set_state(self, **changes) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception as e:
                logger.error(f"State listener {listener!r} failed: {e}")
