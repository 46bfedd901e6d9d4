"""Synchronization of the telemetry view with the remote service."""

from .config import DashboardConfig, load_config
from .controller import ViewState, ViewStateController, filter_for_node
from .poller import SummaryPoller
from .session import Session, SessionManager, SessionState
from .view import OverviewView

__all__ = [
    "DashboardConfig",
    "load_config",
    "ViewState",
    "ViewStateController",
    "filter_for_node",
    "SummaryPoller",
    "Session",
    "SessionManager",
    "SessionState",
    "OverviewView",
]
