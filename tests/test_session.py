"""Tests for the transport session manager."""

import asyncio

import pytest

from envdash.shared.models import Filter
from envdash.sync.session import SessionManager, SessionState
from envdash.sync.transport import EVENT_DATA_BY_DATE, EVENT_GET_BY_DATE, EVENT_SENSOR_UPDATE

from fakes import FakeTransportFactory, make_record, settle

LIVE = Filter("ESP32-1")
HISTORICAL = Filter("ESP32-1").with_date("2024-01-01")


class Recorder:
    def __init__(self):
        self.broadcasts = []
        self.history = []
        self.errors = []

    def manager(self, factory):
        return SessionManager(
            factory,
            on_broadcast=lambda s, data: self.broadcasts.append((s.id, data)),
            on_history=lambda s, data: self.history.append((s.id, data)),
            on_error=lambda s, err: self.errors.append((s.id, err)),
        )


@pytest.fixture
def recorder():
    return Recorder()


@pytest.mark.asyncio
async def test_live_session_subscribes_without_query(recorder):
    factory = FakeTransportFactory()
    manager = recorder.manager(factory)

    session = manager.open_session(LIVE)
    await settle()

    transport = factory.last
    assert session.state == SessionState.OPEN
    assert transport.connected
    assert transport.emitted == []
    assert EVENT_SENSOR_UPDATE in transport.handlers
    assert EVENT_DATA_BY_DATE not in transport.handlers

    batch = [make_record("ESP32-1")]
    transport.fire(EVENT_SENSOR_UPDATE, batch)
    assert recorder.broadcasts == [(session.id, batch)]


@pytest.mark.asyncio
async def test_historical_session_sends_query(recorder):
    factory = FakeTransportFactory()
    manager = recorder.manager(factory)

    session = manager.open_session(HISTORICAL)
    await settle()

    transport = factory.last
    assert transport.emitted == [(EVENT_GET_BY_DATE, {"date": "2024-01-01", "nodeId": "ESP32-1"})]
    assert session.query_pending

    # Broadcasts are not delivered while the session is historical
    transport.fire(EVENT_SENSOR_UPDATE, [make_record("ESP32-1")])
    assert recorder.broadcasts == []

    transport.fire(EVENT_DATA_BY_DATE, [make_record("ESP32-1")])
    transport.fire(EVENT_DATA_BY_DATE, [make_record("ESP32-1", minute=9)])
    assert len(recorder.history) == 1
    assert not session.query_pending


@pytest.mark.asyncio
async def test_open_closes_previous_session(recorder):
    factory = FakeTransportFactory()
    manager = recorder.manager(factory)

    first = manager.open_session(LIVE)
    second = manager.open_session(HISTORICAL)
    await settle()

    assert first.closed
    assert manager.current is second
    assert manager.opened_count == 2
    assert manager.closed_count == 1
    assert manager.open_count == 1
    assert factory.unreleased == [factory.last]


@pytest.mark.asyncio
async def test_response_after_close_is_dropped(recorder):
    factory = FakeTransportFactory()
    manager = recorder.manager(factory)

    session_a = manager.open_session(HISTORICAL)
    await settle()
    transport_a = factory.last
    manager.close_session(session_a)
    session_b = manager.open_session(HISTORICAL.with_node("ESP32-2"))
    await settle()

    transport_a.fire_late(EVENT_DATA_BY_DATE, [make_record("ESP32-1")])
    transport_a.fire_late(EVENT_SENSOR_UPDATE, [make_record("ESP32-1")])
    assert recorder.history == []
    assert recorder.broadcasts == []

    factory.last.fire(EVENT_DATA_BY_DATE, [make_record("ESP32-2")])
    assert [sid for sid, _ in recorder.history] == [session_b.id]


@pytest.mark.asyncio
async def test_close_is_idempotent_and_releases_transport(recorder):
    factory = FakeTransportFactory()
    manager = recorder.manager(factory)

    session = manager.open_session(LIVE)
    await settle()
    manager.close_session(session)
    manager.close_session(session)
    await manager.aclose()

    assert manager.closed_count == 1
    assert manager.current is None
    assert factory.last.disconnect_calls == 1
    assert factory.last.handlers == {}


@pytest.mark.asyncio
async def test_close_while_connecting_cancels_query(recorder):
    factory = FakeTransportFactory()
    factory.connect_gate = asyncio.Event()
    manager = recorder.manager(factory)

    session = manager.open_session(HISTORICAL)
    await settle()
    assert session.state == SessionState.CONNECTING

    manager.close_session(session)
    factory.connect_gate.set()
    await manager.aclose()

    transport = factory.last
    assert transport.emitted == []
    assert transport.disconnect_calls == 1
    assert recorder.history == []


@pytest.mark.asyncio
async def test_close_before_connect_task_runs(recorder):
    factory = FakeTransportFactory()
    manager = recorder.manager(factory)

    session = manager.open_session(HISTORICAL)
    manager.close_session(session)
    await manager.aclose()

    assert factory.last.connect_calls == 0
    assert factory.last.disconnect_calls == 1


@pytest.mark.asyncio
async def test_connect_failure_reported_once(recorder):
    factory = FakeTransportFactory()
    factory.fail_connect = True
    manager = recorder.manager(factory)

    session = manager.open_session(HISTORICAL)
    await settle()

    assert session.state == SessionState.FAILED
    assert [sid for sid, _ in recorder.errors] == [session.id]
    assert factory.last.emitted == []

    # A failed session still has to be closed
    await manager.aclose()
    assert manager.open_count == 0


@pytest.mark.asyncio
async def test_rapid_reopen_keeps_single_open_session(recorder):
    factory = FakeTransportFactory()
    manager = recorder.manager(factory)

    for day in range(1, 8):
        manager.open_session(Filter("ESP32-2").with_date(f"2024-01-0{day}"))
        assert manager.open_count == 1
    await settle()

    assert len(factory.unreleased) == 1
    assert factory.unreleased[0] is manager.current.transport
    assert factory.last.emitted == [(EVENT_GET_BY_DATE, {"date": "2024-01-07", "nodeId": "ESP32-2"})]


@pytest.mark.asyncio
async def test_query_send_failure_reported_once(recorder):
    factory = FakeTransportFactory()
    factory.fail_emit = True
    manager = recorder.manager(factory)

    session = manager.open_session(HISTORICAL)
    await settle()

    assert session.state == SessionState.OPEN
    assert not session.query_pending
    assert [sid for sid, _ in recorder.errors] == [session.id]

    # A late response to the failed query is not applied
    factory.last.fire(EVENT_DATA_BY_DATE, [make_record("ESP32-1")])
    assert recorder.history == []
    await manager.aclose()
