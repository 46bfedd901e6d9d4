import pytest

from envdash.sync.config import DashboardConfig
from envdash.sync.controller import ViewStateController

from fakes import FakeFetcher, FakeTransportFactory, make_reading


@pytest.fixture
def transport_factory():
    return FakeTransportFactory()


@pytest.fixture
def controller(transport_factory):
    return ViewStateController(
        nodes=["ESP32-1", "ESP32-2"],
        default_node="ESP32-1",
        transport_factory=transport_factory,
    )


@pytest.fixture
def config():
    return DashboardConfig(poll_interval_ms=3_600_000)


@pytest.fixture
def fetcher():
    return FakeFetcher({
        "ESP32-1": [make_reading("ESP32-1", minute=5, temperature=23.0),
                    make_reading("ESP32-1", minute=0, temperature=21.0)],
        "ESP32-2": [make_reading("ESP32-2", minute=5, temperature=18.5)],
    })
