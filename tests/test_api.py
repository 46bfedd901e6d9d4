"""Tests for the REST client against a local aiohttp server."""

import aiohttp
import pytest
from aiohttp import test_utils, web

from envdash.sync.api import TelemetryAPI

from fakes import make_record


def build_app():
    async def sensor_data(request):
        node_id = request.match_info["node_id"]
        if node_id == "broken":
            return web.json_response({"error": True}, status=500)
        if node_id == "object":
            return web.json_response({"readings": []})
        return web.json_response([
            make_record(node_id, minute=2, temperature=24.0),
            make_record(node_id, minute=1, temperature=23.0),
        ])

    app = web.Application()
    app.router.add_get("/api/sensor-data/{node_id}", sensor_data)
    return app


def test_readings_url_quotes_node_id():
    api = TelemetryAPI("http://backend:5000/")

    assert api.readings_url("ESP32-1") == "http://backend:5000/api/sensor-data/ESP32-1"
    assert api.readings_url("node a/b") == "http://backend:5000/api/sensor-data/node%20a%2Fb"


@pytest.mark.asyncio
async def test_fetch_readings_newest_first():
    async with test_utils.TestServer(build_app()) as server:
        async with TelemetryAPI(str(server.make_url("/"))) as api:
            readings = await api.fetch_readings("ESP32-1")

    assert [r.temperature for r in readings] == [24.0, 23.0]
    assert all(r.node_id == "ESP32-1" for r in readings)


@pytest.mark.asyncio
async def test_fetch_readings_http_error_raises():
    async with test_utils.TestServer(build_app()) as server:
        async with TelemetryAPI(str(server.make_url("/"))) as api:
            with pytest.raises(aiohttp.ClientResponseError):
                await api.fetch_readings("broken")


@pytest.mark.asyncio
async def test_fetch_readings_non_array_body_raises():
    async with test_utils.TestServer(build_app()) as server:
        async with TelemetryAPI(str(server.make_url("/"))) as api:
            with pytest.raises(ValueError, match="JSON array"):
                await api.fetch_readings("object")


@pytest.mark.asyncio
async def test_close_leaves_borrowed_session_open():
    async with aiohttp.ClientSession() as session:
        api = TelemetryAPI("http://backend:5000", session=session)
        await api.close()

        assert not session.closed
