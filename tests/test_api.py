"""Unit tests for API endpoints."""

import asyncio
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from conftest import VERSION
from ecmdiag.api.dependencies import app_state
from ecmdiag.ecm.dictionary import JsonDictionary
from ecmdiag.ecm.session import EcmSession
from ecmdiag.main import app
from ecmdiag.protocol.constants import Command


@pytest.fixture
def session(ecm):
    """Session installed in the app state; the lifespan connects it."""
    orig_session = app_state.session
    orig_settings = app_state.settings

    s = EcmSession(ecm, JsonDictionary.load_default(), request_timeout=0.05, poll_interval=0.01)
    app_state.session = s

    yield s

    app_state.session = orig_session
    app_state.settings = orig_settings


@pytest.fixture
def client(session):
    """Test client; entering it runs startup (connect + identify)."""
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


class TestLifespan:
    """Tests for application startup."""

    def test_startup_runs_blocking_calls_in_worker_threads(self, session):
        """connect() and get_version() run off the event loop thread."""
        calls = []
        real_to_thread = asyncio.to_thread

        async def recording_to_thread(func, *args, **kwargs):
            calls.append(func.__name__)
            return await real_to_thread(func, *args, **kwargs)

        with patch("ecmdiag.main.asyncio.to_thread", recording_to_thread):
            with TestClient(app, raise_server_exceptions=False) as c:
                assert c.get("/health").json()["status"] == "healthy"

        assert calls.index("connect") < calls.index("get_version")

    def test_startup_failure_keeps_app_running(self, session, ecm):
        ecm.silent = True

        with TestClient(app, raise_server_exceptions=False) as c:
            data = c.get("/health").json()

        assert data["status"] == "degraded"
        assert data["state"] == "connected"


class TestRootEndpoint:
    """Tests for GET / endpoint."""

    def test_root(self, client):
        """Test root endpoint returns app info."""
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "ecmdiag"
        assert "version" in data
        assert data["status"] == "running"


class TestHealthEndpoint:
    """Tests for GET /health endpoint."""

    def test_healthy_when_identified(self, client):
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["state"] == "identified"
        assert data["module_id"] == VERSION

    def test_degraded_for_unknown_module(self, client, ecm, session):
        ecm.version = "BUEXX999 01-01-01"
        session.get_version()

        data = client.get("/health").json()

        assert data["status"] == "degraded"
        assert data["module_id"] is None

    def test_unhealthy_when_disconnected(self, client, session):
        session.disconnect()

        data = client.get("/health").json()

        assert data["status"] == "unhealthy"
        assert data["state"] == "disconnected"


class TestModuleEndpoints:
    """Tests for version, state and actuator tests."""

    def test_version(self, client):
        response = client.get("/api/version")

        assert response.status_code == 200
        assert response.json() == {"version": VERSION, "module_type": "DDFI-2", "identified": True}

    def test_state(self, client, ecm):
        ecm.state = 1

        response = client.get("/api/state")

        assert response.json() == {"state": 1, "busy": True}

    def test_run_test(self, client, ecm):
        response = client.post("/api/tests/fuel_pump")

        assert response.status_code == 200
        assert response.json() == {"success": True, "function": "fuel_pump"}
        assert ecm.requests[-1].payload[:2] == bytes([Command.COMMAND, 0x23])

    def test_run_unknown_test(self, client):
        response = client.post("/api/tests/warp_drive")

        assert response.status_code == 404

    def test_run_test_refused(self, client, ecm):
        ecm.refuse[Command.COMMAND] = 0x05

        response = client.post("/api/tests/fan")

        assert response.status_code == 502
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "TestFailedError"
        assert data["error_indicator"] == 0x05

    def test_disconnected(self, client, session):
        session.disconnect()

        response = client.get("/api/state")

        assert response.status_code == 503

    def test_state_without_state_byte(self, client, ecm):
        ecm.state = None

        response = client.get("/api/state")

        assert response.status_code == 502
        assert response.json()["error"] == "TruncatedFrameError"

    def test_timeout(self, client, ecm):
        ecm.silent = True

        response = client.get("/api/state")

        assert response.status_code == 503
        assert response.json()["error"] == "TransportTimeoutError"


class TestEepromEndpoints:
    """Tests for EEPROM page reads and values."""

    def test_read_page(self, client, ecm):
        ecm.memory[5][0:2] = b"\xab\xcd"

        response = client.post("/api/eeprom/pages/5")

        assert response.status_code == 200
        data = response.json()
        assert data["number"] == 5
        assert data["start"] == 1024
        assert data["length"] == 176
        assert data["data"].startswith("abcd00")

    def test_read_unknown_page(self, client):
        response = client.post("/api/eeprom/pages/9")

        assert response.status_code == 404
        assert response.json()["error"] == "UnknownPageError"

    def test_eeprom_value(self, client, ecm):
        ecm.memory[1][100:102] = b"\x03\xe8"
        client.post("/api/eeprom/pages/1")

        response = client.get("/api/eeprom/values/KRPM_Idle")

        assert response.status_code == 200
        data = response.json()
        assert data["value"] == 1000
        assert data["formatted"] == "1000 rpm"
        assert data["low"] == 800

    def test_eeprom_value_not_found(self, client):
        response = client.get("/api/eeprom/values/Nope")

        assert response.status_code == 404


class TestRealtimeEndpoints:
    """Tests for realtime snapshots and errors."""

    def test_snapshot(self, client, ecm):
        ecm.rt_data[10:12] = b"\x0b\xb8"  # RPM 3000

        response = client.post("/api/realtime")

        assert response.status_code == 200
        values = response.json()["values"]
        assert values["RPM"]["value"] == 3000
        assert "Gear" not in values

    def test_realtime_value(self, client, ecm):
        ecm.rt_data[53] = 2  # Gear at frame offset 60
        client.post("/api/realtime")

        response = client.get("/api/realtime/values/Gear")

        assert response.json()["formatted"] == "2nd"

    def test_errors(self, client, ecm):
        ecm.rt_data[62] = 0x08

        response = client.get("/api/errors")

        assert response.status_code == 200
        assert response.json()["errors"] == [
            {"code": 15, "type": "current", "description": "Intake air temperature sensor"}
        ]

    def test_historic_errors(self, client, ecm):
        ecm.rt_data[67] = 0x01

        response = client.get("/api/errors", params={"type": "historic"})

        assert [e["code"] for e in response.json()["errors"]] == [24]

    def test_errors_unknown_module(self, client, ecm, session):
        ecm.version = "BUEXX999 01-01-01"
        session.get_version()

        response = client.get("/api/errors")

        assert response.status_code == 409
        assert response.json()["error"] == "PreconditionError"
