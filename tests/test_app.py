"""
Tests for application wiring and the command line entrypoint.
"""

import json

import httpx
import pytest
from click.testing import CliRunner
from fastapi.testclient import TestClient

from smpp_bridge import main as main_module
from smpp_bridge.main import create_app, main
from smpp_bridge.session import ShortMessage

from .conftest import FakeSession


@pytest.fixture
def telegram_requests():
    return []


@pytest.fixture
def http_client(telegram_requests):
    def handler(request: httpx.Request) -> httpx.Response:
        telegram_requests.append(request)
        return httpx.Response(200, json={"ok": True})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def sessions():
    return []


@pytest.fixture
def app(config, http_client, sessions):
    def factory(config, handler):
        session = FakeSession(handler=handler)
        sessions.append(session)
        return session

    return create_app(config, session_factory=factory, http_client=http_client)


class TestCreateApp:

    def test_lifespan_starts_and_closes_session(self, app, sessions):
        with TestClient(app):
            assert sessions[0].started is True
            assert sessions[0].closed is False

        assert sessions[0].closed is True

    def test_submission(self, app, sessions):
        with TestClient(app) as client:
            response = client.post("/", data={"src": "A", "dst": "B", "text": "hi"})

        assert response.status_code == 200
        assert response.text == "42"
        assert sessions[0].submitted == [ShortMessage("A", "B", "hi")]

    def test_not_ready_without_bind(self, app, sessions):
        with TestClient(app) as client:
            sessions[0].connected = False
            ready = client.get("/health/ready")
            health = client.get("/health")

        assert ready.status_code == 503
        assert health.json()["status"] == "degraded"

    def test_health_endpoints(self, app):
        with TestClient(app) as client:
            health = client.get("/health")
            live = client.get("/health/live")
            ready = client.get("/health/ready")

        assert health.status_code == 200
        body = health.json()
        assert body["status"] == "healthy"
        assert body["service"] == "test-bridge"
        assert body["components"]["smpp"]["status"] == "connected"
        assert body["components"]["rate_limit"]["status"] == "allowed"
        assert live.json() == {"status": "alive"}
        assert ready.json() == {"status": "ready"}

    def test_metrics_endpoint(self, app):
        with TestClient(app) as client:
            client.post("/", data={"src": "A", "dst": "B", "text": "hi"})
            response = client.get("/metrics")

        assert response.status_code == 200
        assert "smpp_submit_accepted_total" in response.text

    def test_state_exposes_components(self, app, config, sessions):
        with TestClient(app):
            assert app.state.config is config
            assert app.state.session is sessions[0]
            assert app.state.handler.pending == 0


class TestMain:

    def test_bad_config_exits(self, tmp_path):
        result = CliRunner().invoke(main, ["--config", str(tmp_path / "missing.json")])

        assert result.exit_code == 1

    def test_runs_uvicorn_on_configured_address(self, tmp_path, monkeypatch):
        path = tmp_path / "conf.json"
        path.write_text(json.dumps({"Name": "cli-bridge", "Address": ":9090", "Smpp": "smsc:2775"}))
        calls = []
        monkeypatch.setattr(main_module.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

        result = CliRunner().invoke(main, ["--config", str(path)])

        assert result.exit_code == 0, result.output
        app, kwargs = calls[0]
        assert app.title == "cli-bridge"
        assert kwargs["host"] == "0.0.0.0"
        assert kwargs["port"] == 9090
