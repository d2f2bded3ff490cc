import httpx
import pytest
from fastapi.testclient import TestClient

from app.api import realtime_routes
from app.main import app


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def test_healthz(client: TestClient):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_relay_requires_authorization(client: TestClient):
    response = client.post("/api/realtime", content="v=0")
    assert response.status_code == 401


def test_relay_rejects_empty_body(client: TestClient):
    response = client.post("/api/realtime", content="   ", headers={"Authorization": "Bearer ek_1"})
    assert response.status_code == 400


def test_relay_forwards_offer_and_returns_answer(client: TestClient, monkeypatch: pytest.MonkeyPatch):
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(201, text="v=0\r\no=- answer\r\n")

    monkeypatch.setattr(realtime_routes, "UPSTREAM_TRANSPORT", httpx.MockTransport(handler))

    response = client.post(
        "/api/realtime?model=gpt-test",
        content="v=0\r\no=- offer\r\n",
        headers={"Authorization": "Bearer ek_1", "Content-Type": "application/sdp"},
    )

    assert response.status_code == 201
    assert response.text == "v=0\r\no=- answer\r\n"
    assert response.headers["content-type"].startswith("application/sdp")
    upstream = seen[0]
    assert upstream.url.params["model"] == "gpt-test"
    assert upstream.headers["authorization"] == "Bearer ek_1"
    assert upstream.headers["content-type"] == "application/sdp"
    assert upstream.content == b"v=0\r\no=- offer\r\n"


def test_relay_passes_upstream_error_status(client: TestClient, monkeypatch: pytest.MonkeyPatch):
    def handler(request: httpx.Request):
        return httpx.Response(401, text="invalid ephemeral key")

    monkeypatch.setattr(realtime_routes, "UPSTREAM_TRANSPORT", httpx.MockTransport(handler))

    response = client.post("/api/realtime", content="v=0", headers={"Authorization": "Bearer bad"})

    assert response.status_code == 401
    assert response.text == "invalid ephemeral key"


def test_relay_network_failure_is_bad_gateway(client: TestClient, monkeypatch: pytest.MonkeyPatch):
    def handler(request: httpx.Request):
        raise httpx.ConnectError("unreachable", request=request)

    monkeypatch.setattr(realtime_routes, "UPSTREAM_TRANSPORT", httpx.MockTransport(handler))

    response = client.post("/api/realtime", content="v=0", headers={"Authorization": "Bearer ek_1"})

    assert response.status_code == 502
    assert response.json() == {"error": "Upstream relay failed"}


def test_session_requires_api_key(client: TestClient, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(realtime_routes, "OPENAI_API_KEY", "")

    response = client.post("/api/session")

    assert response.status_code == 500
    assert response.json() == {"error": "Missing OPENAI_API_KEY"}


def test_session_returns_ephemeral_secret(client: TestClient, monkeypatch: pytest.MonkeyPatch):
    calls = []

    class _Session:
        def model_dump(self, **kwargs):
            return {"id": "sess_1", "client_secret": {"value": "ek_live", "expires_at": 123}}

    async def _fake_create(*args, **kwargs):
        calls.append(kwargs)
        return _Session()

    monkeypatch.setattr(realtime_routes, "OPENAI_API_KEY", "test-key")
    monkeypatch.setattr(realtime_routes.client.beta.realtime.sessions, "create", _fake_create)

    response = client.post("/api/session")

    assert response.status_code == 200
    assert response.json()["client_secret"]["value"] == "ek_live"
    assert calls[0]["model"] == realtime_routes.REALTIME_MODEL
    assert calls[0]["voice"] == realtime_routes.REALTIME_VOICE


def test_session_failure_is_reported(client: TestClient, monkeypatch: pytest.MonkeyPatch):
    async def _boom(*args, **kwargs):
        raise RuntimeError("forced")

    monkeypatch.setattr(realtime_routes, "OPENAI_API_KEY", "test-key")
    monkeypatch.setattr(realtime_routes.client.beta.realtime.sessions, "create", _boom)

    response = client.post("/api/session")

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to create ephemeral session"}
