"""
Integration tests for the HTTP API.
Runs the full app with scripted backends and a temporary storage directory.
"""

import json

import pytest
from fastapi.testclient import TestClient

from hybridchat.config import Settings
from hybridchat.core.errors import NetworkError
from hybridchat.llm.local_provider import OnDeviceProvider
from hybridchat.llm.local_runtime import LocalAvailability
from hybridchat.main import create_app
from hybridchat.models import Backend
from tests.fakes import FakeLocalRuntime, FakeProvider


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        local_storage_path=str(tmp_path / "data"),
        log_file_enabled=False,
        log_console_enabled=False,
        log_api_requests=True,
        api_key=None,
    )


@pytest.fixture
def local_runtime():
    return FakeLocalRuntime()


@pytest.fixture
def providers(cloud_provider, local_runtime):
    return {
        Backend.CLOUD: cloud_provider,
        Backend.LOCAL: OnDeviceProvider(runtime=local_runtime),
    }


@pytest.fixture
def client(test_settings, providers):
    with TestClient(create_app(test_settings, providers=providers)) as test_client:
        yield test_client


def _sse_events(body: str):
    return [
        json.loads(line[len("data: "):])
        for line in body.splitlines()
        if line.startswith("data: ")
    ]


class TestAppEndpoints:
    def test_root_and_health(self, client):
        assert client.get("/").json()["status"] == "running"
        assert client.get("/health").json()["status"] == "healthy"


class TestSessionsAPI:
    """Session CRUD endpoints."""

    def test_startup_creates_a_session(self, client):
        data = client.get("/sessions").json()
        assert len(data["sessions"]) == 1
        session = data["sessions"][0]
        assert session["title"] == "New Chat"
        assert "createdAt" in session and "updatedAt" in session

    def test_create_and_activate(self, client):
        first_id = client.get("/status").json()["active_session_id"]

        created = client.post("/sessions")
        assert created.status_code == 201
        new_id = created.json()["id"]
        assert client.get("/status").json()["active_session_id"] == new_id

        response = client.post(f"/sessions/{first_id}/activate")
        assert response.status_code == 200
        assert client.get("/status").json()["active_session_id"] == first_id

    def test_rename(self, client):
        session_id = client.get("/status").json()["active_session_id"]

        response = client.patch(f"/sessions/{session_id}", json={"title": "Trip plans"})

        assert response.status_code == 200
        assert response.json()["title"] == "Trip plans"
        assert client.get(f"/sessions/{session_id}").json()["title"] == "Trip plans"

    def test_rename_rejects_empty_title(self, client):
        session_id = client.get("/status").json()["active_session_id"]
        assert client.patch(f"/sessions/{session_id}", json={"title": ""}).status_code == 422

    def test_unknown_session(self, client):
        assert client.get("/sessions/missing").status_code == 404
        assert client.patch("/sessions/missing", json={"title": "x"}).status_code == 404
        assert client.post("/sessions/missing/activate").status_code == 404

    def test_delete(self, client):
        session_id = client.get("/status").json()["active_session_id"]

        data = client.delete(f"/sessions/{session_id}").json()

        assert data["deleted"] == session_id
        assert data["active_session_id"] not in (None, session_id)
        ids = [s["id"] for s in client.get("/sessions").json()["sessions"]]
        assert ids == [data["active_session_id"]]

    def test_delete_unknown_is_idempotent(self, client):
        assert client.delete("/sessions/missing").status_code == 200
        assert len(client.get("/sessions").json()["sessions"]) == 1


class TestChatAPI:
    """Turns over HTTP."""

    def test_send_message(self, client):
        response = client.post("/chat/message", json={"content": "Hello"})

        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "committed"
        assert data["backend"] == "cloud"
        assert data["message"]["role"] == "model"
        assert data["message"]["content"] == "Hello from the cloud"

        session = client.get(f"/sessions/{data['session_id']}").json()
        assert session["title"] == "Hello"
        assert [m["content"] for m in session["messages"]] == ["Hello", "Hello from the cloud"]

    def test_send_message_streaming(self, client):
        response = client.post("/chat/message?stream=true", json={"content": "Hello"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = _sse_events(response.text)
        assert [e["type"] for e in events] == ["user", "backend", "content", "content", "content", "done"]
        assert "".join(e["content"] for e in events if e["type"] == "content") == "Hello from the cloud"

    def test_offline_turn_runs_on_device(self, client, local_runtime):
        client.post("/status/connectivity", json={"online": False})

        data = client.post("/chat/message", json={"content": "Hello"}).json()

        assert data["backend"] == "local"
        assert data["message"]["content"] == "Hi there!"
        assert len(local_runtime.sessions) == 1
        assert local_runtime.sessions[0].closed

    def test_failed_turn(self, client, cloud_provider):
        cloud_provider.deltas = []
        cloud_provider.error = NetworkError("Network down")

        data = client.post("/chat/message", json={"content": "Hello"}).json()

        assert data["state"] == "failed"
        assert data["message"]["content"] == "Error: Network down"
        assert data["message"]["isError"] is True

    def test_turn_for_specific_session(self, client):
        first_id = client.get("/status").json()["active_session_id"]
        client.post("/sessions")

        data = client.post("/chat/message", json={"content": "Hi", "session_id": first_id}).json()

        assert data["session_id"] == first_id
        assert client.get("/status").json()["active_session_id"] == first_id

    def test_empty_message(self, client):
        assert client.post("/chat/message", json={"content": "  "}).status_code == 400

    def test_unknown_session(self, client):
        response = client.post("/chat/message", json={"content": "Hi", "session_id": "missing"})
        assert response.status_code == 404

    def test_rejected_while_generating(self, client, cloud_provider):
        client.app.state.orchestrator.is_generating = True

        response = client.post("/chat/message", json={"content": "Hi"})

        assert response.status_code == 409
        assert cloud_provider.calls == []

    def test_rejected_turn_keeps_active_session(self, client, cloud_provider):
        first_id = client.get("/status").json()["active_session_id"]
        second_id = client.post("/sessions").json()["id"]
        client.app.state.orchestrator.is_generating = True

        response = client.post("/chat/message", json={"content": "Hi", "session_id": first_id})

        assert response.status_code == 409
        assert client.get("/status").json()["active_session_id"] == second_id
        assert cloud_provider.calls == []

    def test_empty_message_keeps_active_session(self, client):
        first_id = client.get("/status").json()["active_session_id"]
        second_id = client.post("/sessions").json()["id"]

        response = client.post("/chat/message", json={"content": " ", "session_id": first_id})

        assert response.status_code == 400
        assert client.get("/status").json()["active_session_id"] == second_id
        assert first_id != second_id


class TestStatusAPI:
    def test_initial_status(self, client):
        data = client.get("/status").json()
        assert data["mode"] == "auto"
        assert data["mode_label"] == "Auto (Cloud)"
        assert data["online"] is True
        assert data["cloud_configured"] is True
        assert data["local_available"] is True
        assert data["local_status"] == "ready"
        assert data["is_generating"] is False
        assert data["generation_label"] is None
        assert data["turn_state"] == "idle"

    def test_set_mode(self, client):
        data = client.put("/status/mode", json={"mode": "local"}).json()
        assert data["mode"] == "local"
        assert data["mode_label"] == "Offline (Gemini Nano)"

        assert client.put("/status/mode", json={"mode": "bogus"}).status_code == 422

    def test_connectivity(self, client):
        data = client.post("/status/connectivity", json={"online": False}).json()
        assert data["online"] is False
        assert data["mode_label"] == "Auto (Offline)"

    def test_local_refresh(self, client, local_runtime):
        local_runtime._availability = LocalAvailability.DOWNLOADING

        data = client.post("/status/local/refresh").json()

        assert data["local_status"] == "downloading"
        assert data["local_available"] is True

    def test_local_unavailable(self, client, local_runtime):
        local_runtime._availability = LocalAvailability.UNAVAILABLE
        client.post("/status/local/refresh")
        client.put("/status/mode", json={"mode": "local"})

        data = client.post("/chat/message", json={"content": "Hello"}).json()

        assert data["state"] == "failed"
        assert data["message"]["content"].startswith("Error: Offline mode requires the on-device model")
