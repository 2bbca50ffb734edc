"""End-to-end protocol tests over the FastAPI app with in-memory storage (dependency overrides)."""
from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from relay_service.api.deps import get_clock, get_uow_factory, get_verifier
from relay_service.api.v1.routers.ws import get_manager
from relay_service.app import create_app
from relay_service.config import settings
from tests.conftest import FakeUoW, FixedClock, make_profile


@pytest.fixture
def app_with_uow(verifier):
    app = create_app()
    uow = FakeUoW()
    app.dependency_overrides[get_uow_factory] = uow.factory
    app.dependency_overrides[get_verifier] = lambda: verifier
    app.dependency_overrides[get_clock] = lambda: FixedClock()
    return app, uow


@pytest.fixture
def client(app_with_uow):
    app, _ = app_with_uow
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def uow(app_with_uow):
    _, uow = app_with_uow
    return uow


def _send(ws, event, data=None):
    ws.send_json({"type": event, "data": data})


def _login(ws, token):
    _send(ws, "authenticate", token)
    frame = ws.receive_json()
    assert frame["type"] == "authenticationSuccess", frame
    return frame["data"]


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.headers["X-Request-ID"]


def test_direct_message_between_two_users(client, uow):
    with client.websocket_connect("/ws") as a, client.websocket_connect("/ws") as b:
        me = _login(a, "token-u1")
        assert me == {"uid": "U1", "phoneNumber": "+15550001111", "username": None, "profilePicUrl": None}
        _login(b, "token-u2")

        _send(a, "sendMessage", {"recipientUid": "U2", "content": "hi", "tempId": "t-1"})

        received = b.receive_json()
        assert received["type"] == "receiveMessage"
        assert received["data"]["sender"] == "U1"
        assert received["data"]["content"] == "hi"

        confirmation = a.receive_json()
        assert confirmation["type"] == "messageSentConfirmation"
        assert confirmation["data"]["tempId"] == "t-1"
        assert confirmation["data"]["dbId"] == received["data"]["id"]

    assert [m.content for m in uow.messages_w.messages] == ["hi"]


@pytest.mark.parametrize("temp_id", [1.5, {"draft": 7}])
def test_non_string_temp_id_is_echoed(client, uow, temp_id):
    with client.websocket_connect("/ws") as a, client.websocket_connect("/ws") as b:
        _login(a, "token-u1")
        _login(b, "token-u2")

        _send(a, "sendMessage", {"recipientUid": "U2", "content": "hi", "tempId": temp_id})

        assert b.receive_json()["type"] == "receiveMessage"
        confirmation = a.receive_json()
        assert confirmation["type"] == "messageSentConfirmation"
        assert confirmation["data"]["tempId"] == temp_id

    assert len(uow.messages_w.messages) == 1


def test_empty_token_fails_and_closes(client, uow):
    with client.websocket_connect("/ws") as ws:
        _send(ws, "authenticate", "")
        assert ws.receive_json() == {
            "type": "authenticationFailed",
            "data": {"message": "No token provided."},
        }
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_json()
        assert exc_info.value.code == 4001

    assert uow.users.rows == {}


def test_invalid_token_fails_and_closes(client):
    with client.websocket_connect("/ws") as ws:
        _send(ws, "authenticate", "forged")
        frame = ws.receive_json()
        assert frame["type"] == "authenticationFailed"
        assert frame["data"]["message"] == "Firebase ID token has expired."
        with pytest.raises(WebSocketDisconnect):
            ws.receive_json()


def test_unauthenticated_actions_are_rejected_without_side_effects(client, uow):
    with client.websocket_connect("/ws") as ws:
        _send(ws, "sendMessage", {"recipientUid": "U2", "content": "hi"})
        assert ws.receive_json() == {
            "type": "error",
            "data": {"message": "Authentication required to send messages."},
        }

        _send(ws, "updateProfile", {"username": "x"})
        assert ws.receive_json()["type"] == "error"

        # authorization is checked before the payload shape
        _send(ws, "updateProfile", {"username": 5})
        assert ws.receive_json() == {
            "type": "error",
            "data": {"message": "Authentication required."},
        }

        _send(ws, "typing", {"recipientUid": "U2", "isTyping": True})
        _send(ws, "ping")
        # typing is dropped silently, so the next frame is the pong
        assert ws.receive_json()["type"] == "pong"

    assert uow.messages_w.messages == []
    assert uow.users.rows == {}


def test_second_authenticate_is_ignored(client, verifier):
    with client.websocket_connect("/ws") as ws:
        _login(ws, "token-u1")
        _send(ws, "authenticate", "token-u2")
        _send(ws, "ping")
        assert ws.receive_json()["type"] == "pong"

    assert verifier.calls == ["token-u1"]


def test_update_profile_clears_username(client, uow):
    uow.users.rows["U1"] = make_profile("U1", username="old")
    with client.websocket_connect("/ws") as ws:
        _login(ws, "token-u1")
        _send(ws, "updateProfile", {"username": "", "profilePicUrl": "http://x/y.png"})
        assert ws.receive_json() == {
            "type": "profileUpdateSuccess",
            "data": {"username": None, "profilePicUrl": "http://x/y.png"},
        }

    assert uow.users.rows["U1"].username is None
    assert uow.users.rows["U1"].avatar_url == "http://x/y.png"


def test_update_profile_validation_errors(client, uow):
    with client.websocket_connect("/ws") as ws:
        _login(ws, "token-u1")

        _send(ws, "updateProfile", {"username": "x" * 51})
        frame = ws.receive_json()
        assert frame["type"] == "profileUpdateError"
        assert "50" in frame["data"]["message"]

        _send(ws, "updateProfile", {"username": 7})
        assert ws.receive_json() == {
            "type": "profileUpdateError",
            "data": {"message": "Invalid data format."},
        }

    assert uow.users.rows["U1"].username is None


def test_malformed_message_reports_error(client, uow):
    with client.websocket_connect("/ws") as ws:
        _login(ws, "token-u1")
        _send(ws, "sendMessage", {"recipientUid": "U2", "content": "   "})
        assert ws.receive_json() == {"type": "error", "data": {"message": "Message format incorrect."}}

    assert uow.messages_w.messages == []


def test_typing_relay(client):
    with client.websocket_connect("/ws") as a, client.websocket_connect("/ws") as b:
        _login(a, "token-u1")
        _login(b, "token-u2")

        _send(a, "typing", {"recipientUid": "U2", "isTyping": True})
        assert b.receive_json() == {"type": "typingStatus", "data": {"senderUid": "U1", "isTyping": True}}

        _send(a, "ping")
        assert a.receive_json()["type"] == "pong"


def test_request_contacts(client, uow):
    uow.users.rows["U2"] = make_profile("U2", "+15550002222", username="bob")
    with client.websocket_connect("/ws") as ws:
        _login(ws, "token-u1")
        _send(ws, "requestContacts", {})
        frame = ws.receive_json()

    assert frame["type"] == "contactsList"
    assert [c["uid"] for c in frame["data"]["contacts"]] == ["U2"]


def test_bad_frames_keep_connection_open(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        assert ws.receive_json() == {"type": "error", "data": {"message": "Invalid payload."}}
        _send(ws, "launchRockets")
        assert ws.receive_json() == {"type": "error", "data": {"message": "Unknown event: launchRockets"}}
        _send(ws, "ping")
        assert ws.receive_json()["type"] == "pong"


def test_unauthenticated_connection_times_out(client, monkeypatch):
    monkeypatch.setattr(settings, "AUTH_TIMEOUT_SECONDS", 0.05)
    with client.websocket_connect("/ws") as ws:
        assert ws.receive_json() == {
            "type": "authenticationFailed",
            "data": {"message": "Authentication timed out."},
        }
        with pytest.raises(WebSocketDisconnect):
            ws.receive_json()


def test_idle_connection_receives_heartbeat_pong(client, monkeypatch):
    monkeypatch.setattr(settings, "WS_HEARTBEAT_SECONDS", 0.05)
    with client.websocket_connect("/ws") as ws:
        assert ws.receive_json() == {"type": "pong", "data": {}}


def test_slow_verifier_fails_before_auth_deadline(app_with_uow, client, monkeypatch):
    class SlowVerifier:
        async def verify(self, token):
            await asyncio.sleep(5)
            raise AssertionError("unreachable")

    app, _ = app_with_uow
    app.dependency_overrides[get_verifier] = lambda: SlowVerifier()
    monkeypatch.setattr(settings, "AUTH_VERIFY_TIMEOUT_SECONDS", 0.05)

    with client.websocket_connect("/ws") as ws:
        _send(ws, "authenticate", "token-u1")
        assert ws.receive_json() == {
            "type": "authenticationFailed",
            "data": {"message": "Token verification timed out."},
        }
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_json()
        assert exc_info.value.code == 4001


def test_disconnect_leaves_room(client):
    manager = get_manager()
    with client.websocket_connect("/ws") as ws:
        _login(ws, "token-u1")
        assert len(manager.members("U1")) == 1
    assert manager.members("U1") == []


def test_rest_me_creates_profile(client, uow):
    resp = client.get("/api/v1/users/me", headers={"Authorization": "Bearer token-u1"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["uid"] == "U1"
    assert data["phoneNumber"] == "+15550001111"
    assert "U1" in uow.users.rows


def test_rest_rejects_bad_token(client):
    resp = client.get("/api/v1/users/me", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401


def test_rest_contacts(client, uow):
    uow.users.rows["U1"] = make_profile("U1")
    uow.users.rows["U2"] = make_profile("U2", "+2", username="bob")
    resp = client.get("/api/v1/users", headers={"Authorization": "Bearer token-u1"})
    assert resp.status_code == 200
    assert [u["uid"] for u in resp.json()] == ["U2"]
