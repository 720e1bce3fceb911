# /tests/test_api.py

import asyncio
import threading

import pytest
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlsplit

from fastapi.testclient import TestClient

from oracle_assistant.core.errors import PersistenceError
from oracle_assistant.main import create_app
from oracle_assistant.services.gemini_service import AssistantReply
from oracle_assistant.services.prompt_library import FALLBACK_REPLY


@pytest.fixture
def client(context):
    return TestClient(create_app(context))


@pytest.fixture
def auth_headers(client, register_user):
    register_user("dba@example.com", "tiger123")
    resp = client.post("/api/auth/sign-in", json={"email": "dba@example.com", "password": "tiger123"})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['session']['access_token']}"}


def _new_session(client, headers) -> str:
    resp = client.post("/api/chat/sessions", headers=headers)
    assert resp.status_code == 201
    return resp.json()["id"]


def test_health_check(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json()["version"] == "1.0.0"


def test_sign_up_then_confirm_then_sign_in(client):
    with patch("oracle_assistant.core.security.new_token", return_value="confirm-token"):
        resp = client.post("/api/auth/sign-up", json={"email": "new@example.com", "password": "tiger123"})
    assert resp.status_code == 200
    assert resp.json()["notice"] == "Check your email for the confirmation link."

    resp = client.post("/api/auth/sign-in", json={"email": "new@example.com", "password": "tiger123"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Email not confirmed"

    resp = client.get(
        "/api/auth/confirm",
        params={"token": "confirm-token", "redirect_to": "http://app.local/"},
        follow_redirects=False,
    )
    assert resp.status_code == 307
    location = urlsplit(resp.headers["location"])
    assert location.netloc == "app.local"
    token = parse_qs(location.fragment)["access_token"][0]

    resp = client.get("/api/auth/session", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert resp.json()["email"] == "new@example.com"


def test_short_password_is_refused_by_the_form_constraint(client):
    resp = client.post("/api/auth/sign-up", json={"email": "new@example.com", "password": "12345"})
    assert resp.status_code == 422


def test_sign_in_returns_initial_workspace(client, register_user):
    auth = register_user("dba@example.com", "tiger123")
    headers = {"Authorization": f"Bearer {auth.access_token}"}
    _new_session(client, headers)
    newest = _new_session(client, headers)

    resp = client.post("/api/auth/sign-in", json={"email": "dba@example.com", "password": "tiger123"})

    body = resp.json()
    assert body["workspace"]["authenticated"] is True
    assert body["workspace"]["active_session_id"] == newest
    assert [s["id"] for s in body["workspace"]["sessions"]][0] == newest
    assert body["workspace"]["messages"] == []


def test_protected_routes_require_a_token(client):
    assert client.get("/api/chat/sessions").status_code == 401
    resp = client.get("/api/chat/sessions", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401


def test_send_message_round_trip(client, auth_headers, fake_assistant):
    session_id = _new_session(client, auth_headers)

    resp = client.post(
        f"/api/chat/sessions/{session_id}/messages",
        json={"text": "What is a tablespace?"},
        headers=auth_headers,
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["user_message"]["role"] == "user"
    assert body["user_message"]["align"] == "right"
    assert body["assistant_message"]["role"] == "assistant"
    assert body["degraded"] is False

    resp = client.get(f"/api/chat/sessions/{session_id}/messages", headers=auth_headers)
    assert [m["role"] for m in resp.json()["messages"]] == ["user", "assistant"]


def test_degraded_reply_is_reported(client, auth_headers, fake_assistant):
    fake_assistant.ask = AsyncMock(return_value=AssistantReply(text=FALLBACK_REPLY, degraded=True, error="boom"))
    session_id = _new_session(client, auth_headers)

    resp = client.post(
        f"/api/chat/sessions/{session_id}/messages", json={"text": "Explain ASM"}, headers=auth_headers
    )

    assert resp.status_code == 201
    assert resp.json()["degraded"] is True
    assert resp.json()["assistant_message"]["degraded"] is True


def test_blank_message_is_rejected(client, auth_headers, fake_assistant):
    session_id = _new_session(client, auth_headers)

    resp = client.post(f"/api/chat/sessions/{session_id}/messages", json={"text": "  "}, headers=auth_headers)

    assert resp.status_code == 400
    fake_assistant.ask.assert_not_awaited()


def test_other_users_session_is_not_found(client, auth_headers, register_user):
    session_id = _new_session(client, auth_headers)
    intruder = register_user("intruder@example.com", "tiger123")

    resp = client.get(
        f"/api/chat/sessions/{session_id}/messages",
        headers={"Authorization": f"Bearer {intruder.access_token}"},
    )

    assert resp.status_code == 404


def test_persistence_failure_is_retryable(client, auth_headers):
    with patch(
        "oracle_assistant.services.session_service.create_session",
        side_effect=PersistenceError("Could not save to chat_sessions. Please try again."),
    ):
        resp = client.post("/api/chat/sessions", headers=auth_headers)

    assert resp.status_code == 503
    assert resp.json() == {"detail": "Could not save to chat_sessions. Please try again.", "retryable": True}


def test_sign_out_revokes_token(client, auth_headers):
    assert client.post("/api/auth/sign-out", headers=auth_headers).json() == {"ok": True}
    assert client.get("/api/auth/session", headers=auth_headers).status_code == 401


def test_refresh_returns_a_new_token(client, auth_headers):
    resp = client.post("/api/auth/refresh", headers=auth_headers)

    assert resp.status_code == 200
    new_headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}
    assert client.get("/api/auth/session", headers=new_headers).status_code == 200
    assert client.get("/api/auth/session", headers=auth_headers).status_code == 401


def _receive_until(ws, predicate, limit=10):
    for _ in range(limit):
        message = ws.receive_json()
        assert message["type"] == "state"
        if predicate(message["payload"]):
            return message["payload"]
    raise AssertionError("expected state never arrived")


def test_websocket_workspace_flow(client, register_user, fake_assistant):
    auth = register_user("dba@example.com", "tiger123")

    with client.websocket_connect(f"/api/chat/ws?token={auth.access_token}") as ws:
        state = ws.receive_json()["payload"]
        assert state["authenticated"] is True
        assert state["has_active_session"] is False

        ws.send_json({"type": "new_session"})
        state = _receive_until(ws, lambda s: s["has_active_session"])
        assert state["sessions"][0]["title"] == "New Chat"

        ws.send_json({"type": "send_message", "payload": {"text": "What is a tablespace?"}})
        busy = ws.receive_json()["payload"]
        assert busy["loading"] is True
        state = _receive_until(ws, lambda s: not s["loading"])
        assert [m["role"] for m in state["messages"]] == ["user", "assistant"]
        assert state["draft"] == ""


def test_websocket_ignores_a_second_send_during_a_turn(client, register_user, fake_assistant):
    auth = register_user("dba@example.com", "tiger123")
    released = threading.Event()

    async def slow_answer(question):
        while not released.is_set():
            await asyncio.sleep(0.01)
        return AssistantReply(text="A tablespace is a logical storage container.")

    fake_assistant.ask = AsyncMock(side_effect=slow_answer)

    with client.websocket_connect(f"/api/chat/ws?token={auth.access_token}") as ws:
        ws.receive_json()
        ws.send_json({"type": "new_session"})
        _receive_until(ws, lambda s: s["has_active_session"])

        ws.send_json({"type": "send_message", "payload": {"text": "first"}})
        assert ws.receive_json()["payload"]["loading"] is True
        asked = ws.receive_json()["payload"]
        assert [m["role"] for m in asked["messages"]] == ["user"]

        ws.send_json({"type": "send_message", "payload": {"text": "second"}})
        ignored = ws.receive_json()["payload"]
        assert ignored["loading"] is True
        assert len(ignored["messages"]) == 1

        released.set()
        state = _receive_until(ws, lambda s: not s["loading"])

    assert [m["role"] for m in state["messages"]] == ["user", "assistant"]
    fake_assistant.ask.assert_awaited_once_with("first")


def test_websocket_requires_sign_in_for_chat(client):
    with client.websocket_connect("/api/chat/ws") as ws:
        assert ws.receive_json()["payload"]["authenticated"] is False
        ws.send_json({"type": "new_session"})
        state = ws.receive_json()["payload"]
        assert state["error"] == "Please sign in first."
