"""
WebSocket tests for the realtime endpoint.
"""

import pytest
from fastapi.testclient import TestClient

from link_app.main import create_app


@pytest.fixture
def client(test_settings, coordination):
    app = create_app(test_settings, coordination)
    with TestClient(app) as test_client:
        yield test_client


def _setup_group(client) -> int:
    group = client.post("/api/groups", json={"name": "Crew"}, headers={"X-User-Id": "1"}).json()
    client.post(
        f"/api/groups/{group['id']}/members", json={"user_id": 2}, headers={"X-User-Id": "1"}
    )
    return group["id"]


def _auth_and_join(ws, user_id: int, group_id: int) -> None:
    ws.send_json({"type": "auth", "userId": user_id})
    assert ws.receive_json()["type"] == "auth_success"
    assert ws.receive_json()["type"] == "unread_count"
    ws.send_json({"type": "join_group", "groupId": group_id})
    assert ws.receive_json()["type"] == "recent_messages"


def test_socket_auth_error_keeps_connection_open(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "auth", "userId": 999})
        assert ws.receive_json() == {"type": "auth_error", "message": "Authentication failed"}

        ws.send_text("this is not json")
        assert ws.receive_json()["code"] == "validation_error"

        ws.send_json({"type": "auth", "userId": 1})
        success = ws.receive_json()
        assert success["type"] == "auth_success"
        assert success["groups"] == []
        assert set(success["reconnect"]) == {"initialDelayMs", "maxDelayMs", "multiplier"}


def test_socket_chat_between_two_members(client):
    group_id = _setup_group(client)

    with client.websocket_connect("/ws") as alex, client.websocket_connect("/ws") as sam:
        _auth_and_join(alex, 1, group_id)
        _auth_and_join(sam, 2, group_id)

        sam.send_json({"type": "chat_message", "groupId": group_id, "message": "tacos?"})

        for ws in (alex, sam):
            event = ws.receive_json()
            assert event["type"] == "new_message"
            assert event["message"]["message"] == "tacos?"
            assert event["message"]["userId"] == 2

        alex.send_json({"type": "event_vote", "groupId": group_id, "eventId": 12, "vote": "yes"})
        update = sam.receive_json()
        assert update["type"] == "vote_update"
        assert update["voteCounts"] == {"yes": 1, "no": 0, "maybe": 0}

    assert client.get("/readyz").json()["checks"]["realtime"]["connections"] == 0


def test_http_message_is_pushed_to_socket(client):
    group_id = _setup_group(client)

    with client.websocket_connect("/ws") as sam:
        _auth_and_join(sam, 2, group_id)

        client.post(
            f"/api/groups/{group_id}/messages",
            json={"message": "posted from the web"},
            headers={"X-User-Id": "1"},
        )

        event = sam.receive_json()
        assert event["type"] == "new_message"
        assert event["message"]["message"] == "posted from the web"
