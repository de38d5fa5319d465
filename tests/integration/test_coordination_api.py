"""
HTTP tests for the coordination routes against an in-memory service.
"""

import pytest
from fastapi.testclient import TestClient

from link_app.main import create_app


@pytest.fixture
def client(test_settings, coordination):
    app = create_app(test_settings, coordination)
    with TestClient(app) as test_client:
        yield test_client


def _as(user_id: int) -> dict:
    return {"X-User-Id": str(user_id)}


def _create_group(client, owner=1, name="Weekend crew") -> int:
    response = client.post("/api/groups", json={"name": name}, headers=_as(owner))
    assert response.status_code == 201
    return response.json()["id"]


def test_healthz_and_readyz(client):
    assert client.get("/healthz").json()["status"] == "ok"

    data = client.get("/readyz").json()
    assert data["status"] == "ready"
    assert data["checks"]["realtime"]["connections"] == 0
    assert data["checks"]["oracle"]["enabled"] is False


def test_request_id_header_is_returned(client):
    response = client.get("/healthz", headers={"X-Request-ID": "trace-123"})

    assert response.headers["X-Request-ID"] == "trace-123"


def test_actor_header_required(client):
    assert client.get("/api/groups").status_code == 401


def test_availability_round_trip(client):
    response = client.put(
        "/api/availability",
        json={"date": "2024-06-01T20:00:00-04:00", "timeslots": ["night", "morning", "night"]},
        headers=_as(1),
    )
    assert response.status_code == 200
    assert response.json() == {
        "user_id": 1,
        "date": "2024-06-01",
        "timeslots": ["morning", "night"],
    }

    client.put(
        "/api/availability", json={"date": "2024-06-01", "timeslots": ["night"]}, headers=_as(2)
    )

    mine = client.get("/api/availability", headers=_as(1)).json()
    assert mine["total_count"] == 1

    mutual = client.post(
        "/api/availability/mutual", json={"user_ids": [1, 2], "date": "2024-06-01"}
    )
    assert mutual.json() == {"date": "2024-06-01", "timeslots": ["night"]}

    available = client.get("/api/availability/users", params={"date": "2024-06-01"}).json()
    assert [u["username"] for u in available["users"]] == ["alex", "sam"]

    assert client.delete("/api/availability/2024-06-01", headers=_as(1)).status_code == 204
    assert client.delete("/api/availability/2024-06-01", headers=_as(1)).status_code == 404


@pytest.mark.parametrize(
    "payload",
    [
        {"date": "2024-06-01", "timeslots": []},
        {"date": "2024-06-01", "timeslots": ["brunch"]},
        {"date": "someday", "timeslots": ["morning"]},
    ],
)
def test_availability_validation_errors(client, payload):
    assert client.put("/api/availability", json=payload, headers=_as(1)).status_code == 400


def test_mutual_slots_requires_users(client):
    response = client.post("/api/availability/mutual", json={"user_ids": [], "date": "2024-06-01"})

    assert response.status_code == 400
    assert response.json()["detail"] == "User IDs required"


def test_group_membership_flow(client):
    group_id = _create_group(client)

    added = client.post(f"/api/groups/{group_id}/members", json={"user_id": 2}, headers=_as(1))
    assert added.status_code == 201
    assert added.json()["role"] == "member"

    # Members cannot add, duplicates are rejected, unknown users are 404
    assert (
        client.post(f"/api/groups/{group_id}/members", json={"user_id": 3}, headers=_as(2))
    ).status_code == 403
    assert (
        client.post(f"/api/groups/{group_id}/members", json={"user_id": 2}, headers=_as(1))
    ).status_code == 400
    assert (
        client.post(f"/api/groups/{group_id}/members", json={"user_id": 999}, headers=_as(1))
    ).status_code == 404

    group = client.get(f"/api/groups/{group_id}").json()
    assert group["member_count"] == 2
    groups = client.get("/api/groups", headers=_as(2)).json()["groups"]
    assert [g["id"] for g in groups] == [group_id]

    left = client.delete(f"/api/groups/{group_id}/members/2", headers=_as(2))
    assert left.status_code == 200
    assert left.json()["is_active"] is False
    assert client.get(f"/api/groups/{group_id}/members").json()["total_count"] == 1


def test_unknown_group_is_404(client):
    assert client.get("/api/groups/999").status_code == 404


def test_chat_and_read_state(client):
    group_id = _create_group(client)
    client.post(f"/api/groups/{group_id}/members", json={"user_id": 2}, headers=_as(1))

    for text in ("first", "second"):
        response = client.post(
            f"/api/groups/{group_id}/messages", json={"message": text}, headers=_as(1)
        )
        assert response.status_code == 201

    assert (
        client.post(f"/api/groups/{group_id}/messages", json={"message": "hi"}, headers=_as(3))
    ).status_code == 403

    listing = client.get(f"/api/groups/{group_id}/messages", headers=_as(2)).json()
    assert [m["message"] for m in listing["messages"]] == ["second", "first"]
    assert client.get(f"/api/groups/{group_id}/messages", headers=_as(3)).status_code == 403

    assert client.get(f"/api/groups/{group_id}/messages/unread").json()["count"] == 2
    marked = client.post(f"/api/groups/{group_id}/messages/read", headers=_as(2)).json()
    assert marked == {"group_id": group_id, "marked": 2}
    assert client.get(f"/api/groups/{group_id}/messages/unread").json()["count"] == 0


def test_votes(client):
    group_id = _create_group(client)
    client.post(f"/api/groups/{group_id}/members", json={"user_id": 2}, headers=_as(1))

    votes_url = f"/api/groups/{group_id}/votes"
    client.post(votes_url, json={"event_id": 10, "vote": "yes"}, headers=_as(1))
    client.post(votes_url, json={"event_id": 10, "vote": "no"}, headers=_as(2))
    response = client.post(
        f"/api/groups/{group_id}/votes", json={"event_id": 10, "vote": "yes"}, headers=_as(2)
    )

    assert response.status_code == 200
    assert response.json()["tally"] == {"yes": 2, "no": 0, "maybe": 0}
    assert client.get(f"/api/groups/{group_id}/events/10/votes").json()["yes"] == 2
    assert client.get("/api/votes", headers=_as(2)).json()["total_count"] == 2

    bad_vote = client.post(
        f"/api/groups/{group_id}/votes", json={"event_id": 10, "vote": "perhaps"}, headers=_as(1)
    )
    missing_event = client.post(
        f"/api/groups/{group_id}/votes", json={"event_id": 999, "vote": "yes"}, headers=_as(1)
    )
    assert bad_vote.status_code == 400
    assert missing_event.status_code == 404


def test_unknown_group_or_event_returns_404(client):
    group_id = _create_group(client)

    assert client.get("/api/groups/4242/messages/unread").status_code == 404
    assert client.get("/api/groups/4242/events/10/votes").status_code == 404
    assert client.get(f"/api/groups/{group_id}/events/9999/votes").status_code == 404


def test_matching_routes(client):
    events = client.get("/api/matching/events", headers=_as(1)).json()
    assert [e["id"] for e in events["events"]] == [10, 12]

    attendees = client.get("/api/matching/events/10/users", headers=_as(1)).json()
    assert [u["id"] for u in attendees["users"]] == [2]
    assert client.get("/api/matching/events/10/users", headers=_as(2)).status_code == 403

    people = client.get("/api/matching/users", headers=_as(1)).json()
    assert [u["username"] for u in people["users"]] == ["sam"]

    score = client.get("/api/matching/compatibility/2", headers=_as(1)).json()
    assert score == {"user_id": 1, "other_user_id": 2, "score": 52}


def test_ai_helpers_fall_back_without_oracle(client):
    response = client.post(
        "/api/ai/mutual-time-slot",
        json={
            "availabilities": [
                {"user_id": 1, "dates": ["2024-06-01"], "time_slots": ["morning", "evening"]},
                {"user_id": 2, "dates": ["2024-06-01"], "time_slots": ["evening"]},
            ]
        },
    )
    assert response.json() == {"date": "2024-06-01", "time_slot": "evening", "source": "fallback"}

    tags = client.post(
        "/api/ai/event-tags", json={"title": "Board games", "description": "Bring one"}
    )
    assert tags.json() == {"tags": []}


def test_nearby_routes(client):
    users = client.get(
        "/api/nearby/users",
        params={"latitude": "40.7128", "longitude": "-74.0060", "radius_km": 15},
    ).json()
    assert [u["id"] for u in users["users"]] == [1, 2]

    events = client.get("/api/nearby/events", params={"latitude": "42.36", "longitude": "-71.06"})
    assert [e["id"] for e in events.json()["events"]] == [11]

    bad = client.get("/api/nearby/users", params={"latitude": "north", "longitude": "-74"})
    assert bad.status_code == 400
