"""
Local development fixtures.

Loads users and events from a JSON file (``COORDINATION_SEED_FILE``) so the
in-memory service has someone to authenticate and something to rank. The
file shape mirrors the public API naming::

    {"users": [{"id": 1, "username": "alex", "interests": [...], ...}],
     "events": [{"id": 1, "title": "...", "hostId": 1, ...}]}
"""

import json
from datetime import datetime
from pathlib import Path

from link_app.features.coordination.domain import Event, EventType, GeoPoint, User
from link_app.features.coordination.services.geo_service import parse_coordinate
from link_app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def _location(row: dict) -> GeoPoint | None:
    lat = parse_coordinate(row.get("latitude"))
    lon = parse_coordinate(row.get("longitude"))
    if lat is None or lon is None:
        return None
    return GeoPoint(latitude=lat, longitude=lon)


def user_from_dict(row: dict) -> User:
    return User(
        id=int(row["id"]),
        username=row["username"],
        full_name=row.get("fullName", ""),
        interests=frozenset(row.get("interests") or []),
        skills=frozenset(row.get("skills") or []),
        career_path=row.get("careerPath"),
        profession=row.get("profession"),
        location=_location(row),
        timezone=row.get("timezone") or "America/New_York",
    )


def event_from_dict(row: dict) -> Event:
    raw_date = row.get("date")
    return Event(
        id=int(row["id"]),
        title=row["title"],
        description=row.get("description", ""),
        host_id=int(row["hostId"]),
        event_type=EventType(row.get("type", EventType.SOCIAL.value)),
        date=datetime.fromisoformat(raw_date.replace("Z", "+00:00")) if raw_date else None,
        category=row.get("category"),
        tags=frozenset(row.get("tags") or []),
        interest_categories=frozenset(row.get("interestCategories") or []),
        required_skills=frozenset(row.get("requiredSkills") or []),
        career_focus=row.get("careerFocus"),
        location=_location(row),
        radius_m=row.get("radius"),
        group_id=row.get("groupId"),
        max_attendees=row.get("maxAttendees"),
    )


def load_seed_file(path: str | Path) -> tuple[list[User], list[Event]]:
    """Parse a seed file into users and events."""
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    users = [user_from_dict(row) for row in payload.get("users", [])]
    events = [event_from_dict(row) for row in payload.get("events", [])]

    logger.info("Seed data loaded", path=str(path), users=len(users), events=len(events))
    return users, events
