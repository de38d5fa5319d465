import pytest

from link_app.config import Settings
from link_app.features.coordination.domain import Event, EventType, GeoPoint, User
from link_app.features.coordination.repository import build_in_memory_repositories
from link_app.features.coordination.services.coordination_service import CoordinationService

MANHATTAN = GeoPoint(latitude=40.7128, longitude=-74.0060)
BROOKLYN = GeoPoint(latitude=40.6782, longitude=-73.9442)
BOSTON = GeoPoint(latitude=42.3601, longitude=-71.0589)


def build_users() -> list[User]:
    return [
        User(
            id=1,
            username="alex",
            full_name="Alex Rivera",
            interests=frozenset({"hiking", "coding", "photography"}),
            skills=frozenset({"python", "design"}),
            career_path="software",
            location=MANHATTAN,
        ),
        User(
            id=2,
            username="sam",
            full_name="Sam Lee",
            interests=frozenset({"hiking", "cooking"}),
            skills=frozenset({"python"}),
            career_path="software",
            location=BROOKLYN,
        ),
        User(
            id=3,
            username="jordan",
            full_name="Jordan Park",
            interests=frozenset({"painting"}),
            skills=frozenset({"marketing"}),
            career_path="marketing",
            location=BOSTON,
        ),
        User(id=4, username="casey", full_name="Casey Quinn"),
    ]


def build_events() -> list[Event]:
    return [
        Event(
            id=10,
            title="Python meetup",
            description="Lightning talks and pizza",
            host_id=1,
            event_type=EventType.NETWORKING,
            tags=frozenset({"tech"}),
            interest_categories=frozenset({"coding"}),
            required_skills=frozenset({"python"}),
            career_focus="software",
            location=MANHATTAN,
            radius_m=20000,
            max_attendees=40,
        ),
        Event(
            id=11,
            title="Harbor art walk",
            description="Galleries along the waterfront",
            host_id=3,
            interest_categories=frozenset({"painting"}),
            location=BOSTON,
        ),
        Event(
            id=12,
            title="Open mixer",
            description="Anyone welcome",
            host_id=2,
            location=BROOKLYN,
        ),
    ]


class FakeSink:
    """Collects events the hub delivers to one client."""

    def __init__(self):
        self.sent: list[dict] = []

    async def send_json(self, data):
        self.sent.append(data)

    def of_type(self, event_type: str) -> list[dict]:
        return [event for event in self.sent if event["type"] == event_type]


@pytest.fixture
def test_settings():
    return Settings(_env_file=None, environment="test", ORACLE_ENABLED=False)


@pytest.fixture
def repositories():
    return build_in_memory_repositories(users=build_users(), events=build_events())


@pytest.fixture
def coordination(test_settings, repositories):
    return CoordinationService(test_settings, repositories)


@pytest.fixture
def make_sink():
    return FakeSink
