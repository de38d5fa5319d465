"""
Domain models for the coordination feature.

Records are frozen dataclasses: repositories hand out values, and any change
(reading a message, deactivating a membership) is written back explicitly as
a new value. Users and events are read-only inputs owned by other flows.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


class TimeSlot(str, Enum):
    """Fixed availability windows, declared in chronological order."""

    EARLY_MORNING_1 = "early_morning_1"
    MORNING = "morning"
    EARLY_AFTERNOON = "early_afternoon"
    LATE_AFTERNOON = "late_afternoon"
    EVENING = "evening"
    NIGHT = "night"
    LATE_NIGHT = "late_night"
    EARLY_MORNING_2 = "early_morning_2"

    @classmethod
    def canonical_order(cls) -> list["TimeSlot"]:
        return list(cls)

    @classmethod
    def labels(cls) -> list[str]:
        return [slot.value for slot in cls]


TIMESLOT_RANK: dict[TimeSlot, int] = {slot: i for i, slot in enumerate(TimeSlot)}


class MembershipRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"


class VoteChoice(str, Enum):
    YES = "yes"
    NO = "no"
    MAYBE = "maybe"


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    EVENT = "event"
    LOCATION = "location"


class EventType(str, Enum):
    SOCIAL = "social"
    NETWORKING = "networking"


@dataclass(slots=True, frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


@dataclass(slots=True, frozen=True)
class User:
    """Profile fields the matching heuristics read."""

    id: int
    username: str
    full_name: str = ""
    interests: frozenset[str] = frozenset()
    skills: frozenset[str] = frozenset()
    career_path: str | None = None
    profession: str | None = None
    location: GeoPoint | None = None
    timezone: str = "America/New_York"

    @property
    def latitude(self) -> float | None:
        return self.location.latitude if self.location else None

    @property
    def longitude(self) -> float | None:
        return self.location.longitude if self.location else None


@dataclass(slots=True, frozen=True)
class Event:
    """
    Social or networking event.

    Networking events typically carry ``max_attendees``/``category`` and social
    events a ``group_id``; both live on one shape as optional fields.
    """

    id: int
    title: str
    description: str
    host_id: int
    event_type: EventType = EventType.SOCIAL
    date: datetime | None = None
    category: str | None = None
    tags: frozenset[str] = frozenset()
    interest_categories: frozenset[str] = frozenset()
    required_skills: frozenset[str] = frozenset()
    career_focus: str | None = None
    location: GeoPoint | None = None
    radius_m: int | None = None
    group_id: int | None = None
    max_attendees: int | None = None

    @property
    def latitude(self) -> float | None:
        return self.location.latitude if self.location else None

    @property
    def longitude(self) -> float | None:
        return self.location.longitude if self.location else None


@dataclass(slots=True, frozen=True)
class AvailabilityRecord:
    """A user's open time slots for one calendar date (canonical order)."""

    user_id: int
    date: date
    timeslots: tuple[TimeSlot, ...]


@dataclass(slots=True, frozen=True)
class Group:
    id: int
    name: str
    created_by: int
    created_at: datetime
    description: str | None = None
    image_url: str | None = None
    group_type: str = "social"
    member_count: int = 1
    is_active: bool = True


@dataclass(slots=True, frozen=True)
class GroupMembership:
    id: int
    group_id: int
    user_id: int
    role: MembershipRole
    joined_at: datetime
    is_active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.is_active and self.role == MembershipRole.ADMIN


@dataclass(slots=True, frozen=True)
class ChatMessage:
    id: int
    group_id: int
    user_id: int
    text: str
    sent_at: datetime
    is_read: bool = False
    message_type: MessageType = MessageType.TEXT
    attachment_url: str | None = None
    reference_data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Wire representation used by realtime payloads."""
        return {
            "id": self.id,
            "groupId": self.group_id,
            "userId": self.user_id,
            "message": self.text,
            "sentAt": self.sent_at.isoformat(),
            "isRead": self.is_read,
            "messageType": self.message_type.value,
            "attachmentUrl": self.attachment_url,
            "referenceData": dict(self.reference_data),
        }


@dataclass(slots=True, frozen=True)
class EventVote:
    id: int
    group_id: int
    user_id: int
    event_id: int
    vote: VoteChoice
    voted_at: datetime


@dataclass(slots=True, frozen=True)
class VoteTally:
    yes: int = 0
    no: int = 0
    maybe: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"yes": self.yes, "no": self.no, "maybe": self.maybe}


@dataclass(slots=True, frozen=True)
class UserAvailabilityWindow:
    """Candidate dates and slots one user offered for a group plan."""

    user_id: int
    dates: tuple[str, ...]
    time_slots: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class MutualSlotSuggestion:
    date: str
    time_slot: str
    source: str = "fallback"

    def to_dict(self) -> dict[str, str]:
        return {"date": self.date, "timeSlot": self.time_slot}
