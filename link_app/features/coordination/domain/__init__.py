"""
Domain subpackage for the coordination feature.
"""

from .errors import (
    AuthError,
    CoordinationError,
    ForbiddenError,
    NotFoundError,
    OracleUnavailableError,
    ValidationError,
)
from .models import (
    TIMESLOT_RANK,
    AvailabilityRecord,
    ChatMessage,
    Event,
    EventType,
    EventVote,
    GeoPoint,
    Group,
    GroupMembership,
    MembershipRole,
    MessageType,
    MutualSlotSuggestion,
    TimeSlot,
    User,
    UserAvailabilityWindow,
    VoteChoice,
    VoteTally,
)

__all__ = [
    "AuthError",
    "AvailabilityRecord",
    "ChatMessage",
    "CoordinationError",
    "Event",
    "EventType",
    "EventVote",
    "ForbiddenError",
    "GeoPoint",
    "Group",
    "GroupMembership",
    "MembershipRole",
    "MessageType",
    "MutualSlotSuggestion",
    "NotFoundError",
    "OracleUnavailableError",
    "TIMESLOT_RANK",
    "TimeSlot",
    "User",
    "UserAvailabilityWindow",
    "ValidationError",
    "VoteChoice",
    "VoteTally",
]
