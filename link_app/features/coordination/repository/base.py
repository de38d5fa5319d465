"""
Repository interfaces the coordination services depend on.

Services receive these through their constructors, so a database-backed
implementation can replace the in-memory one without touching business
logic. Every mutating call is atomic on its own; no cross-record
transactions are required.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Protocol

from link_app.features.coordination.domain import (
    AvailabilityRecord,
    ChatMessage,
    Event,
    EventVote,
    Group,
    GroupMembership,
    MembershipRole,
    MessageType,
    TimeSlot,
    User,
    VoteChoice,
)


class UserRepository(Protocol):
    async def get_user(self, user_id: int) -> User | None: ...

    async def list_users(self) -> list[User]: ...


class EventRepository(Protocol):
    async def get_event(self, event_id: int) -> Event | None: ...

    async def list_events(self) -> list[Event]: ...


class GroupRepository(Protocol):
    async def create_group(
        self,
        name: str,
        created_by: int,
        description: str | None,
        image_url: str | None,
        group_type: str,
    ) -> Group: ...

    async def get_group(self, group_id: int) -> Group | None: ...

    async def adjust_member_count(self, group_id: int, delta: int) -> Group: ...

    async def add_membership(
        self, group_id: int, user_id: int, role: MembershipRole
    ) -> GroupMembership: ...

    async def get_active_membership(
        self, group_id: int, user_id: int
    ) -> GroupMembership | None: ...

    async def deactivate_membership(self, membership_id: int) -> GroupMembership: ...

    async def list_active_memberships(self, group_id: int) -> list[GroupMembership]: ...

    async def list_user_memberships(self, user_id: int) -> list[GroupMembership]: ...


class AvailabilityRepository(Protocol):
    async def upsert(
        self, user_id: int, day: date, timeslots: tuple[TimeSlot, ...]
    ) -> AvailabilityRecord: ...

    async def delete(self, user_id: int, day: date) -> bool: ...

    async def list_for_user(self, user_id: int) -> list[AvailabilityRecord]: ...

    async def list_for_date(self, day: date) -> list[AvailabilityRecord]: ...


class ChatMessageRepository(Protocol):
    async def create(
        self,
        group_id: int,
        user_id: int,
        text: str,
        message_type: MessageType,
        attachment_url: str | None,
        reference_data: dict[str, Any],
    ) -> ChatMessage: ...

    async def list_for_group(self, group_id: int, limit: int, offset: int) -> list[ChatMessage]: ...

    async def mark_read(self, group_id: int) -> int: ...

    async def count_unread(self, group_id: int) -> int: ...


class VoteRepository(Protocol):
    async def create(
        self, group_id: int, user_id: int, event_id: int, vote: VoteChoice
    ) -> EventVote: ...

    async def list_for_group_event(self, group_id: int, event_id: int) -> list[EventVote]: ...

    async def list_for_user(self, user_id: int) -> list[EventVote]: ...


@dataclass(slots=True)
class CoordinationRepositories:
    """Bundle of the persistence collaborators the facade is built from."""

    users: UserRepository
    events: EventRepository
    groups: GroupRepository
    availability: AvailabilityRepository
    messages: ChatMessageRepository
    votes: VoteRepository
