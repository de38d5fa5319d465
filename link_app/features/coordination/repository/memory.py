"""
In-memory repositories.

Each repository owns an id-indexed collection and its own id sequence.
Mutations run under a lock and write back replacement values, so readers
never observe a half-applied change and never share a mutable record.
"""

import itertools
import threading
from collections.abc import Iterable
from dataclasses import replace
from datetime import UTC, date, datetime
from typing import Any

from link_app.features.coordination.domain import (
    AvailabilityRecord,
    ChatMessage,
    Event,
    EventVote,
    Group,
    GroupMembership,
    MembershipRole,
    MessageType,
    NotFoundError,
    TimeSlot,
    User,
    VoteChoice,
)

from .base import CoordinationRepositories


def _utcnow() -> datetime:
    return datetime.now(UTC)


class IdSequence:
    """Thread-safe monotonically increasing id generator."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            return next(self._counter)


class InMemoryUserRepository:
    def __init__(self, users: Iterable[User] = ()):
        self._users: dict[int, User] = {user.id: user for user in users}
        self._lock = threading.Lock()

    def add(self, user: User) -> User:
        with self._lock:
            self._users[user.id] = user
        return user

    async def get_user(self, user_id: int) -> User | None:
        return self._users.get(user_id)

    async def list_users(self) -> list[User]:
        with self._lock:
            return list(self._users.values())


class InMemoryEventRepository:
    def __init__(self, events: Iterable[Event] = ()):
        self._events: dict[int, Event] = {event.id: event for event in events}
        self._lock = threading.Lock()

    def add(self, event: Event) -> Event:
        with self._lock:
            self._events[event.id] = event
        return event

    async def get_event(self, event_id: int) -> Event | None:
        return self._events.get(event_id)

    async def list_events(self) -> list[Event]:
        with self._lock:
            return list(self._events.values())


class InMemoryGroupRepository:
    def __init__(self):
        self._groups: dict[int, Group] = {}
        self._memberships: dict[int, GroupMembership] = {}
        self._group_ids = IdSequence()
        self._membership_ids = IdSequence()
        self._lock = threading.Lock()

    async def create_group(
        self,
        name: str,
        created_by: int,
        description: str | None,
        image_url: str | None,
        group_type: str,
    ) -> Group:
        group = Group(
            id=self._group_ids.next(),
            name=name,
            created_by=created_by,
            created_at=_utcnow(),
            description=description,
            image_url=image_url,
            group_type=group_type,
            member_count=0,
        )
        with self._lock:
            self._groups[group.id] = group
        return group

    async def get_group(self, group_id: int) -> Group | None:
        return self._groups.get(group_id)

    async def adjust_member_count(self, group_id: int, delta: int) -> Group:
        with self._lock:
            group = self._groups.get(group_id)
            if group is None:
                raise NotFoundError("group", group_id)
            updated = replace(group, member_count=max(0, group.member_count + delta))
            self._groups[group_id] = updated
            return updated

    async def add_membership(
        self, group_id: int, user_id: int, role: MembershipRole
    ) -> GroupMembership:
        membership = GroupMembership(
            id=self._membership_ids.next(),
            group_id=group_id,
            user_id=user_id,
            role=role,
            joined_at=_utcnow(),
        )
        with self._lock:
            self._memberships[membership.id] = membership
        return membership

    async def get_active_membership(self, group_id: int, user_id: int) -> GroupMembership | None:
        with self._lock:
            for membership in self._memberships.values():
                if (
                    membership.group_id == group_id
                    and membership.user_id == user_id
                    and membership.is_active
                ):
                    return membership
        return None

    async def deactivate_membership(self, membership_id: int) -> GroupMembership:
        with self._lock:
            membership = self._memberships.get(membership_id)
            if membership is None:
                raise NotFoundError("membership", membership_id)
            updated = replace(membership, is_active=False)
            self._memberships[membership_id] = updated
            return updated

    async def list_active_memberships(self, group_id: int) -> list[GroupMembership]:
        with self._lock:
            return [
                m for m in self._memberships.values() if m.group_id == group_id and m.is_active
            ]

    async def list_user_memberships(self, user_id: int) -> list[GroupMembership]:
        with self._lock:
            return [m for m in self._memberships.values() if m.user_id == user_id and m.is_active]


class InMemoryAvailabilityRepository:
    def __init__(self):
        self._records: dict[tuple[int, date], AvailabilityRecord] = {}
        self._lock = threading.Lock()

    async def upsert(
        self, user_id: int, day: date, timeslots: tuple[TimeSlot, ...]
    ) -> AvailabilityRecord:
        record = AvailabilityRecord(user_id=user_id, date=day, timeslots=timeslots)
        with self._lock:
            self._records[(user_id, day)] = record
        return record

    async def delete(self, user_id: int, day: date) -> bool:
        with self._lock:
            return self._records.pop((user_id, day), None) is not None

    async def list_for_user(self, user_id: int) -> list[AvailabilityRecord]:
        with self._lock:
            records = [r for (uid, _), r in self._records.items() if uid == user_id]
        return sorted(records, key=lambda r: r.date)

    async def list_for_date(self, day: date) -> list[AvailabilityRecord]:
        with self._lock:
            return [r for (_, d), r in self._records.items() if d == day]


class InMemoryChatMessageRepository:
    def __init__(self):
        self._messages: dict[int, ChatMessage] = {}
        self._ids = IdSequence()
        self._lock = threading.Lock()

    async def create(
        self,
        group_id: int,
        user_id: int,
        text: str,
        message_type: MessageType,
        attachment_url: str | None,
        reference_data: dict[str, Any],
    ) -> ChatMessage:
        message = ChatMessage(
            id=self._ids.next(),
            group_id=group_id,
            user_id=user_id,
            text=text,
            sent_at=_utcnow(),
            message_type=message_type,
            attachment_url=attachment_url,
            reference_data=dict(reference_data),
        )
        with self._lock:
            self._messages[message.id] = message
        return message

    async def list_for_group(self, group_id: int, limit: int, offset: int) -> list[ChatMessage]:
        with self._lock:
            messages = [m for m in self._messages.values() if m.group_id == group_id]
        # ids are assigned in arrival order, so they order messages newest first
        messages.sort(key=lambda m: m.id, reverse=True)
        return messages[offset : offset + limit]

    async def mark_read(self, group_id: int) -> int:
        with self._lock:
            unread = [
                m for m in self._messages.values() if m.group_id == group_id and not m.is_read
            ]
            for message in unread:
                self._messages[message.id] = replace(message, is_read=True)
        return len(unread)

    async def count_unread(self, group_id: int) -> int:
        with self._lock:
            return sum(
                1 for m in self._messages.values() if m.group_id == group_id and not m.is_read
            )


class InMemoryVoteRepository:
    def __init__(self):
        self._votes: dict[int, EventVote] = {}
        self._ids = IdSequence()
        self._lock = threading.Lock()

    async def create(
        self, group_id: int, user_id: int, event_id: int, vote: VoteChoice
    ) -> EventVote:
        record = EventVote(
            id=self._ids.next(),
            group_id=group_id,
            user_id=user_id,
            event_id=event_id,
            vote=vote,
            voted_at=_utcnow(),
        )
        with self._lock:
            self._votes[record.id] = record
        return record

    async def list_for_group_event(self, group_id: int, event_id: int) -> list[EventVote]:
        with self._lock:
            votes = [
                v
                for v in self._votes.values()
                if v.group_id == group_id and v.event_id == event_id
            ]
        return sorted(votes, key=lambda v: v.id)

    async def list_for_user(self, user_id: int) -> list[EventVote]:
        with self._lock:
            votes = [v for v in self._votes.values() if v.user_id == user_id]
        return sorted(votes, key=lambda v: v.id)


def build_in_memory_repositories(
    users: Iterable[User] = (), events: Iterable[Event] = ()
) -> CoordinationRepositories:
    """Wire a fresh set of in-memory repositories."""
    return CoordinationRepositories(
        users=InMemoryUserRepository(users),
        events=InMemoryEventRepository(events),
        groups=InMemoryGroupRepository(),
        availability=InMemoryAvailabilityRepository(),
        messages=InMemoryChatMessageRepository(),
        votes=InMemoryVoteRepository(),
    )
