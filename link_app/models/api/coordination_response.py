# link_app/models/api/coordination_response.py
"""
Coordination API response models.
Used by routes for output formatting; each model knows how to build itself
from the matching domain record.
"""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field

from link_app.features.coordination.domain import (
    AvailabilityRecord,
    ChatMessage,
    Event,
    EventVote,
    Group,
    GroupMembership,
    User,
    VoteTally,
)


class UserResponse(BaseModel):
    id: int
    username: str
    full_name: str = ""
    interests: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    career_path: str | None = None
    profession: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    timezone: str

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            full_name=user.full_name,
            interests=sorted(user.interests),
            skills=sorted(user.skills),
            career_path=user.career_path,
            profession=user.profession,
            latitude=user.latitude,
            longitude=user.longitude,
            timezone=user.timezone,
        )


class UserListResponse(BaseModel):
    users: list[UserResponse]
    total_count: int


class EventResponse(BaseModel):
    id: int
    title: str
    description: str = ""
    host_id: int
    event_type: str
    date: datetime | None = None
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    interest_categories: list[str] = Field(default_factory=list)
    required_skills: list[str] = Field(default_factory=list)
    career_focus: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    radius_m: int | None = None
    group_id: int | None = None
    max_attendees: int | None = None

    @classmethod
    def from_domain(cls, event: Event) -> "EventResponse":
        return cls(
            id=event.id,
            title=event.title,
            description=event.description,
            host_id=event.host_id,
            event_type=event.event_type.value,
            date=event.date,
            category=event.category,
            tags=sorted(event.tags),
            interest_categories=sorted(event.interest_categories),
            required_skills=sorted(event.required_skills),
            career_focus=event.career_focus,
            latitude=event.latitude,
            longitude=event.longitude,
            radius_m=event.radius_m,
            group_id=event.group_id,
            max_attendees=event.max_attendees,
        )


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total_count: int


class AvailabilityResponse(BaseModel):
    user_id: int
    date: date
    timeslots: list[str]

    @classmethod
    def from_domain(cls, record: AvailabilityRecord) -> "AvailabilityResponse":
        return cls(
            user_id=record.user_id,
            date=record.date,
            timeslots=[slot.value for slot in record.timeslots],
        )


class AvailabilityListResponse(BaseModel):
    availability: list[AvailabilityResponse]
    total_count: int


class MutualSlotsResponse(BaseModel):
    date: str = Field(..., description="Normalized calendar date")
    timeslots: list[str] = Field(..., description="Shared slots in canonical order")


class GroupResponse(BaseModel):
    id: int
    name: str
    description: str | None = None
    created_by: int
    created_at: datetime
    member_count: int
    is_active: bool
    group_type: str
    image_url: str | None = None

    @classmethod
    def from_domain(cls, group: Group) -> "GroupResponse":
        return cls(
            id=group.id,
            name=group.name,
            description=group.description,
            created_by=group.created_by,
            created_at=group.created_at,
            member_count=group.member_count,
            is_active=group.is_active,
            group_type=group.group_type,
            image_url=group.image_url,
        )


class GroupListResponse(BaseModel):
    groups: list[GroupResponse]
    total_count: int


class MembershipResponse(BaseModel):
    id: int
    group_id: int
    user_id: int
    role: str
    joined_at: datetime
    is_active: bool

    @classmethod
    def from_domain(cls, membership: GroupMembership) -> "MembershipResponse":
        return cls(
            id=membership.id,
            group_id=membership.group_id,
            user_id=membership.user_id,
            role=membership.role.value,
            joined_at=membership.joined_at,
            is_active=membership.is_active,
        )


class MemberListResponse(BaseModel):
    members: list[MembershipResponse]
    total_count: int


class ChatMessageResponse(BaseModel):
    id: int
    group_id: int
    user_id: int
    message: str
    sent_at: datetime
    is_read: bool
    message_type: str
    attachment_url: str | None = None
    reference_data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, message: ChatMessage) -> "ChatMessageResponse":
        return cls(
            id=message.id,
            group_id=message.group_id,
            user_id=message.user_id,
            message=message.text,
            sent_at=message.sent_at,
            is_read=message.is_read,
            message_type=message.message_type.value,
            attachment_url=message.attachment_url,
            reference_data=dict(message.reference_data),
        )


class MessageListResponse(BaseModel):
    messages: list[ChatMessageResponse]
    total_count: int
    limit: int
    offset: int


class MarkReadResponse(BaseModel):
    group_id: int
    marked: int


class UnreadCountResponse(BaseModel):
    group_id: int
    count: int


class VoteTallyResponse(BaseModel):
    yes: int
    no: int
    maybe: int

    @classmethod
    def from_domain(cls, tally: VoteTally) -> "VoteTallyResponse":
        return cls(yes=tally.yes, no=tally.no, maybe=tally.maybe)


class VoteResponse(BaseModel):
    id: int
    group_id: int
    user_id: int
    event_id: int
    vote: str
    voted_at: datetime

    @classmethod
    def from_domain(cls, vote: EventVote) -> "VoteResponse":
        return cls(
            id=vote.id,
            group_id=vote.group_id,
            user_id=vote.user_id,
            event_id=vote.event_id,
            vote=vote.vote.value,
            voted_at=vote.voted_at,
        )


class CastVoteResponse(BaseModel):
    vote: VoteResponse
    tally: VoteTallyResponse


class VoteListResponse(BaseModel):
    votes: list[VoteResponse]
    total_count: int


class CompatibilityResponse(BaseModel):
    user_id: int
    other_user_id: int
    score: int = Field(..., ge=0, le=100, description="Compatibility score (0-100)")


class MutualTimeSlotResponse(BaseModel):
    date: str
    time_slot: str
    source: str = Field(..., description="oracle or fallback")


class EventTagsResponse(BaseModel):
    tags: list[str]
