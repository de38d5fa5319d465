# link_app/models/api/coordination_request.py
"""
Coordination API request models.
Used by routes for input validation; domain rules are enforced by the services.
"""

from datetime import date
from typing import Any

from pydantic import BaseModel, Field


class SetAvailabilityRequest(BaseModel):
    """Replace the caller's time slots for one date."""

    date: str = Field(..., description="Calendar date (YYYY-MM-DD or ISO datetime)")
    timeslots: list[str] = Field(..., description="Time slot labels, e.g. morning, evening")


class MutualSlotsRequest(BaseModel):
    """Slots shared by a set of users on one date."""

    user_ids: list[int] = Field(..., description="Users to intersect")
    date: str = Field(..., description="Calendar date (YYYY-MM-DD or ISO datetime)")


class CreateGroupRequest(BaseModel):
    name: str = Field(..., max_length=100, description="Group name")
    description: str | None = Field(default=None, max_length=1000, description="Group description")
    image_url: str | None = Field(default=None, description="Group image URL")
    group_type: str = Field(default="social", description="Group type")


class AddMemberRequest(BaseModel):
    user_id: int = Field(..., description="User to add")
    role: str = Field(default="member", description="Membership role (admin or member)")


class PostMessageRequest(BaseModel):
    message: str = Field(..., max_length=4000, description="Message text")
    message_type: str = Field(default="text", description="text, image, event or location")
    attachment_url: str | None = Field(default=None, description="Attachment URL")
    reference_data: dict[str, Any] | None = Field(default=None, description="Structured reference")


class CastVoteRequest(BaseModel):
    event_id: int = Field(..., description="Event being voted on")
    vote: str = Field(..., description="yes, no or maybe")


class AvailabilityWindowRequest(BaseModel):
    user_id: int = Field(..., description="User offering the window")
    dates: list[date] = Field(default_factory=list, description="Candidate dates")
    time_slots: list[str] = Field(default_factory=list, description="Candidate time slot labels")


class MutualTimeSlotRequest(BaseModel):
    """Find one date and slot that works for most of a group."""

    availabilities: list[AvailabilityWindowRequest] = Field(default_factory=list)


class EventTagsRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200, description="Event title")
    description: str = Field(default="", max_length=2000, description="Event description")
    event_type: str = Field(default="social", description="social or networking")
