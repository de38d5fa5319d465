"""
Coordination API Routes
HTTP endpoints for availability, groups, chat, votes, matching and nearby search.

Routes translate core results into response models and core errors into
HTTP status codes; the rules themselves live in the services.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from link_app.features.coordination.domain import CoordinationError, UserAvailabilityWindow
from link_app.features.coordination.services.availability_service import normalize_date
from link_app.features.coordination.services.coordination_service import CoordinationService
from link_app.infrastructure.observability.logging import get_logger
from link_app.models.api.coordination_request import (
    AddMemberRequest,
    CastVoteRequest,
    CreateGroupRequest,
    EventTagsRequest,
    MutualSlotsRequest,
    MutualTimeSlotRequest,
    PostMessageRequest,
    SetAvailabilityRequest,
)
from link_app.models.api.coordination_response import (
    AvailabilityListResponse,
    AvailabilityResponse,
    CastVoteResponse,
    ChatMessageResponse,
    CompatibilityResponse,
    EventListResponse,
    EventResponse,
    EventTagsResponse,
    GroupListResponse,
    GroupResponse,
    MarkReadResponse,
    MemberListResponse,
    MembershipResponse,
    MessageListResponse,
    MutualSlotsResponse,
    MutualTimeSlotResponse,
    UnreadCountResponse,
    UserListResponse,
    UserResponse,
    VoteListResponse,
    VoteResponse,
    VoteTallyResponse,
)

from .dependencies import current_user_id, get_coordination_service, http_error

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["coordination"])


def _users(users) -> UserListResponse:
    return UserListResponse(
        users=[UserResponse.from_domain(u) for u in users], total_count=len(users)
    )


def _events(events) -> EventListResponse:
    return EventListResponse(
        events=[EventResponse.from_domain(e) for e in events], total_count=len(events)
    )


# ----------------------------------------------------------------------
# Availability
# ----------------------------------------------------------------------


@router.put("/availability", response_model=AvailabilityResponse)
async def set_availability(
    request: SetAvailabilityRequest,
    user_id: int = Depends(current_user_id),
    service: CoordinationService = Depends(get_coordination_service),
):
    """Replace the caller's time slots for one date."""
    try:
        record = await service.set_availability(user_id, request.date, request.timeslots)
        return AvailabilityResponse.from_domain(record)
    except CoordinationError as e:
        raise http_error(e) from e


@router.get("/availability", response_model=AvailabilityListResponse)
async def get_my_availability(
    user_id: int = Depends(current_user_id),
    service: CoordinationService = Depends(get_coordination_service),
):
    records = await service.get_availability(user_id)
    return AvailabilityListResponse(
        availability=[AvailabilityResponse.from_domain(r) for r in records],
        total_count=len(records),
    )


@router.delete("/availability/{day}", status_code=status.HTTP_204_NO_CONTENT)
async def clear_availability(
    day: str,
    user_id: int = Depends(current_user_id),
    service: CoordinationService = Depends(get_coordination_service),
):
    try:
        removed = await service.clear_availability(user_id, day)
    except CoordinationError as e:
        raise http_error(e) from e
    if not removed:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="No availability for that date"
        )


@router.get("/availability/users", response_model=UserListResponse)
async def users_available_on(
    date: str = Query(..., description="Calendar date (YYYY-MM-DD)"),
    service: CoordinationService = Depends(get_coordination_service),
):
    try:
        return _users(await service.users_available_on(date))
    except CoordinationError as e:
        raise http_error(e) from e


@router.post("/availability/mutual", response_model=MutualSlotsResponse)
async def mutual_slots(
    request: MutualSlotsRequest,
    service: CoordinationService = Depends(get_coordination_service),
):
    """Slots every responding user shares on a date, or the majority fallback."""
    try:
        slots = await service.mutual_slots(request.user_ids, request.date)
        day = normalize_date(request.date).isoformat()
    except CoordinationError as e:
        raise http_error(e) from e
    return MutualSlotsResponse(date=day, timeslots=[slot.value for slot in slots])


# ----------------------------------------------------------------------
# Groups and membership
# ----------------------------------------------------------------------


@router.post("/groups", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    request: CreateGroupRequest,
    user_id: int = Depends(current_user_id),
    service: CoordinationService = Depends(get_coordination_service),
):
    try:
        group = await service.create_group(
            user_id,
            request.name,
            description=request.description,
            image_url=request.image_url,
            group_type=request.group_type,
        )
    except CoordinationError as e:
        raise http_error(e) from e
    return GroupResponse.from_domain(group)


@router.get("/groups", response_model=GroupListResponse)
async def list_my_groups(
    user_id: int = Depends(current_user_id),
    service: CoordinationService = Depends(get_coordination_service),
):
    groups = await service.list_user_groups(user_id)
    return GroupListResponse(
        groups=[GroupResponse.from_domain(g) for g in groups], total_count=len(groups)
    )


@router.get("/groups/{group_id}", response_model=GroupResponse)
async def get_group(
    group_id: int, service: CoordinationService = Depends(get_coordination_service)
):
    try:
        return GroupResponse.from_domain(await service.get_group(group_id))
    except CoordinationError as e:
        raise http_error(e) from e


@router.get("/groups/{group_id}/members", response_model=MemberListResponse)
async def list_members(
    group_id: int, service: CoordinationService = Depends(get_coordination_service)
):
    try:
        members = await service.list_members(group_id)
    except CoordinationError as e:
        raise http_error(e) from e
    return MemberListResponse(
        members=[MembershipResponse.from_domain(m) for m in members], total_count=len(members)
    )


@router.post(
    "/groups/{group_id}/members",
    response_model=MembershipResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    group_id: int,
    request: AddMemberRequest,
    user_id: int = Depends(current_user_id),
    service: CoordinationService = Depends(get_coordination_service),
):
    try:
        membership = await service.add_member(group_id, user_id, request.user_id, request.role)
    except CoordinationError as e:
        raise http_error(e) from e
    return MembershipResponse.from_domain(membership)


@router.delete("/groups/{group_id}/members/{member_id}", response_model=MembershipResponse)
async def remove_member(
    group_id: int,
    member_id: int,
    user_id: int = Depends(current_user_id),
    service: CoordinationService = Depends(get_coordination_service),
):
    """Admins remove anyone; members remove themselves."""
    try:
        membership = await service.remove_member(group_id, user_id, member_id)
    except CoordinationError as e:
        raise http_error(e) from e
    return MembershipResponse.from_domain(membership)


# ----------------------------------------------------------------------
# Chat
# ----------------------------------------------------------------------


@router.get("/groups/{group_id}/messages", response_model=MessageListResponse)
async def list_messages(
    group_id: int,
    limit: int = Query(default=50, ge=1, le=200, description="Messages per page (1-200)"),
    offset: int = Query(default=0, ge=0, description="Messages to skip"),
    user_id: int = Depends(current_user_id),
    service: CoordinationService = Depends(get_coordination_service),
):
    """Group messages, newest first."""
    try:
        messages = await service.list_messages(group_id, limit, offset, reader_id=user_id)
    except CoordinationError as e:
        raise http_error(e) from e
    return MessageListResponse(
        messages=[ChatMessageResponse.from_domain(m) for m in messages],
        total_count=len(messages),
        limit=limit,
        offset=offset,
    )


@router.post(
    "/groups/{group_id}/messages",
    response_model=ChatMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def post_message(
    group_id: int,
    request: PostMessageRequest,
    user_id: int = Depends(current_user_id),
    service: CoordinationService = Depends(get_coordination_service),
):
    try:
        message = await service.post_message(
            group_id,
            user_id,
            request.message,
            message_type=request.message_type,
            attachment_url=request.attachment_url,
            reference_data=request.reference_data,
        )
    except CoordinationError as e:
        raise http_error(e) from e
    return ChatMessageResponse.from_domain(message)


@router.post("/groups/{group_id}/messages/read", response_model=MarkReadResponse)
async def mark_messages_read(
    group_id: int,
    user_id: int = Depends(current_user_id),
    service: CoordinationService = Depends(get_coordination_service),
):
    try:
        marked = await service.mark_read(user_id, group_id)
    except CoordinationError as e:
        raise http_error(e) from e
    return MarkReadResponse(group_id=group_id, marked=marked)


@router.get("/groups/{group_id}/messages/unread", response_model=UnreadCountResponse)
async def unread_count(
    group_id: int, service: CoordinationService = Depends(get_coordination_service)
):
    try:
        count = await service.unread_count(group_id)
    except CoordinationError as e:
        raise http_error(e) from e
    return UnreadCountResponse(group_id=group_id, count=count)


# ----------------------------------------------------------------------
# Votes
# ----------------------------------------------------------------------


@router.post("/groups/{group_id}/votes", response_model=CastVoteResponse)
async def cast_vote(
    group_id: int,
    request: CastVoteRequest,
    user_id: int = Depends(current_user_id),
    service: CoordinationService = Depends(get_coordination_service),
):
    """Record the caller's vote; the tally counts each member's latest vote."""
    try:
        vote = await service.cast_vote(group_id, user_id, request.event_id, request.vote)
        tally = await service.tally(group_id, request.event_id)
    except CoordinationError as e:
        raise http_error(e) from e
    return CastVoteResponse(
        vote=VoteResponse.from_domain(vote), tally=VoteTallyResponse.from_domain(tally)
    )


@router.get("/groups/{group_id}/events/{event_id}/votes", response_model=VoteTallyResponse)
async def vote_tally(
    group_id: int, event_id: int, service: CoordinationService = Depends(get_coordination_service)
):
    try:
        tally = await service.tally(group_id, event_id)
    except CoordinationError as e:
        raise http_error(e) from e
    return VoteTallyResponse.from_domain(tally)


@router.get("/votes", response_model=VoteListResponse)
async def my_votes(
    user_id: int = Depends(current_user_id),
    service: CoordinationService = Depends(get_coordination_service),
):
    votes = await service.votes_by_user(user_id)
    return VoteListResponse(
        votes=[VoteResponse.from_domain(v) for v in votes], total_count=len(votes)
    )


# ----------------------------------------------------------------------
# Matching
# ----------------------------------------------------------------------


@router.get("/matching/events", response_model=EventListResponse)
async def match_events(
    radius_km: float | None = Query(default=None, gt=0, description="Search radius in km"),
    user_id: int = Depends(current_user_id),
    service: CoordinationService = Depends(get_coordination_service),
):
    """Events the caller qualifies for, best fit first."""
    try:
        return _events(await service.match_events_for_user(user_id, radius_km=radius_km))
    except CoordinationError as e:
        raise http_error(e) from e


@router.get("/matching/events/{event_id}/users", response_model=UserListResponse)
async def match_users_for_event(
    event_id: int,
    radius_km: float | None = Query(default=None, gt=0, description="Search radius in km"),
    user_id: int = Depends(current_user_id),
    service: CoordinationService = Depends(get_coordination_service),
):
    """Candidate attendees for an event the caller hosts."""
    try:
        return _users(await service.match_users_for_event(event_id, user_id, radius_km=radius_km))
    except CoordinationError as e:
        raise http_error(e) from e


@router.get("/matching/users", response_model=UserListResponse)
async def match_users(
    user_id: int = Depends(current_user_id),
    service: CoordinationService = Depends(get_coordination_service),
):
    try:
        return _users(await service.match_users_for_user(user_id))
    except CoordinationError as e:
        raise http_error(e) from e


@router.get("/matching/compatibility/{other_user_id}", response_model=CompatibilityResponse)
async def compatibility(
    other_user_id: int,
    user_id: int = Depends(current_user_id),
    service: CoordinationService = Depends(get_coordination_service),
):
    try:
        score = await service.compatibility(user_id, other_user_id)
    except CoordinationError as e:
        raise http_error(e) from e
    return CompatibilityResponse(user_id=user_id, other_user_id=other_user_id, score=score)


# ----------------------------------------------------------------------
# AI helpers
# ----------------------------------------------------------------------


@router.post("/ai/mutual-time-slot", response_model=MutualTimeSlotResponse)
async def mutual_time_slot(
    request: MutualTimeSlotRequest,
    service: CoordinationService = Depends(get_coordination_service),
):
    """Best date and slot across several users' offered windows."""
    windows = [
        UserAvailabilityWindow(
            user_id=window.user_id,
            dates=tuple(d.isoformat() for d in window.dates),
            time_slots=tuple(window.time_slots),
        )
        for window in request.availabilities
    ]
    suggestion = await service.find_mutual_time_slot(windows)
    logger.info("Mutual time slot suggested", users=len(windows), source=suggestion.source)
    return MutualTimeSlotResponse(
        date=suggestion.date, time_slot=suggestion.time_slot, source=suggestion.source
    )


@router.post("/ai/event-tags", response_model=EventTagsResponse)
async def event_tags(
    request: EventTagsRequest,
    service: CoordinationService = Depends(get_coordination_service),
):
    tags = await service.generate_event_tags(request.title, request.description, request.event_type)
    return EventTagsResponse(tags=tags)


# ----------------------------------------------------------------------
# Nearby
# ----------------------------------------------------------------------


@router.get("/nearby/users", response_model=UserListResponse)
async def nearby_users(
    latitude: str = Query(..., description="Center latitude"),
    longitude: str = Query(..., description="Center longitude"),
    radius_km: float | None = Query(default=None, description="Search radius in km"),
    service: CoordinationService = Depends(get_coordination_service),
):
    try:
        return _users(await service.users_near(latitude, longitude, radius_km))
    except CoordinationError as e:
        raise http_error(e) from e


@router.get("/nearby/events", response_model=EventListResponse)
async def nearby_events(
    latitude: str = Query(..., description="Center latitude"),
    longitude: str = Query(..., description="Center longitude"),
    radius_km: float | None = Query(default=None, description="Search radius in km"),
    service: CoordinationService = Depends(get_coordination_service),
):
    try:
        return _events(await service.events_near(latitude, longitude, radius_km))
    except CoordinationError as e:
        raise http_error(e) from e
