"""
Coordination service - the single entry point the HTTP layer talks to.

Composes availability, matching, groups and the realtime hub over one set of
repositories. Writes that arrive over HTTP are pushed through the hub so live
clients see them exactly as if they had been sent over the socket.
"""

from collections.abc import Iterable
from datetime import date, datetime

from link_app.config import Settings
from link_app.features.coordination.domain import (
    AvailabilityRecord,
    ChatMessage,
    Event,
    EventVote,
    ForbiddenError,
    GeoPoint,
    Group,
    GroupMembership,
    MembershipRole,
    MessageType,
    MutualSlotSuggestion,
    NotFoundError,
    TimeSlot,
    User,
    UserAvailabilityWindow,
    ValidationError,
    VoteChoice,
    VoteTally,
)
from link_app.features.coordination.realtime import messages as events
from link_app.features.coordination.realtime.hub import RealtimeHub
from link_app.features.coordination.repository import (
    CoordinationRepositories,
    build_in_memory_repositories,
)
from link_app.features.coordination.repository.seed import load_seed_file
from link_app.infrastructure.observability.logging import get_logger

from .availability_service import AvailabilityService
from .geo_service import parse_coordinate, within_radius
from .group_service import GroupService
from .matching_service import MatchingService
from .oracle_service import RankingOracle, build_ranking_oracle

logger = get_logger(__name__)

DateLike = date | datetime | str


class CoordinationService:
    def __init__(
        self,
        settings: Settings,
        repositories: CoordinationRepositories,
        oracle: RankingOracle | None = None,
    ):
        self.settings = settings
        self.repositories = repositories
        self.availability = AvailabilityService(repositories.availability)
        self.matching = MatchingService(settings, oracle)
        self.groups = GroupService(repositories)
        self.hub = RealtimeHub(self.groups, repositories.users, settings)

    @property
    def oracle_enabled(self) -> bool:
        return self.matching.oracle is not None

    # ------------------------------------------------------------------
    # Users and events
    # ------------------------------------------------------------------

    async def get_user(self, user_id: int) -> User:
        user = await self.repositories.users.get_user(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    async def get_event(self, event_id: int) -> Event:
        event = await self.repositories.events.get_event(event_id)
        if event is None:
            raise NotFoundError("event", event_id)
        return event

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    async def set_availability(
        self, user_id: int, day: DateLike, timeslots: Iterable[str | TimeSlot]
    ) -> AvailabilityRecord:
        await self.get_user(user_id)
        return await self.availability.set_availability(user_id, day, timeslots)

    async def clear_availability(self, user_id: int, day: DateLike) -> bool:
        return await self.availability.clear_availability(user_id, day)

    async def get_availability(self, user_id: int) -> list[AvailabilityRecord]:
        return await self.availability.get_availability(user_id)

    async def users_available_on(self, day: DateLike) -> list[User]:
        user_ids = await self.availability.users_available_on(day)
        users = [await self.repositories.users.get_user(user_id) for user_id in sorted(user_ids)]
        return [user for user in users if user is not None]

    async def mutual_slots(self, user_ids: Iterable[int], day: DateLike) -> list[TimeSlot]:
        return await self.availability.mutual_slots(user_ids, day)

    # ------------------------------------------------------------------
    # Groups, chat and votes
    # ------------------------------------------------------------------

    async def create_group(
        self,
        creator_id: int,
        name: str,
        description: str | None = None,
        image_url: str | None = None,
        group_type: str = "social",
    ) -> Group:
        return await self.groups.create_group(creator_id, name, description, image_url, group_type)

    async def get_group(self, group_id: int) -> Group:
        return await self.groups.get_group(group_id)

    async def is_member(self, group_id: int, user_id: int) -> bool:
        return await self.groups.is_member(group_id, user_id)

    async def list_members(self, group_id: int) -> list[GroupMembership]:
        return await self.groups.list_members(group_id)

    async def list_user_groups(self, user_id: int) -> list[Group]:
        return await self.groups.list_user_groups(user_id)

    async def add_member(
        self,
        group_id: int,
        actor_id: int,
        new_user_id: int,
        role: MembershipRole | str = MembershipRole.MEMBER,
    ) -> GroupMembership:
        membership = await self.groups.add_member(group_id, actor_id, new_user_id, role)
        self.hub.notify_group(
            group_id,
            events.notification("member_joined", groupId=group_id, userId=new_user_id),
        )
        self.hub.notify_user(
            new_user_id,
            events.notification("added_to_group", groupId=group_id, role=membership.role.value),
        )
        return membership

    async def remove_member(self, group_id: int, actor_id: int, user_id: int) -> GroupMembership:
        membership = await self.groups.remove_member(group_id, actor_id, user_id)
        self.hub.forget_membership(group_id, user_id)
        self.hub.notify_group(
            group_id, events.notification("member_left", groupId=group_id, userId=user_id)
        )
        return membership

    async def post_message(
        self,
        group_id: int,
        sender_id: int,
        text: str,
        message_type: MessageType | str = MessageType.TEXT,
        attachment_url: str | None = None,
        reference_data: dict | None = None,
    ) -> ChatMessage:
        message = await self.groups.post_message(
            group_id, sender_id, text, message_type, attachment_url, reference_data
        )
        self.hub.broadcast_to_group(group_id, events.new_message(message))
        return message

    async def list_messages(
        self, group_id: int, limit: int = 50, offset: int = 0, reader_id: int | None = None
    ) -> list[ChatMessage]:
        """Newest first. When ``reader_id`` is given the reader must be an active member."""
        messages = await self.groups.list_messages(group_id, limit, offset)
        if reader_id is not None and not await self.groups.is_member(group_id, reader_id):
            raise ForbiddenError(f"User {reader_id} is not a member of group {group_id}")
        return messages

    async def mark_read(self, user_id: int, group_id: int) -> int:
        return await self.groups.mark_read(user_id, group_id)

    async def unread_count(self, group_id: int) -> int:
        return await self.groups.unread_count(group_id)

    async def cast_vote(
        self, group_id: int, voter_id: int, event_id: int, vote: VoteChoice | str
    ) -> EventVote:
        record = await self.groups.cast_vote(group_id, voter_id, event_id, vote)
        tally = await self.groups.tally(group_id, event_id)
        self.hub.broadcast_to_group(group_id, events.vote_update(record, tally))
        return record

    async def tally(self, group_id: int, event_id: int) -> VoteTally:
        return await self.groups.tally(group_id, event_id)

    async def votes_by_user(self, user_id: int) -> list[EventVote]:
        return await self.groups.votes_by_user(user_id)

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    async def match_events_for_user(
        self, user_id: int, radius_km: float | None = None
    ) -> list[Event]:
        user = await self.get_user(user_id)
        candidates = await self.repositories.events.list_events()
        return await self.matching.rank_events_for_user(user, candidates, radius_km=radius_km)

    async def match_users_for_event(
        self, event_id: int, actor_id: int, radius_km: float | None = None
    ) -> list[User]:
        """Candidate attendees for an event; only its host may ask."""
        event = await self.get_event(event_id)
        if event.host_id != actor_id:
            raise ForbiddenError("Only the event host can request attendee matches")

        users = await self.repositories.users.list_users()
        candidates = [u for u in users if u.id != event.host_id]
        return await self.matching.rank_users_for_event(event, candidates, radius_km=radius_km)

    async def match_users_for_user(self, user_id: int) -> list[User]:
        user = await self.get_user(user_id)
        candidates = await self.repositories.users.list_users()
        return await self.matching.rank_users_for_user(user, candidates)

    async def compatibility(self, user_a_id: int, user_b_id: int) -> int:
        user_a = await self.get_user(user_a_id)
        user_b = await self.get_user(user_b_id)
        return self.matching.compatibility_score(user_a, user_b)

    async def find_mutual_time_slot(
        self, availabilities: list[UserAvailabilityWindow]
    ) -> MutualSlotSuggestion:
        return await self.matching.mutual_time_slot_across_users(availabilities)

    async def generate_event_tags(self, title: str, description: str, event_type: str) -> list[str]:
        return await self.matching.suggest_tags(title, description, event_type)

    # ------------------------------------------------------------------
    # Nearby search
    # ------------------------------------------------------------------

    def _search_area(self, latitude, longitude, radius_km: float | None) -> tuple[GeoPoint, float]:
        lat, lon = parse_coordinate(latitude), parse_coordinate(longitude)
        if lat is None or lon is None:
            raise ValidationError("Latitude and longitude are required")
        if not -90 <= lat <= 90 or not -180 <= lon <= 180:
            raise ValidationError("Coordinates out of range")

        radius = self.settings.DEFAULT_SEARCH_RADIUS_KM if radius_km is None else radius_km
        if radius <= 0:
            raise ValidationError("Radius must be positive")
        return GeoPoint(latitude=lat, longitude=lon), radius

    async def users_near(self, latitude, longitude, radius_km: float | None = None) -> list[User]:
        center, radius = self._search_area(latitude, longitude, radius_km)
        return within_radius(center, radius, await self.repositories.users.list_users())

    async def events_near(self, latitude, longitude, radius_km: float | None = None) -> list[Event]:
        center, radius = self._search_area(latitude, longitude, radius_km)
        return within_radius(center, radius, await self.repositories.events.list_events())


def build_coordination_service(
    settings: Settings,
    repositories: CoordinationRepositories | None = None,
    oracle: RankingOracle | None = None,
) -> CoordinationService:
    """
    Wire a service from settings.

    Without explicit repositories an in-memory set is created, seeded from
    ``COORDINATION_SEED_FILE`` when configured. Without an explicit oracle
    one is built from settings (None unless enabled and keyed).
    """
    if repositories is None:
        users, seeded_events = [], []
        if settings.COORDINATION_SEED_FILE:
            users, seeded_events = load_seed_file(settings.COORDINATION_SEED_FILE)
        repositories = build_in_memory_repositories(users=users, events=seeded_events)

    if oracle is None:
        oracle = build_ranking_oracle(settings)

    service = CoordinationService(settings, repositories, oracle)
    logger.info(
        "Coordination service ready",
        oracle_enabled=service.oracle_enabled,
        environment=settings.environment,
    )
    return service
