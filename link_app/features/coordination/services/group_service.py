"""
Group service - membership, chat messages and event votes scoped to a group.

Every privileged action re-checks the actor's active membership at call time;
nothing is cached from an earlier authentication.
"""

from typing import Any

from link_app.features.coordination.domain import (
    ChatMessage,
    EventVote,
    ForbiddenError,
    Group,
    GroupMembership,
    MembershipRole,
    MessageType,
    NotFoundError,
    ValidationError,
    VoteChoice,
    VoteTally,
)
from link_app.features.coordination.repository import CoordinationRepositories
from link_app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def _parse_enum(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field_name} {value!r}; expected one of {allowed}") from e


class GroupService:
    """Group membership, chat and voting."""

    def __init__(self, repositories: CoordinationRepositories):
        self.users = repositories.users
        self.events = repositories.events
        self.groups = repositories.groups
        self.messages = repositories.messages
        self.votes = repositories.votes

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_group(self, group_id: int) -> Group:
        group = await self.groups.get_group(group_id)
        if group is None:
            raise NotFoundError("group", group_id)
        return group

    async def _require_user(self, user_id: int) -> None:
        if await self.users.get_user(user_id) is None:
            raise NotFoundError("user", user_id)

    async def _require_member(self, group_id: int, user_id: int) -> GroupMembership:
        await self.get_group(group_id)
        membership = await self.groups.get_active_membership(group_id, user_id)
        if membership is None:
            raise ForbiddenError(f"User {user_id} is not a member of group {group_id}")
        return membership

    async def is_member(self, group_id: int, user_id: int) -> bool:
        return await self.groups.get_active_membership(group_id, user_id) is not None

    async def list_members(self, group_id: int) -> list[GroupMembership]:
        await self.get_group(group_id)
        return await self.groups.list_active_memberships(group_id)

    async def list_user_groups(self, user_id: int) -> list[Group]:
        groups = []
        for membership in await self.groups.list_user_memberships(user_id):
            group = await self.groups.get_group(membership.group_id)
            if group is not None:
                groups.append(group)
        return groups

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    async def create_group(
        self,
        creator_id: int,
        name: str,
        description: str | None = None,
        image_url: str | None = None,
        group_type: str = "social",
    ) -> Group:
        """Create a group with its creator as the sole admin member."""
        if not name or not name.strip():
            raise ValidationError("Group name is required")
        await self._require_user(creator_id)

        group = await self.groups.create_group(
            name=name.strip(),
            created_by=creator_id,
            description=description,
            image_url=image_url,
            group_type=group_type,
        )
        await self.groups.add_membership(group.id, creator_id, MembershipRole.ADMIN)
        group = await self.groups.adjust_member_count(group.id, 1)

        logger.info("Group created", group_id=group.id, creator_id=creator_id)
        return group

    async def add_member(
        self,
        group_id: int,
        actor_id: int,
        new_user_id: int,
        role: MembershipRole | str = MembershipRole.MEMBER,
    ) -> GroupMembership:
        """Add a member; only an active admin of the group may do this."""
        member_role = _parse_enum(MembershipRole, role, "role")
        actor = await self._require_member(group_id, actor_id)
        if not actor.is_admin:
            raise ForbiddenError(f"User {actor_id} is not an admin of group {group_id}")
        await self._require_user(new_user_id)

        if await self.groups.get_active_membership(group_id, new_user_id) is not None:
            raise ValidationError(f"User {new_user_id} is already a member of group {group_id}")

        membership = await self.groups.add_membership(group_id, new_user_id, member_role)
        await self.groups.adjust_member_count(group_id, 1)

        logger.info(
            "Group member added",
            group_id=group_id,
            actor_id=actor_id,
            user_id=new_user_id,
            role=member_role.value,
        )
        return membership

    async def remove_member(self, group_id: int, actor_id: int, user_id: int) -> GroupMembership:
        """Deactivate a membership. Admins may remove anyone; members may leave."""
        actor = await self._require_member(group_id, actor_id)
        if actor_id != user_id and not actor.is_admin:
            raise ForbiddenError(f"User {actor_id} is not an admin of group {group_id}")

        membership = await self.groups.get_active_membership(group_id, user_id)
        if membership is None:
            raise NotFoundError("membership", f"{group_id}/{user_id}")

        updated = await self.groups.deactivate_membership(membership.id)
        await self.groups.adjust_member_count(group_id, -1)

        logger.info("Group member removed", group_id=group_id, actor_id=actor_id, user_id=user_id)
        return updated

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def post_message(
        self,
        group_id: int,
        sender_id: int,
        text: str,
        message_type: MessageType | str = MessageType.TEXT,
        attachment_url: str | None = None,
        reference_data: dict[str, Any] | None = None,
    ) -> ChatMessage:
        """Store a chat message from an active member. Resending creates a new message."""
        parsed_type = _parse_enum(MessageType, message_type, "message type")
        if not text or not text.strip():
            raise ValidationError("Message text is required")
        await self._require_member(group_id, sender_id)

        message = await self.messages.create(
            group_id=group_id,
            user_id=sender_id,
            text=text,
            message_type=parsed_type,
            attachment_url=attachment_url,
            reference_data=reference_data or {},
        )
        logger.info(
            "Chat message stored",
            group_id=group_id,
            user_id=sender_id,
            message_id=message.id,
            message_type=parsed_type.value,
        )
        return message

    async def list_messages(
        self, group_id: int, limit: int = 50, offset: int = 0
    ) -> list[ChatMessage]:
        """Messages newest first, paginated over that order."""
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        if offset < 0:
            raise ValidationError("offset must not be negative")
        await self.get_group(group_id)
        return await self.messages.list_for_group(group_id, limit, offset)

    async def mark_read(self, user_id: int, group_id: int) -> int:
        """Mark every unread message in the group as read."""
        await self._require_member(group_id, user_id)
        marked = await self.messages.mark_read(group_id)
        if marked:
            logger.debug("Messages marked read", group_id=group_id, user_id=user_id, count=marked)
        return marked

    async def unread_count(self, group_id: int) -> int:
        await self.get_group(group_id)
        return await self.messages.count_unread(group_id)

    # ------------------------------------------------------------------
    # Voting
    # ------------------------------------------------------------------

    async def cast_vote(
        self, group_id: int, voter_id: int, event_id: int, vote: VoteChoice | str
    ) -> EventVote:
        """Record a vote; a later vote by the same member supersedes the earlier one."""
        choice = _parse_enum(VoteChoice, vote, "vote")
        await self._require_member(group_id, voter_id)
        if await self.events.get_event(event_id) is None:
            raise NotFoundError("event", event_id)

        record = await self.votes.create(group_id, voter_id, event_id, choice)
        logger.info(
            "Group event vote recorded",
            group_id=group_id,
            user_id=voter_id,
            event_id=event_id,
            vote=choice.value,
        )
        return record

    async def tally(self, group_id: int, event_id: int) -> VoteTally:
        """Count each member's latest vote only."""
        await self.get_group(group_id)
        if await self.events.get_event(event_id) is None:
            raise NotFoundError("event", event_id)

        latest: dict[int, VoteChoice] = {}
        for vote in await self.votes.list_for_group_event(group_id, event_id):
            latest[vote.user_id] = vote.vote

        choices = list(latest.values())
        return VoteTally(
            yes=choices.count(VoteChoice.YES),
            no=choices.count(VoteChoice.NO),
            maybe=choices.count(VoteChoice.MAYBE),
        )

    async def votes_by_user(self, user_id: int) -> list[EventVote]:
        return await self.votes.list_for_user(user_id)
