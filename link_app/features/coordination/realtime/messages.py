"""
Realtime wire messages.

Inbound client messages are a closed union discriminated on ``type``; the
payload keys are camelCase on the wire. Outbound events are plain dicts built
by the helpers below so every event carries the same shape.
"""

import json
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from link_app.features.coordination.domain import (
    ChatMessage,
    EventVote,
    Group,
    ValidationError,
    VoteTally,
)


class InboundMessage(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class AuthMessage(InboundMessage):
    type: Literal["auth"]
    user_id: int


class JoinGroupMessage(InboundMessage):
    type: Literal["join_group"]
    group_id: int


class LeaveGroupMessage(InboundMessage):
    type: Literal["leave_group"]
    group_id: int


class ChatMessageIn(InboundMessage):
    type: Literal["chat_message"]
    group_id: int
    message: str
    message_type: str = "text"
    attachment_url: str | None = None
    reference_data: dict[str, Any] | None = None


class EventVoteMessage(InboundMessage):
    type: Literal["event_vote"]
    group_id: int
    event_id: int
    vote: str


ClientMessage = Annotated[
    AuthMessage | JoinGroupMessage | LeaveGroupMessage | ChatMessageIn | EventVoteMessage,
    Field(discriminator="type"),
]

client_message_adapter: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)

INBOUND_TYPES = frozenset({"auth", "join_group", "leave_group", "chat_message", "event_vote"})


def parse_client_message(raw: str | bytes | dict[str, Any]) -> ClientMessage:
    """Decode one client frame. Raises the domain ValidationError on anything malformed."""
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise ValidationError("Message is not valid JSON") from e

    if not isinstance(raw, dict):
        raise ValidationError("Message must be a JSON object")

    message_type = raw.get("type")
    if message_type not in INBOUND_TYPES:
        raise ValidationError(f"Unknown message type: {message_type}")

    try:
        return client_message_adapter.validate_python(raw)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"][1:]) or "payload"
        raise ValidationError(f"Invalid {message_type} message: {location} {first['msg']}") from e


# ----------------------------------------------------------------------
# Outbound events
# ----------------------------------------------------------------------


def auth_success(user_id: int, groups: list[Group], reconnect: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "auth_success",
        "userId": user_id,
        "groups": [{"id": group.id, "name": group.name} for group in groups],
        "reconnect": reconnect,
    }


def auth_error(message: str) -> dict[str, Any]:
    return {"type": "auth_error", "message": message}


def unread_count(group_id: int, count: int) -> dict[str, Any]:
    return {"type": "unread_count", "groupId": group_id, "count": count}


def recent_messages(group_id: int, messages: list[ChatMessage]) -> dict[str, Any]:
    return {
        "type": "recent_messages",
        "groupId": group_id,
        "messages": [message.to_dict() for message in messages],
    }


def left_group(group_id: int) -> dict[str, Any]:
    return {"type": "left_group", "groupId": group_id}


def new_message(message: ChatMessage) -> dict[str, Any]:
    return {"type": "new_message", "groupId": message.group_id, "message": message.to_dict()}


def vote_update(vote: EventVote, tally: VoteTally) -> dict[str, Any]:
    return {
        "type": "vote_update",
        "groupId": vote.group_id,
        "eventId": vote.event_id,
        "voteCounts": tally.to_dict(),
        "vote": {"userId": vote.user_id, "vote": vote.vote.value},
    }


def error(message: str, code: str = "error") -> dict[str, Any]:
    return {"type": "error", "message": message, "code": code}


def notification(kind: str, **payload: Any) -> dict[str, Any]:
    """Free-form notification pushed by collaborators outside the chat flow."""
    return {"type": "notification", "kind": kind, **payload}
