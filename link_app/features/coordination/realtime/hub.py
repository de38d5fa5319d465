"""
Realtime hub - live connections, group rooms and event fan-out.

A connection moves connected -> authenticated -> closed. Each connection has
a bounded outbox drained by its own writer task, so a slow client never
blocks the sender; when its outbox is full the event is dropped for that
client and logged. Inbound frames of one connection are handled one at a
time under that connection's lock.

Hub state lives in this process only.
"""

import asyncio
import contextlib
import itertools
from dataclasses import dataclass, field
from typing import Any, Protocol

from link_app.config import Settings
from link_app.features.coordination.domain import (
    AuthError,
    CoordinationError,
    ForbiddenError,
)
from link_app.features.coordination.repository import UserRepository
from link_app.features.coordination.services.group_service import GroupService
from link_app.infrastructure.observability.logging import get_logger

from . import messages as events
from .messages import (
    AuthMessage,
    ChatMessageIn,
    EventVoteMessage,
    JoinGroupMessage,
    LeaveGroupMessage,
    parse_client_message,
)

logger = get_logger(__name__)


class EventSink(Protocol):
    """Anything that can deliver a JSON event to one client (a Starlette WebSocket does)."""

    async def send_json(self, data: Any) -> None: ...


@dataclass(slots=True, frozen=True)
class ReconnectPolicy:
    """Exponential backoff hint handed to clients; the server keeps no session."""

    initial_delay_ms: int
    max_delay_ms: int
    multiplier: float

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReconnectPolicy":
        return cls(**settings.reconnect_policy())

    def delay_for(self, attempt: int) -> int:
        """Delay before reconnect attempt ``attempt`` (0-based), capped at the maximum."""
        delay = self.initial_delay_ms * (self.multiplier ** max(attempt, 0))
        return int(min(delay, self.max_delay_ms))

    def to_dict(self) -> dict[str, Any]:
        return {
            "initialDelayMs": self.initial_delay_ms,
            "maxDelayMs": self.max_delay_ms,
            "multiplier": self.multiplier,
        }


@dataclass(slots=True, eq=False)
class Connection:
    id: str
    sink: EventSink
    outbox: asyncio.Queue
    user_id: int | None = None
    authenticated: bool = False
    member_group_ids: set[int] = field(default_factory=set)
    joined_group_ids: set[int] = field(default_factory=set)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    closed: bool = False
    writer: asyncio.Task | None = None

    def start(self) -> None:
        self.writer = asyncio.create_task(self._write_loop(), name=f"realtime-writer-{self.id}")

    def enqueue(self, event: dict[str, Any]) -> bool:
        """Queue an event without waiting; False when closed or the outbox is full."""
        if self.closed:
            return False
        try:
            self.outbox.put_nowait(event)
        except asyncio.QueueFull:
            return False
        return True

    async def flush(self) -> None:
        """Wait until every queued event has been handed to the sink."""
        await self.outbox.join()

    async def close(self) -> None:
        self.closed = True
        if self.writer is not None:
            self.writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self.writer
            self.writer = None

    async def _write_loop(self) -> None:
        while True:
            event = await self.outbox.get()
            try:
                await self.sink.send_json(event)
            except Exception as e:
                logger.warning(
                    "Failed to deliver realtime event",
                    connection_id=self.id,
                    user_id=self.user_id,
                    event_type=event.get("type"),
                    error=str(e),
                )
            finally:
                self.outbox.task_done()


class RealtimeHub:
    def __init__(self, groups: GroupService, users: UserRepository, settings: Settings):
        self.groups = groups
        self.users = users
        self.settings = settings
        self.reconnect_policy = ReconnectPolicy.from_settings(settings)
        self._connections: dict[str, Connection] = {}
        self._ids = itertools.count(1)
        self._handlers = {
            AuthMessage: lambda conn, msg: self.authenticate(conn, msg.user_id),
            JoinGroupMessage: lambda conn, msg: self.join_group(conn, msg.group_id),
            LeaveGroupMessage: lambda conn, msg: self.leave_group(conn, msg.group_id),
            ChatMessageIn: self.send_chat,
            EventVoteMessage: self.vote,
        }

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self, sink: EventSink) -> Connection:
        connection = Connection(
            id=f"conn-{next(self._ids)}",
            sink=sink,
            outbox=asyncio.Queue(maxsize=self.settings.REALTIME_SEND_QUEUE_SIZE),
        )
        connection.start()
        self._connections[connection.id] = connection
        logger.info("Realtime connection opened", connection_id=connection.id)
        return connection

    async def disconnect(self, connection: Connection) -> None:
        """Forget the connection and stop its writer. Stored messages are unaffected."""
        self._connections.pop(connection.id, None)
        await connection.close()
        logger.info(
            "Realtime connection closed",
            connection_id=connection.id,
            user_id=connection.user_id,
            joined_groups=len(connection.joined_group_ids),
        )

    async def close_all(self) -> None:
        for connection in list(self._connections.values()):
            await self.disconnect(connection)

    # ------------------------------------------------------------------
    # Inbound frames
    # ------------------------------------------------------------------

    async def handle_message(
        self, connection: Connection, raw: str | bytes | dict[str, Any]
    ) -> None:
        """
        Process one client frame to completion.

        Domain errors become ``error`` (or ``auth_error``) events for this
        connection only; the connection stays open in every case.
        """
        async with connection.lock:
            try:
                message = parse_client_message(raw)
                await self._handlers[type(message)](connection, message)
            except AuthError as e:
                self._send(connection, events.auth_error(e.message))
            except CoordinationError as e:
                logger.info(
                    "Realtime request rejected",
                    connection_id=connection.id,
                    user_id=connection.user_id,
                    code=e.code,
                    error=e.message,
                )
                self._send(connection, events.error(e.message, e.code))
            except Exception as e:
                logger.error(
                    "Unhandled realtime handler error",
                    connection_id=connection.id,
                    user_id=connection.user_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                self._send(connection, events.error("Internal server error", "internal_error"))

    def _require_auth(self, connection: Connection) -> int:
        if not connection.authenticated or connection.user_id is None:
            raise AuthError("Not authenticated")
        return connection.user_id

    async def authenticate(self, connection: Connection, user_id: int) -> None:
        user = await self.users.get_user(user_id)
        if user is None:
            logger.warning(
                "Realtime authentication failed", connection_id=connection.id, user_id=user_id
            )
            raise AuthError("Authentication failed")

        groups = await self.groups.list_user_groups(user.id)
        group_ids = [group.id for group in groups]

        connection.user_id = user.id
        connection.authenticated = True
        connection.member_group_ids = set(group_ids)
        connection.joined_group_ids = set()

        self._send(
            connection, events.auth_success(user.id, groups, self.reconnect_policy.to_dict())
        )
        for group_id in group_ids:
            count = await self.groups.unread_count(group_id)
            self._send(connection, events.unread_count(group_id, count))

        logger.info(
            "Realtime connection authenticated",
            connection_id=connection.id,
            user_id=user.id,
            groups=len(group_ids),
        )

    async def join_group(self, connection: Connection, group_id: int) -> None:
        user_id = self._require_auth(connection)
        await self.groups.get_group(group_id)
        if not await self.groups.is_member(group_id, user_id):
            raise ForbiddenError("Not a member of this group")

        connection.joined_group_ids.add(group_id)
        connection.member_group_ids.add(group_id)

        recent = await self.groups.list_messages(
            group_id, limit=self.settings.REALTIME_RECENT_MESSAGES_LIMIT
        )
        self._send(connection, events.recent_messages(group_id, recent))
        await self.groups.mark_read(user_id, group_id)

        logger.debug(
            "Joined group room", connection_id=connection.id, user_id=user_id, group_id=group_id
        )

    async def leave_group(self, connection: Connection, group_id: int) -> None:
        """Drop the group room; safe to repeat and needs no authentication."""
        connection.joined_group_ids.discard(group_id)
        self._send(connection, events.left_group(group_id))

    async def send_chat(self, connection: Connection, message: ChatMessageIn) -> None:
        user_id = self._require_auth(connection)
        stored = await self.groups.post_message(
            message.group_id,
            user_id,
            message.message,
            message_type=message.message_type,
            attachment_url=message.attachment_url,
            reference_data=message.reference_data,
        )
        self.broadcast_to_group(stored.group_id, events.new_message(stored))

    async def vote(self, connection: Connection, message: EventVoteMessage) -> None:
        user_id = self._require_auth(connection)
        record = await self.groups.cast_vote(
            message.group_id, user_id, message.event_id, message.vote
        )
        tally = await self.groups.tally(record.group_id, record.event_id)
        self.broadcast_to_group(record.group_id, events.vote_update(record, tally))

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    def _send(self, connection: Connection, event: dict[str, Any]) -> bool:
        delivered = connection.enqueue(event)
        if not delivered and not connection.closed:
            logger.warning(
                "Dropping realtime event, outbox full",
                connection_id=connection.id,
                user_id=connection.user_id,
                event_type=event.get("type"),
            )
        return delivered

    def _fan_out(self, targets: list[Connection], event: dict[str, Any]) -> int:
        return sum(1 for connection in targets if self._send(connection, event))

    def broadcast_to_group(self, group_id: int, event: dict[str, Any]) -> int:
        """Deliver to every authenticated connection that has joined the group room."""
        targets = [
            c
            for c in self._connections.values()
            if c.authenticated and group_id in c.joined_group_ids
        ]
        return self._fan_out(targets, event)

    def notify_user(self, user_id: int, event: dict[str, Any]) -> int:
        """Deliver to every live connection of one user."""
        targets = [
            c for c in self._connections.values() if c.authenticated and c.user_id == user_id
        ]
        return self._fan_out(targets, event)

    def notify_group(self, group_id: int, event: dict[str, Any]) -> int:
        """Deliver to every live connection of the group's members, joined to the room or not."""
        targets = [
            c
            for c in self._connections.values()
            if c.authenticated
            and (group_id in c.member_group_ids or group_id in c.joined_group_ids)
        ]
        return self._fan_out(targets, event)

    def forget_membership(self, group_id: int, user_id: int) -> None:
        """Stop routing a group's events to a user whose membership ended."""
        for connection in self._connections.values():
            if connection.user_id == user_id:
                connection.joined_group_ids.discard(group_id)
                connection.member_group_ids.discard(group_id)
