"""
Tests for in-memory repository ordering.
"""

from datetime import UTC, datetime, timedelta

import pytest

from link_app.features.coordination.domain import MessageType, VoteChoice
from link_app.features.coordination.repository import memory
from link_app.features.coordination.repository.memory import (
    InMemoryChatMessageRepository,
    InMemoryVoteRepository,
)


@pytest.fixture
def clock_going_backwards(monkeypatch):
    start = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)
    ticks = iter(start - timedelta(minutes=n) for n in range(100))
    monkeypatch.setattr(memory, "_utcnow", lambda: next(ticks))


@pytest.mark.asyncio
async def test_messages_newest_first_by_arrival(clock_going_backwards):
    repository = InMemoryChatMessageRepository()
    for text in ("first", "second", "third"):
        await repository.create(1, 1, text, MessageType.TEXT, None, {})

    messages = await repository.list_for_group(1, limit=10, offset=0)

    assert [m.text for m in messages] == ["third", "second", "first"]


@pytest.mark.asyncio
async def test_votes_listed_in_arrival_order(clock_going_backwards):
    repository = InMemoryVoteRepository()
    await repository.create(1, 2, 10, VoteChoice.NO)
    await repository.create(1, 2, 10, VoteChoice.YES)

    votes = await repository.list_for_group_event(1, 10)

    assert [v.vote for v in votes] == [VoteChoice.NO, VoteChoice.YES]
    assert [v.vote for v in await repository.list_for_user(2)] == [VoteChoice.NO, VoteChoice.YES]
