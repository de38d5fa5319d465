"""
Persistence layer for the coordination feature.
"""

from .base import (
    AvailabilityRepository,
    ChatMessageRepository,
    CoordinationRepositories,
    EventRepository,
    GroupRepository,
    UserRepository,
    VoteRepository,
)
from .memory import (
    IdSequence,
    InMemoryAvailabilityRepository,
    InMemoryChatMessageRepository,
    InMemoryEventRepository,
    InMemoryGroupRepository,
    InMemoryUserRepository,
    InMemoryVoteRepository,
    build_in_memory_repositories,
)

__all__ = [
    "AvailabilityRepository",
    "ChatMessageRepository",
    "CoordinationRepositories",
    "EventRepository",
    "GroupRepository",
    "IdSequence",
    "InMemoryAvailabilityRepository",
    "InMemoryChatMessageRepository",
    "InMemoryEventRepository",
    "InMemoryGroupRepository",
    "InMemoryUserRepository",
    "InMemoryVoteRepository",
    "UserRepository",
    "VoteRepository",
    "build_in_memory_repositories",
]
