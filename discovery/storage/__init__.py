"""Ports to external collaborators and their in-memory adapters."""

from .memory import (
    InMemoryCacheBackend,
    InMemoryEngagementStats,
    InMemorySeenHistory,
    InMemorySessionStore,
    InMemoryVectorIndex,
)
from .protocols import (
    CacheBackend,
    EngagementStatsSource,
    SeenHistorySource,
    SessionStore,
    VectorIndex,
)

__all__ = [
    "CacheBackend",
    "EngagementStatsSource",
    "InMemoryCacheBackend",
    "InMemoryEngagementStats",
    "InMemorySeenHistory",
    "InMemorySessionStore",
    "InMemoryVectorIndex",
    "SeenHistorySource",
    "SessionStore",
    "VectorIndex",
]
