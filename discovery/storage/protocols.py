"""
Storage protocol definitions for the external collaborators of the ranking core.

The core never owns vectors, stats, seen-history or session records; it reads them
through these ports once per request. Implementations can be backed by a vector
database, a relational store, Redis, or in-memory dicts for tests.
"""

from typing import Any, Dict, List, Optional, Protocol, Tuple, Union

from discovery.models.engagement import EngagementStats, ViewEvent
from discovery.models.session import SessionInfo


class VectorIndex(Protocol):
    """Read-only view of the external embedding index."""

    async def get_embeddings(self, ids: List[str]) -> Dict[str, List[float]]:
        """
        Fetch embeddings for the given content ids.

        Ids without a vector are simply absent from the result; the ranking core
        excludes those candidates.
        """
        ...

    async def get_user_embedding(self, user_id: str) -> Optional[List[float]]:
        """Current embedding for a user, or None when none has been computed yet."""
        ...


class EngagementStatsSource(Protocol):
    """Per-content aggregate engagement, maintained by the external write path."""

    async def get_stats(self, ids: List[str]) -> Dict[str, Union[EngagementStats, Dict[str, Any]]]:
        """Stats by content id; missing ids fall back to zero engagement."""
        ...


class SeenHistorySource(Protocol):
    """Previously-seen candidates per user, written by interaction tracking."""

    async def get_seen_history(self, user_id: str) -> List[Union[ViewEvent, Dict[str, Any]]]:
        """All view events for the user (any order, duplicates allowed)."""
        ...


class SessionStore(Protocol):
    """Persistence for the last resolved session of each user (last writer wins)."""

    async def get(self, user_id: str) -> Optional[Union[SessionInfo, Dict[str, Any]]]:
        """The stored record, or None. Corrupt records may be returned as raw dicts."""
        ...

    async def put(self, user_id: str, record: SessionInfo) -> None:
        """Replace the stored record."""
        ...


class CacheBackend(Protocol):
    """
    Key/value backend for the score cache.

    Entries are stored with their absolute expiry (epoch ms). Expiry is checked
    by ScoreCache on read; backends may also evict on their own.
    """

    def get(self, key: str) -> Optional[Tuple[Any, float]]:
        """(value, expires_at_ms) or None."""
        ...

    def set(self, key: str, value: Any, expires_at_ms: float) -> None:
        ...

    def delete(self, key: str) -> bool:
        """True if the key existed."""
        ...

    def keys(self) -> List[str]:
        ...

    def clear(self) -> int:
        """Remove everything; returns the number of removed entries."""
        ...
