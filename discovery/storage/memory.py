"""
In-memory implementations of the storage protocols.

Suitable for testing and single-instance deployments. Data is lost on restart.
"""

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from discovery.models.engagement import EngagementStats, ViewEvent
from discovery.models.session import SessionInfo

logger = logging.getLogger(__name__)


class InMemoryVectorIndex:
    """Embeddings held in a dict, keyed by content id (and user id for user vectors)."""

    def __init__(
        self,
        content_vectors: Optional[Dict[str, List[float]]] = None,
        user_vectors: Optional[Dict[str, List[float]]] = None,
    ):
        self._content = dict(content_vectors or {})
        self._users = dict(user_vectors or {})

    def upsert(self, content_id: str, vector: List[float]) -> None:
        self._content[content_id] = list(vector)

    def upsert_user(self, user_id: str, vector: List[float]) -> None:
        self._users[user_id] = list(vector)

    async def get_embeddings(self, ids: List[str]) -> Dict[str, List[float]]:
        return {i: self._content[i] for i in ids if i in self._content}

    async def get_user_embedding(self, user_id: str) -> Optional[List[float]]:
        return self._users.get(user_id)


class InMemoryEngagementStats:
    """Engagement stats keyed by content id."""

    def __init__(self, stats: Optional[Dict[str, Union[EngagementStats, Dict[str, Any]]]] = None):
        self._stats = dict(stats or {})

    def put(self, content_id: str, stats: Union[EngagementStats, Dict[str, Any]]) -> None:
        self._stats[content_id] = stats

    async def get_stats(self, ids: List[str]) -> Dict[str, Union[EngagementStats, Dict[str, Any]]]:
        return {i: self._stats[i] for i in ids if i in self._stats}


class InMemorySeenHistory:
    """Append-only view events per user."""

    def __init__(self):
        self._events: Dict[str, List[Union[ViewEvent, Dict[str, Any]]]] = {}

    def record(self, user_id: str, events: Iterable[Union[ViewEvent, Dict[str, Any]]]) -> int:
        """Append events for a user; returns how many were added."""
        bucket = self._events.setdefault(user_id, [])
        before = len(bucket)
        bucket.extend(events)
        added = len(bucket) - before
        logger.debug("[seen_history] RECORDED user_id=%s added=%s total=%s", user_id, added, len(bucket))
        return added

    async def get_seen_history(self, user_id: str) -> List[Union[ViewEvent, Dict[str, Any]]]:
        return list(self._events.get(user_id, []))


class InMemorySessionStore:
    """Last resolved session per user; concurrent puts resolve as last writer wins."""

    def __init__(self):
        self._records: Dict[str, Union[SessionInfo, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def seed(self, user_id: str, record: Union[SessionInfo, Dict[str, Any]]) -> None:
        """Store a raw record as-is (used to simulate legacy or corrupt data)."""
        with self._lock:
            self._records[user_id] = record

    async def get(self, user_id: str) -> Optional[Union[SessionInfo, Dict[str, Any]]]:
        with self._lock:
            return self._records.get(user_id)

    async def put(self, user_id: str, record: SessionInfo) -> None:
        with self._lock:
            self._records[user_id] = record


class InMemoryCacheBackend:
    """Dict-backed cache backend guarded by a lock; expiry is left to the caller."""

    def __init__(self):
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Tuple[Any, float]]:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, value: Any, expires_at_ms: float) -> None:
        with self._lock:
            self._entries[key] = (value, expires_at_ms)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("[score_cache] BACKEND_CLEARED entries=%s", count)
        return count
