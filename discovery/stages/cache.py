"""
Score cache: read-through cache for expensive intermediate ranking results.

Keys are deterministic composite fingerprints built by make_cache_key, e.g.
"{candidate_id}:{variant}:{format}". Expiry is checked on read; set() also sweeps
expired entries once the earliest known expiry has passed, at most once per
sweep interval, so keys that are never read again do not accumulate.
Backend failures are logged and reported as misses, never raised.
"""

import fnmatch
import hashlib
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Tuple

from discovery.storage.memory import InMemoryCacheBackend
from discovery.storage.protocols import CacheBackend

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300
DEFAULT_SWEEP_INTERVAL_MS = 1000.0


def _escape(part: Any) -> str:
    return str(part).replace("\\", "\\\\").replace(":", "\\:")


def make_cache_key(*parts: Any) -> str:
    """
    Join key parts with ":".

    Backslashes and colons inside parts are escaped, so distinct part tuples can
    never produce the same key.
    """
    return ":".join(_escape(p) for p in parts)


def vector_fingerprint(vector: Sequence[float]) -> str:
    """Short stable hash of a vector's values, for use as a cache key part."""
    digest = hashlib.sha1(repr([float(x) for x in vector]).encode("utf-8"))
    return digest.hexdigest()[:16]


def _wall_clock_ms() -> float:
    return time.time() * 1000.0


@dataclass
class CacheStats:
    """HIT/MISS counters since the cache was created (or last reset)."""

    hits: int = 0
    misses: int = 0
    errors: int = 0
    size: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class ScoreCache:
    """
    TTL cache over a pluggable backend.

    Usage:
        cache = ScoreCache()
        value, hit = cache.get_or_compute(key, lambda: expensive(), ttl=60)
    """

    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        default_ttl: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = _wall_clock_ms,
        sweep_interval_ms: float = DEFAULT_SWEEP_INTERVAL_MS,
    ):
        """
        Args:
            backend: Storage for entries (in-memory when None)
            default_ttl: TTL in seconds used when set() gets none
            clock: Returns the current time in epoch milliseconds
            sweep_interval_ms: Minimum time between expiry sweeps triggered by set()
        """
        self.backend = backend if backend is not None else InMemoryCacheBackend()
        self.default_ttl = default_ttl
        self._clock = clock
        self._hits = 0
        self._misses = 0
        self._errors = 0
        self.sweep_interval_ms = sweep_interval_ms
        # Earliest expiry written since the last sweep
        self._next_expiry = math.inf
        self._last_sweep = -math.inf

    def get(self, key: str) -> Optional[Any]:
        """Cached value, or None on miss, expiry, or backend error."""
        try:
            entry = self.backend.get(key)
        except Exception as e:
            self._errors += 1
            self._misses += 1
            logger.warning("[score_cache] BACKEND_ERROR op=get key=%s error=%s", key, e)
            return None
        if entry is None:
            self._misses += 1
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            self._misses += 1
            self._safe_delete(key)
            return None
        self._hits += 1
        return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Store value for ttl seconds (default_ttl when None). None values are not cached."""
        if value is None:
            return
        ttl = self.default_ttl if ttl is None else ttl
        now = self._clock()
        if now >= self._next_expiry and now - self._last_sweep >= self.sweep_interval_ms:
            self.purge_expired()
        expires_at = now + ttl * 1000.0
        try:
            self.backend.set(key, value, expires_at)
        except Exception as e:
            self._errors += 1
            logger.warning("[score_cache] BACKEND_ERROR op=set key=%s error=%s", key, e)
            return
        self._next_expiry = min(self._next_expiry, expires_at)

    def delete(self, key: str) -> bool:
        return self._safe_delete(key)

    def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Any],
        ttl: Optional[int] = None,
    ) -> Tuple[Any, bool]:
        """Return (value, hit). On miss, compute() runs and its result is stored."""
        cached = self.get(key)
        if cached is not None:
            return cached, True
        value = compute()
        self.set(key, value, ttl)
        return value, False

    def invalidate_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern ("*" wildcards); returns the count."""
        try:
            keys = self.backend.keys()
        except Exception as e:
            self._errors += 1
            logger.warning("[score_cache] BACKEND_ERROR op=keys pattern=%s error=%s", pattern, e)
            return 0
        removed = 0
        for key in keys:
            if fnmatch.fnmatchcase(key, pattern) and self._safe_delete(key):
                removed += 1
        logger.debug("[score_cache] INVALIDATED pattern=%s removed=%s", pattern, removed)
        return removed

    def purge_expired(self) -> int:
        """Drop entries whose TTL has passed; returns the count."""
        now = self._clock()
        self._last_sweep = now
        removed = 0
        next_expiry = math.inf
        try:
            for key in self.backend.keys():
                entry = self.backend.get(key)
                if entry is None:
                    continue
                if now >= entry[1]:
                    if self.backend.delete(key):
                        removed += 1
                else:
                    next_expiry = min(next_expiry, entry[1])
        except Exception as e:
            self._errors += 1
            logger.warning("[score_cache] BACKEND_ERROR op=purge error=%s", e)
            return removed
        self._next_expiry = next_expiry
        if removed:
            logger.debug("[score_cache] PURGED removed=%s", removed)
        return removed

    def clear(self) -> int:
        try:
            return self.backend.clear()
        except Exception as e:
            self._errors += 1
            logger.warning("[score_cache] BACKEND_ERROR op=clear error=%s", e)
            return 0

    def stats(self) -> CacheStats:
        try:
            size = len(self.backend.keys())
        except Exception as e:
            self._errors += 1
            logger.warning("[score_cache] BACKEND_ERROR op=keys error=%s", e)
            size = 0
        return CacheStats(hits=self._hits, misses=self._misses, errors=self._errors, size=size)

    def _safe_delete(self, key: str) -> bool:
        try:
            return self.backend.delete(key)
        except Exception as e:
            self._errors += 1
            logger.warning("[score_cache] BACKEND_ERROR op=delete key=%s error=%s", key, e)
            return False
