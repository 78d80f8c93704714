"""
Session tracking: New vs Continuing, driven purely by elapsed time.

resolve_session is a pure function of (prior record, now). SessionTracker wraps it
with a SessionStore so callers that want persistence get it explicitly.

States:
- New: first activity, or the gap since last activity reached the timeout.
- Continuing: activity while now - last_activity_at < timeout.
"""

import logging
import uuid
from typing import Any, Callable, Dict, Optional, Union

from pydantic import ValidationError

from discovery.models.config import DEFAULT_DEVALUATION_CONFIG, DevaluationConfig, resolve_config
from discovery.models.session import SessionInfo
from discovery.storage.protocols import SessionStore
from discovery.utils.scores import now_ms

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TIMEOUT_MS = DEFAULT_DEVALUATION_CONFIG.session_timeout_ms


def new_session_id(now: int) -> str:
    """session_<epoch ms>_<random suffix>."""
    return f"session_{now}_{uuid.uuid4().hex[:9]}"


def _coerce_prior(prior: Union[SessionInfo, Dict[str, Any], None]) -> Optional[SessionInfo]:
    """Validate a stored record; anything unusable is treated as no record."""
    if prior is None or isinstance(prior, SessionInfo):
        return prior
    if not isinstance(prior, dict):
        logger.warning("[session] PRIOR_RECORD_INVALID type=%s treating_as=none", type(prior).__name__)
        return None
    try:
        return SessionInfo.model_validate(prior)
    except ValidationError as e:
        logger.warning("[session] PRIOR_RECORD_INVALID error_count=%s treating_as=none", e.error_count())
        return None


def resolve_session(
    prior: Union[SessionInfo, Dict[str, Any], None],
    now: int,
    timeout_ms: int = DEFAULT_SESSION_TIMEOUT_MS,
    id_factory: Callable[[int], str] = new_session_id,
) -> SessionInfo:
    """
    Resolve the session for an activity at `now` (epoch ms).

    Continuing when the prior record is valid and 0 <= now - last_activity_at < timeout_ms:
    session id and start time are kept, last_activity_at moves to now.
    Otherwise a New session starts at now with a fresh id. A prior record whose
    last activity lies in the future (a concurrent write from another device) is
    treated as a race and also starts a New session. Never raises.
    """
    record = _coerce_prior(prior)
    if record is not None:
        gap = now - record.last_activity_at
        if 0 <= gap < timeout_ms:
            return SessionInfo(
                session_id=record.session_id,
                is_new_session=False,
                session_start_time=record.session_start_time,
                last_activity_at=now,
            )
        if gap < 0:
            logger.info(
                "[session] PRIOR_RECORD_IN_FUTURE session_id=%s gap_ms=%s starting_new",
                record.session_id, gap,
            )
    return SessionInfo(
        session_id=id_factory(now),
        is_new_session=True,
        session_start_time=now,
        last_activity_at=now,
    )


class SessionTracker:
    """
    Resolve-and-persist wrapper around resolve_session.

    Concurrent activity from several devices is last writer wins on the store.
    """

    def __init__(
        self,
        store: SessionStore,
        timeout_ms: int = DEFAULT_SESSION_TIMEOUT_MS,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.timeout_ms = timeout_ms
        self._clock = clock

    @classmethod
    def from_config(
        cls,
        store: SessionStore,
        config: Optional[DevaluationConfig] = None,
        clock: Callable[[], int] = now_ms,
    ) -> "SessionTracker":
        """Tracker whose timeout follows config.session_timeout_ms (defaults when None)."""
        return cls(store, timeout_ms=resolve_config(config).session_timeout_ms, clock=clock)

    async def touch(self, user_id: str, now: Optional[int] = None) -> SessionInfo:
        """Record activity for user_id and return the resolved session."""
        now = self._clock() if now is None else now
        prior = await self.store.get(user_id)
        session = resolve_session(prior, now, self.timeout_ms)
        await self.store.put(user_id, session)
        if session.is_new_session:
            logger.info("[session] NEW_SESSION user_id=%s session_id=%s", user_id, session.session_id)
        return session
