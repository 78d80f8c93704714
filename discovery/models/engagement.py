"""
Engagement models: per-content aggregates and per-user view records.

EngagementStats is written by the external like/save/comment path and read-only here.
ViewEvent is one entry of a user's seen-history; the devaluation stage reads it.
Both are built from API dicts via model_validate(d) or the ensure_* helpers.
"""

import logging
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class ContentCategory(str, Enum):
    """Fixed content-type enumeration used by the devaluation multipliers."""

    NEWS = "news"
    ENTERTAINMENT = "entertainment"
    EDUCATIONAL = "educational"
    PERSONAL = "personal"
    GENERAL = "general"

    @classmethod
    def parse(cls, value: Any) -> "ContentCategory":
        """Map a raw tag to a category; anything unrecognized becomes GENERAL."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        if value is not None:
            logger.debug("[engagement] UNKNOWN_CATEGORY value=%r fallback=general", value)
        return cls.GENERAL


class ViewQuality(str, Enum):
    """How the user consumed a candidate the last time it was shown."""

    QUICK_SCROLL = "quick_scroll"
    ENGAGED_VIEW = "engaged_view"
    PARTIAL_INTERACTION = "partial_interaction"

    @classmethod
    def parse(cls, value: Any) -> "ViewQuality":
        """Map a raw value to a view quality; unknown values degrade to PARTIAL_INTERACTION."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        logger.debug("[engagement] UNKNOWN_VIEW_QUALITY value=%r fallback=partial_interaction", value)
        return cls.PARTIAL_INTERACTION


class EngagementStats(BaseModel):
    """
    Aggregate engagement for one piece of content.

    total_interactions: likes + saves + comments, all time.
    velocity: interactions per hour over the recent window.
    category: content type; unknown tags fall back to general.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    total_interactions: int = Field(default=0, ge=0)
    velocity: float = Field(default=0.0, ge=0.0)
    category: ContentCategory = ContentCategory.GENERAL

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> ContentCategory:
        return ContentCategory.parse(value)

    @classmethod
    def empty(cls) -> "EngagementStats":
        """Fallback used when the stats lookup has nothing for a candidate."""
        return _EMPTY_STATS


_EMPTY_STATS = EngagementStats()


class ViewEvent(BaseModel):
    """A previously-seen candidate: when it was last shown and how it was consumed."""

    model_config = ConfigDict(extra="allow", frozen=True)

    candidate_id: str
    last_seen_at: int = Field(ge=0)
    view_quality: ViewQuality = ViewQuality.PARTIAL_INTERACTION

    @field_validator("view_quality", mode="before")
    @classmethod
    def _coerce_view_quality(cls, value: Any) -> ViewQuality:
        return ViewQuality.parse(value)


def ensure_stats(
    stats: Optional[Union[Dict[str, Any], EngagementStats]],
) -> EngagementStats:
    """
    Convert a dict (or None) to EngagementStats.

    Invalid fields fall back to their defaults one by one, so a bad
    total_interactions does not discard a valid category or velocity. None and
    non-mapping payloads become empty stats.
    """
    if stats is None:
        return EngagementStats.empty()
    if isinstance(stats, EngagementStats):
        return stats
    if not isinstance(stats, dict):
        logger.warning("[engagement] STATS_INVALID type=%s fallback=empty", type(stats).__name__)
        return EngagementStats.empty()
    try:
        return EngagementStats.model_validate(stats)
    except ValidationError as e:
        invalid = {err["loc"][0] for err in e.errors() if err["loc"]}
        logger.warning("[engagement] STATS_FIELDS_INVALID fields=%s fallback=defaults", sorted(map(str, invalid)))
    try:
        return EngagementStats.model_validate({k: v for k, v in stats.items() if k not in invalid})
    except ValidationError as e:
        logger.warning("[engagement] STATS_INVALID error=%s fallback=empty", e)
        return EngagementStats.empty()


def index_seen_history(
    events: Iterable[Union[Dict[str, Any], ViewEvent]],
) -> Dict[str, ViewEvent]:
    """
    Index seen-history by candidate id, keeping the most recent event per candidate.

    Malformed entries are skipped with a warning; a broken history record must
    never fail the ranking request.
    """
    latest: Dict[str, ViewEvent] = {}
    for raw in events or []:
        if isinstance(raw, ViewEvent):
            event = raw
        else:
            try:
                event = ViewEvent.model_validate(raw)
            except ValueError as e:
                logger.warning("[engagement] VIEW_EVENT_INVALID error=%s", e)
                continue
        prior = latest.get(event.candidate_id)
        if prior is None or event.last_seen_at >= prior.last_seen_at:
            latest[event.candidate_id] = event
    return latest

