"""
Scoring models: candidates in, scored candidates and a ranked page out.

Contains:
- Candidate: one rankable item with its borrowed embedding and engagement stats
- ScoredCandidate: per-request score breakdown for one candidate
- RankingMetrics / RankedPage: the response of one ranking request
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .engagement import EngagementStats


class Candidate(BaseModel):
    """
    A content item eligible for ranking.

    vector is None when the vector index had nothing for this id; such candidates
    are excluded from ranking. created_at is epoch milliseconds.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    vector: Optional[List[float]] = None
    created_at: Optional[int] = None
    stats: Optional[EngagementStats] = None


def ensure_candidates(items: List[Union[Dict[str, Any], "Candidate"]]) -> List["Candidate"]:
    """Convert list of dicts or Candidates to Candidate models for the pipeline."""
    return [
        Candidate.model_validate(c) if isinstance(c, dict) else c
        for c in items
    ]


class ScoredCandidate(BaseModel):
    """A candidate with all its scoring components. final_score = blended_score * retention_multiplier."""

    candidate_id: str
    raw_similarity: float
    recency_score: float
    popularity_score: float
    blended_score: float
    retention_multiplier: float = 1.0
    final_score: float
    seen: bool = False
    similarity_from_cache: bool = False


class CacheStatus(str, Enum):
    """How much of a response's similarity work was served from the score cache."""

    HIT = "HIT"
    MISS = "MISS"
    PARTIAL = "PARTIAL"
    BYPASS = "BYPASS"


class RankingMetrics(BaseModel):
    """Per-request counters logged at the end of a ranking pass."""

    candidates_received: int = 0
    candidates_dropped: int = 0
    candidates_scored: int = 0
    seen_total: int = 0
    seen_devalued: int = 0
    average_retention_multiplier: float = 1.0
    cache_hits: int = 0
    cache_misses: int = 0
    processing_time_ms: float = 0.0


class RankedPage(BaseModel):
    """One page of a ranked feed plus the cursor for the next page."""

    items: List[ScoredCandidate] = Field(default_factory=list)
    next_cursor: Optional[str] = None
    has_more: bool = False
    cache_status: CacheStatus = CacheStatus.BYPASS
    metrics: RankingMetrics = Field(default_factory=RankingMetrics)
