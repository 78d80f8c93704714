"""Pipeline stages: session tracking, devaluation, score cache, ranking, feed orchestration."""

from .cache import CacheStats, ScoreCache, make_cache_key, vector_fingerprint
from .devaluation import DevaluationEngine, InvalidDevaluationConfig
from .orchestrator import create_ranked_feed
from .ranking import RankingPipeline, rank_candidates
from .session_tracker import SessionTracker, resolve_session

__all__ = [
    "CacheStats",
    "DevaluationEngine",
    "InvalidDevaluationConfig",
    "RankingPipeline",
    "ScoreCache",
    "SessionTracker",
    "create_ranked_feed",
    "make_cache_key",
    "rank_candidates",
    "resolve_session",
    "vector_fingerprint",
]
