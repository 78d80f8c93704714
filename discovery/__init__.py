"""
Discovery ranking core: personalized feed ranking with seen-content devaluation.

Single entry point for the package:
- models/: DevaluationConfig, RankingConfig, EngagementStats, ViewEvent, SessionInfo, ScoredCandidate
- utils/: vector math (cosine_similarity, top_k) and score helpers
- stages/: session_tracker, devaluation, cache, ranking, orchestrator
- storage/: ports to the vector index, stats, seen-history and session store
"""

from discovery.models import (
    DEFAULT_DEVALUATION_CONFIG,
    DEFAULT_RANKING_CONFIG,
    PRESETS,
    CacheStatus,
    Candidate,
    ContentCategory,
    DevaluationConfig,
    DevaluationPreset,
    EngagementStats,
    RankedPage,
    RankingConfig,
    RankingMetrics,
    ScoredCandidate,
    SessionInfo,
    ViewEvent,
    ViewQuality,
    load_devaluation_config,
    load_ranking_config,
    validate_config,
)
from discovery.stages import (
    DevaluationEngine,
    InvalidDevaluationConfig,
    RankingPipeline,
    ScoreCache,
    SessionTracker,
    create_ranked_feed,
    make_cache_key,
    rank_candidates,
    resolve_session,
)
from discovery.utils import DimensionMismatch, cosine_similarity, top_k

__all__ = [
    "DEFAULT_DEVALUATION_CONFIG",
    "DEFAULT_RANKING_CONFIG",
    "PRESETS",
    "CacheStatus",
    "Candidate",
    "ContentCategory",
    "DevaluationConfig",
    "DevaluationEngine",
    "DevaluationPreset",
    "DimensionMismatch",
    "EngagementStats",
    "InvalidDevaluationConfig",
    "RankedPage",
    "RankingConfig",
    "RankingMetrics",
    "RankingPipeline",
    "ScoreCache",
    "ScoredCandidate",
    "SessionInfo",
    "SessionTracker",
    "ViewEvent",
    "ViewQuality",
    "cosine_similarity",
    "create_ranked_feed",
    "load_devaluation_config",
    "load_ranking_config",
    "make_cache_key",
    "rank_candidates",
    "resolve_session",
    "top_k",
    "validate_config",
]
