"""Data models for the discovery ranking core."""

from .config import (
    DEFAULT_DEVALUATION_CONFIG,
    DEFAULT_RANKING_CONFIG,
    PRESETS,
    ContentTypeMultipliers,
    DevaluationConfig,
    DevaluationPreset,
    RankingConfig,
    ViewQualityMultipliers,
    get_preset,
    load_devaluation_config,
    load_ranking_config,
    resolve_config,
    resolve_ranking_config,
    validate_config,
)
from .engagement import (
    ContentCategory,
    EngagementStats,
    ViewEvent,
    ViewQuality,
    ensure_stats,
    index_seen_history,
)
from .scoring import (
    CacheStatus,
    Candidate,
    RankedPage,
    RankingMetrics,
    ScoredCandidate,
    ensure_candidates,
)
from .session import SessionInfo

__all__ = [
    "DEFAULT_DEVALUATION_CONFIG",
    "DEFAULT_RANKING_CONFIG",
    "PRESETS",
    "CacheStatus",
    "Candidate",
    "ContentCategory",
    "ContentTypeMultipliers",
    "DevaluationConfig",
    "DevaluationPreset",
    "EngagementStats",
    "RankedPage",
    "RankingConfig",
    "RankingMetrics",
    "ScoredCandidate",
    "SessionInfo",
    "ViewEvent",
    "ViewQuality",
    "ViewQualityMultipliers",
    "ensure_candidates",
    "ensure_stats",
    "get_preset",
    "index_seen_history",
    "load_devaluation_config",
    "load_ranking_config",
    "resolve_config",
    "resolve_ranking_config",
    "validate_config",
]
