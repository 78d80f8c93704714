"""
Per-candidate blended scoring: similarity, recency, and popularity.

Builds a ScoredCandidate for one candidate given its similarity, its retention
multiplier, and the ranking config.
"""

from discovery.models.config import RankingConfig
from discovery.models.engagement import EngagementStats
from discovery.models.scoring import Candidate, ScoredCandidate
from discovery.utils.scores import days_between, popularity_score, recency_score


def blend(similarity: float, recency: float, popularity: float, config: RankingConfig) -> float:
    """weight_similarity * sim + weight_recency * recency + weight_popularity * popularity."""
    if config.clamp_negative_similarity:
        similarity = max(0.0, similarity)
    return (
        config.weight_similarity * similarity
        + config.weight_recency * recency
        + config.weight_popularity * popularity
    )


def build_scored_candidate(
    candidate: Candidate,
    similarity: float,
    stats: EngagementStats,
    retention: float,
    config: RankingConfig,
    now: int,
    seen: bool = False,
    from_cache: bool = False,
) -> ScoredCandidate:
    """
    Compute recency and popularity for one candidate, blend with similarity and
    apply the retention multiplier: final = blended * retention.
    """
    rec_score = recency_score(days_between(candidate.created_at, now), config.recency_lambda)
    pop_score = popularity_score(stats.total_interactions, config.popularity_saturation)
    blended = blend(similarity, rec_score, pop_score, config)
    return ScoredCandidate(
        candidate_id=candidate.id,
        raw_similarity=similarity,
        recency_score=rec_score,
        popularity_score=pop_score,
        blended_score=blended,
        retention_multiplier=retention,
        final_score=blended * retention,
        seen=seen,
        similarity_from_cache=from_cache,
    )
