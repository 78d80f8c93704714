"""
Computed Parameters for the discovery ranking core

This module computes derived parameters from the base configuration.
Computed parameters are readonly in tuning UIs and are automatically
recalculated whenever a base parameter changes.
"""

import math
from typing import Any, Dict, Optional

from discovery.models.config import (
    DevaluationConfig,
    RankingConfig,
    resolve_config,
    resolve_ranking_config,
)
from discovery.stages.devaluation import DevaluationEngine
from discovery.utils.scores import DAY_MS


def _days_to_half_recovery(engine: DevaluationEngine) -> float:
    """Days after which at most half of the original devaluation remains (bisection)."""
    lo, hi = 0.0, float(engine.config.recovery_timeline_days)
    for _ in range(60):
        mid = (lo + hi) / 2
        if engine.recovery_factor(int(mid * DAY_MS)) > 0.5:
            lo = mid
        else:
            hi = mid
    return hi


def compute_parameters(
    devaluation: Optional[DevaluationConfig] = None,
    ranking: Optional[RankingConfig] = None,
) -> Dict[str, Any]:
    """
    Compute derived parameters from base parameters.

    Args:
        devaluation: Devaluation config (defaults when None)
        ranking: Ranking config (defaults when None)

    Returns:
        Dictionary of computed parameter values
    """
    devaluation = resolve_config(devaluation)
    ranking = resolve_ranking_config(ranking)
    engine = DevaluationEngine(devaluation)
    computed: Dict[str, Any] = {}

    # =========================================================================
    # Blend weights
    # =========================================================================
    computed["weight_total"] = (
        ranking.weight_similarity + ranking.weight_recency + ranking.weight_popularity
    )

    # =========================================================================
    # Recency Half-Life (derived from lambda)
    # =========================================================================
    if ranking.recency_lambda > 0:
        computed["recency_half_life_days"] = math.log(2) / ranking.recency_lambda
    else:
        computed["recency_half_life_days"] = float("inf")

    # =========================================================================
    # Engagement boost curve
    # =========================================================================
    computed["engagement_saturation_interactions"] = (
        devaluation.high_engagement_threshold * devaluation.engagement_saturation_factor
    )

    # =========================================================================
    # Day-zero retention per view quality x content type
    # =========================================================================
    view_mults = devaluation.view_quality_multipliers.model_dump()
    type_mults = devaluation.content_type_multipliers.model_dump()
    table: Dict[str, Dict[str, float]] = {}
    for view_quality, vq in view_mults.items():
        table[view_quality] = {
            category: max(
                devaluation.minimum_retention,
                1.0 - devaluation.base_devaluation_multiplier * vq * ct,
            )
            for category, ct in type_mults.items()
        }
    computed["day_zero_retention"] = table

    strongest = devaluation.base_devaluation_multiplier * max(view_mults.values()) * max(type_mults.values())
    weakest = devaluation.base_devaluation_multiplier * min(view_mults.values()) * min(type_mults.values())
    computed["strongest_devaluation"] = strongest
    computed["weakest_devaluation"] = weakest
    computed["lowest_day_zero_retention"] = max(devaluation.minimum_retention, 1.0 - strongest)

    # =========================================================================
    # Recovery and session
    # =========================================================================
    computed["days_to_half_recovery"] = _days_to_half_recovery(engine)
    computed["full_recovery_days"] = devaluation.recovery_timeline_days
    computed["session_timeout_minutes"] = devaluation.session_timeout_ms / 60_000

    return computed
