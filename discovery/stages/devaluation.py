"""
Seen-content devaluation: how strongly to suppress a candidate the user already saw.

For a seen candidate the engine computes a retention multiplier in
[minimum_retention, 1.0]:

1. strength   = base_devaluation_multiplier * view_quality_mult * content_type_mult
2. engagement = strength *= (1 - reduction), reduction linear from the high-engagement
                threshold up to threshold * saturation factor, capped at max_engagement_reduction
3. retention  = 1 - strength
4. viral      = retention floored at viral_minimum_retention when velocity >= threshold
5. session    = retention floored at new_session_minimum_retention in a new session
6. recovery   = retention = 1 - (1 - retention) * (1 - r) ** d * (1 - d / T), and 1.0 once d >= T
7. clamp      = [minimum_retention, 1.0]

Never-seen candidates are not passed through this at all; their multiplier is 1.0.
"""

import logging
from typing import Any, List, Mapping, Optional

from discovery.models.config import DevaluationConfig, resolve_config, validate_config
from discovery.models.engagement import ContentCategory, EngagementStats, ViewEvent, ViewQuality
from discovery.models.session import SessionInfo
from discovery.utils.scores import DAY_MS

logger = logging.getLogger(__name__)


class InvalidDevaluationConfig(ValueError):
    """The engine refuses to start with a config that fails validate_config."""

    def __init__(self, errors: List[str]):
        super().__init__("Invalid devaluation config: " + "; ".join(errors))
        self.errors = errors


class DevaluationEngine:
    """
    Computes retention multipliers for previously-seen candidates.

    Holds an immutable DevaluationConfig and no other state, so one instance can be
    shared by concurrent requests. Use reconfigure() to get a new engine.
    """

    def __init__(self, config: Optional[DevaluationConfig] = None):
        config = resolve_config(config)
        errors = validate_config(config)
        if errors:
            raise InvalidDevaluationConfig(errors)
        self.config = config

    def reconfigure(self, overrides: Mapping[str, Any]) -> "DevaluationEngine":
        """New engine with overrides merged over this engine's config (raises on invalid values)."""
        return DevaluationEngine(DevaluationConfig.from_dict(overrides, base=self.config))

    # -------------------------------------------------------------------------
    # Individual factors
    # -------------------------------------------------------------------------

    def devaluation_strength(self, view_quality: ViewQuality, category: ContentCategory) -> float:
        """Base strength adjusted for how the candidate was viewed and its content type."""
        cfg = self.config
        vq_mult = getattr(cfg.view_quality_multipliers, ViewQuality.parse(view_quality).value)
        ct_mult = getattr(
            cfg.content_type_multipliers,
            ContentCategory.parse(category).value,
            cfg.content_type_multipliers.general,
        )
        return cfg.base_devaluation_multiplier * vq_mult * ct_mult

    def engagement_reduction(self, total_interactions: int) -> float:
        """
        Fraction of devaluation strength removed for popular content.

        0 below the threshold, then linear up to max_engagement_reduction at
        threshold * engagement_saturation_factor; monotone and capped.
        """
        cfg = self.config
        threshold = cfg.high_engagement_threshold
        if total_interactions < threshold:
            return 0.0
        saturation = threshold * cfg.engagement_saturation_factor
        progress = (total_interactions - threshold) / (saturation - threshold)
        return cfg.max_engagement_reduction * min(1.0, progress)

    def recovery_factor(self, elapsed_ms: int) -> float:
        """
        Remaining share of devaluation after elapsed_ms since last seen.

        1.0 at zero elapsed time, non-increasing, exactly 0.0 from recovery_timeline_days on.
        """
        cfg = self.config
        days = max(0, elapsed_ms) / DAY_MS
        if days >= cfg.recovery_timeline_days:
            return 0.0
        compounded = (1.0 - cfg.daily_recovery_rate) ** days
        taper = 1.0 - days / cfg.recovery_timeline_days
        return compounded * taper

    # -------------------------------------------------------------------------
    # Combined
    # -------------------------------------------------------------------------

    def retention_multiplier(
        self,
        event: ViewEvent,
        stats: Optional[EngagementStats],
        session: Optional[SessionInfo],
        now: int,
    ) -> float:
        """
        Retention multiplier in [minimum_retention, 1.0] for a seen candidate.

        Missing stats count as zero engagement in the general category; a missing
        session counts as a new one. Never raises for per-request inputs.
        """
        cfg = self.config
        stats = stats if stats is not None else EngagementStats.empty()

        strength = self.devaluation_strength(event.view_quality, stats.category)
        strength *= 1.0 - self.engagement_reduction(stats.total_interactions)
        retention = 1.0 - strength

        if stats.velocity >= cfg.viral_velocity_threshold:
            retention = max(retention, cfg.viral_minimum_retention)

        if session is None or session.is_new_session:
            retention = max(retention, cfg.new_session_minimum_retention)

        factor = self.recovery_factor(now - event.last_seen_at)
        if factor == 0.0:
            return 1.0
        retention = 1.0 - (1.0 - retention) * factor

        return min(1.0, max(cfg.minimum_retention, retention))

    def retention_for(
        self,
        candidate_id: str,
        seen: Mapping[str, ViewEvent],
        stats: Optional[EngagementStats],
        session: Optional[SessionInfo],
        now: int,
    ) -> float:
        """Retention for candidate_id given an indexed seen-history; exactly 1.0 when never seen."""
        event = seen.get(candidate_id)
        if event is None:
            return 1.0
        return self.retention_multiplier(event, stats, session, now)
