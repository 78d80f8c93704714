"""
Ranking and devaluation configuration.

DevaluationConfig holds the seen-content suppression knobs; RankingConfig holds the
blend weights and pipeline sizing. Both are frozen: reconfiguring means building a
new value (from_dict / load_*), never mutating a shared one in place.

JSON overrides may use the camelCase keys of the external config source
(e.g. "baseDevaluationMultiplier") or the snake_case field names; partial nested
overrides are merged over the defaults.
"""

import json
import logging
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class ViewQualityMultipliers(BaseModel):
    """Share of the base devaluation applied for each way a candidate was viewed."""

    model_config = ConfigDict(frozen=True)

    # Scrolled past: light devaluation
    quick_scroll: float = 0.8
    # Looked at it properly: strongest retention of interest
    engaged_view: float = 0.3
    partial_interaction: float = 0.5


class ContentTypeMultipliers(BaseModel):
    """Share of the base devaluation applied per content category."""

    model_config = ConfigDict(frozen=True)

    news: float = 0.2
    entertainment: float = 0.6
    educational: float = 0.8
    personal: float = 0.4
    general: float = 0.5


class DevaluationConfig(BaseModel):
    """Configuration for seen-content devaluation and recovery."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    # -------------------------------------------------------------------------
    # Base devaluation
    # -------------------------------------------------------------------------

    # Base reduction for a seen candidate (0.5 = up to 50% reduction).
    base_devaluation_multiplier: float = 0.5
    # Hard floor for the retention multiplier. Must not exceed the base multiplier.
    minimum_retention: float = 0.2

    # -------------------------------------------------------------------------
    # Engagement boost and viral override
    # -------------------------------------------------------------------------

    # Total interactions at which devaluation starts to ease off.
    high_engagement_threshold: int = 50
    # Reduction reaches its cap at threshold * saturation factor (50 * 4 = 200).
    engagement_saturation_factor: float = 4.0
    # Max fraction of devaluation strength removed for popular content.
    max_engagement_reduction: float = 0.4
    # Interactions per hour that make a candidate viral.
    viral_velocity_threshold: float = 10.0
    # Viral candidates never drop below this retention.
    viral_minimum_retention: float = 0.7

    # -------------------------------------------------------------------------
    # Per-view and per-category multipliers
    # -------------------------------------------------------------------------

    view_quality_multipliers: ViewQualityMultipliers = Field(default_factory=ViewQualityMultipliers)
    content_type_multipliers: ContentTypeMultipliers = Field(default_factory=ContentTypeMultipliers)

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    # Retention floor while the user is in a freshly started session.
    new_session_minimum_retention: float = 0.6
    # Inactivity gap after which a new session begins (30 minutes).
    session_timeout_ms: int = 30 * 60 * 1000

    # -------------------------------------------------------------------------
    # Recovery curve
    # remaining strength = (1 - daily_recovery_rate) ** d * (1 - d / recovery_timeline_days)
    # -------------------------------------------------------------------------

    daily_recovery_rate: float = 0.08
    recovery_timeline_days: float = 12.0

    @model_validator(mode="after")
    def _check_ranges(self):
        errors = validate_config(self)
        if errors:
            raise ValueError("Invalid devaluation config: " + "; ".join(errors))
        return self

    @classmethod
    def from_dict(
        cls,
        config_dict: Mapping[str, Any],
        base: Optional["DevaluationConfig"] = None,
    ) -> "DevaluationConfig":
        """
        Create config from a dict of overrides merged over base (defaults when None).

        Raises pydantic.ValidationError when the merged result is invalid.
        """
        base = base if base is not None else DEFAULT_DEVALUATION_CONFIG
        merged = _deep_merge(base.model_dump(), _normalize_keys(cls, config_dict))
        return cls.model_validate(merged)


def _unit_interval(errors: List[str], name: str, value: float) -> None:
    """Append an error unless 0 < value <= 1 (also rejects NaN)."""
    if not (0.0 < value <= 1.0):
        errors.append(f"{name} must be in (0, 1], got {value}")


def validate_config(config: DevaluationConfig) -> List[str]:
    """
    Return a list of human-readable problems with config; empty when valid.

    Runs on construction through the model validator, and again when an engine is
    built so values created via model_construct() cannot slip through.
    """
    errors: List[str] = []

    _unit_interval(errors, "base_devaluation_multiplier", config.base_devaluation_multiplier)
    _unit_interval(errors, "minimum_retention", config.minimum_retention)
    if config.minimum_retention > config.base_devaluation_multiplier:
        errors.append(
            f"minimum_retention ({config.minimum_retention}) cannot be higher than "
            f"base_devaluation_multiplier ({config.base_devaluation_multiplier})"
        )

    if not config.high_engagement_threshold > 0:
        errors.append(f"high_engagement_threshold must be positive, got {config.high_engagement_threshold}")
    if not config.engagement_saturation_factor > 1.0:
        errors.append(
            f"engagement_saturation_factor must be greater than 1, got {config.engagement_saturation_factor}"
        )
    _unit_interval(errors, "max_engagement_reduction", config.max_engagement_reduction)
    if not config.viral_velocity_threshold > 0:
        errors.append(f"viral_velocity_threshold must be positive, got {config.viral_velocity_threshold}")
    _unit_interval(errors, "viral_minimum_retention", config.viral_minimum_retention)

    for name, value in config.view_quality_multipliers.model_dump().items():
        _unit_interval(errors, f"view_quality_multipliers.{name}", value)
    for name, value in config.content_type_multipliers.model_dump().items():
        _unit_interval(errors, f"content_type_multipliers.{name}", value)

    _unit_interval(errors, "new_session_minimum_retention", config.new_session_minimum_retention)
    if not config.session_timeout_ms > 0:
        errors.append(f"session_timeout_ms must be positive, got {config.session_timeout_ms}")

    if not (0.0 < config.daily_recovery_rate <= 0.5):
        errors.append(f"daily_recovery_rate must be in (0, 0.5], got {config.daily_recovery_rate}")
    if not (0.0 < config.recovery_timeline_days <= 30.0):
        errors.append(f"recovery_timeline_days must be in (0, 30], got {config.recovery_timeline_days}")

    return errors


class RankingConfig(BaseModel):
    """Blend weights and sizing for the ranking pipeline."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    # -------------------------------------------------------------------------
    # Blended Scoring Weights (must sum to 1.0)
    # blended = weight_similarity * sim + weight_recency * recency + weight_popularity * popularity
    # -------------------------------------------------------------------------

    weight_similarity: float = 0.6
    weight_recency: float = 0.25
    weight_popularity: float = 0.15

    # recency = exp(-recency_lambda * age_days). 0.1 gives ~7 day half-life.
    recency_lambda: float = Field(default=0.1, ge=0.0)
    # Interactions at which popularity saturates at 1.0.
    popularity_saturation: float = Field(default=100.0, gt=0.0)
    # Negative cosine similarity contributes 0 to the blend instead of pulling it down.
    clamp_negative_similarity: bool = True
    # Cold start (no user vector): neutral similarity for every candidate.
    cold_start_similarity: float = Field(default=0.5, ge=0.0, le=1.0)

    # Max candidates kept after similarity (top-k) before blending and devaluation.
    candidate_pool_size: int = Field(default=500, gt=0)
    default_page_size: int = Field(default=20, gt=0)
    max_page_size: int = Field(default=100, gt=0)

    # TTL for cached per-candidate similarity scores.
    similarity_cache_ttl_seconds: int = Field(default=300, gt=0)

    @model_validator(mode="after")
    def weights_sum_to_one(self):
        total = self.weight_similarity + self.weight_recency + self.weight_popularity
        if abs(total - 1.0) > 0.01:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total}")
        if min(self.weight_similarity, self.weight_recency, self.weight_popularity) < 0:
            raise ValueError("Scoring weights must be non-negative")
        if self.default_page_size > self.max_page_size:
            raise ValueError("default_page_size cannot exceed max_page_size")
        return self

    @classmethod
    def from_dict(cls, config_dict: Mapping[str, Any]) -> "RankingConfig":
        """Create config from dictionary (e.g., loaded from JSON) merged over defaults."""
        merged = _deep_merge(DEFAULT_RANKING_CONFIG.model_dump(), _normalize_keys(cls, config_dict))
        return cls.model_validate(merged)


def _normalize_keys(model_cls: type, config_dict: Mapping[str, Any]) -> Dict[str, Any]:
    """Map camelCase aliases to field names and drop keys the model does not know."""
    by_key: Dict[str, str] = {}
    for name, field in model_cls.model_fields.items():
        by_key[name] = name
        if field.alias:
            by_key[field.alias] = name
    out: Dict[str, Any] = {}
    for key, value in config_dict.items():
        name = by_key.get(key)
        if name is None:
            logger.warning("[config] UNKNOWN_KEY model=%s key=%s ignored", model_cls.__name__, key)
            continue
        out[name] = value
    return out


def _deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge override into a copy of base; nested dicts merge key by key."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


DEFAULT_DEVALUATION_CONFIG = DevaluationConfig()
DEFAULT_RANKING_CONFIG = RankingConfig()


class DevaluationPreset(str, Enum):
    """Named variants of the devaluation config used for experiments."""

    DEFAULT = "default"
    HIGH_ENGAGEMENT_BOOST = "high_engagement_boost"
    CONSERVATIVE = "conservative"
    CONTENT_AWARE = "content_aware"


PRESETS: Dict[DevaluationPreset, DevaluationConfig] = {
    DevaluationPreset.DEFAULT: DEFAULT_DEVALUATION_CONFIG,
    # Popular and viral content is suppressed even less.
    DevaluationPreset.HIGH_ENGAGEMENT_BOOST: DevaluationConfig.from_dict({
        "max_engagement_reduction": 0.6,
        "viral_minimum_retention": 0.8,
    }),
    DevaluationPreset.CONSERVATIVE: DevaluationConfig.from_dict({
        "base_devaluation_multiplier": 0.7,
        "minimum_retention": 0.3,
        "new_session_minimum_retention": 0.8,
    }),
    DevaluationPreset.CONTENT_AWARE: DevaluationConfig.from_dict({
        "content_type_multipliers": {
            "news": 0.1,
            "entertainment": 0.8,
            "educational": 0.9,
            "personal": 0.2,
            "general": 0.5,
        },
    }),
}


def get_preset(name: Union[str, DevaluationPreset, None]) -> DevaluationConfig:
    """Look up a preset by name; unknown or empty names return the default config."""
    if not name:
        return DEFAULT_DEVALUATION_CONFIG
    try:
        return PRESETS[DevaluationPreset(str(name).strip().lower())]
    except ValueError:
        logger.warning("[config] UNKNOWN_PRESET name=%r using=default", name)
        return DEFAULT_DEVALUATION_CONFIG


def _parse_overrides(raw: Union[str, Mapping[str, Any], None], source: str) -> Optional[Mapping[str, Any]]:
    """Decode a JSON string (or pass a mapping through); None when absent or unparseable."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    if isinstance(raw, Mapping):
        return raw
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("[config] OVERRIDE_PARSE_FAILED source=%s error=%s using=defaults", source, e)
        return None
    if not isinstance(parsed, dict):
        logger.warning("[config] OVERRIDE_NOT_OBJECT source=%s type=%s using=defaults", source, type(parsed).__name__)
        return None
    return parsed


def load_devaluation_config(
    raw: Union[str, Mapping[str, Any], None] = None,
    preset: Union[str, DevaluationPreset, None] = None,
) -> DevaluationConfig:
    """
    Load devaluation config from an external key/value source.

    raw is a JSON object (string or mapping) overriding any subset of fields of the
    chosen preset. Invalid overrides are rejected with a warning and the preset is
    returned unchanged; this function never raises.
    """
    base = get_preset(preset)
    overrides = _parse_overrides(raw, "devaluation")
    if overrides is None:
        return base
    try:
        return DevaluationConfig.from_dict(overrides, base=base)
    except ValidationError as e:
        logger.warning("[config] OVERRIDE_REJECTED source=devaluation error=%s using=defaults", e)
        return base


def load_ranking_config(raw: Union[str, Mapping[str, Any], None] = None) -> RankingConfig:
    """Load ranking config overrides; falls back to defaults with a warning on failure."""
    overrides = _parse_overrides(raw, "ranking")
    if overrides is None:
        return DEFAULT_RANKING_CONFIG
    try:
        return RankingConfig.from_dict(overrides)
    except ValidationError as e:
        logger.warning("[config] OVERRIDE_REJECTED source=ranking error=%s using=defaults", e)
        return DEFAULT_RANKING_CONFIG


def resolve_config(config: Optional[DevaluationConfig]) -> DevaluationConfig:
    """Return config or DEFAULT_DEVALUATION_CONFIG when none is provided."""
    return config if config is not None else DEFAULT_DEVALUATION_CONFIG


def resolve_ranking_config(config: Optional[RankingConfig]) -> RankingConfig:
    """Return config or DEFAULT_RANKING_CONFIG when none is provided."""
    return config if config is not None else DEFAULT_RANKING_CONFIG
