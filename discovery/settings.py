"""
Discovery Settings

Loads configuration from environment variables and provides defaults.
Supports loading from a .env file using python-dotenv.

Variables:
    DEVALUATION_PRESET       default | high_engagement_boost | conservative | content_aware
    DEVALUATION_CONFIG       JSON object overriding any subset of devaluation fields
    RANKING_CONFIG           JSON object overriding any subset of ranking fields
    SCORE_CACHE_TTL_SECONDS  default TTL of the score cache
    DISCOVERY_LOG_LEVEL      logging level name (INFO by default)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from discovery.models.config import (
    DevaluationConfig,
    RankingConfig,
    load_devaluation_config,
    load_ranking_config,
)
from discovery.stages.cache import DEFAULT_TTL_SECONDS, ScoreCache
from discovery.stages.devaluation import DevaluationEngine
from discovery.stages.ranking import RankingPipeline
from discovery.stages.session_tracker import SessionTracker
from discovery.storage.protocols import SessionStore

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


@dataclass
class DiscoverySettings:
    """Process-level settings for the ranking core."""

    devaluation_preset: Optional[str] = None
    devaluation_overrides: Optional[str] = None
    ranking_overrides: Optional[str] = None
    score_cache_ttl_seconds: int = DEFAULT_TTL_SECONDS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "DiscoverySettings":
        """Load settings from environment variables (after reading env_file, if it exists)."""
        env_file = env_file if env_file is not None else Path.cwd() / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        ttl_raw = os.getenv("SCORE_CACHE_TTL_SECONDS", "").strip()
        try:
            ttl = int(ttl_raw) if ttl_raw else DEFAULT_TTL_SECONDS
        except ValueError:
            logger.warning("[settings] INVALID_TTL value=%r using=%s", ttl_raw, DEFAULT_TTL_SECONDS)
            ttl = DEFAULT_TTL_SECONDS
        if ttl <= 0:
            logger.warning("[settings] INVALID_TTL value=%r using=%s", ttl_raw, DEFAULT_TTL_SECONDS)
            ttl = DEFAULT_TTL_SECONDS

        return cls(
            devaluation_preset=os.getenv("DEVALUATION_PRESET") or None,
            devaluation_overrides=os.getenv("DEVALUATION_CONFIG") or None,
            ranking_overrides=os.getenv("RANKING_CONFIG") or None,
            score_cache_ttl_seconds=ttl,
            log_level=(os.getenv("DISCOVERY_LOG_LEVEL") or "INFO").strip().upper(),
        )

    def devaluation_config(self) -> DevaluationConfig:
        return load_devaluation_config(self.devaluation_overrides, preset=self.devaluation_preset)

    def ranking_config(self) -> RankingConfig:
        return load_ranking_config(self.ranking_overrides)


def configure_logging(level: str = "INFO") -> None:
    """Root logging setup for processes embedding the ranking core."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(level=numeric, format=LOG_FORMAT)


def build_pipeline(settings: Optional[DiscoverySettings] = None) -> RankingPipeline:
    """
    Build the shared pipeline once at startup.

    Raises InvalidDevaluationConfig if the resolved config is structurally invalid;
    the process must not start ranking with it.
    """
    settings = settings if settings is not None else DiscoverySettings.from_env()
    engine = DevaluationEngine(settings.devaluation_config())
    cache = ScoreCache(default_ttl=settings.score_cache_ttl_seconds)
    pipeline = RankingPipeline(engine=engine, config=settings.ranking_config(), cache=cache)
    logger.info(
        "[settings] PIPELINE_READY preset=%s cache_ttl=%s",
        settings.devaluation_preset or "default", settings.score_cache_ttl_seconds,
    )
    return pipeline


def build_session_tracker(store: SessionStore, pipeline: RankingPipeline) -> SessionTracker:
    """Session tracker sharing the pipeline's devaluation config, so session_timeout_ms overrides apply."""
    tracker = SessionTracker.from_config(store, pipeline.engine.config)
    logger.info("[settings] SESSION_TRACKER_READY timeout_ms=%s", tracker.timeout_ms)
    return tracker
