"""Shared fixtures for the discovery test suite."""

import pytest

from discovery.models.config import DevaluationConfig
from discovery.models.session import SessionInfo
from discovery.stages.devaluation import DevaluationEngine

# Fixed "now" so time-based scores are deterministic (2025-01-01T00:00:00Z).
NOW = 1_735_689_600_000


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def continuing_session():
    """A session that has been active for ten minutes."""
    return SessionInfo(
        session_id="session_fixture",
        is_new_session=False,
        session_start_time=NOW - 10 * 60 * 1000,
        last_activity_at=NOW,
    )


@pytest.fixture
def new_session():
    return SessionInfo(
        session_id="session_fresh",
        is_new_session=True,
        session_start_time=NOW,
        last_activity_at=NOW,
    )


@pytest.fixture
def engine():
    return DevaluationEngine()


@pytest.fixture
def harsh_config():
    """Every multiplier at 1.0 so a seen candidate is fully devalued before floors apply."""
    return DevaluationConfig.from_dict({
        "base_devaluation_multiplier": 1.0,
        "minimum_retention": 0.05,
        "view_quality_multipliers": {
            "quick_scroll": 1.0,
            "engaged_view": 1.0,
            "partial_interaction": 1.0,
        },
        "content_type_multipliers": {
            "news": 1.0,
            "entertainment": 1.0,
            "educational": 1.0,
            "personal": 1.0,
            "general": 1.0,
        },
    })
