"""Tests for derived tuning parameters."""

import math

import pytest

from discovery.computed_params import compute_parameters
from discovery.models.config import DevaluationConfig, RankingConfig
from discovery.stages.devaluation import DevaluationEngine
from discovery.utils.scores import DAY_MS


def test_defaults():
    params = compute_parameters()

    assert params["weight_total"] == pytest.approx(1.0)
    assert params["recency_half_life_days"] == pytest.approx(math.log(2) / 0.1)
    assert params["engagement_saturation_interactions"] == 200
    assert params["full_recovery_days"] == 12.0
    assert params["session_timeout_minutes"] == 30


def test_day_zero_retention_table():
    params = compute_parameters()
    table = params["day_zero_retention"]

    assert set(table) == {"quick_scroll", "engaged_view", "partial_interaction"}
    assert table["engaged_view"]["news"] == pytest.approx(0.97)
    assert params["strongest_devaluation"] == pytest.approx(0.5 * 0.8 * 0.8)
    assert params["weakest_devaluation"] == pytest.approx(0.5 * 0.3 * 0.2)
    assert params["lowest_day_zero_retention"] == pytest.approx(0.68)


def test_half_recovery_point():
    config = DevaluationConfig()
    days = compute_parameters(devaluation=config)["days_to_half_recovery"]

    assert 0 < days < config.recovery_timeline_days
    factor = DevaluationEngine(config).recovery_factor(int(days * DAY_MS))
    assert factor == pytest.approx(0.5, abs=1e-3)


def test_zero_lambda_has_no_half_life():
    params = compute_parameters(ranking=RankingConfig(recency_lambda=0.0))
    assert params["recency_half_life_days"] == float("inf")


def test_follows_overrides():
    config = DevaluationConfig.from_dict({"recoveryTimelineDays": 6, "sessionTimeoutMs": 600_000})
    params = compute_parameters(devaluation=config)

    assert params["full_recovery_days"] == 6
    assert params["session_timeout_minutes"] == 10
    assert params["days_to_half_recovery"] < 6
