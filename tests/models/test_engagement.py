"""Tests for engagement stats and seen-history parsing."""

from discovery.models.engagement import (
    ContentCategory,
    EngagementStats,
    ViewEvent,
    ViewQuality,
    ensure_stats,
    index_seen_history,
)


def test_unknown_category_becomes_general():
    assert EngagementStats(category="weird").category == ContentCategory.GENERAL
    assert EngagementStats(category=None).category == ContentCategory.GENERAL


def test_category_is_case_insensitive():
    assert EngagementStats(category=" News ").category == ContentCategory.NEWS


def test_ensure_stats_handles_missing_and_invalid():
    assert ensure_stats(None) == EngagementStats.empty()
    assert ensure_stats({"total_interactions": -1}) == EngagementStats.empty()

    stats = ensure_stats({"total_interactions": 12, "velocity": 1.5, "category": "educational"})
    assert stats.total_interactions == 12
    assert stats.category == ContentCategory.EDUCATIONAL


def test_unknown_view_quality_degrades_to_partial():
    event = ViewEvent(candidate_id="a", last_seen_at=10, view_quality="stared_intently")
    assert event.view_quality == ViewQuality.PARTIAL_INTERACTION


def test_index_keeps_latest_event_per_candidate():
    history = index_seen_history([
        {"candidate_id": "a", "last_seen_at": 100, "view_quality": "quick_scroll"},
        {"candidate_id": "a", "last_seen_at": 300, "view_quality": "engaged_view"},
        {"candidate_id": "a", "last_seen_at": 200, "view_quality": "quick_scroll"},
        {"candidate_id": "b", "last_seen_at": 50},
    ])

    assert set(history) == {"a", "b"}
    assert history["a"].last_seen_at == 300
    assert history["a"].view_quality == ViewQuality.ENGAGED_VIEW
    assert history["b"].view_quality == ViewQuality.PARTIAL_INTERACTION


def test_index_skips_malformed_entries(caplog):
    history = index_seen_history([
        {"candidate_id": "a"},
        {"last_seen_at": 5},
        {"candidate_id": "b", "last_seen_at": -1},
        {"candidate_id": "c", "last_seen_at": 7},
    ])

    assert list(history) == ["c"]
    assert "VIEW_EVENT_INVALID" in caplog.text


def test_index_empty_history():
    assert index_seen_history([]) == {}
    assert index_seen_history(None) == {}


def test_invalid_stats_fields_fall_back_individually(caplog):
    stats = ensure_stats({"total_interactions": 50.5, "velocity": 3.0, "category": "news"})

    assert stats.total_interactions == 0
    assert stats.velocity == 3.0
    assert stats.category == ContentCategory.NEWS
    assert "STATS_FIELDS_INVALID" in caplog.text


def test_negative_velocity_keeps_other_fields():
    stats = ensure_stats({"total_interactions": 80, "velocity": -2.0, "category": "personal"})

    assert stats.total_interactions == 80
    assert stats.velocity == 0.0
    assert stats.category == ContentCategory.PERSONAL


def test_non_mapping_stats_become_empty():
    assert ensure_stats("lots") == EngagementStats.empty()
