"""
Tests for the ranking pipeline.

Similarity → blend → devaluation → sort → page, with and without the score cache.
"""

import pytest

from discovery.models.config import RankingConfig
from discovery.models.engagement import ViewEvent
from discovery.models.scoring import CacheStatus, Candidate
from discovery.stages.cache import ScoreCache
from discovery.stages.ranking import RankingPipeline, decode_cursor, encode_cursor, rank_candidates
from discovery.stages.ranking.blended_scoring import blend
from discovery.utils.scores import DAY_MS

NOW = 1_735_689_600_000


def _candidate(cid, vector, total=0, category="general", created_at=None):
    return Candidate(
        id=cid,
        vector=vector,
        created_at=created_at,
        stats={"total_interactions": total, "category": category},
    )


@pytest.fixture
def pipeline():
    return RankingPipeline()


@pytest.fixture
def five_candidates():
    return [
        _candidate("p1", [1.0, 0.0]),
        _candidate("p2", [0.9, 0.1]),
        _candidate("p3", [0.7, 0.3]),
        _candidate("p4", [0.5, 0.5]),
        _candidate("p5", [0.1, 0.9]),
    ]


class TestRankCandidates:
    def test_most_similar_first(self, pipeline, continuing_session):
        candidates = [_candidate("a", [1.0, 0.0]), _candidate("b", [0.0, 1.0])]

        page = pipeline.rank([1.0, 0.0], candidates, continuing_session, now=NOW, page_size=1)

        assert [s.candidate_id for s in page.items] == ["a"]
        assert page.items[0].raw_similarity == pytest.approx(1.0)
        assert page.has_more is True

    def test_unseen_candidates_keep_blended_score(self, five_candidates, continuing_session):
        scored, metrics = rank_candidates([1.0, 0.0], five_candidates, continuing_session, now=NOW)

        assert len(scored) == 5
        for s in scored:
            assert s.retention_multiplier == 1.0
            assert s.final_score == s.blended_score
            assert s.seen is False
        assert metrics.seen_total == 0

    def test_sorted_by_final_score(self, five_candidates, continuing_session):
        scored, _ = rank_candidates([1.0, 0.0], five_candidates, continuing_session, now=NOW)

        finals = [s.final_score for s in scored]
        assert finals == sorted(finals, reverse=True)
        assert [s.candidate_id for s in scored] == ["p1", "p2", "p3", "p4", "p5"]

    def test_seen_candidate_is_devalued(self, continuing_session):
        candidates = [
            _candidate("seen", [1.0, 0.0], category="news"),
            _candidate("fresh", [1.0, 0.0], category="news"),
        ]
        history = [{"candidate_id": "seen", "last_seen_at": NOW, "view_quality": "engaged_view"}]

        scored, metrics = rank_candidates(
            [1.0, 0.0], candidates, continuing_session, seen_history=history, now=NOW,
        )

        assert [s.candidate_id for s in scored] == ["fresh", "seen"]
        seen = scored[1]
        assert seen.seen is True
        assert seen.retention_multiplier == pytest.approx(0.97)
        assert seen.final_score == pytest.approx(seen.blended_score * 0.97)
        assert metrics.seen_total == 1
        assert metrics.seen_devalued == 1
        assert metrics.average_retention_multiplier == pytest.approx(0.97)

    def test_seen_history_as_mapping(self, continuing_session):
        candidates = [_candidate("a", [1.0, 0.0])]
        seen = {"a": ViewEvent(candidate_id="a", last_seen_at=NOW - 20 * DAY_MS)}

        scored, metrics = rank_candidates([1.0, 0.0], candidates, continuing_session, seen_history=seen, now=NOW)

        assert scored[0].seen is True
        assert scored[0].retention_multiplier == 1.0
        assert metrics.seen_devalued == 0

    def test_ties_keep_input_order(self, continuing_session):
        candidates = [_candidate(cid, [1.0, 1.0]) for cid in ("c", "a", "b")]

        scored, _ = rank_candidates([1.0, 1.0], candidates, continuing_session, now=NOW)

        assert [s.candidate_id for s in scored] == ["c", "a", "b"]

    def test_empty_candidates(self, pipeline, continuing_session):
        page = pipeline.rank([1.0, 0.0], [], continuing_session, now=NOW)

        assert page.items == []
        assert page.has_more is False
        assert page.next_cursor is None
        assert page.metrics.candidates_received == 0

    def test_malformed_candidates_are_dropped(self, continuing_session, caplog):
        candidates = [
            _candidate("ok", [1.0, 0.0]),
            {"id": "no-vector"},
            _candidate("wrong-dim", [1.0, 0.0, 0.0]),
            _candidate("ok", [0.0, 1.0]),
        ]

        scored, metrics = rank_candidates([1.0, 0.0], candidates, continuing_session, now=NOW)

        assert [s.candidate_id for s in scored] == ["ok"]
        assert scored[0].raw_similarity == pytest.approx(1.0)
        assert metrics.candidates_dropped == 3
        assert "DIMENSION_MISMATCH" in caplog.text

    def test_negative_similarity_does_not_pull_score_down(self, continuing_session):
        candidates = [_candidate("opposite", [-1.0, 0.0])]

        scored, _ = rank_candidates([1.0, 0.0], candidates, continuing_session, now=NOW)

        assert scored[0].raw_similarity == pytest.approx(-1.0)
        assert scored[0].blended_score == pytest.approx(0.0, abs=1e-9)

    def test_recency_and_popularity_blend(self, continuing_session):
        candidates = [_candidate("a", [1.0, 0.0], total=50, created_at=NOW)]

        scored, _ = rank_candidates([1.0, 0.0], candidates, continuing_session, now=NOW)

        s = scored[0]
        assert s.recency_score == pytest.approx(1.0)
        assert s.popularity_score == pytest.approx(0.5)
        assert s.blended_score == pytest.approx(0.6 * 1.0 + 0.25 * 1.0 + 0.15 * 0.5)

    def test_cold_start_ranks_by_popularity(self, continuing_session):
        candidates = [
            _candidate("a", [1.0, 0.0], total=10, created_at=NOW),
            _candidate("b", [0.0, 1.0], total=90, created_at=NOW),
            _candidate("c", [0.5, 0.5], total=50, created_at=NOW),
        ]

        scored, _ = rank_candidates(None, candidates, continuing_session, now=NOW)

        assert [s.candidate_id for s in scored] == ["b", "c", "a"]
        assert all(s.raw_similarity == 0.5 for s in scored)

    def test_candidate_pool_size_limits_scored(self, five_candidates, continuing_session):
        config = RankingConfig(candidate_pool_size=2)

        scored, metrics = rank_candidates([1.0, 0.0], five_candidates, continuing_session, config=config, now=NOW)

        assert [s.candidate_id for s in scored] == ["p1", "p2"]
        assert metrics.candidates_scored == 2

    def test_missing_session_is_accepted(self, five_candidates):
        scored, _ = rank_candidates([1.0, 0.0], five_candidates, None, now=NOW)
        assert len(scored) == 5


class TestBlend:
    def test_weights_applied(self):
        config = RankingConfig()
        assert blend(1.0, 0.0, 0.0, config) == pytest.approx(0.6)
        assert blend(0.0, 1.0, 1.0, config) == pytest.approx(0.4)

    def test_negative_similarity_without_clamp(self):
        config = RankingConfig(clamp_negative_similarity=False)
        assert blend(-1.0, 0.0, 0.0, config) == pytest.approx(-0.6)


class TestPagination:
    def test_cursor_round_trip(self):
        assert decode_cursor(encode_cursor(["a", "b"])) == ["a", "b"]

    def test_missing_cursor_is_first_page(self):
        assert decode_cursor(None) == []
        assert decode_cursor("") == []

    def test_pages_cover_every_candidate_once(self, pipeline, five_candidates, continuing_session):
        seen_ids = []
        cursor = None
        pages = 0
        while True:
            page = pipeline.rank(
                [1.0, 0.0], five_candidates, continuing_session, now=NOW, cursor=cursor, page_size=2,
            )
            pages += 1
            seen_ids.extend(s.candidate_id for s in page.items)
            if not page.has_more:
                assert page.next_cursor is None
                break
            cursor = page.next_cursor

        assert pages == 3
        assert seen_ids == ["p1", "p2", "p3", "p4", "p5"]

    def test_invalid_cursor_restarts(self, pipeline, five_candidates, continuing_session, caplog):
        page = pipeline.rank(
            [1.0, 0.0], five_candidates, continuing_session, now=NOW, cursor="not-a-cursor", page_size=2,
        )

        assert [s.candidate_id for s in page.items] == ["p1", "p2"]
        assert "CURSOR_INVALID" in caplog.text

    def test_page_size_is_clamped(self, pipeline, five_candidates, continuing_session):
        config = RankingConfig(default_page_size=2, max_page_size=3)

        assert len(pipeline.rank([1.0, 0.0], five_candidates, continuing_session, config=config, now=NOW).items) == 2
        assert len(pipeline.rank(
            [1.0, 0.0], five_candidates, continuing_session, config=config, now=NOW, page_size=50,
        ).items) == 3
        assert len(pipeline.rank(
            [1.0, 0.0], five_candidates, continuing_session, config=config, now=NOW, page_size=0,
        ).items) == 1


class TestCachedRanking:
    def test_bypass_without_cache(self, pipeline, five_candidates, continuing_session):
        page = pipeline.rank([1.0, 0.0], five_candidates, continuing_session, now=NOW)
        assert page.cache_status == CacheStatus.BYPASS

    def test_second_request_hits_cache(self, five_candidates, continuing_session):
        pipeline = RankingPipeline(cache=ScoreCache())

        first = pipeline.rank([1.0, 0.0], five_candidates, continuing_session, now=NOW)
        second = pipeline.rank([1.0, 0.0], five_candidates, continuing_session, now=NOW)

        assert first.cache_status == CacheStatus.MISS
        assert second.cache_status == CacheStatus.HIT
        assert second.metrics.cache_hits == 5
        assert all(s.similarity_from_cache for s in second.items)
        assert [s.final_score for s in second.items] == pytest.approx([s.final_score for s in first.items])

    def test_new_candidate_gives_partial(self, five_candidates, continuing_session):
        pipeline = RankingPipeline(cache=ScoreCache())
        pipeline.rank([1.0, 0.0], five_candidates, continuing_session, now=NOW)

        page = pipeline.rank(
            [1.0, 0.0], five_candidates + [_candidate("p6", [0.3, 0.7])], continuing_session, now=NOW,
        )

        assert page.cache_status == CacheStatus.PARTIAL
        assert page.metrics.cache_misses == 1

    def test_changed_user_vector_misses(self, five_candidates, continuing_session):
        pipeline = RankingPipeline(cache=ScoreCache())
        pipeline.rank([1.0, 0.0], five_candidates, continuing_session, now=NOW)

        page = pipeline.rank([0.0, 1.0], five_candidates, continuing_session, now=NOW)

        assert page.cache_status == CacheStatus.MISS
        assert page.items[0].candidate_id == "p5"
