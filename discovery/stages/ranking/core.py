"""
Main ranking orchestration: similarity → blend → devaluation → sort → page.

rank_candidates produces the full sorted list for one request; RankingPipeline binds
an engine, a ranking config and an optional cache, and returns one page at a time.
Submodules used: similarity, blended_scoring, pagination.
"""

import logging
import time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from discovery.models.config import RankingConfig, resolve_ranking_config
from discovery.models.engagement import ViewEvent, ensure_stats, index_seen_history
from discovery.models.scoring import (
    CacheStatus,
    Candidate,
    RankedPage,
    RankingMetrics,
    ScoredCandidate,
    ensure_candidates,
)
from discovery.models.session import SessionInfo
from discovery.stages.cache import ScoreCache
from discovery.stages.devaluation import DevaluationEngine
from discovery.utils.scores import now_ms

from .blended_scoring import build_scored_candidate
from .pagination import decode_cursor, encode_cursor
from .similarity import compute_similarities

logger = logging.getLogger(__name__)

SeenHistory = Union[Mapping[str, ViewEvent], Iterable[Union[ViewEvent, Dict[str, Any]]], None]

DEFAULT_ENGINE = DevaluationEngine()


def _index_seen(seen_history: SeenHistory) -> Mapping[str, ViewEvent]:
    if seen_history is None:
        return {}
    if isinstance(seen_history, Mapping):
        return seen_history
    return index_seen_history(seen_history)


def rank_candidates(
    user_vector: Optional[Sequence[float]],
    candidates: List[Union[Candidate, Dict[str, Any]]],
    session: Optional[SessionInfo],
    config: Optional[RankingConfig] = None,
    engine: Optional[DevaluationEngine] = None,
    seen_history: SeenHistory = None,
    now: Optional[int] = None,
    cache: Optional[ScoreCache] = None,
    exclude_ids: Iterable[str] = (),
) -> Tuple[List[ScoredCandidate], RankingMetrics]:
    """
    Rank candidates: final_score = (w_sim*sim + w_rec*recency + w_pop*popularity) * retention.

    Seen candidates get the engine's retention multiplier, everything else 1.0.
    Result is sorted by final_score descending; ties keep input order. An empty
    candidate set yields an empty list, never an error.
    """
    started = time.perf_counter()
    config = resolve_ranking_config(config)
    engine = engine if engine is not None else DEFAULT_ENGINE
    now = now_ms() if now is None else now

    # 1) Normalize inputs and drop ids already served in this logical request
    excluded = set(exclude_ids)
    typed = [c for c in ensure_candidates(candidates) if c.id not in excluded]
    position = {}
    for i, c in enumerate(typed):
        position.setdefault(c.id, i)
    seen = _index_seen(seen_history)

    # 2) Similarity (top-k pool), read through the cache when present
    sim_result = compute_similarities(user_vector, typed, config, cache)

    # 3) Blend and devalue each pooled candidate
    scored: List[ScoredCandidate] = []
    seen_retentions: List[float] = []
    for candidate, similarity, from_cache in sim_result.pool:
        stats = ensure_stats(candidate.stats)
        retention = engine.retention_for(candidate.id, seen, stats, session, now)
        was_seen = candidate.id in seen
        if was_seen:
            seen_retentions.append(retention)
        scored.append(build_scored_candidate(
            candidate, similarity, stats, retention, config, now,
            seen=was_seen, from_cache=from_cache,
        ))

    # 4) Sort by final_score, ties by input order
    scored.sort(key=lambda s: (-s.final_score, position[s.candidate_id]))

    metrics = RankingMetrics(
        candidates_received=len(typed),
        candidates_dropped=sim_result.dropped,
        candidates_scored=len(scored),
        seen_total=len(seen_retentions),
        seen_devalued=sum(1 for r in seen_retentions if r < 1.0),
        average_retention_multiplier=(
            sum(seen_retentions) / len(seen_retentions) if seen_retentions else 1.0
        ),
        cache_hits=sim_result.cache_hits,
        cache_misses=sim_result.cache_misses,
        processing_time_ms=(time.perf_counter() - started) * 1000.0,
    )
    logger.info(
        "[ranking] RANK_COMPLETE received=%s scored=%s dropped=%s seen=%s devalued=%s "
        "avg_retention=%.3f cache_hits=%s cache_misses=%s cold_start=%s ms=%.1f",
        metrics.candidates_received, metrics.candidates_scored, metrics.candidates_dropped,
        metrics.seen_total, metrics.seen_devalued, metrics.average_retention_multiplier,
        metrics.cache_hits, metrics.cache_misses, sim_result.cold_start, metrics.processing_time_ms,
    )
    return scored, metrics


def _cache_status(cache: Optional[ScoreCache], metrics: RankingMetrics) -> CacheStatus:
    if cache is None:
        return CacheStatus.BYPASS
    if metrics.cache_hits and not metrics.cache_misses:
        return CacheStatus.HIT
    if metrics.cache_hits:
        return CacheStatus.PARTIAL
    return CacheStatus.MISS


class RankingPipeline:
    """
    Per-request ranking with a shared engine, config and cache.

    Instances hold no per-request state; swap in a new engine with with_engine()
    rather than mutating the current one.
    """

    def __init__(
        self,
        engine: Optional[DevaluationEngine] = None,
        config: Optional[RankingConfig] = None,
        cache: Optional[ScoreCache] = None,
    ):
        self.engine = engine if engine is not None else DEFAULT_ENGINE
        self.config = resolve_ranking_config(config)
        self.cache = cache

    def with_engine(self, engine: DevaluationEngine) -> "RankingPipeline":
        return RankingPipeline(engine=engine, config=self.config, cache=self.cache)

    def _page_size(self, page_size: Optional[int], config: RankingConfig) -> int:
        if page_size is None:
            return config.default_page_size
        return max(1, min(page_size, config.max_page_size))

    def rank(
        self,
        user_vector: Optional[Sequence[float]],
        candidates: List[Union[Candidate, Dict[str, Any]]],
        session: Optional[SessionInfo],
        config: Optional[RankingConfig] = None,
        seen_history: SeenHistory = None,
        now: Optional[int] = None,
        cursor: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> RankedPage:
        """
        Rank and return one page.

        cursor comes from a previous page's next_cursor; ids it carries are excluded
        from this pass. config overrides the pipeline's ranking config for this call.
        """
        config = config if config is not None else self.config
        size = self._page_size(page_size, config)
        already_returned = decode_cursor(cursor)

        scored, metrics = rank_candidates(
            user_vector,
            candidates,
            session,
            config=config,
            engine=self.engine,
            seen_history=seen_history,
            now=now,
            cache=self.cache,
            exclude_ids=already_returned,
        )

        items = scored[:size]
        has_more = len(scored) > size
        next_cursor = (
            encode_cursor(already_returned + [s.candidate_id for s in items]) if has_more else None
        )
        return RankedPage(
            items=items,
            next_cursor=next_cursor,
            has_more=has_more,
            cache_status=_cache_status(self.cache, metrics),
            metrics=metrics,
        )
