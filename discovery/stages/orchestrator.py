"""
Feed orchestrator: gathers external inputs once, then runs the ranking pipeline.

The main entry point is create_ranked_feed: it awaits the vector index, stats,
seen-history and session lookups together at the boundary, turns them into
in-memory candidates, and hands them to RankingPipeline.rank. Nothing inside the
pipeline awaits.
"""

import asyncio
import logging
from typing import List, Optional

from discovery.models.engagement import ensure_stats, index_seen_history
from discovery.models.scoring import Candidate, RankedPage
from discovery.stages.ranking import RankingPipeline
from discovery.stages.session_tracker import SessionTracker
from discovery.storage.protocols import EngagementStatsSource, SeenHistorySource, VectorIndex
from discovery.utils.scores import now_ms

logger = logging.getLogger(__name__)


def _build_candidates(
    candidate_ids: List[str],
    vectors: dict,
    stats_by_id: dict,
    created_at_by_id: Optional[dict],
) -> List[Candidate]:
    """
    Candidates in request order. Ids without a vector are excluded; missing stats
    fall back to zero engagement.
    """
    candidates: List[Candidate] = []
    missing_vectors = 0
    for cid in candidate_ids:
        vector = vectors.get(cid)
        if not vector:
            missing_vectors += 1
            continue
        candidates.append(Candidate(
            id=cid,
            vector=vector,
            created_at=(created_at_by_id or {}).get(cid),
            stats=ensure_stats(stats_by_id.get(cid)),
        ))
    if missing_vectors:
        logger.info("[feed] VECTORS_MISSING count=%s excluded", missing_vectors)
    return candidates


async def create_ranked_feed(
    user_id: str,
    candidate_ids: List[str],
    pipeline: RankingPipeline,
    vector_index: VectorIndex,
    stats_source: EngagementStatsSource,
    seen_source: SeenHistorySource,
    session_tracker: SessionTracker,
    created_at_by_id: Optional[dict] = None,
    cursor: Optional[str] = None,
    page_size: Optional[int] = None,
    now: Optional[int] = None,
) -> RankedPage:
    """
    Rank candidate_ids for user_id and return one page.

    Returns:
        RankedPage; a missing user vector ranks by recency and popularity only.
    """
    now = now_ms() if now is None else now

    user_vector, vectors, stats_by_id, seen_history, session = await asyncio.gather(
        vector_index.get_user_embedding(user_id),
        vector_index.get_embeddings(candidate_ids),
        stats_source.get_stats(candidate_ids),
        seen_source.get_seen_history(user_id),
        session_tracker.touch(user_id, now),
    )
    logger.debug(
        "[feed] INPUTS_GATHERED user_id=%s candidates=%s vectors=%s stats=%s seen=%s new_session=%s",
        user_id, len(candidate_ids), len(vectors or {}), len(stats_by_id or {}),
        len(seen_history or []), session.is_new_session,
    )

    candidates = _build_candidates(candidate_ids, vectors or {}, stats_by_id or {}, created_at_by_id)
    return pipeline.rank(
        user_vector,
        candidates,
        session,
        seen_history=index_seen_history(seen_history or []),
        now=now,
        cursor=cursor,
        page_size=page_size,
    )
