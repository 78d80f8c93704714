"""
Similarity step: user vector vs candidate vectors, reduced to the top-k pool.

Candidates without a vector or with the wrong dimension are dropped here (with a
diagnostic) so later steps only see well-formed candidates. When a ScoreCache is
given, per-candidate similarities are read through it and only the misses are
computed, still in a single batch.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from discovery.models.config import RankingConfig
from discovery.models.scoring import Candidate
from discovery.stages.cache import ScoreCache, make_cache_key, vector_fingerprint
from discovery.utils.vector_math import batch_similarity, select_top_k, top_k

logger = logging.getLogger(__name__)


@dataclass
class SimilarityResult:
    """Pool of (candidate, similarity, served_from_cache) in similarity order, plus counters."""

    pool: List[Tuple[Candidate, float, bool]] = field(default_factory=list)
    dropped: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    cold_start: bool = False


def _usable_candidates(
    user_vector: Optional[Sequence[float]],
    candidates: List[Candidate],
) -> Tuple[List[Candidate], int]:
    """Drop duplicates, candidates without vectors, and dimension mismatches."""
    usable: List[Candidate] = []
    seen_ids = set()
    dropped = 0
    for c in candidates:
        if c.id in seen_ids:
            logger.warning("[ranking] DUPLICATE_CANDIDATE candidate_id=%s keeping=first", c.id)
            dropped += 1
            continue
        seen_ids.add(c.id)
        if not c.vector:
            logger.debug("[ranking] VECTOR_MISSING candidate_id=%s excluded", c.id)
            dropped += 1
            continue
        if user_vector is not None and len(user_vector) and len(c.vector) != len(user_vector):
            logger.warning(
                "[ranking] DIMENSION_MISMATCH candidate_id=%s expected=%s got=%s dropped",
                c.id, len(user_vector), len(c.vector),
            )
            dropped += 1
            continue
        usable.append(c)
    return usable, dropped


def compute_similarities(
    user_vector: Optional[Sequence[float]],
    candidates: List[Candidate],
    config: RankingConfig,
    cache: Optional[ScoreCache] = None,
) -> SimilarityResult:
    """
    Similarity of every usable candidate to the user, keeping the top candidate_pool_size.

    No user vector (cold start): every usable candidate gets config.cold_start_similarity
    so ranking falls back to recency and popularity.
    """
    usable, dropped = _usable_candidates(user_vector, candidates)
    result = SimilarityResult(dropped=dropped)
    if not usable:
        return result

    if user_vector is None or len(user_vector) == 0:
        logger.info("[ranking] COLD_START_NO_USER_VECTOR candidates=%s", len(usable))
        result.cold_start = True
        result.pool = [(c, config.cold_start_similarity, False) for c in usable[: config.candidate_pool_size]]
        return result

    by_id: Dict[str, Candidate] = {c.id: c for c in usable}

    if cache is None:
        pairs = top_k(user_vector, [(c.id, c.vector) for c in usable], config.candidate_pool_size)
        result.pool = [(by_id[cid], sim, False) for cid, sim in pairs]
        return result

    user_fp = vector_fingerprint(user_vector)
    sims: Dict[str, Tuple[float, bool]] = {}
    pending: List[Tuple[Candidate, str]] = []
    for c in usable:
        key = make_cache_key(c.id, "similarity", user_fp, vector_fingerprint(c.vector))
        cached = cache.get(key)
        if cached is not None:
            sims[c.id] = (float(cached), True)
            result.cache_hits += 1
        else:
            pending.append((c, key))
    result.cache_misses = len(pending)

    if pending:
        fresh = batch_similarity(user_vector, [c.vector for c, _ in pending])
        for (c, key), value in zip(pending, fresh.tolist()):
            cache.set(key, value, config.similarity_cache_ttl_seconds)
            sims[c.id] = (value, False)

    pairs = select_top_k([(c.id, sims[c.id][0]) for c in usable], config.candidate_pool_size)
    result.pool = [(by_id[cid], sim, sims[cid][1]) for cid, sim in pairs]
    return result
