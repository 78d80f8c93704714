"""
Vector math: cosine similarity and batched top-k nearest-neighbour search.

Pure functions over in-memory vectors. Batching many candidates into one numpy
call is the throughput lever; nothing here does I/O or holds state.
"""

import logging
from typing import List, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)


class DimensionMismatch(ValueError):
    """Raised when two vectors that must be compared have different lengths."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Vector dimension mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


def _unit(v: np.ndarray) -> np.ndarray:
    """
    Scale v to unit length, or return zeros for zero / non-finite vectors.

    Dividing by the max magnitude first keeps the norm from overflowing.
    """
    if v.size == 0:
        return v
    scale = np.max(np.abs(v))
    if not np.isfinite(scale) or scale == 0.0:
        return np.zeros_like(v)
    scaled = v / scale
    norm = np.linalg.norm(scaled)
    return scaled / norm


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity in [-1, 1].

    Raises DimensionMismatch when len(a) != len(b). Zero vectors (and vectors with
    NaN/inf components) give 0.0 so downstream scoring stays well-defined.
    """
    if len(a) != len(b):
        raise DimensionMismatch(len(a), len(b))
    if len(a) == 0:
        return 0.0
    ua = _unit(np.asarray(a, dtype=np.float64))
    ub = _unit(np.asarray(b, dtype=np.float64))
    sim = float(np.dot(ua, ub))
    if not np.isfinite(sim):
        return 0.0
    return max(-1.0, min(1.0, sim))


def batch_similarity(query: Sequence[float], vectors: Sequence[Sequence[float]]) -> np.ndarray:
    """
    Cosine similarity of query against every row of vectors in one matrix product.

    All rows must have len(query) components (DimensionMismatch otherwise); callers
    that cannot guarantee this should use top_k, which drops bad rows.
    """
    if len(vectors) == 0:
        return np.zeros(0, dtype=np.float64)
    q = _unit(np.asarray(query, dtype=np.float64))
    for v in vectors:
        if len(v) != q.shape[0]:
            raise DimensionMismatch(q.shape[0], len(v))
    m = np.asarray(vectors, dtype=np.float64).reshape(len(vectors), q.shape[0])
    if q.shape[0] == 0:
        return np.zeros(len(vectors), dtype=np.float64)

    scale = np.max(np.abs(m), axis=1, keepdims=True)
    usable = np.isfinite(scale) & (scale > 0.0)
    safe_scale = np.where(usable, scale, 1.0)
    scaled = np.where(usable, m / safe_scale, 0.0)
    norms = np.linalg.norm(scaled, axis=1, keepdims=True)
    rows = np.divide(scaled, norms, out=np.zeros_like(scaled), where=norms > 0.0)

    sims = rows @ q
    sims = np.nan_to_num(sims, nan=0.0, posinf=0.0, neginf=0.0)
    return np.clip(sims, -1.0, 1.0)


def select_top_k(scored: Sequence[Tuple[str, float]], k: int) -> List[Tuple[str, float]]:
    """
    The k highest (id, score) pairs, score descending.

    Ties keep insertion order. k <= 0 gives []; k >= len(scored) gives everything sorted.
    """
    if k <= 0 or not scored:
        return []
    scores = np.asarray([s for _, s in scored], dtype=np.float64)
    order = np.argsort(-scores, kind="stable")[:k]
    return [(scored[i][0], float(scored[i][1])) for i in order]


def top_k(
    query: Sequence[float],
    candidates: Sequence[Tuple[str, Sequence[float]]],
    k: int,
) -> List[Tuple[str, float]]:
    """
    Top-k candidates by cosine similarity to query.

    Candidates whose dimension differs from the query are dropped with a warning
    rather than failing the whole search.
    """
    if k <= 0 or not candidates:
        return []
    ids: List[str] = []
    vectors: List[Sequence[float]] = []
    for candidate_id, vector in candidates:
        if len(vector) != len(query):
            logger.warning(
                "[vector_math] DIMENSION_MISMATCH candidate_id=%s expected=%s got=%s",
                candidate_id, len(query), len(vector),
            )
            continue
        ids.append(candidate_id)
        vectors.append(vector)
    sims = batch_similarity(query, vectors)
    return select_top_k(list(zip(ids, sims.tolist())), k)
