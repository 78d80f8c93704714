"""Shared utilities for vector math, scoring, and time."""

from .scores import DAY_MS, HOUR_MS, days_between, now_ms, popularity_score, recency_score
from .vector_math import (
    DimensionMismatch,
    batch_similarity,
    cosine_similarity,
    select_top_k,
    top_k,
)

__all__ = [
    "DAY_MS",
    "HOUR_MS",
    "DimensionMismatch",
    "batch_similarity",
    "cosine_similarity",
    "days_between",
    "now_ms",
    "popularity_score",
    "recency_score",
    "select_top_k",
    "top_k",
]
