"""
Ranking: blend similarity, recency, and popularity, devalue seen candidates, sort, page.

Public API: rank_candidates, RankingPipeline.
- core: main orchestration (rank_candidates, RankingPipeline).
- Submodules: similarity, blended_scoring, pagination.
"""

from .core import DEFAULT_ENGINE, RankingPipeline, rank_candidates
from .pagination import decode_cursor, encode_cursor

__all__ = [
    "DEFAULT_ENGINE",
    "RankingPipeline",
    "decode_cursor",
    "encode_cursor",
    "rank_candidates",
]
