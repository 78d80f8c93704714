"""
Score helpers: recency and popularity scores plus millisecond time utilities.

Every timestamp in the package is epoch milliseconds; day-based knobs are
converted through DAY_MS.
"""

import math
import time
from typing import Optional

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS

# Age used when a candidate has no creation time; recency is effectively 0.
UNKNOWN_AGE_DAYS = 999.0


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def days_between(earlier_ms: Optional[int], now: int) -> float:
    """Fractional days from earlier_ms to now, never negative; UNKNOWN_AGE_DAYS when earlier_ms is None."""
    if earlier_ms is None:
        return UNKNOWN_AGE_DAYS
    return max(0.0, (now - earlier_ms) / DAY_MS)


def recency_score(age_days: float, lambda_val: float = 0.1) -> float:
    """
    Recency score with exponential decay.
    lambda_val=0.1 gives ~7 day half-life.
    """
    return math.exp(-lambda_val * max(0.0, age_days))


def popularity_score(total_interactions: int, saturation: float = 100.0) -> float:
    """Interactions normalized to 0–1, saturating at `saturation`."""
    if total_interactions <= 0:
        return 0.0
    return min(total_interactions / saturation, 1.0)
