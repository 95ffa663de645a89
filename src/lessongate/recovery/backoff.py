"""
Exponential backoff with jitter.
"""

from __future__ import annotations

import random
from typing import Optional


def calculate_backoff_delay(
    attempt: int,
    base_delay_ms: float,
    max_delay_ms: float,
    rng: Optional[random.Random] = None,
) -> float:
    """Delay in milliseconds before retry number ``attempt`` (0-based).

    ``min(max_delay, base * 2**attempt + uniform(0, 0.1 * base * 2**attempt))``
    """
    if attempt < 0:
        raise ValueError("attempt must be non-negative")
    exponential = base_delay_ms * (2**attempt)
    jitter = (rng or random).uniform(0, 0.1 * exponential)
    return min(max_delay_ms, exponential + jitter)
