# backoff.py
import math
import random
from typing import Optional

import config


def capped_wait(attempt: int, base: float, cap: float = config.MAX_WAIT_TIME) -> float:
    """Exponential wait without jitter, never above cap."""
    try:
        return min(cap, base * (2 ** attempt))
    except OverflowError:
        return cap


def compute_wait(attempt: int, base: float, cap: float = config.MAX_WAIT_TIME,
                 rng: Optional[random.Random] = None) -> int:
    """Capped exponential backoff with a multiplicative jitter in [0.5, 1.5).

    The unjittered value is capped first, so the result never exceeds 1.5 * cap
    however large attempt grows.
    """
    if attempt < 0:
        raise ValueError("attempt must be >= 0")
    raw = capped_wait(attempt, base, cap)
    jitter = 0.5 + (rng or random).random()
    return max(0, math.floor(raw * jitter))
