"""
Exponential backoff with jitter for retried log reads.
"""

from __future__ import annotations

import random
from typing import Callable

from models.config import RetryConfig


def backoff_delay(attempt: int, cfg: RetryConfig, rand: Callable[[], float] = random.random) -> float:
    """
    Delay in seconds before retry number `attempt` (0-based).

    The delay doubles per attempt up to cfg.max_delay, then a random share of
    up to cfg.jitter of it is removed so consumers that failed together do
    not retry together.
    """
    delay = min(cfg.max_delay, cfg.base_delay * (2 ** attempt))
    jitter = min(max(cfg.jitter, 0.0), 1.0)
    return delay * (1.0 - jitter * rand())
