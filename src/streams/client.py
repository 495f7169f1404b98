"""
Redis client construction.

Every publisher and consumer worker creates its own client; handles are
never shared across threads.
"""

from __future__ import annotations

import redis

from models.config import RedisConfig


def create_redis_client(cfg: RedisConfig) -> redis.Redis:
    return redis.Redis(
        host=cfg.host,
        port=cfg.port,
        db=cfg.db,
        password=cfg.password,
        decode_responses=True,
    )
