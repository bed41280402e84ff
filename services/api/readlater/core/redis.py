from __future__ import annotations

from functools import lru_cache

import redis


@lru_cache
def get_redis(url: str) -> redis.Redis:
    return redis.Redis.from_url(url, decode_responses=True)
