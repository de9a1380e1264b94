# stats.py
# Fail-open Redis counters for the landmark pipeline.

import os
import logging
from typing import Dict, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
REDIS_POOL_MAX = int(os.getenv("REDIS_POOL_MAX", "50"))

STAT_BOUNDS_QUERIES = "stats:landmarks:bounds_queries"
STAT_CACHE_HITS     = "stats:landmarks:cache_hits"
STAT_BACKFILLS      = "stats:landmarks:backfills"
STAT_UPSTREAM_CALLS = "stats:landmarks:upstream_calls"
STAT_ADDED          = "stats:landmarks:landmarks_added"
STAT_SEARCHES       = "stats:landmarks:searches"

ALL_STATS = {
    "bounds_queries": STAT_BOUNDS_QUERIES,
    "cache_hits": STAT_CACHE_HITS,
    "backfills": STAT_BACKFILLS,
    "upstream_calls": STAT_UPSTREAM_CALLS,
    "landmarks_added": STAT_ADDED,
    "searches": STAT_SEARCHES,
}

logger = logging.getLogger(__name__)


def make_redis(url: str = REDIS_URL) -> redis.Redis:
    pool = redis.ConnectionPool.from_url(
        url,
        max_connections=REDIS_POOL_MAX,
        socket_connect_timeout=1.0,
        socket_timeout=1.5,
        health_check_interval=30,
        retry_on_timeout=True,
        decode_responses=True,
    )
    return redis.Redis(connection_pool=pool)


class Stats:
    """Counter facade over a Redis client. Every call is fail-open."""

    def __init__(self, client: Optional[redis.Redis] = None):
        self.r = client if client is not None else make_redis()

    async def incr(self, key: str, by: int = 1) -> None:
        if by <= 0:
            return
        try:
            await self.r.incrby(key, by)
        except Exception as e:
            logger.debug("stats incr %s failed: %s", key, e)

    async def snapshot(self) -> Dict:
        names = list(ALL_STATS)
        try:
            pipe = self.r.pipeline()
            for name in names:
                pipe.get(ALL_STATS[name])
            raw = await pipe.execute()
        except RedisError as e:
            logger.warning("stats snapshot unavailable: %s", e)
            raw = [None] * len(names)

        to_i = lambda x: int(x or 0)
        out = {name: to_i(v) for name, v in zip(names, raw)}
        total = out["bounds_queries"]
        out["hit_ratio"] = (out["cache_hits"] / total) if total else None
        return out

    async def redis_ok(self) -> bool:
        try:
            await self.r.ping()
            return True
        except Exception:
            return False

    async def close(self) -> None:
        try:
            await self.r.aclose()
        except Exception as e:
            logger.debug("redis close failed: %s", e)
