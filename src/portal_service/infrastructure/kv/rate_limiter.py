"""Fixed-window rate limiting on top of Redis counters."""
from __future__ import annotations

import logging

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


class RedisRateLimiter:
    """Implements application.ports.kv.RateLimiter.

    The window starts at the first hit: ``SET NX EX`` creates the counter with
    its expiry and ``INCR`` bumps it, both inside one MULTI/EXEC so concurrent
    callers never read-modify-write. Store failures allow the action.

    The expiry is set once and is not pushed back by later allowed calls, so
    a steady caller is not locked out longer than one window. Rejected calls
    still increment the counter; that only affects the current window, which
    is already exhausted.
    """

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def check_rate_limit(self, key: str, limit: int, window_seconds: int) -> bool:
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.set(key, 0, ex=window_seconds, nx=True)
                pipe.incr(key)
                _, count = await pipe.execute()
        except Exception:
            logger.warning("Rate limiter unavailable for %s, allowing", key, exc_info=True)
            return True

        if int(count) > limit:
            logger.info("Rate limit hit: key=%s count=%s limit=%d", key, count, limit)
            return False
        return True
