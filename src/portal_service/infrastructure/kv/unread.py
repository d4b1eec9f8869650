"""Per-(role, request) unread badge counters."""
from __future__ import annotations

import redis.asyncio as aioredis

from portal_service.application.side_effects import swallow_errors
from portal_service.infrastructure.kv import keys


class RedisUnreadCounter:
    """Implements application.ports.kv.UnreadCounter.

    Counters are a cheap badge signal, not read receipts: ``mark_as_read``
    drops the whole counter. Per-message read state lives in the database.
    """

    def __init__(self, redis: aioredis.Redis, *, ttl: int = 86400) -> None:
        self._redis = redis
        self._ttl = ttl

    @swallow_errors("increment unread count")
    async def increment_unread_count(self, role: str, request_id: int) -> None:
        key = keys.unread(role, request_id)
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, self._ttl)
            await pipe.execute()

    @swallow_errors("read unread count", default=0)
    async def get_unread_count(self, role: str, request_id: int) -> int:
        raw = await self._redis.get(keys.unread(role, request_id))
        return max(int(raw), 0) if raw else 0

    @swallow_errors("mark as read")
    async def mark_as_read(self, role: str, request_id: int) -> None:
        await self._redis.delete(keys.unread(role, request_id))
