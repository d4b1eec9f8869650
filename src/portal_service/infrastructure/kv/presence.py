from __future__ import annotations

import redis.asyncio as aioredis

from portal_service.application.side_effects import swallow_errors
from portal_service.infrastructure.kv import keys


class PresenceTracker:
    """Cross-process view of which users hold a live socket, and where."""

    def __init__(self, redis: aioredis.Redis, *, ttl: int = 3600) -> None:
        self._redis = redis
        self._ttl = ttl

    @swallow_errors("set user online")
    async def set_online(self, user_id: str, connection_id: str) -> None:
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.hset(keys.ONLINE_USERS, str(user_id), connection_id)
            pipe.expire(keys.ONLINE_USERS, self._ttl)
            await pipe.execute()

    @swallow_errors("read user presence")
    async def get_connection_id(self, user_id: str) -> str | None:
        return await self._redis.hget(keys.ONLINE_USERS, str(user_id))

    @swallow_errors("set user offline")
    async def set_offline(self, user_id: str) -> None:
        await self._redis.hdel(keys.ONLINE_USERS, str(user_id))
