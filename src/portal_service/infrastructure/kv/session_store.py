"""Short-lived secrets and blobs with a TTL."""
from __future__ import annotations

from typing import Any

import redis.asyncio as aioredis

from portal_service.application.side_effects import swallow_errors
from portal_service.infrastructure.bus.serializer import dumps, loads


class RedisSessionStore:
    """Implements application.ports.kv.SessionStore.

    A miss (absent, expired, or unreadable) means the session is invalid.
    """

    def __init__(self, redis: aioredis.Redis, *, default_ttl: int = 3600) -> None:
        self._redis = redis
        self._default_ttl = default_ttl

    async def set_session(self, key: str, value: Any, ttl: int | None = None) -> None:
        await self._redis.set(key, dumps(value), ex=ttl or self._default_ttl)

    @swallow_errors("read session")
    async def get_session(self, key: str) -> Any | None:
        raw = await self._redis.get(key)
        return loads(raw) if raw else None

    @swallow_errors("delete session")
    async def delete_session(self, key: str) -> None:
        await self._redis.delete(key)
