"""Cache-aside storage for single messages and whole conversations."""
from __future__ import annotations

from typing import Any

import redis.asyncio as aioredis

from portal_service.application.side_effects import swallow_errors
from portal_service.infrastructure.bus.serializer import dumps, loads
from portal_service.infrastructure.kv import keys


class RedisMessageCache:
    """Implements application.ports.kv.MessageCache."""

    def __init__(
        self,
        redis: aioredis.Redis,
        *,
        message_ttl: int = 3600,
        conversation_ttl: int = 1800,
    ) -> None:
        self._redis = redis
        self._message_ttl = message_ttl
        self._conversation_ttl = conversation_ttl

    @swallow_errors("cache message")
    async def cache_message(self, message_id: int, data: dict[str, Any]) -> None:
        await self._redis.set(keys.message(message_id), dumps(data), ex=self._message_ttl)

    @swallow_errors("read cached message")
    async def get_cached_message(self, message_id: int) -> dict[str, Any] | None:
        raw = await self._redis.get(keys.message(message_id))
        return loads(raw) if raw else None

    @swallow_errors("cache conversation")
    async def cache_conversation(self, request_id: int, messages: list[dict[str, Any]]) -> None:
        await self._redis.set(
            keys.conversation(request_id), dumps(messages), ex=self._conversation_ttl,
        )

    @swallow_errors("read cached conversation")
    async def get_cached_conversation(self, request_id: int) -> list[dict[str, Any]] | None:
        raw = await self._redis.get(keys.conversation(request_id))
        return loads(raw) if raw else None

    @swallow_errors("invalidate conversation")
    async def invalidate_conversation(self, request_id: int) -> None:
        await self._redis.delete(keys.conversation(request_id))
