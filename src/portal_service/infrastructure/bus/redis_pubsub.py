"""Redis Pub/Sub: publish side + pattern subscriber background task."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine, Iterable

import redis.asyncio as aioredis

from portal_service.application.side_effects import swallow_errors
from portal_service.infrastructure.bus.serializer import deserialize_event, serialize_event

logger = logging.getLogger(__name__)


class RedisPubSubPublisher:
    """Implements application.ports.bus.EventPublisher.

    Notification is best-effort: a failed publish is logged, never raised.
    """

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    @swallow_errors("publish event")
    async def publish(self, channel: str, event: dict[str, Any]) -> None:
        receivers = await self._redis.publish(channel, serialize_event(event))
        logger.debug("Published %s on %s (receivers=%s)", event.get("type"), channel, receivers)


OnEventCallback = Callable[[str, dict[str, Any]], Coroutine[Any, Any, None]]


class RedisPubSubSubscriber:
    """Background task that listens on channel patterns and dispatches events."""

    def __init__(
        self,
        redis: aioredis.Redis,
        patterns: Iterable[str],
        callback: OnEventCallback,
    ) -> None:
        self._redis = redis
        self._patterns = list(patterns)
        self._callback = callback
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._listen(), name="redis-pubsub-subscriber")
        logger.info("Redis Pub/Sub subscriber started on patterns=%s", self._patterns)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Redis Pub/Sub subscriber stopped")

    async def handle(self, message: dict[str, Any]) -> None:
        if message.get("type") not in ("message", "pmessage"):
            return
        channel = message["channel"]
        if isinstance(channel, bytes):
            channel = channel.decode()
        try:
            event = deserialize_event(message["data"])
        except ValueError:
            logger.warning("Dropping malformed pubsub payload on %s", channel)
            return
        try:
            await self._callback(channel, event)
        except Exception:
            logger.exception("Error processing pubsub message on %s", channel)

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.psubscribe(*self._patterns)
        try:
            async for message in pubsub.listen():
                await self.handle(message)
        finally:
            await pubsub.punsubscribe(*self._patterns)
            await pubsub.aclose()
