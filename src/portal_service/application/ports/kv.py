"""Task-oriented facades over the key-value store."""
from __future__ import annotations

from typing import Any, Protocol


class MessageCache(Protocol):
    async def cache_message(self, message_id: int, data: dict[str, Any]) -> None: ...
    async def get_cached_message(self, message_id: int) -> dict[str, Any] | None: ...
    async def cache_conversation(self, request_id: int, messages: list[dict[str, Any]]) -> None: ...
    async def get_cached_conversation(self, request_id: int) -> list[dict[str, Any]] | None: ...
    async def invalidate_conversation(self, request_id: int) -> None: ...


class UnreadCounter(Protocol):
    async def increment_unread_count(self, role: str, request_id: int) -> None: ...
    async def get_unread_count(self, role: str, request_id: int) -> int: ...
    async def mark_as_read(self, role: str, request_id: int) -> None: ...


class RateLimiter(Protocol):
    async def check_rate_limit(self, key: str, limit: int, window_seconds: int) -> bool: ...


class SessionStore(Protocol):
    async def set_session(self, key: str, value: Any, ttl: int | None = None) -> None: ...
    async def get_session(self, key: str) -> Any | None: ...
    async def delete_session(self, key: str) -> None: ...
