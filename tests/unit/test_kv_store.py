from __future__ import annotations

from datetime import datetime, timezone

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from portal_service.infrastructure.kv import keys
from portal_service.infrastructure.kv.message_cache import RedisMessageCache
from portal_service.infrastructure.kv.presence import PresenceTracker
from portal_service.infrastructure.kv.rate_limiter import RedisRateLimiter
from portal_service.infrastructure.kv.session_store import RedisSessionStore
from portal_service.infrastructure.kv.unread import RedisUnreadCounter


@pytest.mark.asyncio
async def test_rate_limiter_allows_limit_then_denies(redis):
    limiter = RedisRateLimiter(redis)

    results = [await limiter.check_rate_limit("ratelimit:k", 5, 60) for _ in range(6)]

    assert results == [True] * 5 + [False]
    assert redis.ttl_of("ratelimit:k") == 60


@pytest.mark.asyncio
async def test_rate_limiter_window_is_anchored_at_first_hit(redis, clock):
    limiter = RedisRateLimiter(redis)
    await limiter.check_rate_limit("ratelimit:k", 2, 60)
    clock.advance(30)
    await limiter.check_rate_limit("ratelimit:k", 2, 60)
    assert await limiter.check_rate_limit("ratelimit:k", 2, 60) is False

    # Later hits do not push the window out.
    clock.advance(31)

    assert await limiter.check_rate_limit("ratelimit:k", 2, 60) is True


@pytest.mark.asyncio
async def test_rate_limiter_fails_open(redis, caplog):
    redis.fail = True
    limiter = RedisRateLimiter(redis)

    assert await limiter.check_rate_limit("ratelimit:k", 1, 60) is True
    assert any("allowing" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_unread_counts_up_and_clears(redis):
    unread = RedisUnreadCounter(redis)

    for _ in range(3):
        await unread.increment_unread_count("employer", 100)

    assert await unread.get_unread_count("employer", 100) == 3
    assert await unread.get_unread_count("admin", 100) == 0
    assert redis.ttl_of(keys.unread("employer", 100)) == 86400

    await unread.mark_as_read("employer", 100)
    await unread.mark_as_read("employer", 100)

    assert await unread.get_unread_count("employer", 100) == 0


@pytest.mark.asyncio
async def test_unread_store_errors_read_as_zero(redis):
    unread = RedisUnreadCounter(redis)
    await unread.increment_unread_count("admin", 1)
    redis.fail = True

    assert await unread.get_unread_count("admin", 1) == 0
    await unread.increment_unread_count("admin", 1)


@pytest.mark.asyncio
async def test_message_cache_round_trip_and_expiry(redis, clock):
    cache = RedisMessageCache(redis, message_ttl=3600, conversation_ttl=1800)
    created = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    await cache.cache_message(7, {"id": 7, "content": "hi", "created_at": created})
    await cache.cache_conversation(100, [{"id": 7}])

    assert await cache.get_cached_message(7) == {
        "id": 7, "content": "hi", "created_at": "2024-05-01T12:00:00+00:00",
    }
    assert await cache.get_cached_conversation(100) == [{"id": 7}]

    clock.advance(1801)
    assert await cache.get_cached_conversation(100) is None
    assert await cache.get_cached_message(7) is not None

    clock.advance(1800)
    assert await cache.get_cached_message(7) is None


@pytest.mark.asyncio
async def test_message_cache_invalidate(redis):
    cache = RedisMessageCache(redis)
    await cache.cache_conversation(100, [])

    await cache.invalidate_conversation(100)

    assert await cache.get_cached_conversation(100) is None


@pytest.mark.asyncio
async def test_message_cache_errors_are_misses(redis):
    cache = RedisMessageCache(redis)
    redis.fail = True

    await cache.cache_message(1, {"id": 1})
    assert await cache.get_cached_message(1) is None
    assert await cache.get_cached_conversation(1) is None


@pytest.mark.asyncio
async def test_session_store_ttl_and_delete(redis, clock):
    sessions = RedisSessionStore(redis, default_ttl=3600)

    await sessions.set_session("refresh_token:42", "abc.def.ghi", 60)
    await sessions.set_session("settings:site", {"maintenance": False})

    assert await sessions.get_session("refresh_token:42") == "abc.def.ghi"
    assert redis.ttl_of("settings:site") == 3600

    clock.advance(61)
    assert await sessions.get_session("refresh_token:42") is None

    await sessions.delete_session("settings:site")
    assert await sessions.get_session("settings:site") is None


@pytest.mark.asyncio
async def test_session_store_write_errors_propagate(redis):
    sessions = RedisSessionStore(redis)
    redis.fail = True

    with pytest.raises(RedisConnectionError):
        await sessions.set_session("refresh_token:1", "x")
    assert await sessions.get_session("refresh_token:1") is None


@pytest.mark.asyncio
async def test_presence_tracks_connection_ids(redis):
    presence = PresenceTracker(redis, ttl=3600)

    await presence.set_online("42", "conn-a")
    assert await presence.get_connection_id("42") == "conn-a"
    assert redis.ttl_of(keys.ONLINE_USERS) == 3600

    await presence.set_offline("42")
    assert await presence.get_connection_id("42") is None
