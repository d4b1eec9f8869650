"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
import pytest
from fastapi import WebSocketDisconnect
from redis.exceptions import ConnectionError as RedisConnectionError

from portal_service.application.dto.principal import Principal
from portal_service.config import settings
from portal_service.domain.entities.employer_request import EmployerRequest
from portal_service.domain.entities.message import Message
from portal_service.domain.entities.user import User
from portal_service.domain.value_objects.enums import RequestStatus, Role
from portal_service.infrastructure.kv.message_cache import RedisMessageCache
from portal_service.infrastructure.kv.rate_limiter import RedisRateLimiter
from portal_service.infrastructure.kv.unread import RedisUnreadCounter
from portal_service.services.messaging_service import MessagingDeps

ADMIN_EMAIL = "admin@portal.test"


@pytest.fixture
def admin_principal() -> Principal:
    return Principal(user_id="1", role=Role.ADMIN, email=ADMIN_EMAIL)


@pytest.fixture
def employer_principal() -> Principal:
    return Principal(user_id="7", role=Role.EMPLOYER, email="hr@acme.test")


def make_request(
    *,
    request_id: int = 100,
    email: str = "hr@acme.test",
    status: str = RequestStatus.PENDING,
    name: str = "Acme Ltd",
) -> EmployerRequest:
    now = datetime.now(timezone.utc)
    return EmployerRequest(
        id=request_id, name=name, email=email, status=status, created_at=now, updated_at=now,
    )


def make_token(
    user_id: str | int = 42,
    role: str = Role.EMPLOYER,
    *,
    email: str | None = None,
    secret: str | None = None,
    ttl: int = 3600,
    **extra: Any,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "userId": str(user_id),
        "role": str(role),
        "email": email,
        "iat": now,
        "exp": now + timedelta(seconds=ttl),
        **extra,
    }
    return jwt.encode(payload, secret or settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


# ── unit of work ────────────────────────────────────────────


@dataclass
class FakeRequestReader:
    _store: dict[int, EmployerRequest] = field(default_factory=dict)

    async def get_by_id(self, request_id: int) -> EmployerRequest | None:
        return self._store.get(request_id)

    async def list_page(self, *, offset: int = 0, limit: int = 10) -> list[EmployerRequest]:
        ordered = sorted(self._store.values(), key=lambda r: r.updated_at, reverse=True)
        return ordered[offset:offset + limit]

    async def count(self) -> int:
        return len(self._store)


@dataclass
class FakeRequestWriter:
    _reader: FakeRequestReader

    async def update_status(self, request_id: int, status: str) -> EmployerRequest | None:
        current = self._reader._store.get(request_id)
        if current is None:
            return None
        updated = EmployerRequest(
            id=current.id,
            name=current.name,
            email=current.email,
            status=status,
            created_at=current.created_at,
            updated_at=datetime.now(timezone.utc),
        )
        self._reader._store[request_id] = updated
        return updated


@dataclass
class FakeMessageReader:
    _messages: list[Message] = field(default_factory=list)
    list_calls: int = 0

    async def list_for_request(self, request_id: int) -> list[Message]:
        self.list_calls += 1
        return [m for m in self._messages if m.request_id == request_id]

    async def latest_for_request(self, request_id: int) -> Message | None:
        found = [m for m in self._messages if m.request_id == request_id]
        return found[-1] if found else None

    async def count_for_request(self, request_id: int) -> int:
        return sum(1 for m in self._messages if m.request_id == request_id)


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader
    _next_id: int = 1

    async def create(self, **fields: Any) -> Message:
        message = Message(id=self._next_id, created_at=datetime.now(timezone.utc), **fields)
        self._next_id += 1
        self._reader._messages.append(message)
        return message

    async def mark_read(self, request_id: int, message_ids: list[int], read_at: datetime) -> int:
        updated = 0
        for i, m in enumerate(self._reader._messages):
            if m.request_id == request_id and m.id in message_ids and not m.is_read:
                self._reader._messages[i] = Message(
                    **{**m.to_dict(), "is_read": True, "read_at": read_at},
                )
                updated += 1
        return updated


@dataclass
class FakeUserReader:
    _users: dict[str, User] = field(default_factory=dict)

    async def get_by_email(self, email: str) -> User | None:
        return self._users.get(email.lower())


@dataclass
class FakeUserWriter:
    _reader: FakeUserReader

    async def update_password(self, user_id: int, password_hash: str) -> None:
        for email, user in self._reader._users.items():
            if user.id == user_id:
                self._reader._users[email] = User(
                    id=user.id, email=user.email, role=user.role, password_hash=password_hash,
                )


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    requests: FakeRequestReader = field(default_factory=FakeRequestReader)
    requests_w: FakeRequestWriter | None = None
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    users: FakeUserReader = field(default_factory=FakeUserReader)
    users_w: FakeUserWriter | None = None
    _committed: bool = False

    def __post_init__(self) -> None:
        if self.requests_w is None:
            self.requests_w = FakeRequestWriter(self.requests)
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)
        if self.users_w is None:
            self.users_w = FakeUserWriter(self.users)

    def add_request(self, request: EmployerRequest) -> EmployerRequest:
        self.requests._store[request.id] = request
        return request

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self._committed = True

    async def rollback(self) -> None:
        pass


# ── key-value store ─────────────────────────────────────────


@dataclass
class FakeClock:
    now: float = 1_000.0

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePipeline:
    def __init__(self, redis: FakeRedis) -> None:
        self._redis = redis
        self._queued: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []

    async def __aenter__(self) -> FakePipeline:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self._queued.clear()

    def __getattr__(self, name: str) -> Any:
        def queue(*args: Any, **kwargs: Any) -> FakePipeline:
            self._queued.append((name, args, kwargs))
            return self

        return queue

    async def execute(self) -> list[Any]:
        self._redis._check()
        results = []
        for name, args, kwargs in self._queued:
            results.append(await getattr(self._redis, name)(*args, **kwargs))
        self._queued.clear()
        return results


class FakeRedis:
    """Just enough of redis.asyncio.Redis (decode_responses=True) with a manual clock."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.clock = clock or FakeClock()
        self.data: dict[str, str] = {}
        self.expiry: dict[str, float] = {}
        self.hashes: dict[str, dict[str, str]] = {}
        self.published: list[tuple[str, str]] = []
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("store unavailable")

    def _purge(self, key: str) -> None:
        deadline = self.expiry.get(key)
        if deadline is not None and deadline <= self.clock.now:
            self.data.pop(key, None)
            self.hashes.pop(key, None)
            self.expiry.pop(key, None)

    def ttl_of(self, key: str) -> float | None:
        deadline = self.expiry.get(key)
        return None if deadline is None else deadline - self.clock.now

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    async def ping(self) -> bool:
        self._check()
        return True

    async def get(self, key: str) -> str | None:
        self._check()
        self._purge(key)
        return self.data.get(key)

    async def set(self, key: str, value: Any, ex: int | None = None, nx: bool = False) -> bool | None:
        self._check()
        self._purge(key)
        if nx and key in self.data:
            return None
        self.data[key] = str(value)
        if ex is not None:
            self.expiry[key] = self.clock.now + ex
        else:
            self.expiry.pop(key, None)
        return True

    async def incr(self, key: str) -> int:
        self._check()
        self._purge(key)
        value = int(self.data.get(key, "0")) + 1
        self.data[key] = str(value)
        return value

    async def expire(self, key: str, seconds: int) -> bool:
        self._check()
        self._purge(key)
        if key not in self.data and key not in self.hashes:
            return False
        self.expiry[key] = self.clock.now + seconds
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            self._purge(key)
            if self.data.pop(key, None) is not None or self.hashes.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed

    async def hset(self, name: str, key: str, value: Any) -> int:
        self._check()
        self._purge(name)
        bucket = self.hashes.setdefault(name, {})
        created = key not in bucket
        bucket[key] = str(value)
        return int(created)

    async def hget(self, name: str, key: str) -> str | None:
        self._check()
        self._purge(name)
        return self.hashes.get(name, {}).get(key)

    async def hdel(self, name: str, *keys: str) -> int:
        self._check()
        bucket = self.hashes.get(name, {})
        return sum(1 for key in keys if bucket.pop(key, None) is not None)

    async def publish(self, channel: str, message: str) -> int:
        self._check()
        self.published.append((channel, message))
        return 0


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def redis(clock) -> FakeRedis:
    return FakeRedis(clock)


# ── realtime and mail ───────────────────────────────────────


@dataclass
class RecordingPublisher:
    events: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    async def publish(self, channel: str, event: dict[str, Any]) -> None:
        self.events.append((channel, event))


@dataclass
class RecordingMailer:
    sent: list[tuple[str, str, str]] = field(default_factory=list)
    fail: bool = False

    async def send(self, to: str, subject: str, html: str) -> None:
        if self.fail:
            raise ConnectionRefusedError("smtp down")
        self.sent.append((to, subject, html))


@dataclass
class RecordingBroadcaster:
    role_events: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    fail: bool = False

    async def broadcast_to_role(self, role: str, payload: dict[str, Any]) -> int:
        if self.fail:
            raise RuntimeError("gateway gone")
        self.role_events.append((role, payload))
        return 1

    async def broadcast_to_channel(self, channel: str, payload: dict[str, Any]) -> int:
        return 0

    async def send_to_user(self, user_id: str, payload: dict[str, Any]) -> bool:
        return False


class FakeWebSocket:
    """In-memory stand-in for starlette's WebSocket."""

    def __init__(
        self,
        *,
        token: str | None = None,
        headers: dict[str, str] | None = None,
        fail_send: bool = False,
    ) -> None:
        self.query_params: dict[str, str] = {"token": token} if token else {}
        self.headers: dict[str, str] = {k.lower(): v for k, v in (headers or {}).items()}
        self.fail_send = fail_send
        self.accepted = False
        self.sent: list[str] = []
        self.closed: tuple[int, str | None] | None = None
        self.inbox: asyncio.Queue[Any] = asyncio.Queue()

    @property
    def close_code(self) -> int | None:
        return self.closed[0] if self.closed else None

    @property
    def close_reason(self) -> str | None:
        return self.closed[1] if self.closed else None

    def frames(self) -> list[dict[str, Any]]:
        return [json.loads(raw) for raw in self.sent]

    async def accept(self) -> None:
        self.accepted = True

    async def receive(self) -> dict[str, Any]:
        """Queued str/bytes become ASGI receive messages; WebSocketDisconnect a disconnect."""
        item = await self.inbox.get()
        if isinstance(item, WebSocketDisconnect):
            return {"type": "websocket.disconnect", "code": item.code}
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, bytes):
            return {"type": "websocket.receive", "bytes": item}
        return {"type": "websocket.receive", "text": item}

    async def send_text(self, data: str) -> None:
        if self.fail_send or self.closed:
            raise RuntimeError("socket is closed")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        if self.closed is None:
            self.closed = (code, reason)


class FakeVerifier:
    """Maps tokens to principals; anything unknown is rejected."""

    def __init__(self, principals: dict[str, Principal] | None = None, *, delay: float = 0.0) -> None:
        self.principals = dict(principals or {})
        self.delay = delay
        self.calls: list[str] = []

    async def verify(self, token: str) -> Principal:
        self.calls.append(token)
        if self.delay:
            await asyncio.sleep(self.delay)
        try:
            return self.principals[token]
        except KeyError:
            raise ValueError("signature verification failed") from None


def well_formed(name: str) -> str:
    """A three-part token string that only FakeVerifier understands."""
    return f"{name}.{int(time.time())}.sig"


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def messaging_deps(redis, publisher, mailer) -> MessagingDeps:
    return MessagingDeps(
        cache=RedisMessageCache(redis),
        unread=RedisUnreadCounter(redis),
        publisher=publisher,
        limiter=RedisRateLimiter(redis),
        mailer=mailer,
        admin_email=ADMIN_EMAIL,
    )
