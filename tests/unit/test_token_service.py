from __future__ import annotations

import hashlib
import re

import bcrypt
import jwt
import pytest

from portal_service.application.exceptions import (
    AuthenticationError,
    RateLimitExceededError,
    ValidationError,
)
from portal_service.domain.entities.user import User
from portal_service.infrastructure.auth.hs256_verifier import HS256Verifier
from portal_service.infrastructure.auth.passwords import hash_password
from portal_service.infrastructure.auth.tokens import HS256TokenSigner
from portal_service.infrastructure.kv.rate_limiter import RedisRateLimiter
from portal_service.infrastructure.kv.session_store import RedisSessionStore
from portal_service.services import token_service
from portal_service.services.token_service import SecurityDeps
from tests.conftest import FakeUoW

ACCESS_SECRET = "access-secret-with-at-least-32-bytes!!"
REFRESH_SECRET = "refresh-secret-with-at-least-32-bytes!"


@pytest.fixture
def deps(redis, mailer) -> SecurityDeps:
    return SecurityDeps(
        signer=HS256TokenSigner(ACCESS_SECRET, REFRESH_SECRET),
        sessions=RedisSessionStore(redis),
        limiter=RedisRateLimiter(redis),
        mailer=mailer,
        frontend_url="http://portal.test/",
    )


@pytest.fixture
def uow() -> FakeUoW:
    uow = FakeUoW()
    uow.users._users["hr@acme.test"] = User(
        id=7, email="hr@acme.test", role="employer", password_hash=hash_password("old-pass"),
    )
    return uow


def _token_from_mail(html: str) -> str:
    return re.search(r"token=([\w\-]+)", html).group(1)


@pytest.mark.asyncio
async def test_issued_access_token_authenticates(deps, redis):
    pair = await token_service.issue_tokens(7, "hr@acme.test", "employer", deps)

    principal = await HS256Verifier(ACCESS_SECRET).verify(pair.access_token)

    assert principal.user_id == "7"
    assert principal.role == "employer"
    assert pair.expires_in == 3600
    assert redis.ttl_of("refresh_token:7") == 7 * 24 * 3600


@pytest.mark.asyncio
async def test_refresh_token_cannot_authenticate_requests(deps):
    pair = await token_service.issue_tokens(7, None, "employer", deps)

    with pytest.raises(jwt.InvalidTokenError):
        await HS256Verifier(REFRESH_SECRET).verify(pair.refresh_token)


@pytest.mark.asyncio
async def test_refresh_round_trip_and_revocation(deps):
    pair = await token_service.issue_tokens(7, "hr@acme.test", "employer", deps)

    refreshed = await token_service.refresh_access_token(pair.refresh_token, deps)
    assert (await HS256Verifier(ACCESS_SECRET).verify(refreshed.access_token)).email == "hr@acme.test"

    await token_service.revoke_refresh_token(7, deps)
    with pytest.raises(AuthenticationError):
        await token_service.refresh_access_token(pair.refresh_token, deps)


@pytest.mark.asyncio
async def test_refresh_rejects_access_tokens_and_garbage(deps):
    pair = await token_service.issue_tokens(7, None, "employer", deps)

    for bad in (pair.access_token, "x.y.z"):
        with pytest.raises(AuthenticationError):
            await token_service.refresh_access_token(bad, deps)


@pytest.mark.asyncio
async def test_password_reset_flow(uow, deps, redis, mailer):
    await token_service.issue_tokens(7, "hr@acme.test", "employer", deps)

    await token_service.request_password_reset("hr@acme.test", uow, deps)

    to, _, html = mailer.sent[0]
    assert to == "hr@acme.test"
    token = _token_from_mail(html)
    assert "http://portal.test/reset-password?token=" in html
    reset_key = "password_reset:" + hashlib.sha256(token.encode()).hexdigest()
    assert reset_key in redis.data
    assert token not in "".join(redis.data)

    await token_service.reset_password(token, "new-pass", uow, deps)

    user = await uow.users.get_by_email("hr@acme.test")
    assert bcrypt.checkpw(b"new-pass", user.password_hash.encode())
    assert reset_key not in redis.data
    assert "refresh_token:7" not in redis.data
    assert len(mailer.sent) == 2

    with pytest.raises(ValidationError):
        await token_service.reset_password(token, "another-pass", uow, deps)


@pytest.mark.asyncio
async def test_password_reset_unknown_email_is_silent(uow, deps, mailer):
    await token_service.request_password_reset("ghost@acme.test", uow, deps)

    assert mailer.sent == []


@pytest.mark.asyncio
async def test_password_reset_is_rate_limited(uow, deps):
    for _ in range(3):
        await token_service.request_password_reset("ghost@acme.test", uow, deps)

    with pytest.raises(RateLimitExceededError):
        await token_service.request_password_reset("ghost@acme.test", uow, deps)


@pytest.mark.asyncio
async def test_reset_password_enforces_minimum_length(uow, deps):
    with pytest.raises(ValidationError):
        await token_service.reset_password("whatever", "short", uow, deps)


@pytest.mark.asyncio
async def test_reset_survives_mailer_outage(uow, deps, mailer):
    mailer.fail = True
    await token_service.request_password_reset("hr@acme.test", uow, deps)
    assert mailer.sent == []
