"""Refresh tokens and password reset on top of the session store."""
from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from urllib.parse import urlencode

from portal_service.application.exceptions import (
    AuthenticationError,
    RateLimitExceededError,
    ValidationError,
)
from portal_service.application.ports.auth import TokenSigner
from portal_service.application.ports.kv import RateLimiter, SessionStore
from portal_service.application.ports.mailer import Mailer
from portal_service.application.side_effects import best_effort
from portal_service.application.uow import UnitOfWork
from portal_service.infrastructure.auth.passwords import hash_password
from portal_service.services import mail_templates

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True, slots=True)
class SecurityDeps:
    signer: TokenSigner
    sessions: SessionStore
    limiter: RateLimiter
    mailer: Mailer
    frontend_url: str
    reset_ttl: int = 3600
    reset_rate_limit: int = 3
    reset_rate_window: int = 3600


@dataclass(frozen=True, slots=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int


def _refresh_key(user_id: str | int) -> str:
    return f"refresh_token:{user_id}"


def _reset_key(token: str) -> str:
    return "password_reset:" + hashlib.sha256(token.encode()).hexdigest()


async def issue_tokens(
    user_id: str | int,
    email: str | None,
    role: str,
    deps: SecurityDeps,
) -> TokenPair:
    access = deps.signer.access_token(user_id, email, role)
    refresh = deps.signer.refresh_token(user_id, email, role)
    await deps.sessions.set_session(_refresh_key(user_id), refresh, deps.signer.refresh_ttl)
    return TokenPair(access_token=access, refresh_token=refresh, expires_in=deps.signer.access_ttl)


async def refresh_access_token(refresh_token: str, deps: SecurityDeps) -> TokenPair:
    """Mint a new access token if ``refresh_token`` is the one on record."""
    payload = deps.signer.decode_refresh(refresh_token)
    user_id = str(payload["userId"])

    stored = await deps.sessions.get_session(_refresh_key(user_id))
    if not isinstance(stored, str) or not hmac.compare_digest(stored, refresh_token):
        logger.info("Refresh rejected for user %s: token not on record", user_id)
        raise AuthenticationError("Invalid refresh token.")

    access = deps.signer.access_token(user_id, payload.get("email"), payload["role"])
    return TokenPair(access_token=access, refresh_token=refresh_token, expires_in=deps.signer.access_ttl)


async def revoke_refresh_token(user_id: str | int, deps: SecurityDeps) -> None:
    await deps.sessions.delete_session(_refresh_key(user_id))


async def request_password_reset(email: str, uow: UnitOfWork, deps: SecurityDeps) -> None:
    """Send a reset link. Unknown addresses get the same silent success."""
    email = email.strip().lower()
    if not email:
        raise ValidationError("Email is required.")

    allowed = await deps.limiter.check_rate_limit(
        f"ratelimit:password_reset:{email}", deps.reset_rate_limit, deps.reset_rate_window,
    )
    if not allowed:
        raise RateLimitExceededError(
            "Too many password reset requests. Please try again later.",
            retry_after=deps.reset_rate_window,
        )

    user = await uow.users.get_by_email(email)
    if user is None:
        logger.info("Password reset requested for unknown address")
        return

    token = secrets.token_urlsafe(32)
    await deps.sessions.set_session(
        _reset_key(token), {"user_id": user.id, "email": user.email}, deps.reset_ttl,
    )
    reset_url = f"{deps.frontend_url.rstrip('/')}/reset-password?{urlencode({'token': token})}"
    subject, html = mail_templates.password_reset(reset_url)
    await best_effort("password reset e-mail", deps.mailer.send(user.email, subject, html))
    logger.info("Password reset issued for user %s", user.id)


async def reset_password(
    token: str,
    new_password: str,
    uow: UnitOfWork,
    deps: SecurityDeps,
) -> None:
    if len(new_password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")

    key = _reset_key(token)
    record = await deps.sessions.get_session(key)
    if not isinstance(record, dict) or "user_id" not in record:
        raise ValidationError("Invalid or expired reset token.")

    password_hash = await asyncio.to_thread(hash_password, new_password)
    await uow.users_w.update_password(int(record["user_id"]), password_hash)
    await uow.commit()

    await deps.sessions.delete_session(key)
    await revoke_refresh_token(record["user_id"], deps)
    logger.info("Password reset completed for user %s", record["user_id"])

    subject, html = mail_templates.password_reset_confirmation()
    await best_effort("password reset confirmation", deps.mailer.send(record["email"], subject, html))
