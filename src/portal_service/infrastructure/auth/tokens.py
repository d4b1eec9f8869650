"""Signing of access and refresh tokens."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from portal_service.application.exceptions import AuthenticationError


class HS256TokenSigner:
    """Implements application.ports.auth.TokenSigner."""

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        *,
        algorithm: str = "HS256",
        access_ttl: int = 3600,
        refresh_ttl: int = 7 * 24 * 3600,
    ) -> None:
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self._algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    def _encode(self, claims: dict[str, Any], secret: str, ttl: int) -> str:
        now = datetime.now(timezone.utc)
        payload = {**claims, "iat": now, "exp": now + timedelta(seconds=ttl)}
        return jwt.encode(payload, secret, algorithm=self._algorithm)

    def access_token(self, user_id: str | int, email: str | None, role: str) -> str:
        return self._encode(
            {"userId": str(user_id), "email": email, "role": role},
            self._access_secret,
            self.access_ttl,
        )

    def refresh_token(self, user_id: str | int, email: str | None, role: str) -> str:
        return self._encode(
            {"userId": str(user_id), "email": email, "role": role, "typ": "refresh"},
            self._refresh_secret,
            self.refresh_ttl,
        )

    def decode_refresh(self, token: str) -> dict[str, Any]:
        try:
            payload = jwt.decode(
                token,
                self._refresh_secret,
                algorithms=[self._algorithm],
                options={"require": ["exp"]},
            )
        except jwt.PyJWTError as exc:
            raise AuthenticationError("Invalid refresh token.") from exc
        if payload.get("typ") != "refresh" or not payload.get("userId"):
            raise AuthenticationError("Invalid refresh token.")
        return payload
