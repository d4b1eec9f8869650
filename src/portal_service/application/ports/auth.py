from __future__ import annotations

from typing import Any, Protocol

from portal_service.application.dto.principal import Principal


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> Principal: ...


class TokenSigner(Protocol):
    access_ttl: int
    refresh_ttl: int

    def access_token(self, user_id: str | int, email: str | None, role: str) -> str: ...
    def refresh_token(self, user_id: str | int, email: str | None, role: str) -> str: ...

    def decode_refresh(self, token: str) -> dict[str, Any]:
        """Raise AuthenticationError for anything but a valid refresh token."""
        ...
