"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, HTTPException, status
from fastapi.requests import HTTPConnection
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from portal_service.application.dto.principal import Principal
from portal_service.application.ports.auth import TokenVerifier
from portal_service.application.ports.bus import EventPublisher
from portal_service.config import settings
from portal_service.infrastructure.auth.hs256_verifier import HS256Verifier
from portal_service.infrastructure.auth.jwks_verifier import JWKSVerifier
from portal_service.infrastructure.db.session import AsyncSessionLocal
from portal_service.infrastructure.db.uow import SqlAlchemyUoW
from portal_service.infrastructure.ws.gateway import ConnectionGateway
from portal_service.services.messaging_service import MessagingDeps
from portal_service.services.notifications import RealtimeNotifier
from portal_service.services.token_service import SecurityDeps

_bearer_scheme = HTTPBearer()
_optional_bearer_scheme = HTTPBearer(auto_error=False)


async def get_uow() -> AsyncIterator[SqlAlchemyUoW]:
    async with AsyncSessionLocal() as session, SqlAlchemyUoW(session) as uow:
        yield uow


UoWDep = Annotated[SqlAlchemyUoW, Depends(get_uow)]


def build_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = build_verifier()
    return _verifier


async def _verify(token: str, verifier: TokenVerifier) -> Principal:
    try:
        return await verifier.verify(token)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token.",
        ) from exc


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
    verifier: Annotated[TokenVerifier, Depends(get_verifier)],
) -> Principal:
    return await _verify(credentials.credentials, verifier)


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


async def get_optional_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_optional_bearer_scheme)],
    verifier: Annotated[TokenVerifier, Depends(get_verifier)],
) -> Principal | None:
    if credentials is None:
        return None
    return await _verify(credentials.credentials, verifier)


OptionalPrincipal = Annotated[Principal | None, Depends(get_optional_principal)]


async def get_current_admin(principal: CurrentPrincipal) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return principal


CurrentAdmin = Annotated[Principal, Depends(get_current_admin)]


# Lifespan-scoped components live on app.state.

def get_gateway(conn: HTTPConnection) -> ConnectionGateway:
    return conn.app.state.gateway


def get_publisher(conn: HTTPConnection) -> EventPublisher:
    return conn.app.state.publisher


def get_notifier(conn: HTTPConnection) -> RealtimeNotifier:
    return conn.app.state.notifier


def get_messaging_deps(conn: HTTPConnection) -> MessagingDeps:
    return conn.app.state.messaging


def get_security_deps(conn: HTTPConnection) -> SecurityDeps:
    return conn.app.state.security


GatewayDep = Annotated[ConnectionGateway, Depends(get_gateway)]
PublisherDep = Annotated[EventPublisher, Depends(get_publisher)]
NotifierDep = Annotated[RealtimeNotifier, Depends(get_notifier)]
MessagingDep = Annotated[MessagingDeps, Depends(get_messaging_deps)]
SecurityDep = Annotated[SecurityDeps, Depends(get_security_deps)]
