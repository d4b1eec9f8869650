from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from portal_service.api.deps import build_verifier
from portal_service.api.middleware.correlation_id import CorrelationIdMiddleware
from portal_service.api.v1.routers import admin, auth, health, messaging, ws
from portal_service.application.exceptions import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    RateLimitExceededError,
    ValidationError,
)
from portal_service.config import settings
from portal_service.infrastructure.auth.tokens import HS256TokenSigner
from portal_service.infrastructure.bus.redis_pubsub import (
    RedisPubSubPublisher,
    RedisPubSubSubscriber,
)
from portal_service.infrastructure.kv.message_cache import RedisMessageCache
from portal_service.infrastructure.kv.presence import PresenceTracker
from portal_service.infrastructure.kv.rate_limiter import RedisRateLimiter
from portal_service.infrastructure.kv.session_store import RedisSessionStore
from portal_service.infrastructure.kv.unread import RedisUnreadCounter
from portal_service.infrastructure.mail.smtp_mailer import SmtpMailer
from portal_service.infrastructure.ws.gateway import ConnectionGateway
from portal_service.services.messaging_service import MessagingDeps
from portal_service.services.notifications import RealtimeNotifier
from portal_service.services.token_service import SecurityDeps

logger = logging.getLogger(__name__)


def wire_components(app: FastAPI, redis: Any) -> None:
    """Build the per-process components over one Redis client and attach them to app.state."""
    app.state.redis = redis

    gateway = ConnectionGateway(
        build_verifier(),
        max_connections=settings.WS_MAX_CONNECTIONS,
        heartbeat_interval=settings.WS_HEARTBEAT_SECONDS,
        handshake_timeout=settings.WS_HANDSHAKE_TIMEOUT_SECONDS,
        max_payload_bytes=settings.WS_MAX_PAYLOAD_BYTES,
        presence=PresenceTracker(redis, ttl=settings.PRESENCE_TTL_SECONDS),
    )
    publisher = RedisPubSubPublisher(redis)
    limiter = RedisRateLimiter(redis)
    mailer = SmtpMailer(
        settings.SMTP_HOST,
        settings.SMTP_PORT,
        username=settings.SMTP_USERNAME,
        password=settings.SMTP_PASSWORD,
        use_tls=settings.SMTP_USE_TLS,
        sender=settings.MAIL_FROM,
        timeout=settings.SMTP_TIMEOUT_SECONDS,
    )

    app.state.gateway = gateway
    app.state.publisher = publisher
    app.state.notifier = RealtimeNotifier(gateway)
    app.state.messaging = MessagingDeps(
        cache=RedisMessageCache(
            redis,
            message_ttl=settings.MESSAGE_CACHE_TTL_SECONDS,
            conversation_ttl=settings.CONVERSATION_CACHE_TTL_SECONDS,
        ),
        unread=RedisUnreadCounter(redis, ttl=settings.UNREAD_TTL_SECONDS),
        publisher=publisher,
        limiter=limiter,
        mailer=mailer,
        admin_email=settings.ADMIN_EMAIL,
        admin_rate_limit=settings.ADMIN_MESSAGE_RATE_LIMIT,
        employer_rate_limit=settings.EMPLOYER_MESSAGE_RATE_LIMIT,
        rate_window=settings.MESSAGE_RATE_WINDOW_SECONDS,
    )
    app.state.security = SecurityDeps(
        signer=HS256TokenSigner(
            settings.JWT_SECRET,
            settings.refresh_secret,
            algorithm=settings.JWT_ALGORITHM,
            access_ttl=settings.ACCESS_TOKEN_TTL_SECONDS,
            refresh_ttl=settings.REFRESH_TOKEN_TTL_SECONDS,
        ),
        sessions=RedisSessionStore(redis, default_ttl=settings.SESSION_DEFAULT_TTL_SECONDS),
        limiter=limiter,
        mailer=mailer,
        frontend_url=settings.FRONTEND_URL,
        reset_ttl=settings.PASSWORD_RESET_TTL_SECONDS,
        reset_rate_limit=settings.PASSWORD_RESET_RATE_LIMIT,
        reset_rate_window=settings.PASSWORD_RESET_RATE_WINDOW_SECONDS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    logger.info("Redis connection pool created")
    wire_components(app, redis)

    gateway: ConnectionGateway = app.state.gateway
    await gateway.start()

    async def _relay(channel: str, event: dict[str, Any]) -> None:
        await gateway.broadcast_to_channel(channel, event)

    subscriber = RedisPubSubSubscriber(redis, settings.REALTIME_CHANNEL_PATTERNS, _relay)
    await subscriber.start()
    app.state.pubsub_subscriber = subscriber

    yield

    await subscriber.stop()
    await gateway.shutdown()
    await redis.aclose()
    logger.info("Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Job Portal Realtime Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(messaging.router)
    app.include_router(admin.router)
    app.include_router(auth.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(ConflictError)
    async def _conflict(_req: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(AuthenticationError)
    async def _unauthenticated(_req: Request, exc: AuthenticationError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"detail": exc.detail})

    @app.exception_handler(RateLimitExceededError)
    async def _rate_limited(_req: Request, exc: RateLimitExceededError) -> JSONResponse:
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        return JSONResponse(status_code=429, content={"detail": exc.detail}, headers=headers)
