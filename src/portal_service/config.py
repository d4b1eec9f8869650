from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_DB: str
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 300

    REDIS_URL: str = "redis://localhost:6379/0"

    JWT_SECRET: str = ""
    JWT_REFRESH_SECRET: str = ""
    JWT_VERIFY_MODE: Literal["hs256", "jwks"] = "hs256"
    JWT_ALGORITHM: str = "HS256"
    JWKS_URL: str | None = None
    ACCESS_TOKEN_TTL_SECONDS: int = 3600
    REFRESH_TOKEN_TTL_SECONDS: int = 7 * 24 * 3600
    PASSWORD_RESET_TTL_SECONDS: int = 3600

    CORS_ORIGINS: list[str] = ["*"]

    WS_HEARTBEAT_SECONDS: float = 30.0
    WS_HANDSHAKE_TIMEOUT_SECONDS: float = 10.0
    WS_MAX_CONNECTIONS: int = 100
    WS_MAX_PAYLOAD_BYTES: int = 1024 * 1024
    # protocol-level ping/pong run by uvicorn; browsers answer these themselves
    WS_PING_INTERVAL_SECONDS: float = 30.0
    WS_PING_TIMEOUT_SECONDS: float = 30.0

    MESSAGE_CACHE_TTL_SECONDS: int = 3600
    CONVERSATION_CACHE_TTL_SECONDS: int = 1800
    UNREAD_TTL_SECONDS: int = 86400
    SESSION_DEFAULT_TTL_SECONDS: int = 3600
    PRESENCE_TTL_SECONDS: int = 3600

    ADMIN_MESSAGE_RATE_LIMIT: int = 10
    EMPLOYER_MESSAGE_RATE_LIMIT: int = 5
    MESSAGE_RATE_WINDOW_SECONDS: int = 60
    PASSWORD_RESET_RATE_LIMIT: int = 3
    PASSWORD_RESET_RATE_WINDOW_SECONDS: int = 3600

    REALTIME_CHANNEL_PATTERNS: list[str] = ["admin_*", "employer_*", "dashboard"]

    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT_SECONDS: float = 10.0
    MAIL_FROM: str = "Job Portal <no-reply@jobportal.local>"
    ADMIN_EMAIL: str = "admin@jobportal.local"
    FRONTEND_URL: str = "http://localhost:3000"

    LOG_LEVEL: str = "INFO"

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def refresh_secret(self) -> str:
        return self.JWT_REFRESH_SECRET or self.JWT_SECRET

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()  # type: ignore[call-arg]
