from __future__ import annotations

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from portal_service.config import settings

# Connections are tagged with application_name for pg_stat_activity.
engine = create_async_engine(
    settings.database_url,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_recycle=settings.DB_POOL_RECYCLE,
    pool_pre_ping=True,
    connect_args={"server_settings": {"application_name": "portal-service"}},
)

AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
