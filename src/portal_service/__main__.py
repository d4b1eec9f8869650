"""Entrypoint: python -m portal_service"""
from __future__ import annotations

import logging

import uvicorn

from portal_service.api.middleware.correlation_id import CorrelationIdFilter
from portal_service.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"


def configure_logging() -> None:
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        handler.addFilter(CorrelationIdFilter())


def main() -> None:
    configure_logging()
    uvicorn.run(
        "portal_service.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        log_config=None,
        log_level=settings.LOG_LEVEL.lower(),
        ws_ping_interval=settings.WS_PING_INTERVAL_SECONDS,
        ws_ping_timeout=settings.WS_PING_TIMEOUT_SECONDS,
    )


if __name__ == "__main__":
    main()
