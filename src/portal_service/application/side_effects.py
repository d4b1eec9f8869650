"""Best-effort side effects.

Caching, unread counters, pub/sub, presence, e-mail and socket pushes enrich a
primary operation but are never prerequisites for it. Failures are logged and
replaced by a default value.
"""
from __future__ import annotations

import functools
import logging
from typing import Any, Awaitable, Callable, Coroutine, ParamSpec, TypeVar

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


async def best_effort(operation: str, aw: Awaitable[T], default: T | None = None) -> T | None:
    try:
        return await aw
    except Exception:
        logger.warning("Best-effort %s failed", operation, exc_info=True)
        return default


def swallow_errors(
    operation: str,
    default: Any = None,
) -> Callable[[Callable[P, Coroutine[Any, Any, T]]], Callable[P, Coroutine[Any, Any, T]]]:
    """Decorate an async method so any exception is logged and ``default`` returned."""

    def decorator(fn: Callable[P, Coroutine[Any, Any, T]]) -> Callable[P, Coroutine[Any, Any, T]]:
        @functools.wraps(fn)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            return await best_effort(operation, fn(*args, **kwargs), default)  # type: ignore[return-value]

        return wrapper

    return decorator
