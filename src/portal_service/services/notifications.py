"""Role-wide realtime notifications pushed straight through the gateway.

Every frame carries a human-readable ``message`` and an epoch-millisecond
``timestamp``, matching the socket's own ``ping``/``pong`` frames.
"""
from __future__ import annotations

import logging
import time
from typing import Any

from portal_service.application.ports.realtime import Broadcaster
from portal_service.application.side_effects import swallow_errors
from portal_service.domain.value_objects.enums import Role

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def status_change_data(request_id: int, status: str, old_status: str | None = None) -> dict[str, Any]:
    """``data`` body of a ``request_status_change`` frame; ``oldStatus`` is extra."""
    data: dict[str, Any] = {"requestId": request_id, "status": str(status)}
    if old_status is not None:
        data["oldStatus"] = str(old_status)
    return data


def status_change_message(request_id: int, status: str) -> str:
    return f"Request {request_id} status changed to {status}"


class RealtimeNotifier:
    def __init__(self, broadcaster: Broadcaster) -> None:
        self._broadcaster = broadcaster

    async def _emit(
        self,
        role: Role | str,
        event_type: str,
        message: str,
        data: Any = None,
    ) -> int:
        role = Role(role).value
        frame: dict[str, Any] = {"type": event_type, "message": message}
        if data is not None:
            frame["data"] = data
        frame["timestamp"] = _now_ms()
        delivered = await self._broadcaster.broadcast_to_role(role, frame)
        logger.debug("%s delivered to %d %s connection(s)", event_type, delivered, role)
        return delivered

    @swallow_errors("dashboard update", default=0)
    async def dashboard_update(
        self, data: dict[str, Any] | None = None, role: Role = Role.ADMIN,
    ) -> int:
        return await self._emit(role, "dashboard_update", "Dashboard data updated", data)

    @swallow_errors("new request notification", default=0)
    async def new_request(self, request: dict[str, Any]) -> int:
        return await self._emit(
            Role.ADMIN, "new_request", f"New request from {request.get('name', 'unknown')}", request,
        )

    @swallow_errors("request status notification", default=0)
    async def request_status_change(
        self,
        request_id: int,
        status: str,
        old_status: str | None = None,
        role: Role = Role.ADMIN,
    ) -> int:
        return await self._emit(
            role,
            "request_status_change",
            status_change_message(request_id, status),
            status_change_data(request_id, status, old_status),
        )

    @swallow_errors("new job seeker notification", default=0)
    async def new_job_seeker(self, job_seeker: dict[str, Any]) -> int:
        profile = job_seeker.get("profile") or {}
        name = " ".join(p for p in (profile.get("firstName"), profile.get("lastName")) if p)
        return await self._emit(
            Role.ADMIN,
            "new_job_seeker",
            f"New job seeker registered: {name or 'unknown'}",
            job_seeker,
        )

    @swallow_errors("system message", default=0)
    async def system_message(self, message: str, role: Role = Role.ADMIN) -> int:
        return await self._emit(role, "system_message", message)
