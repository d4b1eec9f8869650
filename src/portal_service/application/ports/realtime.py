from __future__ import annotations

from typing import Any, Protocol


class Broadcaster(Protocol):
    async def broadcast_to_role(self, role: str, payload: dict[str, Any]) -> int: ...
    async def broadcast_to_channel(self, channel: str, payload: dict[str, Any]) -> int: ...
    async def send_to_user(self, user_id: str, payload: dict[str, Any]) -> bool: ...
