from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Mapping, Protocol


class ConnectionState(StrEnum):
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    CLOSING = "closing"
    CLOSED = "closed"


class WebSocketLike(Protocol):
    """The subset of starlette's WebSocket the gateway relies on."""

    query_params: Mapping[str, str]
    headers: Mapping[str, str]

    async def accept(self) -> None: ...
    async def receive(self) -> Mapping[str, Any]: ...
    async def send_text(self, data: str) -> None: ...
    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


@dataclass(eq=False)
class Connection:
    """One live socket. Owned by the gateway; never shared across gateways."""

    websocket: Any
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str | None = None
    role: str | None = None
    state: ConnectionState = ConnectionState.CONNECTING
    subscriptions: set[str] = field(default_factory=set)
    is_alive: bool = True
    # set once the client answers a JSON ping; only then is the sweep enforced
    answers_pings: bool = False
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    handshake: asyncio.Timeout | None = None
    send_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def is_open(self) -> bool:
        return self.state in (ConnectionState.CONNECTING, ConnectionState.AUTHENTICATED)

    @property
    def is_authenticated(self) -> bool:
        return self.state is ConnectionState.AUTHENTICATED

    def __repr__(self) -> str:
        return f"<Connection {self.id[:8]} user={self.user_id} role={self.role} {self.state}>"
