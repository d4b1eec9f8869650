"""WebSocket frame models and close codes."""
from __future__ import annotations

from enum import IntEnum

from pydantic import BaseModel, ConfigDict


class CloseCode(IntEnum):
    NORMAL_CLOSURE = 1000
    GOING_AWAY = 1001
    POLICY_VIOLATION = 1008
    MESSAGE_TOO_BIG = 1009
    TRY_AGAIN_LATER = 1013


class ClientFrame(BaseModel):
    """Client → Server."""

    type: str  # subscribe | unsubscribe | ping, plus optional pong
    channel: str | None = None

    model_config = ConfigDict(extra="ignore")


class ServerFrame(BaseModel):
    """Server → Client. Event-specific fields ride along as extras."""

    type: str

    model_config = ConfigDict(extra="allow")
