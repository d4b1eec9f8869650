"""Key layout shared by every process that talks to the store."""
from __future__ import annotations

ONLINE_USERS = "online_users"


def message(message_id: int | str) -> str:
    return f"message:{message_id}"


def conversation(request_id: int | str) -> str:
    return f"conversation:{request_id}"


def unread(role: str, request_id: int | str) -> str:
    return f"unread:{role}:{request_id}"
