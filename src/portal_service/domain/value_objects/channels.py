"""Pub/sub and socket channel names."""
from __future__ import annotations

DASHBOARD = "dashboard"


def employer_channel(request_id: int | str) -> str:
    return f"employer_{request_id}"


def admin_channel(request_id: int | str) -> str:
    return f"admin_{request_id}"
