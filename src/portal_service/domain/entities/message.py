from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class Message:
    id: int
    request_id: int
    from_admin: bool
    employer_email: str
    content: str
    message_type: str
    attachment_url: str | None
    attachment_name: str | None
    created_at: datetime
    is_read: bool = False
    read_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
