from __future__ import annotations

from datetime import datetime
from typing import Protocol

from portal_service.domain.entities.message import Message


class MessageReader(Protocol):
    async def list_for_request(self, request_id: int) -> list[Message]:
        """Oldest first."""
        ...

    async def latest_for_request(self, request_id: int) -> Message | None: ...

    async def count_for_request(self, request_id: int) -> int: ...


class MessageWriter(Protocol):
    async def create(
        self,
        *,
        request_id: int,
        from_admin: bool,
        employer_email: str,
        content: str,
        message_type: str,
        attachment_url: str | None = None,
        attachment_name: str | None = None,
    ) -> Message: ...

    async def mark_read(self, request_id: int, message_ids: list[int], read_at: datetime) -> int:
        """Flip is_read on the given messages of one request. Returns rows updated."""
        ...
