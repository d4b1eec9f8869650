from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from portal_service.domain.entities.employer_request import EmployerRequest


@dataclass(slots=True)
class ConversationView:
    request_id: int
    employer_email: str
    employer_name: str
    messages: list[dict[str, Any]] = field(default_factory=list)
    unread_count: int = 0
    from_cache: bool = False


@dataclass(slots=True)
class ConversationSummary:
    request: EmployerRequest
    message_count: int
    unread_count: int
    last_message: dict[str, Any] | None = None


@dataclass(slots=True)
class ConversationPage:
    items: list[ConversationSummary]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0
