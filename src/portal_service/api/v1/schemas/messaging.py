from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from portal_service.domain.value_objects.enums import MessageType


class SendMessageRequest(BaseModel):
    content: str = Field(min_length=1, max_length=10_000)
    message_type: MessageType = MessageType.TEXT
    attachment_url: str | None = None
    attachment_name: str | None = None


class EmployerReplyRequest(SendMessageRequest):
    email: str = Field(min_length=3, max_length=320)


class MarkReadRequest(BaseModel):
    message_ids: list[int] = Field(default_factory=list)


class MessageResponse(BaseModel):
    id: int
    request_id: int
    from_admin: bool
    employer_email: str
    content: str
    message_type: str
    attachment_url: str | None = None
    attachment_name: str | None = None
    is_read: bool = False
    read_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ConversationResponse(BaseModel):
    request_id: int
    employer_email: str
    employer_name: str
    messages: list[MessageResponse]
    unread_count: int
    from_cache: bool


class UnreadCountResponse(BaseModel):
    request_id: int
    unread_count: int


class MarkReadResponse(BaseModel):
    updated: int


class ConversationSummaryResponse(BaseModel):
    request_id: int
    employer_name: str
    employer_email: str
    status: str
    updated_at: datetime
    message_count: int
    unread_count: int
    last_message: MessageResponse | None = None


class ConversationListResponse(BaseModel):
    items: list[ConversationSummaryResponse]
    page: int
    limit: int
    total: int
    total_pages: int
