from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from portal_service.domain.entities.message import Message
from portal_service.domain.value_objects.enums import MessageType


@dataclass(frozen=True, slots=True)
class MessageDraft:
    content: str
    message_type: str = MessageType.TEXT
    attachment_url: str | None = None
    attachment_name: str | None = None


def new_message_event(message: Message) -> dict[str, Any]:
    """Socket/pubsub frame announcing a freshly persisted message."""
    return {
        "type": "new_message",
        "message": {
            "id": message.id,
            "requestId": message.request_id,
            "content": message.content,
            "messageType": message.message_type,
            "attachmentUrl": message.attachment_url,
            "attachmentName": message.attachment_name,
            "fromAdmin": message.from_admin,
            "createdAt": message.created_at,
        },
    }
