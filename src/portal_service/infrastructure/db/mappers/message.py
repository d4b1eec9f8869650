from __future__ import annotations

from portal_service.domain.entities.message import Message
from portal_service.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        request_id=model.employer_request_id,
        from_admin=model.from_admin,
        employer_email=model.employer_email,
        content=model.content,
        message_type=model.message_type,
        attachment_url=model.attachment_url,
        attachment_name=model.attachment_name,
        created_at=model.created_at,
        is_read=model.is_read,
        read_at=model.read_at,
    )
