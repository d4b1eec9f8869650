from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from portal_service.domain.entities.message import Message
from portal_service.infrastructure.db.mappers import message as mapper
from portal_service.infrastructure.db.models.message import MessageModel


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_request(self, request_id: int) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(MessageModel.employer_request_id == request_id)
            .order_by(MessageModel.created_at.asc(), MessageModel.id.asc())
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def latest_for_request(self, request_id: int) -> Message | None:
        stmt = (
            select(MessageModel)
            .where(MessageModel.employer_request_id == request_id)
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def count_for_request(self, request_id: int) -> int:
        stmt = (
            select(func.count())
            .select_from(MessageModel)
            .where(MessageModel.employer_request_id == request_id)
        )
        result = await self._session.execute(stmt)
        return int(result.scalar_one())


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

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
    ) -> Message:
        stmt = (
            insert(MessageModel)
            .values(
                employer_request_id=request_id,
                from_admin=from_admin,
                employer_email=employer_email,
                content=content,
                message_type=message_type,
                attachment_url=attachment_url,
                attachment_name=attachment_name,
            )
            .returning(MessageModel)
        )
        result = await self._session.execute(stmt)
        return mapper.model_to_entity(result.scalar_one())

    async def mark_read(self, request_id: int, message_ids: list[int], read_at: datetime) -> int:
        if not message_ids:
            return 0
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.employer_request_id == request_id,
                MessageModel.id.in_(message_ids),
            )
            .values(is_read=True, read_at=read_at)
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0
