from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from portal_service.domain.entities.employer_request import EmployerRequest
from portal_service.infrastructure.db.mappers import employer_request as mapper
from portal_service.infrastructure.db.models.employer_request import EmployerRequestModel


class EmployerRequestReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, request_id: int) -> EmployerRequest | None:
        model = await self._session.get(EmployerRequestModel, request_id)
        return mapper.model_to_entity(model) if model else None

    async def list_page(self, *, offset: int = 0, limit: int = 10) -> list[EmployerRequest]:
        stmt = (
            select(EmployerRequestModel)
            .order_by(EmployerRequestModel.updated_at.desc(), EmployerRequestModel.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def count(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(EmployerRequestModel))
        return int(result.scalar_one())


class EmployerRequestWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def update_status(self, request_id: int, status: str) -> EmployerRequest | None:
        stmt = (
            update(EmployerRequestModel)
            .where(EmployerRequestModel.id == request_id)
            .values(status=status, updated_at=func.now())
            .returning(EmployerRequestModel)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None
