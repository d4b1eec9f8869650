from __future__ import annotations

from typing import Protocol

from portal_service.domain.entities.employer_request import EmployerRequest


class EmployerRequestReader(Protocol):
    async def get_by_id(self, request_id: int) -> EmployerRequest | None: ...

    async def list_page(self, *, offset: int = 0, limit: int = 10) -> list[EmployerRequest]:
        """Most recently updated first."""
        ...

    async def count(self) -> int: ...


class EmployerRequestWriter(Protocol):
    async def update_status(self, request_id: int, status: str) -> EmployerRequest | None: ...
