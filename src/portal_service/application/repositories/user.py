from __future__ import annotations

from typing import Protocol

from portal_service.domain.entities.user import User


class UserReader(Protocol):
    async def get_by_email(self, email: str) -> User | None: ...


class UserWriter(Protocol):
    async def update_password(self, user_id: int, password_hash: str) -> None: ...
