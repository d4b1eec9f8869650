from __future__ import annotations

from typing import Protocol

from portal_service.application.repositories.employer_request import (
    EmployerRequestReader,
    EmployerRequestWriter,
)
from portal_service.application.repositories.message import MessageReader, MessageWriter
from portal_service.application.repositories.user import UserReader, UserWriter


class UnitOfWork(Protocol):
    requests: EmployerRequestReader
    requests_w: EmployerRequestWriter
    messages: MessageReader
    messages_w: MessageWriter
    users: UserReader
    users_w: UserWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...
