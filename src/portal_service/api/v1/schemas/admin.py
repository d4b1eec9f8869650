from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from portal_service.domain.value_objects.enums import RequestStatus


class ChangeStatusRequest(BaseModel):
    status: RequestStatus


class EmployerRequestResponse(BaseModel):
    id: int
    name: str
    email: str
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RealtimeStatsResponse(BaseModel):
    totalConnections: int
    activeConnections: int
    maxConnections: int
