from __future__ import annotations

from fastapi import APIRouter

from portal_service.api.deps import CurrentAdmin, GatewayDep, NotifierDep, PublisherDep, UoWDep
from portal_service.api.v1.schemas.admin import (
    ChangeStatusRequest,
    EmployerRequestResponse,
    RealtimeStatsResponse,
)
from portal_service.services import request_service

router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


@router.patch("/requests/{request_id}/status", response_model=EmployerRequestResponse)
async def change_request_status(
    request_id: int,
    body: ChangeStatusRequest,
    admin: CurrentAdmin,
    uow: UoWDep,
    notifier: NotifierDep,
    publisher: PublisherDep,
) -> EmployerRequestResponse:
    updated = await request_service.change_status(
        request_id, body.status.value, uow, notifier, publisher,
    )
    return EmployerRequestResponse.model_validate(updated, from_attributes=True)


@router.get("/realtime/stats", response_model=RealtimeStatsResponse)
async def realtime_stats(admin: CurrentAdmin, gateway: GatewayDep) -> RealtimeStatsResponse:
    return RealtimeStatsResponse(**gateway.stats())
