from __future__ import annotations

from fastapi import APIRouter, WebSocket

from portal_service.api.deps import GatewayDep

router = APIRouter(tags=["websocket"])


@router.websocket("/ws")
async def ws_endpoint(websocket: WebSocket, gateway: GatewayDep) -> None:
    await gateway.serve(websocket)
