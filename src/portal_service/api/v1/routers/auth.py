from __future__ import annotations

from fastapi import APIRouter

from portal_service.api.deps import CurrentPrincipal, SecurityDep, UoWDep
from portal_service.api.v1.schemas.auth import (
    DetailResponse,
    PasswordResetConfirm,
    PasswordResetRequest,
    RefreshRequest,
    TokenResponse,
)
from portal_service.services import token_service

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, deps: SecurityDep) -> TokenResponse:
    pair = await token_service.refresh_access_token(body.refresh_token, deps)
    return TokenResponse.model_validate(pair, from_attributes=True)


@router.post("/logout", response_model=DetailResponse)
async def logout(principal: CurrentPrincipal, deps: SecurityDep) -> DetailResponse:
    await token_service.revoke_refresh_token(principal.user_id, deps)
    return DetailResponse(detail="Logged out.")


@router.post("/password-reset", response_model=DetailResponse, status_code=202)
async def request_password_reset(
    body: PasswordResetRequest,
    uow: UoWDep,
    deps: SecurityDep,
) -> DetailResponse:
    await token_service.request_password_reset(body.email, uow, deps)
    return DetailResponse(
        detail="If an account exists for that address, a reset link has been sent.",
    )


@router.post("/password-reset/confirm", response_model=DetailResponse)
async def confirm_password_reset(
    body: PasswordResetConfirm,
    uow: UoWDep,
    deps: SecurityDep,
) -> DetailResponse:
    await token_service.reset_password(body.token, body.new_password, uow, deps)
    return DetailResponse(detail="Password has been reset.")
