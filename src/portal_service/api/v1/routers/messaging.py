from __future__ import annotations

from fastapi import APIRouter, Query

from portal_service.api.deps import (
    CurrentAdmin,
    CurrentPrincipal,
    MessagingDep,
    OptionalPrincipal,
    UoWDep,
)
from portal_service.api.v1.schemas.messaging import (
    ConversationListResponse,
    ConversationResponse,
    ConversationSummaryResponse,
    EmployerReplyRequest,
    MarkReadRequest,
    MarkReadResponse,
    MessageResponse,
    SendMessageRequest,
    UnreadCountResponse,
)
from portal_service.application.dto.message import MessageDraft
from portal_service.services import messaging_service

router = APIRouter(prefix="/api/v1/messaging", tags=["messaging"])


def _draft(body: SendMessageRequest) -> MessageDraft:
    return MessageDraft(
        content=body.content,
        message_type=body.message_type.value,
        attachment_url=body.attachment_url,
        attachment_name=body.attachment_name,
    )


@router.post("/admin/{request_id}/send", response_model=MessageResponse, status_code=201)
async def send_admin_message(
    request_id: int,
    body: SendMessageRequest,
    admin: CurrentAdmin,
    uow: UoWDep,
    deps: MessagingDep,
) -> MessageResponse:
    msg = await messaging_service.send_admin_message(request_id, admin, _draft(body), uow, deps)
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.post("/employer/{request_id}/reply", response_model=MessageResponse, status_code=201)
async def send_employer_reply(
    request_id: int,
    body: EmployerReplyRequest,
    uow: UoWDep,
    deps: MessagingDep,
) -> MessageResponse:
    msg = await messaging_service.send_employer_reply(
        request_id, body.email, _draft(body), uow, deps,
    )
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.get("/conversation/{request_id}", response_model=ConversationResponse)
async def get_conversation(
    request_id: int,
    principal: OptionalPrincipal,
    uow: UoWDep,
    deps: MessagingDep,
    email: str | None = Query(None),
) -> ConversationResponse:
    view = await messaging_service.get_conversation(request_id, principal, email, uow, deps)
    return ConversationResponse(
        request_id=view.request_id,
        employer_email=view.employer_email,
        employer_name=view.employer_name,
        messages=[MessageResponse.model_validate(m) for m in view.messages],
        unread_count=view.unread_count,
        from_cache=view.from_cache,
    )


@router.post("/conversation/{request_id}/read", response_model=MarkReadResponse)
async def mark_as_read(
    request_id: int,
    body: MarkReadRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
    deps: MessagingDep,
) -> MarkReadResponse:
    updated = await messaging_service.mark_as_read(
        request_id, principal, body.message_ids, uow, deps,
    )
    return MarkReadResponse(updated=updated)


@router.get("/conversation/{request_id}/unread", response_model=UnreadCountResponse)
async def get_unread_count(
    request_id: int,
    principal: CurrentPrincipal,
    deps: MessagingDep,
) -> UnreadCountResponse:
    count = await messaging_service.get_unread_count(request_id, principal, deps)
    return UnreadCountResponse(request_id=request_id, unread_count=count)


@router.get("/admin/conversations", response_model=ConversationListResponse)
async def list_conversations(
    admin: CurrentAdmin,
    uow: UoWDep,
    deps: MessagingDep,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> ConversationListResponse:
    result = await messaging_service.list_conversations(page, limit, uow, deps)
    return ConversationListResponse(
        items=[
            ConversationSummaryResponse(
                request_id=item.request.id,
                employer_name=item.request.name,
                employer_email=item.request.email,
                status=item.request.status,
                updated_at=item.request.updated_at,
                message_count=item.message_count,
                unread_count=item.unread_count,
                last_message=(
                    MessageResponse.model_validate(item.last_message)
                    if item.last_message else None
                ),
            )
            for item in result.items
        ],
        page=result.page,
        limit=result.limit,
        total=result.total,
        total_pages=result.total_pages,
    )
