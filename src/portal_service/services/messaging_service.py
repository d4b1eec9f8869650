"""Admin ↔ employer conversation on an employer request.

The message row is the only prerequisite of a send. Caching, unread
counters, e-mail and pub/sub run afterwards and never fail the send.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from portal_service.application.dto.conversation import (
    ConversationPage,
    ConversationSummary,
    ConversationView,
)
from portal_service.application.dto.message import MessageDraft, new_message_event
from portal_service.application.dto.principal import Principal
from portal_service.application.exceptions import (
    ConversationClosedError,
    ForbiddenError,
    NotFoundError,
    RateLimitExceededError,
    ValidationError,
)
from portal_service.application.ports.bus import EventPublisher
from portal_service.application.ports.kv import MessageCache, RateLimiter, UnreadCounter
from portal_service.application.ports.mailer import Mailer
from portal_service.application.side_effects import best_effort
from portal_service.application.uow import UnitOfWork
from portal_service.domain.entities.employer_request import EmployerRequest
from portal_service.domain.entities.message import Message
from portal_service.domain.value_objects.channels import admin_channel, employer_channel
from portal_service.domain.value_objects.enums import MessageType, RequestStatus, Role
from portal_service.services import mail_templates

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MessagingDeps:
    cache: MessageCache
    unread: UnreadCounter
    publisher: EventPublisher
    limiter: RateLimiter
    mailer: Mailer
    admin_email: str
    admin_rate_limit: int = 10
    employer_rate_limit: int = 5
    rate_window: int = 60


def _validate_draft(draft: MessageDraft) -> None:
    if not draft.content or not draft.content.strip():
        raise ValidationError("Message content is required.")
    try:
        message_type = MessageType(draft.message_type)
    except ValueError:
        raise ValidationError(f"Unsupported message type: {draft.message_type}") from None
    if message_type is MessageType.FILE and not draft.attachment_url:
        raise ValidationError("File messages need an attachment.")


def _assert_accepts_messages(request: EmployerRequest) -> None:
    status = RequestStatus(request.status)
    if status.accepts_messages:
        return
    if status is RequestStatus.APPROVED:
        raise ConversationClosedError(
            "Cannot send messages for approved requests. Communication is closed after approval."
        )
    raise ConversationClosedError("Cannot send messages for cancelled or completed requests.")


async def _enforce_rate_limit(deps: MessagingDeps, key: str, limit: int) -> None:
    if not await deps.limiter.check_rate_limit(key, limit, deps.rate_window):
        raise RateLimitExceededError(
            "Rate limit exceeded. Please wait before sending another message.",
            retry_after=deps.rate_window,
        )


async def _after_send(
    message: Message,
    deps: MessagingDeps,
    *,
    recipient_role: Role,
    channel: str,
) -> None:
    await deps.cache.cache_message(message.id, message.to_dict())
    await deps.cache.invalidate_conversation(message.request_id)
    await deps.unread.increment_unread_count(recipient_role.value, message.request_id)
    await deps.publisher.publish(channel, new_message_event(message))


async def send_admin_message(
    request_id: int,
    principal: Principal,
    draft: MessageDraft,
    uow: UnitOfWork,
    deps: MessagingDeps,
) -> Message:
    """Persist an admin message on a request and notify the employer side."""
    _validate_draft(draft)
    await _enforce_rate_limit(deps, f"ratelimit:admin_message:{principal.user_id}", deps.admin_rate_limit)

    request = await uow.requests.get_by_id(request_id)
    if request is None:
        raise NotFoundError("Employer request not found.")
    _assert_accepts_messages(request)

    message = await uow.messages_w.create(
        request_id=request_id,
        from_admin=True,
        employer_email=request.email,
        content=draft.content,
        message_type=draft.message_type,
        attachment_url=draft.attachment_url,
        attachment_name=draft.attachment_name,
    )
    await uow.commit()
    logger.info("Admin %s sent message %s on request %s", principal.user_id, message.id, request_id)

    subject, html = mail_templates.admin_reply(request.name, draft.content, draft.attachment_name)
    await best_effort("admin reply e-mail", deps.mailer.send(request.email, subject, html))
    await _after_send(message, deps, recipient_role=Role.EMPLOYER, channel=employer_channel(request_id))
    return message


async def send_employer_reply(
    request_id: int,
    email: str,
    draft: MessageDraft,
    uow: UnitOfWork,
    deps: MessagingDeps,
) -> Message:
    """Persist a reply from the employer who owns the request (matched by e-mail)."""
    if not email:
        raise ValidationError("Email and message content are required.")
    _validate_draft(draft)
    await _enforce_rate_limit(deps, f"ratelimit:employer_message:{email.lower()}", deps.employer_rate_limit)

    request = await uow.requests.get_by_id(request_id)
    if request is None or request.email.lower() != email.lower():
        raise NotFoundError("Employer request not found or email does not match.")
    _assert_accepts_messages(request)

    message = await uow.messages_w.create(
        request_id=request_id,
        from_admin=False,
        employer_email=request.email,
        content=draft.content,
        message_type=draft.message_type,
        attachment_url=draft.attachment_url,
        attachment_name=draft.attachment_name,
    )
    await uow.commit()
    logger.info("Employer replied with message %s on request %s", message.id, request_id)

    subject, html = mail_templates.employer_reply(
        request.name, request.email, draft.content, draft.attachment_name,
    )
    await best_effort("employer reply e-mail", deps.mailer.send(deps.admin_email, subject, html))
    await _after_send(message, deps, recipient_role=Role.ADMIN, channel=admin_channel(request_id))
    return message


async def _load_accessible_request(
    request_id: int,
    principal: Principal | None,
    email: str | None,
    uow: UnitOfWork,
) -> EmployerRequest:
    request = await uow.requests.get_by_id(request_id)
    if request is None:
        raise NotFoundError("Employer request not found.")
    if principal is not None and principal.is_admin:
        return request
    candidate = email or (principal.email if principal else None)
    if candidate and candidate.lower() == request.email.lower():
        return request
    raise ForbiddenError("Access denied.")


async def get_conversation(
    request_id: int,
    principal: Principal | None,
    email: str | None,
    uow: UnitOfWork,
    deps: MessagingDeps,
) -> ConversationView:
    """Cache-aside read of a conversation.

    Authenticated callers also have their unread badge cleared; the view
    reports how many messages were unread before opening.
    """
    request = await _load_accessible_request(request_id, principal, email, uow)

    messages = await deps.cache.get_cached_conversation(request_id)
    from_cache = messages is not None
    if messages is None:
        rows = await uow.messages.list_for_request(request_id)
        messages = [m.to_dict() for m in rows]
        await deps.cache.cache_conversation(request_id, messages)

    unread_count = 0
    if principal is not None:
        unread_count = await deps.unread.get_unread_count(principal.inbox_role, request_id)
        await deps.unread.mark_as_read(principal.inbox_role, request_id)

    return ConversationView(
        request_id=request.id,
        employer_email=request.email,
        employer_name=request.name,
        messages=messages,
        unread_count=unread_count,
        from_cache=from_cache,
    )


async def mark_as_read(
    request_id: int,
    principal: Principal,
    message_ids: list[int],
    uow: UnitOfWork,
    deps: MessagingDeps,
) -> int:
    await _load_accessible_request(request_id, principal, None, uow)
    updated = 0
    if message_ids:
        updated = await uow.messages_w.mark_read(
            request_id, message_ids, datetime.now(timezone.utc),
        )
        await uow.commit()
        await deps.cache.invalidate_conversation(request_id)
    await deps.unread.mark_as_read(principal.inbox_role, request_id)
    return updated


async def get_unread_count(
    request_id: int,
    principal: Principal,
    deps: MessagingDeps,
) -> int:
    return await deps.unread.get_unread_count(principal.inbox_role, request_id)


async def list_conversations(
    page: int,
    limit: int,
    uow: UnitOfWork,
    deps: MessagingDeps,
) -> ConversationPage:
    """Admin inbox: requests by recency with latest message and unread badge."""
    requests = await uow.requests.list_page(offset=(page - 1) * limit, limit=limit)
    total = await uow.requests.count()

    # One session cannot run statements concurrently; only the store reads fan out.
    latest: list[Message | None] = []
    counts: list[int] = []
    for request in requests:
        latest.append(await uow.messages.latest_for_request(request.id))
        counts.append(await uow.messages.count_for_request(request.id))
    unread = await asyncio.gather(
        *(deps.unread.get_unread_count(Role.ADMIN.value, r.id) for r in requests)
    )

    items = [
        ConversationSummary(
            request=request,
            message_count=count,
            unread_count=unread_count,
            last_message=last.to_dict() if last else None,
        )
        for request, last, count, unread_count in zip(requests, latest, counts, unread)
    ]
    return ConversationPage(items=items, page=page, limit=limit, total=total)
