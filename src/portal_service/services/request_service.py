from __future__ import annotations

import logging

from portal_service.application.exceptions import NotFoundError, ValidationError
from portal_service.application.ports.bus import EventPublisher
from portal_service.application.uow import UnitOfWork
from portal_service.domain.entities.employer_request import EmployerRequest
from portal_service.domain.value_objects.channels import employer_channel
from portal_service.domain.value_objects.enums import RequestStatus
from portal_service.services.notifications import (
    RealtimeNotifier,
    status_change_data,
    status_change_message,
)

logger = logging.getLogger(__name__)


async def change_status(
    request_id: int,
    new_status: str,
    uow: UnitOfWork,
    notifier: RealtimeNotifier,
    publisher: EventPublisher,
) -> EmployerRequest:
    """Persist a status transition, then tell admins and the employer's channel."""
    try:
        status = RequestStatus(new_status)
    except ValueError:
        raise ValidationError(f"Unknown request status: {new_status}") from None

    current = await uow.requests.get_by_id(request_id)
    if current is None:
        raise NotFoundError("Employer request not found.")

    updated = await uow.requests_w.update_status(request_id, status.value)
    if updated is None:
        raise NotFoundError("Employer request not found.")
    await uow.commit()
    logger.info("Request %s status %s -> %s", request_id, current.status, status.value)

    await notifier.request_status_change(request_id, status.value, current.status)
    await notifier.dashboard_update({"requestId": request_id, "status": status.value})
    await publisher.publish(
        employer_channel(request_id),
        {
            "type": "request_status_change",
            "message": status_change_message(request_id, status.value),
            "data": status_change_data(request_id, status.value, current.status),
        },
    )
    return updated
