from __future__ import annotations

from portal_service.domain.entities.employer_request import EmployerRequest
from portal_service.infrastructure.db.models.employer_request import EmployerRequestModel


def model_to_entity(model: EmployerRequestModel) -> EmployerRequest:
    return EmployerRequest(
        id=model.id,
        name=model.name,
        email=model.email,
        status=model.status,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )
