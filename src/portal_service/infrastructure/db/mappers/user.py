from __future__ import annotations

from portal_service.domain.entities.user import User
from portal_service.infrastructure.db.models.user import UserModel


def model_to_entity(model: UserModel) -> User:
    return User(
        id=model.id,
        email=model.email,
        role=model.role,
        password_hash=model.password,
    )
