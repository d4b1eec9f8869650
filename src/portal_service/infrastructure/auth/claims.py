from __future__ import annotations

from typing import Any

import jwt

from portal_service.application.dto.principal import Principal
from portal_service.domain.value_objects.enums import Role


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    """Map decoded JWT claims onto a Principal.

    Tokens carry ``userId`` (``sub`` is accepted as a fallback), ``role`` and
    optionally ``email``.
    """
    if payload.get("typ") == "refresh":
        raise jwt.InvalidTokenError("refresh tokens cannot authenticate requests")
    user_id = payload.get("userId", payload.get("sub"))
    role = payload.get("role")
    if user_id in (None, ""):
        raise jwt.InvalidTokenError("token has no user identifier")
    if role not in Role.__members__.values():
        raise jwt.InvalidTokenError(f"unsupported role: {role!r}")
    return Principal(user_id=str(user_id), role=Role(role).value, email=payload.get("email"))
