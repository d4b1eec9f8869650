from __future__ import annotations

from dataclasses import dataclass

from portal_service.domain.value_objects.enums import Role


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller identity extracted from JWT."""

    user_id: str
    role: str
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def inbox_role(self) -> str:
        """Which side of a conversation this caller reads: admin or employer."""
        return Role.ADMIN.value if self.is_admin else Role.EMPLOYER.value
