from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class EmployerRequest:
    id: int
    name: str
    email: str
    status: str
    created_at: datetime
    updated_at: datetime
