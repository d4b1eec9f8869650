from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    ADMIN = "admin"
    EMPLOYER = "employer"
    JOBSEEKER = "jobseeker"


class RequestStatus(StrEnum):
    PENDING = "pending"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @property
    def accepts_messages(self) -> bool:
        return self not in (
            RequestStatus.APPROVED,
            RequestStatus.CANCELLED,
            RequestStatus.COMPLETED,
        )


class MessageType(StrEnum):
    TEXT = "text"
    FILE = "file"
