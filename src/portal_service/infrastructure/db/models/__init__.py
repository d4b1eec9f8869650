"""Every model is imported here so string relationships resolve and Base.metadata is complete."""
from portal_service.infrastructure.db.models.employer_request import EmployerRequestModel
from portal_service.infrastructure.db.models.message import MessageModel
from portal_service.infrastructure.db.models.user import UserModel

__all__ = [
    "EmployerRequestModel",
    "MessageModel",
    "UserModel",
]
