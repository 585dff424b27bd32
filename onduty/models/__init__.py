"""Database models package."""
from onduty.models.user import User, UserRole
from onduty.models.request import Request, RequestStatus, Shift

__all__ = [
    "User",
    "UserRole",
    "Request",
    "RequestStatus",
    "Shift",
]
