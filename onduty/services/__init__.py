"""Business logic services package."""
from onduty.services.auth_service import AuthService
from onduty.services.request_service import RequestService
from onduty.services.entity_store import RequestStore, UserStore

__all__ = [
    "AuthService",
    "RequestService",
    "RequestStore",
    "UserStore",
]
