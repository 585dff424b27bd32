"""HTTP API package."""
from onduty.api.requests import router as requests_router
from onduty.api.users import router as users_router, auth_router
from onduty.api.errors import register_exception_handlers

__all__ = [
    "requests_router",
    "users_router",
    "auth_router",
    "register_exception_handlers",
]
