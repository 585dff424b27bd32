"""Role-based access control for request operations.

Every mutating and listing operation asks this module whether the acting
user may proceed. Nothing here is cached: decisions are recomputed from the
current actor and request each time.
"""
from typing import Iterable, List, Optional

from onduty.exceptions import ForbiddenError
from onduty.models.base import StrEnum
from onduty.models.request import RequestStatus
from onduty.models.user import UserRole


class Operation(StrEnum):
    """Operations guarded by the gate."""
    CREATE = "create"
    ACCEPT = "accept"
    REJECT = "reject"
    REVOKE = "revoke"
    DELETE = "delete"
    LIST = "list"


REVIEWER_ROLES = frozenset({UserRole.INSTRUCTOR, UserRole.ADMIN, UserRole.MANAGER})

# Roles that may see every request
SUPERVISOR_ROLES = frozenset({UserRole.INSTRUCTOR, UserRole.ADMIN})


def is_allowed(actor, operation: Operation, request=None) -> bool:
    """
    Decide whether ``actor`` may perform ``operation`` on ``request``.

    Args:
        actor: User-like object with ``id`` and ``role``
        operation: Operation being attempted
        request: Request-like object (not needed for CREATE and LIST)

    Returns:
        True if the operation is allowed
    """
    if actor is None:
        return False

    role = UserRole(actor.role)

    if operation == Operation.CREATE:
        return role == UserRole.STUDENT

    if operation == Operation.LIST:
        return request is None or can_view(actor, request)

    if request is None:
        return False

    if operation in (Operation.ACCEPT, Operation.REJECT):
        if role not in REVIEWER_ROLES:
            return False
        return (
            request.instructor_id == actor.id
            or request.manager_id == actor.id
            or role == UserRole.ADMIN
        )

    if operation == Operation.REVOKE:
        return request.user_id == actor.id and request.status == RequestStatus.PENDING

    if operation == Operation.DELETE:
        return role in REVIEWER_ROLES or request.user_id == actor.id

    return False


def authorize(actor, operation: Operation, request=None) -> None:
    """
    Raise ForbiddenError unless ``actor`` may perform ``operation``.

    Raises:
        ForbiddenError: If the operation is denied
    """
    if not is_allowed(actor, operation, request):
        raise ForbiddenError(
            str(operation),
            getattr(actor, "id", None),
            getattr(request, "id", None)
        )


def can_view(actor, request) -> bool:
    """Visibility rule behind the list filter."""
    role = UserRole(actor.role)
    if role in SUPERVISOR_ROLES:
        return True
    if role == UserRole.MANAGER:
        return request.manager_id == actor.id
    return request.user_id == actor.id


def visible_requests(actor, requests: Iterable) -> List:
    """
    Filter ``requests`` down to what ``actor`` may see, preserving order.

    Args:
        actor: User-like object, or None for an anonymous viewer
        requests: Request-like objects

    Returns:
        Visible requests (empty for an anonymous viewer)
    """
    if actor is None:
        return []
    return [r for r in requests if can_view(actor, r)]


def filter_by_status(requests: Iterable, status: Optional[str] = None) -> List:
    """Apply the list view's status filter; ``None`` or ``"all"`` keeps everything."""
    if not status or status == "all":
        return list(requests)
    wanted = RequestStatus(status)
    return [r for r in requests if r.status == wanted]
