"""Status state machine for requests.

pending -> accepted | rejected | revoked. All three targets are terminal.
The functions here are pure: they check a proposed transition against a
request and an actor and return the patch to apply, leaving persistence to
the caller (the server's RequestService or the client's AppState).
"""
from datetime import datetime
from typing import Any, Dict, Optional

from onduty.exceptions import InvalidTransitionError
from onduty.models.base import as_naive_utc, utcnow
from onduty.models.request import RequestStatus
from onduty.services.access_control import Operation, authorize


# action -> (target status, guarded operation)
TRANSITIONS = {
    "accept": (RequestStatus.ACCEPTED, Operation.ACCEPT),
    "reject": (RequestStatus.REJECTED, Operation.REJECT),
    "revoke": (RequestStatus.REVOKED, Operation.REVOKE),
}


def plan_transition(
    request,
    actor,
    action: str,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Validate a transition and compute the fields it sets.

    Args:
        request: Request-like object being transitioned
        actor: User-like object performing the transition
        action: One of "accept", "reject", "revoke"
        now: Transition time, defaults to the current UTC time

    Returns:
        Patch with ``status``, ``handled_by`` and ``handled_at``

    Raises:
        ValueError: If the action is unknown
        InvalidTransitionError: If the request is not pending
        ForbiddenError: If the actor may not perform the action
    """
    if action not in TRANSITIONS:
        raise ValueError(f"Unknown transition: {action}")
    target, operation = TRANSITIONS[action]

    current = RequestStatus(request.status)
    if current.is_terminal:
        raise InvalidTransitionError(current.value, action)

    authorize(actor, operation, request)

    handled_at = as_naive_utc(now) if now is not None else utcnow()
    created_at = as_naive_utc(request.created_at)
    # Clock skew between client and server must not put handledAt first
    if created_at is not None and handled_at < created_at:
        handled_at = created_at

    return {
        "status": target,
        "handled_by": actor.name,
        "handled_at": handled_at,
    }
