"""Request management service: creation, lifecycle transitions and removal."""
from sqlalchemy.orm import Session
from typing import Optional, List
import logging

from onduty.exceptions import MissingFieldError, NotFoundError
from onduty.models.base import as_naive_utc, utcnow
from onduty.models.request import Request, RequestStatus, Shift
from onduty.models.user import User
from onduty.services.access_control import Operation, authorize, visible_requests
from onduty.services.entity_store import RequestStore, UserStore
from onduty.services.lifecycle import plan_transition
from onduty.services.validation import validate_new_request


logger = logging.getLogger(__name__)


class RequestService:
    """Service for handling request operations."""

    def __init__(self, db: Session):
        """
        Initialize request service.

        Args:
            db: Database session
        """
        self.db = db
        self.requests = RequestStore(db)
        self.users = UserStore(db)

    def _find_user(self, user_id: str) -> Optional[User]:
        try:
            return self.users.get_by_id(user_id)
        except NotFoundError:
            return None

    def create_request(
        self,
        user_id: str,
        user_name: Optional[str],
        date,
        shift: Shift,
        reason: str,
        instructor_id: str,
        instructor_name: Optional[str] = None,
        manager_id: Optional[str] = None,
        manager_name: Optional[str] = None,
        image_url: Optional[str] = None,
        created_at=None
    ) -> Request:
        """
        Create a new pending request.

        The requester is taken at its word: requests recorded by a client
        while its user was unknown to the server are still accepted. Reviewer
        assignments are always checked.

        Args:
            user_id: ID of the requesting user
            user_name: Requester display name (looked up when omitted)
            date: Calendar day requested
            shift: Shift the request applies to
            reason: Free-text reason
            instructor_id: Assigned instructor (instructor or admin role)
            instructor_name: Instructor display name (looked up when omitted)
            manager_id: Optional assigned manager
            manager_name: Manager display name (looked up when omitted)
            image_url: Optional inline attachment
            created_at: Creation time recorded by the client, defaults to now

        Returns:
            Newly created Request object

        Raises:
            MissingFieldError: If date, reason, instructor or requester is missing
            InvalidAssignmentError: If a reviewer has the wrong role
            ValidationError: If the attachment is too large
        """
        fields = {
            "date": date,
            "reason": reason,
            "instructor_id": instructor_id,
            "manager_id": manager_id,
            "image_url": image_url,
        }
        validate_new_request(fields, self._find_user)

        if not user_id:
            raise MissingFieldError("userId")
        requester = self._find_user(user_id)
        if requester is not None:
            authorize(requester, Operation.CREATE)
            user_name = user_name or requester.name
        if not user_name:
            raise MissingFieldError("userName")

        instructor = self._find_user(instructor_id)
        manager = self._find_user(manager_id) if manager_id else None

        request = self.requests.create({
            "user_id": user_id,
            "user_name": user_name,
            "date": date,
            "shift": Shift(shift),
            "reason": reason,
            "instructor_id": instructor_id,
            "instructor_name": instructor_name or instructor.name,
            "manager_id": manager_id or None,
            "manager_name": (manager_name or manager.name) if manager else None,
            "status": RequestStatus.PENDING,
            "image_url": image_url,
            "created_at": as_naive_utc(created_at) or utcnow(),
            "handled_by": None,
            "handled_at": None,
        })
        logger.info(f"Request {request.id} created by {user_id} for {date} ({request.shift.value})")
        return request

    def get_request(self, request_id: str) -> Request:
        return self.requests.get_by_id(request_id)

    def update_request(self, request_id: str, patch: dict) -> Request:
        """
        Store-level patch, as forwarded by clients after a local change.

        Raises:
            NotFoundError: If the request does not exist
            InvalidTransitionError: If the request is already handled and the
                patch touches its status or handler stamp
            ValidationError: If the patch touches an immutable field or
                splits handledBy from handledAt
        """
        return self.requests.update(request_id, patch)

    def list_requests(
        self,
        manager_id: Optional[str] = None,
        status: Optional[RequestStatus] = None,
        viewer_id: Optional[str] = None
    ) -> List[Request]:
        """
        List requests newest first.

        Args:
            manager_id: Only requests assigned to this manager
            status: Only requests in this status
            viewer_id: Apply this user's visibility rules

        Raises:
            NotFoundError: If viewer_id does not name a user
        """
        requests = self.requests.list(manager_id=manager_id, status=status)
        if viewer_id:
            viewer = self.users.get_by_id(viewer_id)
            authorize(viewer, Operation.LIST)
            requests = visible_requests(viewer, requests)
        return requests

    def _transition(self, request_id: str, acting_user_id: str, action: str) -> Request:
        request = self.requests.get_by_id(request_id)
        actor = self.users.get_by_id(acting_user_id)

        patch = plan_transition(request, actor, action)
        updated = self.requests.update(request_id, patch)
        logger.info(f"Request {request_id} {updated.status.value} by {actor.name}")
        return updated

    def accept_request(self, request_id: str, acting_user_id: str) -> Request:
        """
        Accept a pending request.

        Raises:
            NotFoundError: If request or acting user not found
            InvalidTransitionError: If the request is not pending
            ForbiddenError: If the actor is not an assigned reviewer or admin
        """
        return self._transition(request_id, acting_user_id, "accept")

    def reject_request(self, request_id: str, acting_user_id: str) -> Request:
        """
        Reject a pending request.

        Raises:
            NotFoundError: If request or acting user not found
            InvalidTransitionError: If the request is not pending
            ForbiddenError: If the actor is not an assigned reviewer or admin
        """
        return self._transition(request_id, acting_user_id, "reject")

    def revoke_request(self, request_id: str, acting_user_id: str) -> Request:
        """
        Withdraw a pending request on behalf of its requester.

        Raises:
            NotFoundError: If request or acting user not found
            InvalidTransitionError: If the request is not pending
            ForbiddenError: If the actor is not the requester
        """
        return self._transition(request_id, acting_user_id, "revoke")

    def delete_request(self, request_id: str, acting_user_id: Optional[str] = None) -> None:
        """
        Remove a request in any state.

        Without an acting user this is the plain store delete used by the
        REST surface; with one, the gate decides first.

        Raises:
            NotFoundError: If request (or acting user) not found
            ForbiddenError: If the actor may not delete the request
        """
        request = self.requests.get_by_id(request_id)
        if acting_user_id is not None:
            actor = self.users.get_by_id(acting_user_id)
            authorize(actor, Operation.DELETE, request)
        self.requests.delete(request_id)
