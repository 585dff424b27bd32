"""Durable CRUD over users and requests."""
import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from onduty.exceptions import (
    DuplicateEmailError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from onduty.models.request import Request, RequestStatus
from onduty.models.user import User


logger = logging.getLogger(__name__)


class RequestStore:
    """Entity store for requests, newest created first."""

    # Never written after insert
    IMMUTABLE_FIELDS = frozenset({"id", "user_id", "user_name", "created_at"})
    HANDLING_FIELDS = frozenset({"status", "handled_by", "handled_at"})
    STATUS_ACTIONS = {
        RequestStatus.PENDING: "reopen",
        RequestStatus.ACCEPTED: "accept",
        RequestStatus.REJECTED: "reject",
        RequestStatus.REVOKED: "revoke",
    }

    def __init__(self, db: Session):
        self.db = db

    def create(self, payload: Dict[str, Any]) -> Request:
        """
        Insert a request. An identifier is assigned unless the payload has one.

        Args:
            payload: Column values keyed by attribute name

        Returns:
            The stored Request

        Raises:
            ValidationError: If the resulting row is inconsistent
        """
        request_id = payload.pop("id", None) or str(uuid.uuid4())
        request = Request(id=request_id, **payload)
        try:
            request.validate()
        except ValueError as e:
            raise ValidationError(str(e))

        self.db.add(request)
        self.db.commit()
        self.db.refresh(request)
        logger.info(f"Stored request {request.id} for user {request.user_id}")
        return request

    def get_by_id(self, request_id: str) -> Request:
        """
        Raises:
            NotFoundError: If no request has this id
        """
        request = self.db.get(Request, request_id)
        if request is None:
            raise NotFoundError("request", request_id)
        return request

    def list(
        self,
        manager_id: Optional[str] = None,
        status: Optional[RequestStatus] = None,
        user_id: Optional[str] = None
    ) -> List[Request]:
        query = self.db.query(Request)
        if manager_id:
            query = query.filter(Request.manager_id == manager_id)
        if status:
            query = query.filter(Request.status == status)
        if user_id:
            query = query.filter(Request.user_id == user_id)
        return query.order_by(Request.created_at.desc(), Request.id).all()

    def update(self, request_id: str, patch: Dict[str, Any]) -> Request:
        """
        Apply a partial update.

        Args:
            request_id: Request to update
            patch: Attribute values to set; immutable attributes are refused

        Returns:
            The updated Request

        Raises:
            NotFoundError: If no request has this id
            InvalidTransitionError: If the request is already handled and the
                patch touches its status or handler stamp
            ValidationError: If the patch touches an immutable field or
                leaves the request inconsistent (nothing is written)
        """
        request = self.get_by_id(request_id)

        touched = self.IMMUTABLE_FIELDS.intersection(patch)
        if touched:
            raise ValidationError(
                f"Cannot change {', '.join(sorted(touched))} after creation",
                error_code="IMMUTABLE_FIELD",
                details={"fields": sorted(touched)}
            )

        # Status and the handler stamp are written once, when leaving pending
        current = RequestStatus(request.status)
        if current.is_terminal and self.HANDLING_FIELDS.intersection(patch):
            attempted = RequestStatus(patch.get("status") or current)
            raise InvalidTransitionError(current.value, self.STATUS_ACTIONS[attempted])

        for key, value in patch.items():
            setattr(request, key, value)

        try:
            request.validate()
        except ValueError as e:
            self.db.rollback()
            raise ValidationError(str(e))

        self.db.commit()
        self.db.refresh(request)
        return request

    def delete(self, request_id: str) -> None:
        request = self.get_by_id(request_id)
        self.db.delete(request)
        self.db.commit()
        logger.info(f"Deleted request {request_id}")


class UserStore:
    """Entity store for users."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, payload: Dict[str, Any]) -> User:
        """
        Insert a user. A caller-supplied id is kept when it is free.

        Raises:
            DuplicateEmailError: If the email is taken
            ValidationError: If the id is taken or required data is missing
        """
        user_id = payload.pop("id", None) or str(uuid.uuid4())
        if self.db.get(User, user_id) is not None:
            raise ValidationError(
                f"User ID {user_id} is already registered",
                error_code="DUPLICATE_ID",
                details={"user_id": user_id}
            )
        if self.get_by_email(payload.get("email")) is not None:
            raise DuplicateEmailError(payload.get("email"))

        user = User(id=user_id, **payload)
        try:
            user.validate()
        except ValueError as e:
            raise ValidationError(str(e))

        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race on the unique email index
            self.db.rollback()
            raise DuplicateEmailError(payload.get("email"))
        self.db.refresh(user)
        return user

    def get_by_id(self, user_id: str) -> User:
        """
        Raises:
            NotFoundError: If no user has this id
        """
        user = self.db.get(User, user_id) if user_id else None
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    def get_by_email(self, email: Optional[str]) -> Optional[User]:
        if not email:
            return None
        return self.db.query(User).filter(User.email == email).first()

    def list(self) -> List[User]:
        return self.db.query(User).order_by(User.created_at.desc(), User.id).all()

    def update(self, user_id: str, patch: Dict[str, Any]) -> User:
        """
        Raises:
            NotFoundError: If no user has this id
            DuplicateEmailError: If the new email belongs to another user
        """
        user = self.get_by_id(user_id)

        new_email = patch.get("email")
        if new_email and new_email != user.email:
            if self.get_by_email(new_email) is not None:
                raise DuplicateEmailError(new_email)

        for key, value in patch.items():
            setattr(user, key, value)

        try:
            user.validate()
        except ValueError as e:
            self.db.rollback()
            raise ValidationError(str(e))

        self.db.commit()
        self.db.refresh(user)
        return user

    def delete(self, user_id: str) -> None:
        user = self.get_by_id(user_id)
        self.db.delete(user)
        self.db.commit()
        logger.info(f"Deleted user {user_id}")
