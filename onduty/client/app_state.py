"""Client application state: session, users and requests.

``AppState`` is the composition root of the client. It owns the logged-in
user and a Reconciler, and routes every action through the access-control
gate and the lifecycle engine before anything is written.
"""
import datetime as dt
import logging
import uuid
from typing import Any, Dict, List, Optional

from onduty.client.local_cache import JsonFileCache, LocalCache
from onduty.client.outbox import SyncOutbox
from onduty.client.reconciler import Reconciler, is_temporary_id
from onduty.client.remote_store import RemoteStore
from onduty.config import settings
from onduty.exceptions import (
    DuplicateEmailError,
    ForbiddenError,
    InvalidCredentialsError,
    MissingFieldError,
    NotFoundError,
    RemoteUnavailableError,
)
from onduty.models.base import utcnow
from onduty.models.request import RequestStatus, Shift
from onduty.models.user import UserRole
from onduty.schemas import RequestRecord, UserOut, UserRecord
from onduty.seed import seed_requests, seed_users
from onduty.services.access_control import (
    Operation,
    authorize,
    filter_by_status,
    is_allowed,
    visible_requests,
)
from onduty.services.auth_service import AuthService
from onduty.services.lifecycle import plan_transition
from onduty.services.validation import INSTRUCTOR_ROLES, validate_new_request


logger = logging.getLogger(__name__)

# How many requests the dashboards show as "recent"
RECENT_LIMITS = {
    UserRole.STUDENT: 5,
    UserRole.MANAGER: 8,
}


def new_user_id() -> str:
    return f"u_{uuid.uuid4().hex[:12]}"


class AppState:
    """Session-scoped state of one client."""

    def __init__(
        self,
        cache: LocalCache,
        remote: Optional[RemoteStore] = None,
        outbox: Optional[SyncOutbox] = None,
        seed: bool = True
    ):
        """
        Args:
            cache: Local blob store
            remote: Remote store, or None to run purely locally
            outbox: Outbox for remote sync tasks (a fresh one by default)
            seed: Add demo accounts and a sample request to an empty cache
        """
        self.reconciler = Reconciler(cache, remote, outbox)
        self.seed = seed
        self.current_user: Optional[UserRecord] = None
        self.sync_worker = None

    @classmethod
    def from_settings(cls, start_worker: bool = True) -> "AppState":
        """Build a state backed by a file cache and the configured backend."""
        from onduty.scheduler import SyncWorker

        state = cls(
            cache=JsonFileCache(settings.local_cache_dir),
            remote=RemoteStore(settings.api_base_url, timeout=settings.remote_timeout)
        )
        if start_worker:
            state.sync_worker = SyncWorker(state.outbox)
            state.sync_worker.start()
        state.start()
        return state

    def close(self) -> None:
        if self.sync_worker is not None:
            self.sync_worker.stop()
        if self.reconciler.remote is not None:
            self.reconciler.remote.close()

    # ------------------------------------------------------------------
    # Startup and views
    # ------------------------------------------------------------------

    @property
    def outbox(self) -> SyncOutbox:
        return self.reconciler.outbox

    @property
    def users(self) -> List[UserRecord]:
        return list(self.reconciler.users)

    @property
    def requests(self) -> List[RequestRecord]:
        return list(self.reconciler.requests)

    @property
    def directory(self) -> List[UserOut]:
        """Users known to the remote store as of the last refresh."""
        return list(self.reconciler.directory)

    def remote_status(self) -> Dict[str, Any]:
        """
        Whether the remote store answers, with its health payload and user count.

        Returns:
            ``online`` plus the health payload, or the failure reason
        """
        if self.reconciler.remote is None:
            return {"online": False, "reason": "no remote store configured"}
        try:
            health = self.reconciler.remote.check_health()
        except RemoteUnavailableError as e:
            logger.warning(f"Remote health check failed: {e.message}")
            return {"online": False, "reason": e.details.get("reason")}
        return {"online": True, "health": health, "users": len(self.directory)}

    def start(self) -> None:
        """
        Make the state usable immediately from the local cache, then queue
        the remote refresh.
        """
        self.reconciler.load_local()

        if self.seed:
            users = seed_users(self.reconciler.users)
            if len(users) != len(self.reconciler.users):
                self.reconciler.replace_users(users)
            if not self.reconciler.requests:
                self.reconciler.replace_requests(seed_requests([]))

        session_id = self.reconciler.cache.get_session()
        if session_id:
            self.current_user = self.reconciler.find_user(session_id)

        if self.reconciler.remote is not None:
            self.reconciler.schedule_refresh()

    def get_request(self, request_id: str) -> RequestRecord:
        return self.reconciler.get_request(request_id)

    def visible_requests(self, status: Optional[str] = None) -> List[RequestRecord]:
        """Requests the current user may see, newest first, optionally by status."""
        return filter_by_status(visible_requests(self.current_user, self.requests), status)

    def can(self, operation: Operation, request_id: Optional[str] = None) -> bool:
        """Whether the current user may perform ``operation`` (for showing actions)."""
        request = self.get_request(request_id) if request_id else None
        return is_allowed(self.current_user, operation, request)

    def instructor_choices(self) -> List[UserRecord]:
        return [u for u in self.users if u.role in INSTRUCTOR_ROLES]

    def manager_choices(self) -> List[UserRecord]:
        return [u for u in self.users if u.role == UserRole.MANAGER]

    def dashboard_summary(self) -> Dict[str, Any]:
        """
        Counts and recent requests for the current user's dashboard.

        Instructors and admins get their pending queue as ``recent``;
        students and managers get their newest requests.
        """
        if self.current_user is None:
            raise ForbiddenError(str(Operation.LIST), None)

        visible = self.visible_requests()
        counts = {status.value: 0 for status in RequestStatus}
        for request in visible:
            counts[request.status.value] += 1

        role = self.current_user.role
        if role in INSTRUCTOR_ROLES:
            recent = [r for r in visible if r.status == RequestStatus.PENDING]
        else:
            recent = visible[:RECENT_LIMITS[role]]

        return {
            "role": role.value,
            "counts": counts,
            "total": len(visible),
            "unsynced": sum(1 for r in visible if is_temporary_id(r.id)),
            "recent": recent,
        }

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def register(
        self,
        name: str,
        email: str,
        password: str,
        role: UserRole = UserRole.STUDENT
    ) -> UserRecord:
        """
        Create an account locally, log it in, and queue remote registration.

        Raises:
            MissingFieldError: If name, email or password is empty
            DuplicateEmailError: If a local user already has the email
        """
        if not name:
            raise MissingFieldError("name")
        if not email:
            raise MissingFieldError("email")
        if not password:
            raise MissingFieldError("password")
        if self.reconciler.find_user_by_email(email) is not None:
            raise DuplicateEmailError(email)

        user = UserRecord(
            id=new_user_id(),
            name=name,
            email=email,
            role=UserRole(role),
            created_at=utcnow(),
            password_hash=AuthService.hash_password(password)
        )
        self.reconciler.add_user(user, password)
        self._set_session(user)
        logger.info(f"Registered {user.role.value} {user.id}")
        return user

    def login(self, email: str, password: str) -> UserRecord:
        """
        Raises:
            InvalidCredentialsError: If no local user matches
        """
        user = self.reconciler.find_user_by_email(email)
        if user is None or not AuthService.verify_password(password, user.password_hash):
            raise InvalidCredentialsError()
        self._set_session(user)
        return user

    def logout(self) -> None:
        self.reconciler.cache.clear_session()
        self.current_user = None

    def delete_account(self) -> None:
        """Remove the current user's account and end the session."""
        user = self._require_user(Operation.DELETE)
        self.reconciler.remove_user(user.id)
        self.logout()

    def _set_session(self, user: UserRecord) -> None:
        self.reconciler.cache.set_session(user.id)
        self.current_user = user

    def _require_user(self, operation: Operation) -> UserRecord:
        if self.current_user is None:
            raise ForbiddenError(str(operation), None)
        return self.current_user

    def _actor(self, acting_user_id: Optional[str], operation: Operation) -> UserRecord:
        """The acting user: an explicit id, or the logged-in user."""
        if acting_user_id is None:
            return self._require_user(operation)
        actor = self.reconciler.find_user(acting_user_id)
        if actor is None:
            raise NotFoundError("user", acting_user_id)
        return actor

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def create_request(
        self,
        date: Optional[dt.date],
        reason: Optional[str],
        instructor_id: Optional[str],
        shift: Shift = Shift.MORNING,
        manager_id: Optional[str] = None,
        image_url: Optional[str] = None
    ) -> RequestRecord:
        """
        Submit a request as the logged-in student.

        The request is visible locally at once under a temporary id; the
        remote create happens in the background.

        Raises:
            ForbiddenError: If nobody is logged in or the user is not a student
            MissingFieldError: If date, reason or instructor is missing
            InvalidAssignmentError: If a reviewer has the wrong role
            ValidationError: If the attachment is too large
        """
        user = self._require_user(Operation.CREATE)
        authorize(user, Operation.CREATE)

        fields = {
            "date": date,
            "reason": reason,
            "instructor_id": instructor_id,
            "manager_id": manager_id,
            "image_url": image_url,
        }
        validate_new_request(fields, self.reconciler.find_user)

        instructor = self.reconciler.find_user(instructor_id)
        manager = self.reconciler.find_user(manager_id) if manager_id else None

        record = RequestRecord(
            id=self.reconciler.next_temp_id(),
            user_id=user.id,
            user_name=user.name,
            date=date,
            shift=Shift(shift),
            reason=reason,
            instructor_id=instructor.id,
            instructor_name=instructor.name,
            manager_id=manager.id if manager else None,
            manager_name=manager.name if manager else None,
            status=RequestStatus.PENDING,
            image_url=image_url,
            created_at=utcnow(),
        )
        return self.reconciler.add_request(record)

    def _transition(self, request_id: str, acting_user_id: Optional[str], action: str) -> RequestRecord:
        request = self.get_request(request_id)
        actor = self._actor(acting_user_id, Operation(action))
        patch = plan_transition(request, actor, action)
        updated = self.reconciler.update_request(request_id, patch)
        logger.info(f"Request {request_id} {updated.status.value} by {actor.name}")
        return updated

    def accept(self, request_id: str, acting_user_id: Optional[str] = None) -> RequestRecord:
        """
        Raises:
            NotFoundError: If the request or acting user is unknown
            InvalidTransitionError: If the request is not pending
            ForbiddenError: If the actor is not an assigned reviewer or admin
        """
        return self._transition(request_id, acting_user_id, "accept")

    def reject(self, request_id: str, acting_user_id: Optional[str] = None) -> RequestRecord:
        """Same contract as ``accept``."""
        return self._transition(request_id, acting_user_id, "reject")

    def revoke(self, request_id: str, acting_user_id: Optional[str] = None) -> RequestRecord:
        """
        Withdraw a pending request; only its requester may.

        Raises:
            NotFoundError: If the request or acting user is unknown
            InvalidTransitionError: If the request is not pending
            ForbiddenError: If the actor is not the requester
        """
        return self._transition(request_id, acting_user_id, "revoke")

    def delete_request(self, request_id: str, acting_user_id: Optional[str] = None) -> None:
        """
        Remove a request in any state. There is no undo.

        Raises:
            NotFoundError: If the request or acting user is unknown
            ForbiddenError: If the actor may not delete it
        """
        request = self.get_request(request_id)
        actor = self._actor(acting_user_id, Operation.DELETE)
        authorize(actor, Operation.DELETE, request)
        self.reconciler.remove_request(request_id)
        logger.info(f"Request {request_id} deleted by {actor.name}")
