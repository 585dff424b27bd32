"""Demo accounts and a sample request, one per role."""
import datetime as dt
import logging
from typing import List

from sqlalchemy.orm import Session

from onduty.exceptions import DuplicateEmailError, ValidationError
from onduty.models.base import utcnow
from onduty.models.request import Request, RequestStatus, Shift
from onduty.models.user import UserRole
from onduty.schemas import RequestRecord, UserRecord
from onduty.services.auth_service import AuthService
from onduty.services.entity_store import RequestStore


logger = logging.getLogger(__name__)

DEFAULT_USERS = [
    {"id": "admin-1", "name": "Admin User", "email": "admin@company.local", "password": "admin", "role": UserRole.ADMIN},
    {"id": "instructor-1", "name": "Sarah Chen", "email": "sarah@company.local", "password": "instructor", "role": UserRole.INSTRUCTOR},
    {"id": "manager-1", "name": "Priya Singh", "email": "priya@company.local", "password": "manager", "role": UserRole.MANAGER},
    {"id": "student-1", "name": "Alex Johnson", "email": "alex@company.local", "password": "student", "role": UserRole.STUDENT},
]

SAMPLE_REQUEST = {
    "id": "req-1",
    "user_id": "student-1",
    "user_name": "Alex Johnson",
    "date": dt.date(2024, 1, 15),
    "shift": "morning",
    "reason": "Medical appointment",
    "instructor_id": "instructor-1",
    "instructor_name": "Sarah Chen",
}


def seed_users(existing: List[UserRecord]) -> List[UserRecord]:
    """
    Add a demo account for every role missing from ``existing``.

    Returns:
        The combined user list (``existing`` is not modified)
    """
    users = list(existing)
    present_roles = {UserRole(u.role) for u in users}
    for account in DEFAULT_USERS:
        if account["role"] in present_roles:
            continue
        users.append(UserRecord(
            id=account["id"],
            name=account["name"],
            email=account["email"],
            role=account["role"],
            created_at=utcnow(),
            password_hash=AuthService.hash_password(account["password"])
        ))
    return users


def seed_requests(existing: List[RequestRecord]) -> List[RequestRecord]:
    """Return ``existing``, or the sample request when there are none."""
    if existing:
        return list(existing)
    return [RequestRecord(created_at=utcnow(), **SAMPLE_REQUEST)]


def seed_database(db: Session) -> int:
    """
    Create the demo accounts and the sample request in the database,
    skipping ones already there.

    Returns:
        Number of accounts created
    """
    auth_service = AuthService(db)
    created = 0
    for account in DEFAULT_USERS:
        try:
            auth_service.register_user(
                name=account["name"],
                email=account["email"],
                password=account["password"],
                role=account["role"],
                user_id=account["id"]
            )
            created += 1
        except (DuplicateEmailError, ValidationError) as e:
            logger.info(f"Skipping demo user {account['id']}: {e.message}")
    seed_sample_request(db)
    return created


def seed_sample_request(db: Session) -> bool:
    """
    Store the sample pending request under its fixed id, so that clients
    seeded with it refer to the same row.

    Returns:
        True if the request was created, False if it already existed
    """
    if db.get(Request, SAMPLE_REQUEST["id"]) is not None:
        return False

    RequestStore(db).create({
        **SAMPLE_REQUEST,
        "shift": Shift(SAMPLE_REQUEST["shift"]),
        "status": RequestStatus.PENDING,
        "created_at": utcnow(),
    })
    logger.info(f"Seeded sample request {SAMPLE_REQUEST['id']}")
    return True
