"""Pydantic records for users and requests.

These are the shapes that cross every boundary: REST bodies, the local cache
blobs and the client's working sets. Keys are camelCase on the wire and
snake_case in Python.
"""
import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from onduty.models.user import UserRole
from onduty.models.request import RequestStatus, Shift


class RecordModel(BaseModel):
    """Base record with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_wire(self) -> dict:
        """Serialize to a JSON-compatible dict using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class UserOut(RecordModel):
    id: str
    name: str
    email: str
    role: UserRole
    created_at: Optional[dt.datetime] = None


class UserRecord(UserOut):
    """User as held by the client, including the credential hash."""

    password_hash: Optional[str] = None


class UserCreate(RecordModel):
    id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: UserRole = UserRole.STUDENT


class UserUpdate(RecordModel):
    """Patch for a user. Role is deliberately absent: it cannot change."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginPayload(RecordModel):
    email: str
    password: str


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class RequestRecord(RecordModel):
    id: str
    user_id: str
    user_name: str
    date: dt.date
    shift: Shift = Shift.MORNING
    reason: str
    instructor_id: str
    instructor_name: Optional[str] = None
    manager_id: Optional[str] = None
    manager_name: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING
    image_url: Optional[str] = None
    created_at: dt.datetime
    handled_by: Optional[str] = None
    handled_at: Optional[dt.datetime] = None

    @model_validator(mode="after")
    def check_handled_pair(self) -> "RequestRecord":
        if (self.handled_by is None) != (self.handled_at is None):
            raise ValueError("handledBy and handledAt must be set together")
        return self


class RequestCreate(RecordModel):
    """Body of POST /requests.

    Required fields are optional here so that the service can report the
    missing one with a friendly message. Client-side ids, status and handler
    fields are accepted and ignored.
    """

    user_id: Optional[str] = None
    user_name: Optional[str] = None
    date: Optional[dt.date] = None
    shift: Shift = Shift.MORNING
    reason: Optional[str] = None
    instructor_id: Optional[str] = None
    instructor_name: Optional[str] = None
    manager_id: Optional[str] = None
    manager_name: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[dt.datetime] = None


class RequestUpdate(RecordModel):
    """Body of PUT /requests/{id}. Requester, id and createdAt are not patchable."""

    model_config = ConfigDict(extra="forbid")

    date: Optional[dt.date] = None
    shift: Optional[Shift] = None
    reason: Optional[str] = None
    instructor_id: Optional[str] = None
    instructor_name: Optional[str] = None
    manager_id: Optional[str] = None
    manager_name: Optional[str] = None
    status: Optional[RequestStatus] = None
    image_url: Optional[str] = None
    handled_by: Optional[str] = None
    handled_at: Optional[dt.datetime] = None


class ActorPayload(RecordModel):
    actor_id: str
