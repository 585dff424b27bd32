"""Request model for shift-change and leave applications."""
from sqlalchemy import Column, String, Date, DateTime, Text

from onduty.database import Base
from onduty.models.base import StrEnum, utcnow, value_enum


class RequestStatus(StrEnum):
    """Request status enumeration."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    REVOKED = "revoked"
    
    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.PENDING


class Shift(StrEnum):
    """Shift the request applies to."""
    MORNING = "morning"
    AFTERNOON = "afternoon"
    NIGHT = "night"


class Request(Base):
    """Request model. Requester and creation time never change after insert."""
    
    __tablename__ = "requests"
    
    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    user_name = Column(String(255), nullable=False)
    date = Column(Date, nullable=False, index=True)
    shift = Column(value_enum(Shift), nullable=False, default=Shift.MORNING)
    reason = Column(Text, nullable=False)
    instructor_id = Column(String(64), nullable=False, index=True)
    instructor_name = Column(String(255), nullable=True)
    manager_id = Column(String(64), nullable=True, index=True)
    manager_name = Column(String(255), nullable=True)
    status = Column(value_enum(RequestStatus), nullable=False, default=RequestStatus.PENDING, index=True)
    image_url = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    handled_by = Column(String(255), nullable=True)
    handled_at = Column(DateTime, nullable=True)
    
    def __repr__(self) -> str:
        return f"<Request(id={self.id}, user_id={self.user_id}, date={self.date}, status={self.status})>"
    
    def validate(self) -> None:
        """Validate request data."""
        if not self.id:
            raise ValueError("Request ID is required")
        if not self.user_id:
            raise ValueError("User ID is required")
        if not self.date:
            raise ValueError("Date is required")
        if not self.shift:
            raise ValueError("Shift is required")
        if not self.reason:
            raise ValueError("Reason is required")
        if not self.instructor_id:
            raise ValueError("Instructor ID is required")
        if not self.status:
            raise ValueError("Status is required")
        
        # handled_by and handled_at are set together or not at all
        if (self.handled_by is None) != (self.handled_at is None):
            raise ValueError("handledBy and handledAt must be set together")
        if self.status != RequestStatus.PENDING and self.handled_by is None:
            raise ValueError("Handled requests must record who handled them")
        if self.status == RequestStatus.PENDING and self.handled_by is not None:
            raise ValueError("Pending requests cannot record a handler")
