"""User model for students, reviewers and administrators."""
from sqlalchemy import Column, String, DateTime

from onduty.database import Base
from onduty.models.base import StrEnum, utcnow, value_enum


class UserRole(StrEnum):
    """User role enumeration."""
    STUDENT = "student"
    INSTRUCTOR = "instructor"
    MANAGER = "manager"
    ADMIN = "admin"


class User(Base):
    """User model. The role is fixed at creation."""
    
    __tablename__ = "users"
    
    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(value_enum(UserRole), nullable=False, default=UserRole.STUDENT)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    
    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
    
    def validate(self) -> None:
        """Validate user data."""
        if not self.id:
            raise ValueError("User ID is required")
        if not self.name:
            raise ValueError("Name is required")
        if not self.email:
            raise ValueError("Email is required")
        if not self.password_hash:
            raise ValueError("Password hash is required")
        if not self.role:
            raise ValueError("Role is required")
