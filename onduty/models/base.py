"""Column helpers shared by the ORM models."""
from datetime import datetime, timezone
import enum

from sqlalchemy import Enum


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def value_enum(enum_cls: type) -> Enum:
    """Enum column that stores member values ("pending") instead of names ("PENDING")."""
    return Enum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [member.value for member in members]
    )


class StrEnum(str, enum.Enum):
    """String enumeration whose str() is its value."""
    
    def __str__(self) -> str:
        return self.value


def as_naive_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC, leaving naive values untouched."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value
