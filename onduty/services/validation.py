"""Checks applied to a new request before it is stored, locally or remotely."""
from typing import Any, Callable, Dict, Optional

from onduty.config import settings
from onduty.exceptions import InvalidAssignmentError, MissingFieldError, ValidationError
from onduty.models.user import UserRole


INSTRUCTOR_ROLES = (UserRole.INSTRUCTOR, UserRole.ADMIN)


def attachment_size(image_url: Optional[str]) -> int:
    """Decoded size in bytes of an inline ``data:...;base64,`` attachment."""
    if not image_url:
        return 0
    _, _, encoded = image_url.partition(",")
    if not encoded:
        encoded = image_url
    encoded = encoded.strip()
    padding = len(encoded) - len(encoded.rstrip("="))
    return max(len(encoded) * 3 // 4 - padding, 0)


def validate_new_request(
    fields: Dict[str, Any],
    find_user: Callable[[str], Any],
    max_image_bytes: Optional[int] = None
) -> None:
    """
    Validate the fields of a request about to be created.

    Args:
        fields: Request attributes keyed by snake_case name
        find_user: Lookup returning a user-like object or None for an id
        max_image_bytes: Attachment limit, defaults to the configured one

    Raises:
        MissingFieldError: If date, reason or instructor is missing
        InvalidAssignmentError: If a reviewer has the wrong role or does not exist
        ValidationError: If the attachment is too large
    """
    if not fields.get("date"):
        raise MissingFieldError("date")
    if not fields.get("reason"):
        raise MissingFieldError("reason")
    if not fields.get("instructor_id"):
        raise MissingFieldError("instructorId")

    instructor = find_user(fields["instructor_id"])
    if instructor is None or UserRole(instructor.role) not in INSTRUCTOR_ROLES:
        raise InvalidAssignmentError(
            "instructorId", fields["instructor_id"], [r.value for r in INSTRUCTOR_ROLES]
        )

    manager_id = fields.get("manager_id")
    if manager_id:
        manager = find_user(manager_id)
        if manager is None or UserRole(manager.role) != UserRole.MANAGER:
            raise InvalidAssignmentError("managerId", manager_id, [UserRole.MANAGER.value])

    limit = max_image_bytes if max_image_bytes is not None else settings.max_image_bytes
    if attachment_size(fields.get("image_url")) > limit:
        raise ValidationError(
            f"Image size must be less than {limit // (1024 * 1024)}MB",
            error_code="ATTACHMENT_TOO_LARGE",
            details={"max_bytes": limit}
        )
