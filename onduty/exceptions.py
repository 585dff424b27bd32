"""Custom exceptions and error handling for the OnDuty request workflow.

Every domain error carries a user-facing message, a machine-readable error
code and optional details, and knows the HTTP status it maps to.
"""
from typing import Optional, Dict, Any


class OnDutyError(Exception):
    """Base class for domain errors with user-friendly messages."""

    status_code = 400

    def __init__(self, message: str, error_code: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize domain error.

        Args:
            message: User-friendly error message
            error_code: Machine-readable error code
            details: Optional additional error details
        """
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary format for API responses.

        Returns:
            Dictionary with error information
        """
        return {
            "success": False,
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


class ValidationError(OnDutyError):
    """Error raised when input fails validation."""

    status_code = 400

    def __init__(self, message: str, error_code: str = "VALIDATION_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, error_code=error_code, details=details)


class MissingFieldError(ValidationError):
    """Error raised when a required field is missing."""

    def __init__(self, field_name: str):
        """
        Initialize missing field error.

        Args:
            field_name: Name of the missing field
        """
        prompts = {
            "date": "Pick a date",
            "reason": "Write a reason",
            "instructorId": "Select an instructor",
            "name": "Name is required",
            "email": "Email is required",
            "password": "Password is required"
        }

        super().__init__(
            message=prompts.get(field_name, f"{field_name} is required"),
            error_code="MISSING_FIELD",
            details={"field_name": field_name}
        )


class DuplicateEmailError(ValidationError):
    """Error raised when registering an email that is already in use."""

    def __init__(self, email: str):
        super().__init__(
            message="Email already used",
            error_code="DUPLICATE_EMAIL",
            details={"email": email}
        )


class InvalidAssignmentError(ValidationError):
    """Error raised when a request names a reviewer with the wrong role."""

    def __init__(self, field_name: str, user_id: str, expected_roles: list):
        """
        Initialize invalid assignment error.

        Args:
            field_name: Field holding the reviewer id (instructorId or managerId)
            user_id: The referenced user id
            expected_roles: Roles the referenced user may have
        """
        message = (
            f"{field_name} must reference a user with role "
            f"{' or '.join(expected_roles)}"
        )
        super().__init__(
            message=message,
            error_code="INVALID_ASSIGNMENT",
            details={
                "field_name": field_name,
                "user_id": user_id,
                "expected_roles": expected_roles
            }
        )


class InvalidCredentialsError(ValidationError):
    """Error raised when login fails."""

    def __init__(self):
        super().__init__(
            message="Invalid email or password",
            error_code="INVALID_CREDENTIALS"
        )


class NotFoundError(OnDutyError):
    """Error raised when a requested resource is not found."""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        """
        Initialize not found error.

        Args:
            resource_type: Type of resource (e.g., "user", "request")
            resource_id: ID of the resource
        """
        super().__init__(
            message=f"{resource_type.capitalize()} not found (ID: {resource_id})",
            error_code="NOT_FOUND",
            details={
                "resource_type": resource_type,
                "resource_id": resource_id
            }
        )


class InvalidTransitionError(OnDutyError):
    """Error raised when attempting a status transition out of a terminal state."""

    status_code = 409

    def __init__(self, current_status: str, attempted_action: str):
        """
        Initialize invalid transition error.

        Args:
            current_status: Current status of the request
            attempted_action: Action that was attempted (accept, reject, revoke)
        """
        message = (
            f"This request has already been handled (status: {current_status}). "
            f"Only pending requests can be {attempted_action}ed."
        )
        super().__init__(
            message=message,
            error_code="INVALID_TRANSITION",
            details={
                "current_status": current_status,
                "attempted_action": attempted_action
            }
        )


class ForbiddenError(OnDutyError):
    """Error raised when the acting user may not perform an operation."""

    status_code = 403

    def __init__(self, operation: str, user_id: Optional[str], request_id: Optional[str] = None):
        details = {"operation": operation, "user_id": user_id}
        if request_id is not None:
            details["request_id"] = request_id
        super().__init__(
            message=f"You are not allowed to {operation} this request",
            error_code="FORBIDDEN",
            details=details
        )


class RemoteUnavailableError(OnDutyError):
    """Error raised when the remote store cannot be reached or fails.

    Never surfaced to the interactive caller: the reconciler catches it and
    keeps working against the local cache.
    """

    status_code = 503

    def __init__(self, operation: str, reason: str):
        super().__init__(
            message=f"Remote store unavailable during {operation}: {reason}",
            error_code="REMOTE_UNAVAILABLE",
            details={"operation": operation, "reason": reason}
        )


def format_error_for_api(error: OnDutyError) -> Dict[str, Any]:
    """
    Format domain error for API response.

    Args:
        error: Domain error to format

    Returns:
        Dictionary suitable for JSON API response
    """
    return error.to_dict()
