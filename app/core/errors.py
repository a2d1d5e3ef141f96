"""
Application error taxonomy

Every failure that crosses the API boundary is one of these. Raw backend
exceptions are converted in the repository layer and never reach a client.
"""

from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for predictable, user-facing failures"""

    code = "APP_ERROR"
    status_code = 400
    default_message = "Request could not be completed"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """Missing or empty required field"""

    code = "VALIDATION_ERROR"
    status_code = 422
    default_message = "Some required fields are missing or empty"


class NotFoundError(AppError):
    """Event, course, photo or user is absent"""

    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"

    def __init__(self, resource: str = "Resource", details: Optional[Dict[str, Any]] = None):
        super().__init__(f"{resource} not found", details)


class PermissionDenied(AppError):
    """Caller is not allowed to perform the action"""

    code = "PERMISSION_DENIED"
    status_code = 403
    default_message = "Only the organizer can perform this action"


class InvalidCredentials(AppError):
    """Wrong join password, unknown event or malformed invitation"""

    code = "INVALID_CREDENTIALS"
    status_code = 401
    default_message = "Invalid event code or password"


class DecodeError(InvalidCredentials):
    """Invitation token could not be decoded"""

    code = "INVALID_INVITATION"
    default_message = "Invalid invitation code"


class InvalidTransition(AppError):
    """Illegal change of event status"""

    code = "INVALID_TRANSITION"
    status_code = 409
    default_message = "This change is not allowed for the event in its current state"


class BackendUnavailable(AppError):
    """Storage, push or network failure"""

    code = "BACKEND_UNAVAILABLE"
    status_code = 503
    default_message = "Service temporarily unavailable. Please try again."

    def __init__(self, message: Optional[str] = None, step: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if step:
            details["step"] = step
        super().__init__(message, details)
        self.step = step
