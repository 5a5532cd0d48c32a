"""Domain exceptions for the issue workflow.

Every failure that crosses the service boundary is a ``CampusFixError``
subclass carrying a human-readable ``message`` and a machine-readable
``error_type``. The HTTP layer renders them as problem responses.
"""

from datetime import datetime

from fastapi import status


class CampusFixError(Exception):
    """Base exception for workflow errors."""

    def __init__(self, message: str, error_type: str = "campusfix_error"):
        self.message = message
        self.error_type = error_type
        super().__init__(message)


class AuthorizationError(CampusFixError):
    """Raised when the actor's role does not permit the requested action."""

    def __init__(self, action: str, required_role: str | None = None, message: str | None = None):
        if message is None:
            message = (
                f"Only {required_role.lower()}s can {action}"
                if required_role
                else f"You are not allowed to {action}"
            )
        super().__init__(message, "authorization_error")
        self.action = action
        self.required_role = required_role


class InsufficientCredibilityError(AuthorizationError):
    """Raised when a student's credibility is below the bar for an action."""

    def __init__(self, action: str, required: int, actual: int):
        super().__init__(
            action,
            message=f"Insufficient credibility to {action}: {actual}/{required} required",
        )
        self.required = required
        self.actual = actual


class InvalidStateError(CampusFixError):
    """Raised when a transition's guard fails against the current status."""

    def __init__(self, current_status: str, action: str, allowed_from: list[str] | None = None):
        message = f"Cannot {action} an issue that is {current_status}"
        if allowed_from:
            message += f" (allowed from: {', '.join(allowed_from)})"
        super().__init__(message, "invalid_state")
        self.current_status = current_status
        self.action = action
        self.allowed_from = allowed_from or []


class DuplicateActionError(CampusFixError):
    """Raised when a user repeats a one-per-issue action."""

    def __init__(self, message: str):
        super().__init__(message, "duplicate_action")


class DuplicateSupportError(DuplicateActionError):
    """Raised when a user supports the same issue twice."""

    def __init__(self, issue_id: str):
        super().__init__("You have already supported this issue")
        self.issue_id = issue_id


class AlreadyActedError(DuplicateActionError):
    """Raised when a user contests or votes on the same issue twice."""

    def __init__(self, issue_id: str, action: str):
        super().__init__(f"You have already {action} this issue")
        self.issue_id = issue_id
        self.action = action


class WindowExpiredError(CampusFixError):
    """Raised when a contest or revalidation window has closed."""

    def __init__(self, window: str, closed_at: datetime, now: datetime):
        super().__init__(
            f"The {window} window closed {_describe_elapsed(now - closed_at)}",
            "window_expired",
        )
        self.window = window
        self.closed_at = closed_at


class ValidationError(CampusFixError):
    """Raised when required input is missing, empty or malformed."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, "validation_error")
        self.field = field


class NotFoundError(CampusFixError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity: str, identifier: str):
        super().__init__(f"{entity} '{identifier}' not found", "not_found")
        self.entity = entity
        self.identifier = identifier


class StaleStateError(CampusFixError):
    """Raised when the issue changed between read and write."""

    def __init__(self, issue_id: str):
        super().__init__(
            f"Issue '{issue_id}' was modified by someone else; reload it and try again",
            "stale_state",
        )
        self.issue_id = issue_id


def _describe_elapsed(delta) -> str:
    days = delta.days
    if days >= 1:
        return f"{days} day{'s' if days != 1 else ''} ago"
    hours = int(delta.total_seconds() // 3600)
    if hours >= 1:
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    return "just now"


STATUS_MAP: dict[str, int] = {
    "authorization_error": status.HTTP_403_FORBIDDEN,
    "invalid_state": status.HTTP_409_CONFLICT,
    "duplicate_action": status.HTTP_409_CONFLICT,
    "window_expired": status.HTTP_410_GONE,
    "validation_error": 422,
    "not_found": status.HTTP_404_NOT_FOUND,
    "stale_state": status.HTTP_409_CONFLICT,
    "campusfix_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def to_problem(error: CampusFixError) -> tuple[int, dict]:
    """Convert a CampusFixError into an HTTP status and problem body."""
    status_code = STATUS_MAP.get(error.error_type, status.HTTP_500_INTERNAL_SERVER_ERROR)
    body = {
        "type": error.error_type,
        "title": error.error_type.replace("_", " ").title(),
        "status": status_code,
        "detail": error.message,
    }
    field = getattr(error, "field", None)
    if field:
        body["field"] = field
    return status_code, body
