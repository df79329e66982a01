"""
Platform-wide exception hierarchy.

Services raise these; the app factory registers one handler per type so
every blueprint gets the same HTTP status codes.

Usage:
    from ideaboard.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Idea", resource_id=idea_id)
    raise ValidationError("Title is required", details={"title": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist for the current user.

    Used for BOTH genuinely missing rows AND rows owned by another user, so a
    caller cannot probe for the existence of someone else's ideas.

    Args:
        resource: Human-readable model/entity name (e.g. "Idea", "Milestone").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
        user_id: Optional - the owner scope that was enforced. For debug logging only.
    """

    def __init__(
        self,
        resource: str,
        resource_id: str | None = None,
        user_id: str | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.user_id = user_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if user_id is not None:
            msg += f" (user={user_id})"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails validation before any write is attempted.

    Maps to HTTP 400.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    status_code = 400

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class BusinessRuleError(ValidationError):
    """Well-formed input that violates a workflow rule (e.g. a disallowed
    milestone transition). Maps to HTTP 422."""

    status_code = 422


class ConflictError(Exception):
    """Raised when an operation would violate a uniqueness rule.

    Maps to HTTP 409.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class StoreError(Exception):
    """Raised when the database rejects or fails a write.

    The session has already been rolled back when this is raised. Maps to
    HTTP 500; the message is safe to show to the user.
    """

    def __init__(self, message: str = "Database error", *, operation: str | None = None) -> None:
        self.operation = operation
        super().__init__(message)
