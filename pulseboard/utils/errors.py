"""Error kinds raised by the time tracking services.

Every error is a ``ValueError`` so callers that only care about "the request
was rejected" can keep catching that. The HTTP layer maps each kind to its
``status_code`` through a single exception handler.
"""
from typing import Any, Optional


class TimeTrackingError(ValueError):
    """Base class for rejected time tracking operations."""

    status_code = 400
    kind = "error"

    def __init__(self, message: str, data: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        """Response body for this error."""
        body: dict[str, Any] = {"detail": self.message, "error": self.kind}
        if self.data is not None:
            body["data"] = self.data
        return body


class ConflictError(TimeTrackingError):
    """Another open entry already exists for the user."""

    status_code = 409
    kind = "conflict"


class NotFoundError(TimeTrackingError):
    """Referenced entry does not exist."""

    status_code = 404
    kind = "not_found"


class ForbiddenError(TimeTrackingError):
    """Caller does not own the referenced entry."""

    status_code = 403
    kind = "forbidden"


class InvalidStateError(TimeTrackingError):
    """Transition is not allowed from the entry's current state."""

    status_code = 400
    kind = "invalid_state"


class RateLimitError(TimeTrackingError):
    """Too many pause/resume actions in the trailing window."""

    status_code = 429
    kind = "rate_limited"


class ValidationError(TimeTrackingError):
    """Request is well-formed but violates a duration policy."""

    status_code = 400
    kind = "validation"


class InvalidRangeError(TimeTrackingError):
    """Unknown aggregation range keyword."""

    status_code = 400
    kind = "invalid_range"
