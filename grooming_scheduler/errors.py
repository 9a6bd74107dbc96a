"""Error taxonomy for the scheduling engine.

Domain code raises these; the API layer maps each to an HTTP status in
one exception handler.
"""

from typing import Optional


class SchedulingError(Exception):
    """Base class for every error the engine surfaces to callers."""

    code = "scheduling_error"
    http_status = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class ValidationError(SchedulingError):
    """Missing or malformed input. The caller corrects and resubmits."""

    code = "validation_error"
    http_status = 422


class ConflictError(SchedulingError):
    """The slot (or other resource) was taken by a concurrent writer.

    Retryable: the caller should re-run availability and pick again.
    """

    code = "conflict"
    http_status = 409


class NotFoundError(SchedulingError):
    """A booking, template, sub-slot, location or service id does not resolve."""

    code = "not_found"
    http_status = 404


class IllegalTransitionError(SchedulingError):
    """The requested lifecycle event is not allowed from the current status."""

    code = "illegal_transition"
    http_status = 409

    def __init__(self, message: str, current_status: Optional[str] = None) -> None:
        super().__init__(message)
        self.current_status = current_status

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["current_status"] = self.current_status
        return data


class DependencyError(SchedulingError):
    """The data store (or another hard dependency) is unreachable."""

    code = "dependency_unavailable"
    http_status = 503
