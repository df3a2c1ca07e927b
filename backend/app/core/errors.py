"""Domain errors raised by services and rendered by the API layer."""

from typing import Any, Dict, Optional


class LedgerError(Exception):
    """Base error carrying an HTTP status and a machine-readable code."""

    status_code = 400
    error_code = "LEDGER_ERROR"
    message = "An error occurred"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.message
        self.context = context
        super().__init__(self.message)

    def to_response(self) -> Dict[str, Any]:
        return {
            "detail": self.message,
            "error_code": self.error_code,
            "context": self.context or None,
        }


class NotFound(LedgerError):
    """Unknown id, or an id owned by another user."""

    status_code = 404
    error_code = "NOT_FOUND"
    message = "Resource not found"


class AccessDenied(LedgerError):
    """A referenced entity belongs to a different user."""

    status_code = 403
    error_code = "ACCESS_DENIED"
    message = "Access denied"


class ValidationError(LedgerError):
    status_code = 422
    error_code = "VALIDATION_ERROR"
    message = "Invalid input provided"


class UpstreamServiceError(LedgerError):
    """The rate feed or the text-generation service failed."""

    status_code = 502
    error_code = "UPSTREAM_SERVICE_ERROR"
    message = "Upstream service failed"
