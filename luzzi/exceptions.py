"""Custom exception classes for the Luzzi ingestion API."""

from collections.abc import Mapping, Sequence
from typing import Any


class LuzziAPIError(Exception):
    """Base exception for the ingestion API."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code
            error_code: Machine-readable error code
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class UnauthorizedError(LuzziAPIError):
    """Raised when the API key is missing or matches no project (401)."""

    def __init__(
        self,
        message: str = "Missing API key",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=401,
            error_code="UNAUTHORIZED",
            details=details,
        )


class BadRequestError(LuzziAPIError):
    """Raised when the request body is structurally invalid (400)."""

    def __init__(
        self,
        message: str = "Invalid request body. 'events' array is required.",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details,
        )

    @classmethod
    def from_validation_errors(
        cls, errors: Sequence[Mapping[str, Any]]
    ) -> "BadRequestError":
        """
        Build a BadRequestError from pydantic/FastAPI validation errors.

        Args:
            errors: Output of ``ValidationError.errors()``

        Returns:
            BadRequestError whose message summarises the first error and
            whose details list every error with its field path
        """
        validation_errors = []
        error_messages = []

        for error in errors:
            # Skip the 'body' prefix FastAPI adds to body fields
            field_parts = [str(loc) for loc in error.get("loc", ()) if loc != "body"]
            field = ".".join(field_parts) if field_parts else "request"

            msg = error.get("msg", "Invalid value")
            error_type = error.get("type", "value_error")
            if error_type == "missing":
                msg = "Field is required"
            elif error_type == "value_error":
                msg = f"Invalid value: {msg}"

            validation_errors.append(
                {"field": field, "message": msg, "type": error_type}
            )
            error_messages.append(f"{field}: {msg}")

        summary = error_messages[0] if error_messages else "Invalid request data"
        if len(error_messages) > 1:
            summary += f" (and {len(error_messages) - 1} more errors)"

        return cls(message=summary, details={"validation_errors": validation_errors})


class QuotaExceededError(LuzziAPIError):
    """
    Raised when a project's event quota is already exhausted (429).

    The quota is a monthly allowance, so unlike a per-minute rate limit there
    is no meaningful Retry-After value.
    """

    def __init__(
        self,
        message: str = "Event limit reached. Upgrade your plan.",
        events_limit: int | None = None,
        events_count: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize QuotaExceededError.

        Args:
            message: Error message
            events_limit: Project's event allowance for the period
            events_count: Events already accepted in the period
            details: Additional error details
        """
        error_details = details or {}
        if events_limit is not None:
            error_details["events_limit"] = events_limit
        if events_count is not None:
            error_details["events_count"] = events_count
        super().__init__(
            message=message,
            status_code=429,
            error_code="QUOTA_EXCEEDED",
            details=error_details,
        )


class ServiceUnavailableError(LuzziAPIError):
    """Raised when a dependent service is unavailable (503)."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable",
        service: str | None = None,
        retry_after: int = 60,
        details: dict[str, Any] | None = None,
    ) -> None:
        error_details = details or {}
        error_details["retry_after"] = retry_after
        if service:
            error_details["service"] = service
        super().__init__(
            message=message,
            status_code=503,
            error_code="SERVICE_UNAVAILABLE",
            details=error_details,
        )
        self.retry_after = retry_after


class RequestTooLargeError(LuzziAPIError):
    """Raised when request payload exceeds size limit (413)."""

    def __init__(
        self,
        message: str = "Request payload too large",
        max_size: str = "1024KB",
        details: dict[str, Any] | None = None,
    ) -> None:
        error_details = details or {}
        error_details["max_size"] = max_size
        super().__init__(
            message=message,
            status_code=413,
            error_code="PAYLOAD_TOO_LARGE",
            details=error_details,
        )
