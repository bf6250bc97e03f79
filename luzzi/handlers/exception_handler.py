"""Global exception handlers for consistent error responses."""

from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from luzzi.exceptions import BadRequestError, LuzziAPIError, ServiceUnavailableError
from luzzi.logging.config import get_logger

logger = get_logger(__name__)


def create_error_response(
    error_code: str,
    message: str,
    status_code: int,
    details: dict[str, Any] | None = None,
    correlation_id: str | None = None,
) -> JSONResponse:
    """
    Create standardized error response.

    ``error`` carries the message SDK clients read; the remaining fields add
    machine-readable context.

    Args:
        error_code: Machine-readable error code
        message: Human-readable error message
        status_code: HTTP status code
        details: Additional error details
        correlation_id: Request correlation ID for tracing

    Returns:
        JSONResponse with error information
    """
    content = {
        "error": message,
        "status": "error",
        "error_code": error_code,
        "message": message,
        "details": details or {},
    }

    if correlation_id:
        content["correlation_id"] = correlation_id

    return JSONResponse(status_code=status_code, content=content)


async def luzzi_api_exception_handler(
    request: Request, exc: LuzziAPIError
) -> JSONResponse:
    """
    Handle LuzziAPIError and its subclasses.

    Args:
        request: FastAPI request
        exc: LuzziAPIError instance

    Returns:
        JSONResponse with error details
    """
    correlation_id = getattr(request.state, "correlation_id", None)

    response = create_error_response(
        error_code=exc.error_code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        correlation_id=correlation_id,
    )

    if isinstance(exc, ServiceUnavailableError):
        response.headers["Retry-After"] = str(exc.retry_after)

    return response


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Turn FastAPI request validation errors into 400 responses.

    Args:
        request: FastAPI request
        exc: RequestValidationError from Pydantic

    Returns:
        JSONResponse with validation error details
    """
    correlation_id = getattr(request.state, "correlation_id", None)
    error = BadRequestError.from_validation_errors(exc.errors())

    return create_error_response(
        error_code=error.error_code,
        message=error.message,
        status_code=status.HTTP_400_BAD_REQUEST,
        details=error.details,
        correlation_id=correlation_id,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Logs the full traceback and returns a generic error to the client;
    connection and timeout failures towards DynamoDB map to 503.

    Args:
        request: FastAPI request
        exc: Any unhandled exception

    Returns:
        JSONResponse with generic error message
    """
    correlation_id = getattr(request.state, "correlation_id", None)

    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {str(exc)}",
        exc_info=exc,
        extra={
            "correlation_id": correlation_id,
            "context": {
                "exception_type": type(exc).__name__,
                "method": request.method,
                "path": request.url.path,
            },
        },
    )

    exc_str = str(exc).lower()
    exc_type = type(exc).__name__

    if any(
        keyword in exc_str for keyword in ["connection", "timeout", "unavailable"]
    ) or any(keyword in exc_type for keyword in ["ConnectionError", "TimeoutError"]):
        response = create_error_response(
            error_code="SERVICE_UNAVAILABLE",
            message="Service temporarily unavailable. Please try again later.",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"retry_after": 60},
            correlation_id=correlation_id,
        )
        response.headers["Retry-After"] = "60"
        return response

    return create_error_response(
        error_code="INTERNAL_ERROR",
        message="Internal server error",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        details={},
        correlation_id=correlation_id,
    )
