"""Request validation middleware."""

import uuid
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from luzzi.config import settings
from luzzi.exceptions import RequestTooLargeError
from luzzi.handlers.exception_handler import create_error_response


class RequestSizeValidationMiddleware(BaseHTTPMiddleware):
    """
    Reject oversized requests before their body is read.

    Answers 413 Payload Too Large based on the Content-Length header.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Validate request size and process request.

        Args:
            request: The incoming request
            call_next: The next middleware/handler in the chain

        Returns:
            The response from the handler, or a 413 error response
        """
        # Correlation ID is needed on the error response below
        correlation_id = getattr(request.state, "correlation_id", None) or (
            request.headers.get("X-Request-ID", str(uuid.uuid4()))
        )
        request.state.correlation_id = correlation_id

        content_length = request.headers.get("content-length")
        if content_length:
            try:
                size = int(content_length)
            except ValueError:
                size = 0

            max_size = settings.max_request_size_bytes
            if size > max_size:
                size_kb = size / 1024
                max_kb = max_size / 1024
                # Raised exceptions here would bypass the app's handlers
                error = RequestTooLargeError(
                    message=f"Request size {size_kb:.1f}KB exceeds maximum {max_kb:.0f}KB",
                    max_size=f"{max_kb:.0f}KB",
                    details={"request_size": f"{size_kb:.1f}KB"},
                )
                response = create_error_response(
                    error_code=error.error_code,
                    message=error.message,
                    status_code=error.status_code,
                    details=error.details,
                    correlation_id=correlation_id,
                )
                response.headers["X-Request-ID"] = correlation_id
                return response

        return await call_next(request)
