"""Request logging middleware with correlation ID support."""

import time
import uuid
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from luzzi.logging.config import get_logger

logger = get_logger(__name__)


def _get_or_generate_correlation_id(request: Request) -> str:
    """Reuse the caller's X-Request-ID, or mint a new UUID."""
    existing = getattr(request.state, "correlation_id", None)
    if existing:
        return existing
    return request.headers.get("X-Request-ID", str(uuid.uuid4()))


def _request_context(request: Request) -> dict:
    return {
        "method": request.method,
        "path": request.url.path,
        "client_host": request.client.host if request.client else None,
    }


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log all HTTP requests and responses.

    - Attaches a correlation ID (X-Request-ID) to request state and response
    - Logs request start, completion (status, timing) and failures
    - Logs the authenticated project id, never the API key itself
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process the request and add logging.

        Args:
            request: The incoming request
            call_next: The next middleware/handler in the chain

        Returns:
            The response from the handler
        """
        correlation_id = _get_or_generate_correlation_id(request)
        request.state.correlation_id = correlation_id

        start_time = time.perf_counter()
        logger.info(
            "Request started",
            extra={"correlation_id": correlation_id, "context": _request_context(request)},
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "Request failed with exception",
                exc_info=exc,
                extra={
                    "correlation_id": correlation_id,
                    "context": {
                        **_request_context(request),
                        "response_time_ms": round(elapsed_ms, 2),
                    },
                },
            )
            raise

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Request completed",
            extra={
                "correlation_id": correlation_id,
                "context": {
                    **_request_context(request),
                    "status_code": response.status_code,
                    "response_time_ms": round(elapsed_ms, 2),
                    "project_id": getattr(request.state, "project_id", None),
                },
            },
        )

        response.headers["X-Request-ID"] = correlation_id
        return response
