"""Middleware components for request processing."""

from luzzi.middleware.logging import LoggingMiddleware
from luzzi.middleware.request_validation import RequestSizeValidationMiddleware

__all__ = [
    "LoggingMiddleware",
    "RequestSizeValidationMiddleware",
]
