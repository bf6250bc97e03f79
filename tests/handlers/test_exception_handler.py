"""Tests for the global exception handlers and error envelope."""

import json
from unittest.mock import MagicMock

import pytest
from fastapi import Request
from fastapi.exceptions import RequestValidationError

from luzzi.exceptions import (
    BadRequestError,
    QuotaExceededError,
    ServiceUnavailableError,
    UnauthorizedError,
)
from luzzi.handlers.exception_handler import (
    generic_exception_handler,
    luzzi_api_exception_handler,
    validation_exception_handler,
)


@pytest.fixture
def mock_request() -> MagicMock:
    request = MagicMock(spec=Request)
    request.state.correlation_id = "test-correlation-id"
    request.method = "POST"
    request.url.path = "/v1/events"
    return request


@pytest.mark.asyncio
async def test_api_error_envelope(mock_request: MagicMock) -> None:
    """Test that API errors carry the SDK-facing 'error' field and metadata."""
    response = await luzzi_api_exception_handler(
        mock_request, UnauthorizedError("Invalid API key")
    )

    assert response.status_code == 401
    data = json.loads(response.body)
    assert data["error"] == "Invalid API key"
    assert data["status"] == "error"
    assert data["error_code"] == "UNAUTHORIZED"
    assert data["correlation_id"] == "test-correlation-id"


@pytest.mark.asyncio
async def test_quota_error_details(mock_request: MagicMock) -> None:
    """Test that 429 reports the limit and usage but no Retry-After."""
    response = await luzzi_api_exception_handler(
        mock_request, QuotaExceededError(events_limit=100, events_count=100)
    )

    assert response.status_code == 429
    data = json.loads(response.body)
    assert data["error"] == "Event limit reached. Upgrade your plan."
    assert data["details"] == {"events_limit": 100, "events_count": 100}
    assert "retry-after" not in response.headers


@pytest.mark.asyncio
async def test_service_unavailable_sets_retry_after(mock_request: MagicMock) -> None:
    """Test that 503 errors carry a Retry-After header."""
    response = await luzzi_api_exception_handler(
        mock_request, ServiceUnavailableError(retry_after=2)
    )

    assert response.status_code == 503
    assert response.headers["retry-after"] == "2"


@pytest.mark.asyncio
async def test_validation_error_is_bad_request(mock_request: MagicMock) -> None:
    """Test that FastAPI validation errors become 400 with field paths."""
    exc = RequestValidationError(
        errors=[
            {"loc": ("body", "events"), "msg": "field required", "type": "missing"},
            {"loc": ("body", "events", 0, "event"), "msg": "too short", "type": "string_too_short"},
        ]
    )

    response = await validation_exception_handler(mock_request, exc)

    assert response.status_code == 400
    data = json.loads(response.body)
    assert data["error_code"] == "VALIDATION_ERROR"
    assert data["error"] == "events: Field is required (and 1 more errors)"
    fields = [e["field"] for e in data["details"]["validation_errors"]]
    assert fields == ["events", "events.0.event"]


def test_bad_request_default_message() -> None:
    """Test the default message SDK users see for a missing events array."""
    assert BadRequestError().message == "Invalid request body. 'events' array is required."


@pytest.mark.asyncio
async def test_generic_error_hides_details(mock_request: MagicMock) -> None:
    """Test that unexpected errors answer 500 without leaking the message."""
    response = await generic_exception_handler(mock_request, KeyError("secret_field"))

    assert response.status_code == 500
    data = json.loads(response.body)
    assert data["error"] == "Internal server error"
    assert "secret_field" not in response.body.decode()


@pytest.mark.asyncio
async def test_generic_timeout_is_service_unavailable(mock_request: MagicMock) -> None:
    """Test that connection/timeout failures answer 503."""
    response = await generic_exception_handler(
        mock_request, TimeoutError("Read timeout on endpoint URL")
    )

    assert response.status_code == 503
    assert response.headers["retry-after"] == "60"
