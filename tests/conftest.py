"""Shared pytest fixtures."""

from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from luzzi.auth.api_key import generate_api_key, hash_api_key
from luzzi.models.project import Project


@pytest.fixture(scope="session")
def project_keys() -> dict[str, Any]:
    """One live and one test key with their ids and bcrypt hashes."""
    live_key, live_key_id = generate_api_key("live")
    test_key, test_key_id = generate_api_key("test")
    return {
        "live_key": live_key,
        "live_key_id": live_key_id,
        "live_key_hash": hash_api_key(live_key),
        "test_key": test_key,
        "test_key_id": test_key_id,
        "test_key_hash": hash_api_key(test_key),
    }


@pytest.fixture
def make_project(project_keys: dict[str, Any]) -> Callable[..., Project]:
    """Factory for Project records that own ``project_keys``."""

    def _make(**overrides: Any) -> Project:
        data = {
            "project_id": "proj-123",
            "name": "Test Project",
            "plan": "free",
            "live_key_id": project_keys["live_key_id"],
            "live_key_hash": project_keys["live_key_hash"],
            "test_key_id": project_keys["test_key_id"],
            "test_key_hash": project_keys["test_key_hash"],
            "events_limit": 10000,
            "events_count": 0,
            "created_at": "2026-01-01T00:00:00Z",
            "updated_at": "2026-01-01T00:00:00Z",
        }
        data.update(overrides)
        return Project(**data)

    return _make


@pytest.fixture
def project(make_project: Callable[..., Project]) -> Project:
    return make_project()


@pytest.fixture
def dynamodb_table() -> MagicMock:
    """Mocked DynamoDB Table; its async operations are AsyncMocks."""
    table = MagicMock()
    table.put_item = AsyncMock(return_value={})
    table.get_item = AsyncMock(return_value={})
    table.query = AsyncMock(return_value={"Items": []})
    table.scan = AsyncMock(return_value={"Items": []})
    table.update_item = AsyncMock(return_value={"Attributes": {}})

    writer = MagicMock()
    writer.put_item = AsyncMock()
    table.batch_writer.return_value.__aenter__.return_value = writer
    table.batch_writer.return_value.__aexit__.return_value = False
    return table


@pytest.fixture
def dynamodb_session(dynamodb_table: MagicMock) -> MagicMock:
    """Stand-in for aioboto3.Session whose DynamoDB resource serves dynamodb_table."""
    dynamodb = MagicMock()
    dynamodb.Table = AsyncMock(return_value=dynamodb_table)

    session = MagicMock()
    session.resource.return_value.__aenter__.return_value = dynamodb
    session.resource.return_value.__aexit__.return_value = False
    return session
