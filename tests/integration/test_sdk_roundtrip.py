"""End-to-end tests: SDK client against the ingestion app, storage mocked."""

import logging
from typing import Any, Callable, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from luzzi.main import app
from luzzi.models.project import Project
from luzzi.sdk import DeviceInfo, LuzziClient, LuzziConfig


@pytest.fixture
def backend(project_keys: dict[str, Any]):
    """Patch storage behind the app; ``backend.project`` is what the keys resolve to."""
    state = MagicMock()
    state.project = None
    state.stored = []

    async def resolve(api_key: str) -> Optional[Project]:
        if api_key in (project_keys["live_key"], project_keys["test_key"]):
            return state.project
        return None

    async def create_batch(records: list) -> int:
        state.stored.extend(records)
        return len(records)

    async def increment(project_id: str, count: int) -> Project:
        state.project = state.project.model_copy(
            update={"events_count": state.project.events_count + count}
        )
        return state.project

    project_repo = MagicMock()
    project_repo.get_by_api_key = AsyncMock(side_effect=resolve)
    project_repo.increment_events_count = AsyncMock(side_effect=increment)
    event_repo = MagicMock()
    event_repo.create_batch = AsyncMock(side_effect=create_batch)

    with (
        patch("luzzi.auth.dependencies.ProjectRepository", return_value=project_repo),
        patch(
            "luzzi.services.ingestion_service.ProjectRepository",
            return_value=project_repo,
        ),
        patch(
            "luzzi.services.ingestion_service.EventRepository",
            return_value=event_repo,
        ),
    ):
        yield state


@pytest.fixture
async def http_client():
    client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app))
    yield client
    await client.aclose()


def _config(**overrides: Any) -> LuzziConfig:
    data = {
        "api_url": "http://ingest.test",
        "batch_size": 50,
        "flush_interval": 60_000,
        "flush_on_exit": False,
        "device_info": DeviceInfo(app_version="3.1.0"),
    }
    data.update(overrides)
    return LuzziConfig(**data)


@pytest.mark.asyncio
async def test_tracked_events_are_stored(
    backend, http_client: httpx.AsyncClient, project: Project, project_keys: dict[str, Any]
) -> None:
    """Test that tracked and identified events reach storage intact."""
    backend.project = project

    async with LuzziClient(http_client=http_client) as client:
        client.init(project_keys["live_key"], _config())
        client.track("app_opened")
        client.identify("user-7", {"plan": "pro"})
        client.track("checkout", {"amount": 12.5})
        await client.flush()

        assert len(client.queue) == 0
        session_id = client.get_session_id()

    names = [r.event_name for r in backend.stored]
    assert names == ["app_opened", "$identify", "checkout"]
    assert all(r.project_id == project.project_id for r in backend.stored)
    assert all(r.session_id == session_id for r in backend.stored)
    assert backend.stored[0].user_id is None
    assert backend.stored[1].properties == {"plan": "pro", "$user_id": "user-7"}
    assert backend.stored[2].user_id == "user-7"
    assert backend.stored[2].properties == {"amount": 12.5}
    assert backend.stored[2].device["app_version"] == "3.1.0"
    assert backend.project.events_count == 3


@pytest.mark.asyncio
async def test_test_key_reaches_same_project(
    backend, http_client: httpx.AsyncClient, project: Project, project_keys: dict[str, Any]
) -> None:
    """Test that the test key writes into the same project as the live key."""
    backend.project = project

    async with LuzziClient(http_client=http_client) as client:
        client.init(project_keys["test_key"], _config())
        client.track("from_test_key")

    assert backend.stored[0].project_id == project.project_id


@pytest.mark.asyncio
async def test_quota_overflow_is_dropped_not_retried(
    backend,
    http_client: httpx.AsyncClient,
    make_project: Callable[..., Project],
    project_keys: dict[str, Any],
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Test that server-side drops are final: the SDK does not resend them."""
    backend.project = make_project(events_limit=10, events_count=8)

    async with LuzziClient(http_client=http_client) as client:
        client.init(project_keys["live_key"], _config())
        for i in range(5):
            client.track(f"event_{i}")
        with caplog.at_level(logging.WARNING, logger="luzzi.sdk"):
            await client.flush()

        assert len(client.queue) == 0

    assert [r.event_name for r in backend.stored] == ["event_0", "event_1"]
    assert "dropped 3 events" in caplog.text


@pytest.mark.asyncio
async def test_rejected_batch_stays_buffered(
    backend, http_client: httpx.AsyncClient, make_project: Callable[..., Project], project_keys: dict[str, Any]
) -> None:
    """Test that 401 and 429 responses keep the batch for the next flush."""
    backend.project = make_project(events_limit=1, events_count=1)

    client = LuzziClient(http_client=http_client)
    client.init(project_keys["live_key"], _config())
    client.track("over_quota")
    await client.flush()
    assert [e.event for e in client.queue.pending] == ["over_quota"]

    client.init("pk_live_0000000000000000_" + "0" * 32, _config())
    client.track("bad_key")
    await client.flush()
    assert [e.event for e in client.queue.pending] == ["bad_key"]

    client.queue.reset()
    await client.close()
    assert backend.stored == []


@pytest.mark.asyncio
async def test_backlog_drains_after_outage(
    backend,
    http_client: httpx.AsyncClient,
    make_project: Callable[..., Project],
    project_keys: dict[str, Any],
) -> None:
    """Test that a large backlog built during an outage is delivered in full later."""
    client = LuzziClient(http_client=http_client)
    client.init(project_keys["live_key"], _config(batch_size=150))

    # No project resolves: every size-triggered flush is rejected and re-buffered
    for i in range(1200):
        client.track(f"event_{i}")
    await client.queue.join()
    assert len(client.queue) == 1200

    backend.project = make_project(events_limit=10_000)
    await client.flush()

    assert len(client.queue) == 0
    assert len(backend.stored) == 1200
    assert {r.event_name for r in backend.stored} == {f"event_{i}" for i in range(1200)}
    assert backend.project.events_count == 1200

    await client.close()
