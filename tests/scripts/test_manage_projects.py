"""Tests for project management CLI."""

from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from luzzi.auth.api_key import parse_api_key, verify_api_key
from luzzi.models.project import Project
from scripts.manage_projects import (
    build_parser,
    cmd_create,
    cmd_list,
    cmd_regenerate_keys,
    cmd_reset_usage,
    cmd_set_limit,
)


def _printed(mock_print: MagicMock) -> str:
    return " ".join(str(call[0][0]) for call in mock_print.call_args_list if call[0])


def _printed_keys(mock_print: MagicMock) -> dict[str, str]:
    """Map "Live"/"Test" to the plaintext keys printed by the command."""
    keys = {}
    for call in mock_print.call_args_list:
        line = str(call[0][0]) if call[0] else ""
        for label in ("Live", "Test"):
            if line.startswith(f"{label} key: "):
                keys[label] = line.split(": ", 1)[1]
    return keys


class TestCmdCreate:
    """Tests for cmd_create command."""

    @pytest.mark.asyncio
    async def test_create_stores_hashed_keys(self) -> None:
        """Test that the stored project holds hashes matching the printed keys."""
        mock_repo = MagicMock()
        mock_repo.create = AsyncMock()

        with (
            patch("scripts.manage_projects.ProjectRepository", return_value=mock_repo),
            patch("builtins.print") as mock_print,
        ):
            await cmd_create("My App", events_limit=500, plan="free")

        created: Project = mock_repo.create.call_args[0][0]
        assert created.name == "My App"
        assert created.events_limit == 500
        assert created.events_count == 0

        keys = _printed_keys(mock_print)
        assert keys["Live"].startswith("pk_live_")
        assert keys["Test"].startswith("pk_test_")
        assert parse_api_key(keys["Live"]).key_id == created.live_key_id
        assert parse_api_key(keys["Test"]).key_id == created.test_key_id
        assert verify_api_key(keys["Live"], created.live_key_hash)
        assert verify_api_key(keys["Test"], created.test_key_hash)
        # Plaintext never stored
        assert keys["Live"] not in created.model_dump_json()

    @pytest.mark.asyncio
    async def test_create_prints_each_key_once(self) -> None:
        """Test that each key is shown exactly once."""
        mock_repo = MagicMock()
        mock_repo.create = AsyncMock()

        with (
            patch("scripts.manage_projects.ProjectRepository", return_value=mock_repo),
            patch("builtins.print") as mock_print,
        ):
            await cmd_create("App", events_limit=10, plan="free")

        live_prints = [c for c in mock_print.call_args_list if "Live key:" in str(c)]
        assert len(live_prints) == 1
        assert "will not be shown again" in _printed(mock_print)


class TestCmdList:
    """Tests for cmd_list command."""

    @pytest.mark.asyncio
    async def test_list_empty(self) -> None:
        """Test list with no projects."""
        mock_repo = MagicMock()
        mock_repo.list_all = AsyncMock(return_value=[])

        with (
            patch("scripts.manage_projects.ProjectRepository", return_value=mock_repo),
            patch("builtins.print") as mock_print,
        ):
            await cmd_list()

        assert "No projects found" in _printed(mock_print)

    @pytest.mark.asyncio
    async def test_list_shows_usage(self, make_project: Callable[..., Project]) -> None:
        """Test that each project's usage is listed with a total."""
        mock_repo = MagicMock()
        mock_repo.list_all = AsyncMock(
            return_value=[
                make_project(project_id="p1", events_count=42, events_limit=100),
                make_project(project_id="p2", name="A very long project name indeed"),
            ]
        )

        with (
            patch("scripts.manage_projects.ProjectRepository", return_value=mock_repo),
            patch("builtins.print") as mock_print,
        ):
            await cmd_list()

        printed = _printed(mock_print)
        assert "42/100" in printed
        assert "Total: 2 projects" in printed
        assert "A very long project n..." in printed


class TestCmdRegenerateKeys:
    """Tests for cmd_regenerate_keys command."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "which, expected",
        [("live", ["live"]), ("test", ["test"]), ("both", ["live", "test"])],
    )
    async def test_regenerate_replaces_requested_keys(
        self, project: Project, which: str, expected: list[str]
    ) -> None:
        """Test that only the requested environments get new keys."""
        mock_repo = MagicMock()
        mock_repo.get_by_id = AsyncMock(return_value=project)
        mock_repo.replace_key = AsyncMock()

        with (
            patch("scripts.manage_projects.ProjectRepository", return_value=mock_repo),
            patch("builtins.print") as mock_print,
        ):
            await cmd_regenerate_keys(project.project_id, which)

        environments = [c.args[1] for c in mock_repo.replace_key.call_args_list]
        assert environments == expected

        printed = _printed_keys(mock_print)
        for call in mock_repo.replace_key.call_args_list:
            _, environment, key_id, key_hash = call.args
            plain = printed[environment.capitalize()]
            assert parse_api_key(plain).key_id == key_id
            assert verify_api_key(plain, key_hash)

    @pytest.mark.asyncio
    async def test_regenerate_unknown_project(self) -> None:
        """Test that an unknown project exits with status 1."""
        mock_repo = MagicMock()
        mock_repo.get_by_id = AsyncMock(return_value=None)

        with (
            patch("scripts.manage_projects.ProjectRepository", return_value=mock_repo),
            patch("builtins.print") as mock_print,
            pytest.raises(SystemExit) as exc_info,
        ):
            await cmd_regenerate_keys("missing", "both")

        assert exc_info.value.code == 1
        assert "not found" in _printed(mock_print).lower()


class TestQuotaCommands:
    """Tests for reset-usage and set-limit."""

    @pytest.mark.asyncio
    async def test_reset_usage(
        self, project: Project, make_project: Callable[..., Project]
    ) -> None:
        """Test that reset-usage zeroes the counter."""
        mock_repo = MagicMock()
        mock_repo.get_by_id = AsyncMock(return_value=project)
        mock_repo.reset_usage = AsyncMock(
            return_value=make_project(events_reset_at="2026-02-01T00:00:00Z")
        )

        with (
            patch("scripts.manage_projects.ProjectRepository", return_value=mock_repo),
            patch("builtins.print") as mock_print,
        ):
            await cmd_reset_usage(project.project_id)

        mock_repo.reset_usage.assert_awaited_once_with(project.project_id)
        assert "2026-02-01T00:00:00Z" in _printed(mock_print)

    @pytest.mark.asyncio
    async def test_set_limit(
        self, project: Project, make_project: Callable[..., Project]
    ) -> None:
        """Test that set-limit updates the allowance."""
        mock_repo = MagicMock()
        mock_repo.get_by_id = AsyncMock(return_value=project)
        mock_repo.set_events_limit = AsyncMock(
            return_value=make_project(events_limit=50000)
        )

        with (
            patch("scripts.manage_projects.ProjectRepository", return_value=mock_repo),
            patch("builtins.print") as mock_print,
        ):
            await cmd_set_limit(project.project_id, 50000)

        mock_repo.set_events_limit.assert_awaited_once_with(project.project_id, 50000)
        assert "50000" in _printed(mock_print)

    @pytest.mark.asyncio
    async def test_set_negative_limit_rejected(self) -> None:
        """Test that a negative limit exits before touching storage."""
        with (
            patch("scripts.manage_projects.ProjectRepository") as mock_repo_class,
            patch("builtins.print"),
            pytest.raises(SystemExit),
        ):
            await cmd_set_limit("proj-123", -1)

        mock_repo_class.assert_not_called()


def test_parser_defaults() -> None:
    """Test CLI argument defaults."""
    parser = build_parser()

    args: Any = parser.parse_args(["regenerate-keys", "proj-1"])
    assert args.which == "both"

    args = parser.parse_args(["create", "My App"])
    assert args.plan == "free"
    assert args.events_limit == 10000
