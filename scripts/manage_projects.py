#!/usr/bin/env python3
"""
CLI for Project Management.

Creates projects, rotates their live/test API keys and manages event quota.
Plaintext keys are printed once, at creation or rotation, and never stored.
"""

import argparse
import asyncio
import sys
import uuid
from typing import List, Optional, Tuple

from luzzi.auth.api_key import KEY_ENVIRONMENTS, generate_api_key, hash_api_key
from luzzi.config import settings
from luzzi.models.project import Project
from luzzi.repositories.project_repository import ProjectRepository, utc_now_iso


def _new_key(environment: str) -> Tuple[str, str, str]:
    """Return (plaintext key, key_id, bcrypt hash) for a fresh key."""
    plain_key, key_id = generate_api_key(environment)
    return plain_key, key_id, hash_api_key(plain_key)


def _environments(which: str) -> List[str]:
    return list(KEY_ENVIRONMENTS) if which == "both" else [which]


def _print_key_warning() -> None:
    print("\n⚠️  IMPORTANT: Save these API keys now!")
    print("   They will not be shown again.")


async def cmd_create(name: str, events_limit: int, plan: str) -> Project:
    """
    Create a project with a fresh live and test key.

    Args:
        name: Human-readable project name
        events_limit: Event allowance for the current period
        plan: Plan label stored with the project
    """
    live_key, live_key_id, live_hash = _new_key("live")
    test_key, test_key_id, test_hash = _new_key("test")
    now = utc_now_iso()

    project = Project(
        project_id=str(uuid.uuid4()),
        name=name,
        plan=plan,
        live_key_id=live_key_id,
        live_key_hash=live_hash,
        test_key_id=test_key_id,
        test_key_hash=test_hash,
        events_limit=events_limit,
        events_count=0,
        events_reset_at=now,
        created_at=now,
        updated_at=now,
    )

    repo = ProjectRepository()
    await repo.create(project)

    print("✓ Project created successfully")
    print(f"\nProject ID: {project.project_id}")
    print(f"Name: {name}")
    print(f"Plan: {plan}")
    print(f"Events limit: {events_limit}")
    print(f"\nLive key: {live_key}")
    print(f"Test key: {test_key}")
    _print_key_warning()
    return project


async def cmd_list() -> None:
    """List all projects with their usage."""
    repo = ProjectRepository()
    projects = await repo.list_all()

    if not projects:
        print("No projects found.")
        return

    print(f"\n{'Project ID':<38} {'Name':<24} {'Plan':<8} {'Usage':<20} {'Created':<28}")
    print("-" * 120)

    for project in projects:
        name = project.name
        if len(name) > 21:
            name = name[:21] + "..."
        usage = f"{project.events_count}/{project.events_limit}"
        print(
            f"{project.project_id:<38} {name:<24} {project.plan:<8}"
            f" {usage:<20} {project.created_at or '':<28}"
        )

    print(f"\nTotal: {len(projects)} projects")


async def _require_project(repo: ProjectRepository, project_id: str) -> Project:
    project = await repo.get_by_id(project_id)
    if not project:
        print(f"✗ Error: project {project_id} not found")
        sys.exit(1)
    return project


async def cmd_regenerate_keys(project_id: str, which: str) -> None:
    """
    Replace a project's live key, test key, or both.

    The old key stops authenticating as soon as the update is written.
    """
    repo = ProjectRepository()
    await _require_project(repo, project_id)

    print(f"✓ Keys regenerated for project {project_id}\n")
    for environment in _environments(which):
        plain_key, key_id, key_hash = _new_key(environment)
        await repo.replace_key(project_id, environment, key_id, key_hash)
        print(f"{environment.capitalize()} key: {plain_key}")
    _print_key_warning()


async def cmd_reset_usage(project_id: str) -> None:
    """Zero the project's event counter (start of a new billing period)."""
    repo = ProjectRepository()
    await _require_project(repo, project_id)

    project = await repo.reset_usage(project_id)
    print(f"✓ Usage reset for project {project_id} at {project.events_reset_at}")


async def cmd_set_limit(project_id: str, events_limit: int) -> None:
    """Change the project's event allowance."""
    if events_limit < 0:
        print("✗ Error: events limit must be zero or positive")
        sys.exit(1)

    repo = ProjectRepository()
    await _require_project(repo, project_id)

    project = await repo.set_events_limit(project_id, events_limit)
    print(
        f"✓ Events limit for project {project_id} set to {project.events_limit}"
        f" (used: {project.events_count})"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Manage projects for the Luzzi Ingestion API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command")

    create_parser = subparsers.add_parser("create", help="Create a new project")
    create_parser.add_argument("name", type=str, help="Project name")
    create_parser.add_argument(
        "--events-limit",
        type=int,
        default=settings.default_events_limit,
        help=f"Event allowance (default: {settings.default_events_limit})",
    )
    create_parser.add_argument(
        "--plan", type=str, default="free", help="Plan label (default: free)"
    )

    subparsers.add_parser("list", help="List all projects")

    regenerate_parser = subparsers.add_parser(
        "regenerate-keys", help="Replace a project's API keys"
    )
    regenerate_parser.add_argument("project_id", type=str, help="Project ID")
    regenerate_parser.add_argument(
        "which",
        choices=[*KEY_ENVIRONMENTS, "both"],
        nargs="?",
        default="both",
        help="Which key to replace (default: both)",
    )

    reset_parser = subparsers.add_parser(
        "reset-usage", help="Zero a project's event counter"
    )
    reset_parser.add_argument("project_id", type=str, help="Project ID")

    limit_parser = subparsers.add_parser(
        "set-limit", help="Change a project's event allowance"
    )
    limit_parser.add_argument("project_id", type=str, help="Project ID")
    limit_parser.add_argument("events_limit", type=int, help="New event allowance")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "create":
        asyncio.run(cmd_create(args.name, args.events_limit, args.plan))
    elif args.command == "list":
        asyncio.run(cmd_list())
    elif args.command == "regenerate-keys":
        asyncio.run(cmd_regenerate_keys(args.project_id, args.which))
    elif args.command == "reset-usage":
        asyncio.run(cmd_reset_usage(args.project_id))
    elif args.command == "set-limit":
        asyncio.run(cmd_set_limit(args.project_id, args.events_limit))


if __name__ == "__main__":
    main()
