"""FastAPI dependencies for API key authentication."""

from fastapi import Header, Request

from luzzi.exceptions import UnauthorizedError
from luzzi.models.project import Project
from luzzi.repositories.project_repository import ProjectRepository


async def require_project(
    request: Request,
    api_key: str | None = Header(None, alias="x-api-key"),
) -> Project:
    """
    Resolve the x-api-key header to its project.

    Either of a project's keys (live or test) is accepted; both grant the
    same access. The project id is stored on request.state for request
    logging.

    Args:
        request: Incoming request
        api_key: Raw x-api-key header value

    Returns:
        Project the key belongs to

    Raises:
        UnauthorizedError: If the header is missing or matches no project
    """
    if not api_key or not api_key.strip():
        raise UnauthorizedError(
            message="Missing API key",
            details={"hint": "Include the 'x-api-key: <api_key>' header"},
        )

    repo = ProjectRepository()
    project = await repo.get_by_api_key(api_key)

    if not project:
        raise UnauthorizedError(message="Invalid API key")

    request.state.project_id = project.project_id
    return project
