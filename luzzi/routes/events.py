"""API routes for event ingestion."""

from fastapi import APIRouter, Depends, Request, status

from luzzi.auth.dependencies import require_project
from luzzi.models.project import Project
from luzzi.schemas.event import EventsResponse
from luzzi.services.ingestion_service import IngestionService

router = APIRouter(prefix="/v1/events", tags=["Events"])


def _error_example(error_code: str, message: str) -> dict:
    return {
        "application/json": {
            "example": {
                "error": message,
                "status": "error",
                "error_code": error_code,
                "message": message,
                "details": {},
            }
        }
    }


@router.post(
    "",
    response_model=EventsResponse,
    status_code=status.HTTP_200_OK,
    responses={
        200: {
            "description": "Batch processed; quota overflow is reported in 'dropped'",
            "content": {
                "application/json": {
                    "example": {"success": True, "accepted": 2, "dropped": 3}
                }
            },
        },
        400: {
            "description": "Malformed body or missing/empty 'events' array",
            "content": _error_example(
                "VALIDATION_ERROR",
                "Invalid request body. 'events' array is required.",
            ),
        },
        401: {
            "description": "Missing or invalid API key",
            "content": _error_example("UNAUTHORIZED", "Invalid API key"),
        },
        429: {
            "description": "Project event quota exhausted",
            "content": _error_example(
                "QUOTA_EXCEEDED", "Event limit reached. Upgrade your plan."
            ),
        },
        500: {
            "description": "Internal server error",
            "content": _error_example("INTERNAL_ERROR", "Internal server error"),
        },
    },
)
async def ingest_events(
    request: Request,
    project: Project = Depends(require_project),
) -> EventsResponse:
    """
    Receive a batch of events from the SDK.

    The body is read raw rather than declared as a model so that the quota
    check answers before body validation: 401, then 429, then 400.

    Args:
        request: FastAPI request object (raw JSON body)
        project: Authenticated project (injected by dependency)

    Returns:
        EventsResponse with accepted and dropped counts

    Raises:
        UnauthorizedError: If API key is missing or invalid (401)
        QuotaExceededError: If the project's quota is already used up (429)
        BadRequestError: If the body is malformed (400)
    """
    body = await request.body()

    service = IngestionService()
    return await service.ingest(project, body)
