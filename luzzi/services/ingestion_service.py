"""Ingestion service: quota enforcement and partial acceptance of batches."""

import uuid
from datetime import UTC, datetime
from typing import List

from pydantic import ValidationError

from luzzi.config import settings
from luzzi.exceptions import BadRequestError, QuotaExceededError
from luzzi.logging.config import get_logger
from luzzi.models.event import StoredEvent
from luzzi.models.project import Project
from luzzi.repositories.event_repository import EventRepository
from luzzi.repositories.project_repository import ProjectRepository
from luzzi.schemas.event import EventsRequest, EventsResponse, IncomingEvent

logger = get_logger(__name__)


def to_utc_iso(value: datetime) -> str:
    """Render a datetime as UTC ISO 8601 with a Z suffix (naive means UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


class IngestionService:
    """
    Service layer for event ingestion.

    Gates the request on the project's quota, validates the batch, persists
    the prefix that still fits in the quota and advances the project's
    counter by exactly the number of events persisted.
    """

    def __init__(
        self,
        project_repository: ProjectRepository | None = None,
        event_repository: EventRepository | None = None,
    ) -> None:
        """
        Initialize IngestionService.

        Args:
            project_repository: ProjectRepository instance (creates new if None)
            event_repository: EventRepository instance (creates new if None)
        """
        self.project_repository = project_repository or ProjectRepository()
        self.event_repository = event_repository or EventRepository()

    @staticmethod
    def parse_request(body: bytes) -> EventsRequest:
        """
        Parse and validate a raw request body.

        Args:
            body: Raw JSON body

        Returns:
            Validated EventsRequest

        Raises:
            BadRequestError: If the body is not JSON, has no non-empty
                ``events`` array, or contains a malformed event
        """
        if not body or not body.strip():
            raise BadRequestError()
        try:
            return EventsRequest.model_validate_json(body)
        except ValidationError as exc:
            raise BadRequestError.from_validation_errors(exc.errors()) from exc

    def _build_records(
        self, project: Project, events: List[IncomingEvent]
    ) -> List[StoredEvent]:
        created_at = to_utc_iso(datetime.now(UTC))
        records = []
        for event in events:
            event_id = str(uuid.uuid4())
            timestamp = to_utc_iso(event.timestamp)
            records.append(
                StoredEvent(
                    project_id=project.project_id,
                    event_key=f"{timestamp}#{event_id}",
                    event_id=event_id,
                    event_name=event.event,
                    properties=event.properties,
                    session_id=event.session_id,
                    user_id=event.user_id,
                    device=event.device,
                    timestamp=timestamp,
                    created_at=created_at,
                )
            )
        return records

    async def ingest(self, project: Project, body: bytes) -> EventsResponse:
        """
        Ingest a batch of events for an authenticated project.

        Args:
            project: Project resolved from the API key
            body: Raw JSON request body

        Returns:
            EventsResponse with accepted and dropped counts. Dropping events
            because the quota ran out mid-batch is a normal outcome.

        Raises:
            QuotaExceededError: If the quota was exhausted before this batch
            BadRequestError: If the body is structurally invalid
        """
        # Quota gate runs before the body is even parsed
        if project.quota_exhausted:
            logger.info(
                "Rejected batch: event quota exhausted",
                extra={
                    "context": {
                        "project_id": project.project_id,
                        "events_limit": project.events_limit,
                        "events_count": project.events_count,
                    }
                },
            )
            raise QuotaExceededError(
                events_limit=project.events_limit,
                events_count=project.events_count,
            )

        request = self.parse_request(body)
        submitted = len(request.events)

        if settings.quota_strict_mode:
            accepted = await self._ingest_reserved(project, request.events)
        else:
            accepted = await self._ingest_unreserved(project, request.events)

        dropped = submitted - accepted
        logger.info(
            "Events ingested",
            extra={
                "context": {
                    "project_id": project.project_id,
                    "submitted": submitted,
                    "accepted": accepted,
                    "dropped": dropped,
                }
            },
        )
        return EventsResponse(success=True, accepted=accepted, dropped=dropped)

    async def _ingest_unreserved(
        self, project: Project, events: List[IncomingEvent]
    ) -> int:
        """
        Persist the prefix that fits the quota as read at authentication.

        Concurrent batches for one project may all pass with the same stale
        count and jointly overshoot events_limit.
        """
        to_insert = events[: project.remaining_quota]
        if not to_insert:
            return 0

        records = self._build_records(project, to_insert)
        persisted = await self.event_repository.create_batch(records)
        await self.project_repository.increment_events_count(
            project.project_id, persisted
        )
        return persisted

    async def _ingest_reserved(
        self, project: Project, events: List[IncomingEvent]
    ) -> int:
        """Reserve quota with a conditional update first, then persist."""
        granted, project = await self.project_repository.reserve_events(
            project, len(events)
        )
        if granted == 0:
            return 0

        records = self._build_records(project, events[:granted])
        try:
            return await self.event_repository.create_batch(records)
        except Exception:
            # Give the reservation back so the counter matches what was stored
            logger.error(
                "Persisting reserved events failed, releasing reservation",
                extra={
                    "context": {"project_id": project.project_id, "granted": granted}
                },
            )
            await self.project_repository.increment_events_count(
                project.project_id, -granted
            )
            raise
