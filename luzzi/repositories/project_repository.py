"""Project repository: key lookup and quota counter for DynamoDB."""

from datetime import UTC, datetime
from typing import Dict, List, Optional

from botocore.exceptions import ClientError

from luzzi.auth.api_key import parse_api_key, verify_api_key
from luzzi.config import settings
from luzzi.exceptions import ServiceUnavailableError
from luzzi.logging.config import get_logger
from luzzi.models.project import Project
from luzzi.repositories.base import BaseRepository, is_conditional_check_failure
from luzzi.utils.dynamodb import from_dynamodb

logger = get_logger(__name__)

KEY_INDEXES = {
    "live": ("LiveKeyIndex", "live_key_id", "live_key_hash"),
    "test": ("TestKeyIndex", "test_key_id", "test_key_hash"),
}


def utc_now_iso() -> str:
    """Current UTC time as ISO 8601 with a Z suffix."""
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class ProjectRepository(BaseRepository):
    """
    Repository for Project operations in DynamoDB.

    Resolves API keys to projects and maintains the per-project event
    counter used for quota enforcement.
    """

    def __init__(self) -> None:
        """Initialize ProjectRepository with projects table."""
        super().__init__(settings.dynamodb_table_projects)

    def _deserialize_project(self, item: Dict) -> Project:
        """Convert a DynamoDB item (Decimal numbers) to a Project."""
        return Project(**from_dynamodb(item))

    async def get_by_id(self, project_id: str) -> Optional[Project]:
        """
        Get project by ID.

        Args:
            project_id: Project partition key (UUID)

        Returns:
            Project if found, None otherwise
        """
        item = await self.get_item({"project_id": project_id})
        if item:
            return self._deserialize_project(item)
        return None

    async def get_by_api_key(self, api_key: str) -> Optional[Project]:
        """
        Resolve a plaintext API key to its project.

        The key's embedded key_id selects the candidate through the
        environment's GSI; the bcrypt hash then has to match. Live and test
        keys resolve to the same project with the same privileges.

        Args:
            api_key: Plaintext key from the request

        Returns:
            Project if the key is valid, None otherwise
        """
        parsed = parse_api_key(api_key)
        if parsed is None:
            return None

        index_name, id_attribute, hash_attribute = KEY_INDEXES[parsed.environment]
        items = await self.query_index(index_name, id_attribute, parsed.key_id)

        for item in items:
            if verify_api_key(api_key, item.get(hash_attribute, "")):
                return self._deserialize_project(item)
        return None

    async def create(self, project: Project) -> Project:
        """Store a new project."""
        await self.put_item(project.model_dump(exclude_none=True))
        return project

    async def list_all(self) -> List[Project]:
        """Return every project in the table."""
        items = await self.scan_all()
        return [self._deserialize_project(item) for item in items]

    async def increment_events_count(self, project_id: str, count: int) -> Project:
        """
        Atomically add ``count`` to the project's event counter.

        The increment itself is atomic, but it is not tied to the caller's
        earlier quota read; see reserve_events for the guarded variant.

        Args:
            project_id: Project to update
            count: Number of events actually persisted

        Returns:
            Updated Project
        """
        attributes = await self.update_item(
            {"project_id": project_id},
            "ADD events_count :count SET updated_at = :updated_at",
            {":count": count, ":updated_at": utc_now_iso()},
        )
        return self._deserialize_project(attributes)

    async def reserve_events(self, project: Project, requested: int) -> tuple[int, Project]:
        """
        Reserve quota for up to ``requested`` events without overshooting.

        Uses optimistic concurrency on events_count: the counter only moves if
        it still holds the value the reservation was computed from. On a lost
        race the project is re-read and the reservation recomputed.

        Args:
            project: Project as read at authentication time
            requested: Number of events submitted

        Returns:
            Tuple of (events reserved, project after reservation)

        Raises:
            ServiceUnavailableError: If every attempt lost the race
        """
        current = project
        for attempt in range(settings.quota_reserve_attempts):
            granted = min(requested, current.remaining_quota)
            if granted == 0:
                return 0, current
            try:
                attributes = await self.update_item(
                    {"project_id": current.project_id},
                    "SET events_count = events_count + :count, updated_at = :updated_at",
                    {
                        ":count": granted,
                        ":expected": current.events_count,
                        ":updated_at": utc_now_iso(),
                    },
                    condition_expression="events_count = :expected",
                )
                return granted, self._deserialize_project(attributes)
            except ClientError as exc:
                if not is_conditional_check_failure(exc):
                    raise
                logger.info(
                    "Quota reservation lost a race, retrying",
                    extra={
                        "context": {
                            "project_id": current.project_id,
                            "attempt": attempt + 1,
                        }
                    },
                )
                refreshed = await self.get_by_id(current.project_id)
                if refreshed is None:
                    return 0, current
                current = refreshed

        raise ServiceUnavailableError(
            message="Quota store is busy. Please retry.",
            service="quota",
            retry_after=1,
        )

    async def reset_usage(self, project_id: str) -> Project:
        """Zero the event counter and stamp events_reset_at."""
        now = utc_now_iso()
        attributes = await self.update_item(
            {"project_id": project_id},
            "SET events_count = :zero, events_reset_at = :now, updated_at = :now",
            {":zero": 0, ":now": now},
        )
        return self._deserialize_project(attributes)

    async def set_events_limit(self, project_id: str, events_limit: int) -> Project:
        """Change the project's event allowance."""
        attributes = await self.update_item(
            {"project_id": project_id},
            "SET events_limit = :limit, updated_at = :now",
            {":limit": events_limit, ":now": utc_now_iso()},
        )
        return self._deserialize_project(attributes)

    async def replace_key(
        self, project_id: str, environment: str, key_id: str, key_hash: str
    ) -> Project:
        """
        Swap one of the project's keys for a newly generated one.

        Args:
            project_id: Project to update
            environment: "live" or "test"
            key_id: Lookup id of the new key
            key_hash: Bcrypt hash of the new key

        Returns:
            Updated Project
        """
        _, id_attribute, hash_attribute = KEY_INDEXES[environment]
        attributes = await self.update_item(
            {"project_id": project_id},
            "SET #key_id = :key_id, #key_hash = :key_hash, updated_at = :now",
            {":key_id": key_id, ":key_hash": key_hash, ":now": utc_now_iso()},
            expression_names={"#key_id": id_attribute, "#key_hash": hash_attribute},
        )
        return self._deserialize_project(attributes)
