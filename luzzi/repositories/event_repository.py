"""Event repository for DynamoDB operations."""

from typing import Dict, List

from luzzi.config import settings
from luzzi.models.event import StoredEvent
from luzzi.repositories.base import BaseRepository
from luzzi.utils.dynamodb import to_dynamodb


class EventRepository(BaseRepository):
    """
    Repository for persisted events in DynamoDB.

    Events are partitioned by project and sorted by client timestamp.
    Records are write-once; nothing here updates or deletes them.
    """

    def __init__(self) -> None:
        """Initialize EventRepository with events table."""
        super().__init__(settings.dynamodb_table_events)

    def _serialize_event(self, event: StoredEvent) -> Dict:
        """Convert an event to a DynamoDB item (floats to Decimal, no Nones)."""
        return to_dynamodb(event.model_dump(exclude_none=True))

    async def create_batch(self, events: List[StoredEvent]) -> int:
        """
        Persist a batch of events in one batch write.

        Args:
            events: Events to store, in submitted order

        Returns:
            Number of events written
        """
        await self.batch_put_items([self._serialize_event(e) for e in events])
        return len(events)
