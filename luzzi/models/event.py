"""Stored event model for DynamoDB."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class StoredEvent(BaseModel):
    """
    Event accepted by the ingestion endpoint and persisted for a project.

    Attributes:
        project_id: Owning project (partition key)
        event_key: "<timestamp>#<event_id>" sort key, orders events by time
        event_id: Unique identifier (UUID v4), server assigned
        event_name: Name the client tracked the event under
        properties: Arbitrary JSON properties
        session_id: Client session the event belongs to
        user_id: Identified client-side user, if any
        device: Device snapshot sent by the SDK
        timestamp: ISO 8601 client-side time of the event
        created_at: ISO 8601 server-side time of persistence
    """

    project_id: str = Field(..., description="Owning project UUID")
    event_key: str = Field(..., description="Sort key: timestamp#event_id")
    event_id: str = Field(..., description="Unique event identifier (UUID)")
    event_name: str = Field(..., min_length=1, description="Event name")
    properties: Dict[str, Any] = Field(
        default_factory=dict, description="Event properties (JSON)"
    )
    session_id: Optional[str] = Field(None, description="Client session id")
    user_id: Optional[str] = Field(None, description="Client user id")
    device: Dict[str, Any] = Field(
        default_factory=dict, description="Device snapshot"
    )
    timestamp: str = Field(..., description="ISO 8601 client timestamp")
    created_at: str = Field(..., description="ISO 8601 persistence timestamp")

    class Config:
        """Pydantic configuration."""

        json_schema_extra = {
            "example": {
                "project_id": "0b6f1c9e-3c2a-4a51-9d7e-2f1b1c6f4a10",
                "event_key": "2026-01-01T12:00:00Z#550e8400-e29b-41d4-a716-446655440000",
                "event_id": "550e8400-e29b-41d4-a716-446655440000",
                "event_name": "button_clicked",
                "properties": {"button": "signup"},
                "session_id": "8c1d2f6e-8f0e-4b7a-9d0c-0c6f5d0e3a11",
                "user_id": "user_123",
                "device": {"os": "macos", "browser": "chrome"},
                "timestamp": "2026-01-01T12:00:00Z",
                "created_at": "2026-01-01T12:00:01Z",
            }
        }
