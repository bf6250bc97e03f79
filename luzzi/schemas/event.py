"""Pydantic schemas for the event ingestion wire protocol."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from luzzi.config import settings


class IncomingEvent(BaseModel):
    """
    One event as sent by the SDK.

    Attributes:
        event: Event name (required, 1-255 chars)
        properties: Arbitrary JSON properties
        timestamp: ISO 8601 client-side time of the event
        session_id: Client session id
        user_id: Identified user id, omitted for anonymous events
        device: Device snapshot
    """

    model_config = ConfigDict(extra="ignore")

    event: str = Field(
        ...,
        min_length=1,
        max_length=settings.max_event_name_length,
        description="Event name",
    )
    properties: Dict[str, Any] = Field(
        default_factory=dict, description="Event properties (JSON)"
    )
    timestamp: datetime = Field(..., description="ISO 8601 client timestamp")
    session_id: Optional[str] = Field(None, description="Client session id")
    user_id: Optional[str] = Field(None, description="Client user id")
    device: Dict[str, Any] = Field(
        default_factory=dict, description="Device snapshot"
    )

    @field_validator("properties", "device", mode="before")
    @classmethod
    def null_to_empty(cls, v: Any) -> Any:
        """Treat an explicit null the same as an omitted map."""
        return {} if v is None else v


class EventsRequest(BaseModel):
    """
    Request body for POST /v1/events.

    Attributes:
        events: Non-empty batch of events, oldest first
    """

    events: List[IncomingEvent] = Field(
        ..., min_length=1, description="Batch of events"
    )

    @field_validator("events")
    @classmethod
    def validate_batch_size(cls, v: List[IncomingEvent]) -> List[IncomingEvent]:
        """Reject batches above the configured maximum."""
        if len(v) > settings.max_batch_events:
            raise ValueError(
                f"Batch of {len(v)} events exceeds maximum of "
                f"{settings.max_batch_events}"
            )
        return v

    class Config:
        """Pydantic configuration."""

        json_schema_extra = {
            "example": {
                "events": [
                    {
                        "event": "button_clicked",
                        "properties": {"button": "signup"},
                        "timestamp": "2026-01-01T12:00:00.000Z",
                        "session_id": "8c1d2f6e-8f0e-4b7a-9d0c-0c6f5d0e3a11",
                        "user_id": "user_123",
                        "device": {"os": "macos", "browser": "chrome"},
                    }
                ]
            }
        }


class EventsResponse(BaseModel):
    """
    Response for POST /v1/events.

    ``dropped`` counts events refused because the project's quota ran out;
    they are not errors and must not be resent.
    """

    success: bool = Field(True, description="Request processed")
    accepted: int = Field(..., ge=0, description="Events persisted")
    dropped: int = Field(..., ge=0, description="Events refused by quota")

    class Config:
        """Pydantic configuration."""

        json_schema_extra = {
            "example": {"success": True, "accepted": 2, "dropped": 3}
        }
