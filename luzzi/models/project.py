"""Project model for DynamoDB."""

from typing import Optional

from pydantic import BaseModel, Field


class Project(BaseModel):
    """
    Project (tenant) record with its API keys and monthly event quota.

    Attributes:
        project_id: Unique identifier (UUID v4)
        name: Human-readable project name
        plan: Billing plan name
        live_key_id: Lookup id embedded in the live API key
        live_key_hash: Bcrypt hash of the live API key
        test_key_id: Lookup id embedded in the test API key
        test_key_hash: Bcrypt hash of the test API key
        events_limit: Events accepted per period
        events_count: Events accepted so far in the current period
        events_reset_at: ISO 8601 timestamp of the last counter reset
        created_at: ISO 8601 creation timestamp
        updated_at: ISO 8601 timestamp of last update
    """

    project_id: str = Field(..., description="Unique project identifier (UUID)")
    name: str = Field(..., min_length=1, description="Project name")
    plan: str = Field(default="free", description="Billing plan")
    live_key_id: str = Field(..., description="Live key lookup id")
    live_key_hash: str = Field(..., description="Bcrypt hash of live key")
    test_key_id: str = Field(..., description="Test key lookup id")
    test_key_hash: str = Field(..., description="Bcrypt hash of test key")
    events_limit: int = Field(default=10000, ge=0, description="Event quota")
    events_count: int = Field(default=0, ge=0, description="Events used")
    events_reset_at: Optional[str] = Field(
        None, description="ISO 8601 last quota reset"
    )
    created_at: str = Field(..., description="ISO 8601 creation timestamp")
    updated_at: str = Field(..., description="ISO 8601 update timestamp")

    @property
    def remaining_quota(self) -> int:
        """Events the project may still submit this period."""
        return max(0, self.events_limit - self.events_count)

    @property
    def quota_exhausted(self) -> bool:
        return self.events_count >= self.events_limit

    class Config:
        """Pydantic configuration."""

        json_schema_extra = {
            "example": {
                "project_id": "0b6f1c9e-3c2a-4a51-9d7e-2f1b1c6f4a10",
                "name": "My App",
                "plan": "free",
                "live_key_id": "9f2c4e1a7b3d5f60",
                "live_key_hash": "$2b$12$...",
                "test_key_id": "1a2b3c4d5e6f7081",
                "test_key_hash": "$2b$12$...",
                "events_limit": 10000,
                "events_count": 42,
                "events_reset_at": None,
                "created_at": "2026-01-01T00:00:00Z",
                "updated_at": "2026-01-01T00:00:00Z",
            }
        }
