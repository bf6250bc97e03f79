"""Configuration management using Pydantic Settings."""

import os

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Ingestion service settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        # Only load .env file in development (not Lambda/production)
        env_file=".env" if os.getenv("AWS_EXECUTION_ENV") is None else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # AWS Configuration
    aws_region: str = "us-east-2"
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_session_token: str | None = None

    @field_validator(
        "aws_access_key_id",
        "aws_secret_access_key",
        "aws_session_token",
        mode="before",
    )
    @classmethod
    def convert_empty_string_to_none(cls, v):
        """Convert empty strings to None so boto3 can use IAM role in Lambda."""
        if v is None:
            return None
        if isinstance(v, str) and v.strip() == "":
            return None
        return v

    # DynamoDB Configuration
    dynamodb_endpoint_url: str | None = None
    dynamodb_table_projects: str = "luzzi-projects"
    dynamodb_table_events: str = "luzzi-events"

    # Application Configuration
    log_level: str = "INFO"
    api_title: str = "Luzzi Ingestion API"
    api_version: str = "1.0.0"
    api_gateway_base_path: str = "/api"
    cors_allowed_origins: str = "*"

    # Ingestion Limits
    max_request_size_bytes: int = 1024 * 1024  # 1MB
    max_batch_events: int = 1000
    max_event_name_length: int = 255

    # Quota
    default_events_limit: int = 10000
    # Off by default: the counter check reads a possibly stale value and
    # concurrent batches can overshoot events_limit.
    quota_strict_mode: bool = False
    quota_reserve_attempts: int = 3

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_allowed_origins.split(",")]


# Global settings instance
settings = Settings()
