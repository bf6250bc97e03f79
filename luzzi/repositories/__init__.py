"""Repository layer for DynamoDB operations."""

from luzzi.repositories.event_repository import EventRepository
from luzzi.repositories.project_repository import ProjectRepository

__all__ = ["EventRepository", "ProjectRepository"]
