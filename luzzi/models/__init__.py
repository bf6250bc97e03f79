"""Data models for the Luzzi ingestion API."""

from luzzi.models.event import StoredEvent
from luzzi.models.project import Project

__all__ = ["StoredEvent", "Project"]
