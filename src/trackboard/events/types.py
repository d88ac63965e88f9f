"""Event type constants for Trackboard."""

from enum import StrEnum


class EventType(StrEnum):
    PROJECT_CREATED = "project.created"
    PROJECT_UPDATED = "project.updated"
    PROJECT_DELETED = "project.deleted"

    PROJECTS_IMPORTED = "projects.imported"
    PROJECTS_EXPORTED = "projects.exported"

    INSIGHTS_GENERATED = "insights.generated"
    INSIGHTS_FAILED = "insights.failed"
