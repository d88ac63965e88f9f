"""Trackboard data models."""

from trackboard.models.filters import ProjectFilter
from trackboard.models.project import (
    ActivityLog,
    AITask,
    Milestone,
    Project,
    ProjectStatus,
    ProjectType,
)
from trackboard.models.timeline import TimelineItem, TimeRange

__all__ = [
    "AITask",
    "ActivityLog",
    "Milestone",
    "Project",
    "ProjectFilter",
    "ProjectStatus",
    "ProjectType",
    "TimeRange",
    "TimelineItem",
]
