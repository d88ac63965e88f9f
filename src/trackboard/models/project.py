"""Project model and its nested records."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ProjectStatus(StrEnum):
    IDEA = "Idea"
    PLANNING = "Planning"
    IN_PROGRESS = "In Progress"
    BUILD = "Build"
    LAUNCH = "Launch"
    COMPLETED = "Completed"
    ABANDONED = "Abandoned"


class ProjectType(StrEnum):
    PERSONAL = "Personal"
    PROFESSIONAL = "Professional"
    EDUCATION = "Education"
    MARKET = "Market"
    FOR_SALE = "For Sale"
    OPEN_SOURCE = "Open Source"
    OTHER = "Other"


# Status progression used for ordering charts and groups
STATUS_ORDER: tuple[ProjectStatus, ...] = tuple(ProjectStatus)

# Joins tags in a single CSV cell, so it may not appear inside a tag
TAG_SEPARATOR = ";"


def _now() -> datetime:
    return datetime.now(UTC)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive timestamps as UTC and normalise aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class _Record(BaseModel):
    """Base for records exchanged with camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


class Milestone(_Record):
    title: str = Field(min_length=1)
    due_date: str
    status: Literal["completed", "in-progress", "pending"] = "pending"


class ActivityLog(_Record):
    text: str
    date: datetime = Field(default_factory=_now)

    @field_validator("date")
    @classmethod
    def _aware_date(cls, value: datetime) -> datetime:
        return ensure_aware(value)


class AITask(_Record):
    """A task generated from analysis text by the tasks function."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    title: str = Field(min_length=1)
    description: str | None = None
    priority: Literal["low", "medium", "high"] = "medium"
    completed: bool = False
    due_date: str | None = None
    category: str | None = None


class Project(_Record):
    """A tracked project with status, type, usefulness and progress."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(min_length=1)
    description: str | None = None
    type: ProjectType = ProjectType.PERSONAL
    status: ProjectStatus = ProjectStatus.IDEA
    usefulness: int = Field(default=3, ge=1, le=5)
    is_monetized: bool = False
    progress: int = Field(default=0, ge=0, le=100)
    tags: list[str] = Field(default_factory=list)
    github_url: str | None = None
    website_url: str | None = None
    next_action: str | None = None
    category: str | None = None
    pinned: bool = False
    account_used: str | None = None
    chat_links: list[str] = Field(default_factory=list)
    analysis_text: str | None = None
    milestones: list[Milestone] = Field(default_factory=list)
    activity_logs: list[ActivityLog] = Field(default_factory=list)
    ai_tasks: list[AITask] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    last_updated: datetime = Field(default_factory=_now)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Project name is required")
        return value

    @field_validator(
        "description",
        "github_url",
        "website_url",
        "next_action",
        "category",
        "account_used",
        "analysis_text",
    )
    @classmethod
    def _empty_text_is_unset(cls, value: str | None) -> str | None:
        return value or None

    @field_validator("tags")
    @classmethod
    def _tags_without_separator(cls, value: list[str]) -> list[str]:
        for tag in value:
            if TAG_SEPARATOR in tag:
                raise ValueError(f"Tag cannot contain '{TAG_SEPARATOR}': {tag!r}")
        return value

    @field_validator("created_at", "last_updated")
    @classmethod
    def _aware_timestamps(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    def to_export(self) -> dict[str, Any]:
        """Complete record with camelCase keys, as written to JSON exports."""
        return self.model_dump(mode="json", by_alias=True)

    def to_response(self, *, detail: str = "summary") -> dict[str, Any]:
        data: dict[str, Any] = {
            "_v": "1.0",
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "type": self.type.value,
            "progress": self.progress,
        }
        if detail != "summary":
            data.update(self.to_export())
        return data

    def insight_payload(self) -> dict[str, Any]:
        """Reduced fields sent to the insights function."""
        return {
            "name": self.name,
            "type": self.type.value,
            "status": self.status.value,
            "progress": self.progress,
            "tags": list(self.tags),
            "usefulness": self.usefulness,
            "isMonetized": self.is_monetized,
            "nextAction": self.next_action,
            "activityLogs": [log.model_dump(mode="json") for log in self.activity_logs],
        }
