"""Filter value object for project lists."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from trackboard.models.project import ProjectStatus, ProjectType

# Filter-bar values meaning "no constraint"
ALL_STATUS = "All Status"
ALL_TYPES = "All Types"
ALL_RATINGS = "All Ratings"
_SENTINELS = {ALL_STATUS, ALL_TYPES, ALL_RATINGS, ""}


class ProjectFilter(BaseModel):
    """Constraints applied to a project list. Unset fields pass everything."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    status: ProjectStatus | None = None
    type: ProjectType | None = None
    usefulness: int | None = Field(default=None, ge=1, le=5)
    monetized_only: bool = False
    tags: tuple[str, ...] | None = None
    search_query: str | None = None

    @field_validator("status", "type", "usefulness", mode="before")
    @classmethod
    def _drop_sentinels(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip() in _SENTINELS:
            return None
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _clean_tags(cls, value: Any) -> Any:
        if value is None:
            return None
        cleaned = tuple(t.strip() for t in value if isinstance(t, str) and t.strip())
        return cleaned or None

    @field_validator("search_query")
    @classmethod
    def _clean_query(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip()

    @property
    def is_empty(self) -> bool:
        return (
            self.status is None
            and self.type is None
            and self.usefulness is None
            and not self.monetized_only
            and not self.tags
            and not self.search_query
        )
