"""Dashboard view state: filters, sort order, view mode and grouping.

A DashboardState is owned by one caller (a CLI invocation, a server session)
and passed explicitly to whatever renders projects. Only its setters mutate it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from trackboard.core.filters import (
    GROUP_KEYS,
    SORT_KEYS,
    build_filter,
    filter_projects,
    group_projects,
    sort_projects,
)
from trackboard.errors import ValidationError
from trackboard.models.filters import ProjectFilter
from trackboard.models.project import Project

logger = logging.getLogger(__name__)

VIEW_MODES: tuple[str, ...] = ("accordion", "cards", "table", "timeline")


class DashboardState:
    """Mutable view state for a project list."""

    def __init__(
        self,
        *,
        filters: ProjectFilter | None = None,
        sort_by: str = "name",
        view_mode: str = "accordion",
        group_by: str = "status",
    ) -> None:
        self._filters = filters or ProjectFilter()
        self._sort_by = _check(sort_by, SORT_KEYS, "sort_by")
        self._view_mode = _check(view_mode, VIEW_MODES, "view_mode")
        self._group_by = _check(group_by, GROUP_KEYS, "group_by")

    @property
    def filters(self) -> ProjectFilter:
        return self._filters

    @property
    def sort_by(self) -> str:
        return self._sort_by

    @property
    def view_mode(self) -> str:
        return self._view_mode

    @property
    def group_by(self) -> str:
        return self._group_by

    def set_filters(self, filters: ProjectFilter | None = None, **criteria: Any) -> ProjectFilter:
        """Replace the filters, either with a ready object or from raw criteria."""
        self._filters = filters if filters is not None else build_filter(**criteria)
        logger.debug("Filters set: %s", self._filters)
        return self._filters

    def clear_filters(self) -> None:
        self._filters = ProjectFilter()

    def set_sort(self, sort_by: str) -> None:
        self._sort_by = _check(sort_by, SORT_KEYS, "sort_by")

    def set_group_by(self, group_by: str) -> None:
        self._group_by = _check(group_by, GROUP_KEYS, "group_by")

    def toggle_view_mode(self, mode: str | None = None) -> str:
        """Switch to a given mode, or cycle accordion → cards → table → timeline."""
        if mode is not None:
            self._view_mode = _check(mode, VIEW_MODES, "view_mode")
        else:
            index = VIEW_MODES.index(self._view_mode)
            self._view_mode = VIEW_MODES[(index + 1) % len(VIEW_MODES)]
        return self._view_mode

    def apply(self, projects: Iterable[Project]) -> list[Project]:
        """Filter then sort projects for display."""
        return sort_projects(filter_projects(projects, self._filters), self._sort_by)

    def grouped(self, projects: Iterable[Project]) -> dict[str, list[Project]]:
        return group_projects(self.apply(projects), self._group_by)

    def to_dict(self) -> dict[str, Any]:
        return {
            "filters": self._filters.model_dump(mode="json", exclude_defaults=True),
            "sort_by": self._sort_by,
            "view_mode": self._view_mode,
            "group_by": self._group_by,
        }


def _check(value: str, allowed: tuple[str, ...], field: str) -> str:
    if value not in allowed:
        raise ValidationError(f"Invalid {field}: {value}. Must be one of {allowed}", field=field)
    return value
