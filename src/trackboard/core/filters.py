"""Filter engine, sorting and grouping for project lists.

All functions here are pure: they never mutate their inputs and return new
lists. Text search matches the project name only, case-insensitively.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, Literal

from pydantic import ValidationError as PydanticValidationError

from trackboard.errors import ValidationError, from_pydantic
from trackboard.models.filters import ProjectFilter
from trackboard.models.project import STATUS_ORDER, Project, ProjectStatus

SortKey = Literal["name", "status", "usefulness", "progress"]
GroupKey = Literal["status", "type", "category"]

SORT_KEYS: tuple[str, ...] = ("name", "status", "usefulness", "progress")
GROUP_KEYS: tuple[str, ...] = ("status", "type", "category")

PINNED_GROUP = "Pinned Projects"
OTHER_GROUP = "Other"

# Abandoned sorts after the catch-all group in the accordion view
_GROUP_STATUS_RANK: dict[str, int] = {
    **{status.value: rank for rank, status in enumerate(STATUS_ORDER, start=1)},
    OTHER_GROUP: len(STATUS_ORDER),
    ProjectStatus.ABANDONED.value: len(STATUS_ORDER) + 1,
}


def build_filter(**criteria: Any) -> ProjectFilter:
    """Build a ProjectFilter, raising ValidationError for malformed input."""
    try:
        return ProjectFilter(**criteria)
    except PydanticValidationError as e:
        raise from_pydantic(e) from e


def matches(project: Project, filters: ProjectFilter) -> bool:
    """Check a single project against every set constraint."""
    if filters.status is not None and project.status != filters.status:
        return False
    if filters.type is not None and project.type != filters.type:
        return False
    if filters.usefulness is not None and project.usefulness != filters.usefulness:
        return False
    if filters.monetized_only and not project.is_monetized:
        return False
    if filters.tags:
        owned = {tag.lower() for tag in project.tags}
        if not all(tag.lower() in owned for tag in filters.tags):
            return False
    if filters.search_query and filters.search_query.lower() not in project.name.lower():
        return False
    return True


def filter_projects(
    projects: Iterable[Project], filters: ProjectFilter | None = None
) -> list[Project]:
    """Return the projects satisfying all constraints, in input order."""
    if filters is None or filters.is_empty:
        return list(projects)
    return [p for p in projects if matches(p, filters)]


def sort_projects(projects: Iterable[Project], sort_by: str = "name") -> list[Project]:
    """Sort projects for display.

    name and status sort ascending; usefulness and progress sort descending.
    The sort is stable, so ties keep their input order.
    """
    if sort_by == "name":
        return sorted(projects, key=lambda p: p.name.casefold())
    if sort_by == "status":
        return sorted(projects, key=lambda p: p.status.value)
    if sort_by == "usefulness":
        return sorted(projects, key=lambda p: p.usefulness, reverse=True)
    if sort_by == "progress":
        return sorted(projects, key=lambda p: p.progress, reverse=True)
    raise ValidationError(
        f"Invalid sort key: {sort_by}. Must be one of {SORT_KEYS}", field="sort_by"
    )


def group_projects(
    projects: Sequence[Project], group_by: str = "status"
) -> dict[str, list[Project]]:
    """Group projects for the accordion view.

    Pinned projects always come first under their own group. Status groups
    follow the status progression with Abandoned last; other groupings are
    alphabetical. Empty groups are omitted.
    """
    if group_by not in GROUP_KEYS:
        raise ValidationError(
            f"Invalid group key: {group_by}. Must be one of {GROUP_KEYS}", field="group_by"
        )

    pinned = [p for p in projects if p.pinned]
    buckets: dict[str, list[Project]] = {}
    for project in projects:
        if project.pinned:
            continue
        value = getattr(project, group_by)
        key = str(value) if value else OTHER_GROUP
        buckets.setdefault(key, []).append(project)

    if group_by == "status":
        names = sorted(buckets, key=lambda k: _GROUP_STATUS_RANK.get(k, len(STATUS_ORDER)))
    else:
        names = sorted(buckets)

    grouped: dict[str, list[Project]] = {}
    if pinned:
        grouped[PINNED_GROUP] = pinned
    for name in names:
        grouped[name] = buckets[name]
    return grouped
