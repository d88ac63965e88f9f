"""Timeline derivation for project visualisation."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime, timedelta

from trackboard.models.project import Project, ProjectStatus, ensure_aware
from trackboard.models.timeline import TimelineItem, TimeRange

STATUS_COLORS: dict[ProjectStatus, str] = {
    ProjectStatus.COMPLETED: "#4ade80",
    ProjectStatus.IN_PROGRESS: "#60a5fa",
    ProjectStatus.PLANNING: "#fbbf24",
    ProjectStatus.BUILD: "#a78bfa",
    ProjectStatus.LAUNCH: "#f87171",
    ProjectStatus.IDEA: "#c084fc",
    ProjectStatus.ABANDONED: "#9ca3af",
}
FALLBACK_COLOR = "#6b7280"

MIN_PADDING_DAYS = 7
DEFAULT_RANGE_DAYS = 90


def estimated_duration_days(progress: int) -> int:
    """Estimated total duration: the further along, the shorter."""
    if progress >= 75:
        return 30
    if progress >= 50:
        return 45
    if progress >= 25:
        return 60
    return 90


def status_color(status: ProjectStatus | str) -> str:
    """Display color for a status; unknown strings get the fallback color."""
    try:
        return STATUS_COLORS[ProjectStatus(status)]
    except ValueError:
        return FALLBACK_COLOR


def project_to_timeline_item(project: Project) -> TimelineItem:
    start = project.created_at
    if project.status == ProjectStatus.COMPLETED:
        # Actual completion, not an estimate
        end = project.last_updated
    else:
        end = start + timedelta(days=estimated_duration_days(project.progress))

    return TimelineItem(
        id=project.id,
        name=project.name,
        start_date=start,
        end_date=end,
        progress=project.progress,
        status=project.status.value,
        color=status_color(project.status),
    )


def projects_to_timeline(projects: Iterable[Project]) -> list[TimelineItem]:
    return [project_to_timeline_item(p) for p in projects]


def calculate_time_range(
    items: Sequence[TimelineItem], *, now: datetime | None = None
) -> TimeRange:
    """Visible window for a set of timeline items.

    The span is padded on both sides by 10% of its length in whole days,
    with a minimum of 7 days. With no items the window is the next 90 days.
    """
    if not items:
        start = ensure_aware(now) if now else datetime.now(UTC)
        return TimeRange(start=start, end=start + timedelta(days=DEFAULT_RANGE_DAYS))

    earliest = min(item.start_date for item in items)
    latest = max(item.end_date for item in items)

    span_days = (latest - earliest).days
    padding = timedelta(days=max(math.floor(span_days * 0.1), MIN_PADDING_DAYS))
    return TimeRange(start=earliest - padding, end=latest + padding)


def expected_completion_date(progress: int, *, today: datetime | None = None) -> datetime:
    """Projected completion date shown on project cards.

    The remaining share of an estimated total duration is added to today,
    so the result depends only on progress, never on the creation date.
    This estimate uses its own duration table (90/75/60/30 days), separate
    from the timeline bars.
    """
    today = ensure_aware(today) if today else datetime.now(UTC)
    if progress >= 75:
        total_days = 30
    elif progress >= 50:
        total_days = 60
    elif progress >= 25:
        total_days = 75
    else:
        total_days = 90
    remaining = math.ceil(total_days * (1 - progress / 100))
    return today + timedelta(days=remaining)
