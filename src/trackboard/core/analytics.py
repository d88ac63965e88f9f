"""Aggregations behind the analytics panels."""

from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Sequence
from datetime import UTC, date, datetime
from typing import Any

from trackboard.models.project import STATUS_ORDER, Project, ProjectType, ensure_aware

logger = logging.getLogger(__name__)

PROGRESS_BUCKETS: tuple[str, ...] = ("0-25%", "25-50%", "50-75%", "75-100%")
DEADLINE_LIST_SIZE = 8


def status_counts(projects: Sequence[Project]) -> dict[str, int]:
    """Projects per status, in status progression order, zero counts omitted."""
    counts = Counter(p.status for p in projects)
    return {status.value: counts[status] for status in STATUS_ORDER if counts[status]}


def type_counts(projects: Sequence[Project]) -> dict[str, int]:
    counts = Counter(p.type for p in projects)
    return {t.value: counts[t] for t in ProjectType if counts[t]}


def average_completion(projects: Sequence[Project]) -> int:
    """Mean progress rounded to a whole percent; 0 for no projects."""
    if not projects:
        return 0
    # Round half up like the gauge does
    return math.floor(sum(p.progress for p in projects) / len(projects) + 0.5)


def monetized_count(projects: Sequence[Project]) -> int:
    return sum(1 for p in projects if p.is_monetized)


def progress_distribution(projects: Sequence[Project]) -> dict[str, int]:
    distribution = dict.fromkeys(PROGRESS_BUCKETS, 0)
    for project in projects:
        if project.progress < 25:
            distribution["0-25%"] += 1
        elif project.progress < 50:
            distribution["25-50%"] += 1
        elif project.progress < 75:
            distribution["50-75%"] += 1
        else:
            distribution["75-100%"] += 1
    return distribution


def tag_effectiveness(projects: Sequence[Project], *, limit: int = 10) -> list[dict[str, Any]]:
    """Average progress per tag, best first."""
    totals: dict[str, list[int]] = {}
    for project in projects:
        for tag in project.tags:
            totals.setdefault(tag, []).append(project.progress)

    rows = [
        {
            "tag": tag,
            "avg_progress": math.floor(sum(values) / len(values) + 0.5),
            "count": len(values),
        }
        for tag, values in totals.items()
    ]
    rows.sort(key=lambda row: row["avg_progress"], reverse=True)
    return rows[:limit]


def engagement(projects: Sequence[Project], *, size: int = 3) -> dict[str, list[Project]]:
    """Most and least recently updated projects."""
    ordered = sorted(projects, key=lambda p: p.last_updated, reverse=True)
    return {
        "most_updated": ordered[:size],
        "least_updated": list(reversed(ordered[-size:])) if ordered else [],
    }


def project_freshness(last_updated: datetime, *, now: datetime | None = None) -> float:
    """Recency score from 100 (updated today) down to 0 (about 30 days old)."""
    now = ensure_aware(now) if now else datetime.now(UTC)
    days = math.floor((now - ensure_aware(last_updated)).total_seconds() / 86400)
    return max(0.0, 100 - days * 3.33)


def upcoming_deadlines(
    projects: Sequence[Project],
    *,
    today: date | None = None,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """Milestones not yet completed across all projects, soonest due first.

    A milestone due before ``today`` is overdue and has negative
    ``days_remaining``. Milestones whose due date cannot be parsed are skipped.
    """
    today = today or datetime.now(UTC).date()
    rows: list[dict[str, Any]] = []
    for project in projects:
        for milestone in project.milestones:
            if milestone.status == "completed":
                continue
            try:
                due = date.fromisoformat(milestone.due_date[:10])
            except ValueError:
                logger.warning(
                    "Skipping milestone %r of %s: bad due date %r",
                    milestone.title,
                    project.name,
                    milestone.due_date,
                )
                continue
            days = (due - today).days
            rows.append(
                {
                    "title": milestone.title,
                    "project_id": project.id,
                    "project_name": project.name,
                    "due_date": due.isoformat(),
                    "status": milestone.status,
                    "days_remaining": days,
                    "overdue": days < 0,
                }
            )

    rows.sort(key=lambda row: row["due_date"])
    return rows[:limit] if limit is not None else rows


def summarize(projects: Sequence[Project]) -> dict[str, Any]:
    """All panel figures in one dict."""
    return {
        "total": len(projects),
        "by_status": status_counts(projects),
        "by_type": type_counts(projects),
        "average_completion": average_completion(projects),
        "monetized": monetized_count(projects),
        "progress_distribution": progress_distribution(projects),
        "top_tags": tag_effectiveness(projects),
        "upcoming_deadlines": upcoming_deadlines(projects, limit=DEADLINE_LIST_SIZE),
    }
