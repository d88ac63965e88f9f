"""Tests for timeline derivation."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from trackboard.core.timeline import (
    FALLBACK_COLOR,
    STATUS_COLORS,
    calculate_time_range,
    estimated_duration_days,
    expected_completion_date,
    project_to_timeline_item,
    projects_to_timeline,
    status_color,
)
from trackboard.models.project import ProjectStatus
from trackboard.models.timeline import TimelineItem

JAN_1 = datetime(2024, 1, 1, tzinfo=UTC)


def _item(start: datetime, end: datetime) -> TimelineItem:
    return TimelineItem(
        id="x", name="x", start_date=start, end_date=end, progress=0, status="Idea", color="#000"
    )


@pytest.mark.parametrize(
    ("progress", "days"),
    [(0, 90), (24, 90), (25, 60), (49, 60), (50, 45), (74, 45), (75, 30), (100, 30)],
)
def test_estimated_duration(progress, days):
    assert estimated_duration_days(progress) == days


def test_in_progress_item_uses_estimate(make_project):
    project = make_project("Eighty", status="In Progress", progress=80, created_at=JAN_1)
    item = project_to_timeline_item(project)
    assert item.start_date == JAN_1
    assert item.end_date == datetime(2024, 1, 31, tzinfo=UTC)
    assert item.color == "#60a5fa"
    assert item.status == "In Progress"
    assert item.progress == 80


def test_completed_item_ends_at_last_update(make_project):
    finished = datetime(2024, 2, 14, tzinfo=UTC)
    project = make_project("Done", status="Completed", progress=100, last_updated=finished)
    item = project_to_timeline_item(project)
    assert item.end_date == finished
    assert item.color == "#4ade80"


def test_end_never_before_start(make_project):
    projects = [
        make_project(f"P{progress}", progress=progress, status=status)
        for progress in (0, 30, 60, 90)
        for status in ("Idea", "Build", "Launch")
    ]
    for item in projects_to_timeline(projects):
        assert item.end_date >= item.start_date


def test_every_status_has_a_color():
    assert set(STATUS_COLORS) == set(ProjectStatus)
    for status in ProjectStatus:
        assert status_color(status) == STATUS_COLORS[status]
        assert status_color(status.value) == STATUS_COLORS[status]


def test_unknown_status_gets_fallback():
    assert status_color("Paused") == FALLBACK_COLOR


def test_time_range_pads_by_minimum_seven_days():
    window = calculate_time_range([_item(JAN_1, JAN_1 + timedelta(days=30))])
    assert window.start == JAN_1 - timedelta(days=7)
    assert window.end == JAN_1 + timedelta(days=37)


def test_time_range_pads_by_ten_percent():
    items = [
        _item(JAN_1, JAN_1 + timedelta(days=100)),
        _item(JAN_1 + timedelta(days=50), JAN_1 + timedelta(days=200)),
    ]
    window = calculate_time_range(items)
    assert window.start == JAN_1 - timedelta(days=20)
    assert window.end == JAN_1 + timedelta(days=220)
    assert window.days == 240


def test_time_range_contains_all_items(make_project):
    items = projects_to_timeline(
        [
            make_project("A", progress=10, created_at=JAN_1),
            make_project("B", progress=90, created_at=JAN_1 + timedelta(days=300)),
        ]
    )
    window = calculate_time_range(items)
    for item in items:
        assert window.start <= item.start_date
        assert item.end_date <= window.end


def test_empty_time_range_is_next_ninety_days():
    window = calculate_time_range([], now=JAN_1)
    assert window.start == JAN_1
    assert window.end == JAN_1 + timedelta(days=90)


@pytest.mark.parametrize(
    ("progress", "days"),
    [(0, 90), (30, 53), (25, 57), (50, 30), (80, 6), (100, 0)],
)
def test_expected_completion_date(progress, days):
    today = datetime(2024, 6, 1, tzinfo=UTC)
    result = expected_completion_date(progress, today=today)
    assert result == today + timedelta(days=days)


def test_expected_completion_date_counts_from_today():
    earlier = datetime(2024, 6, 1, tzinfo=UTC)
    later = datetime(2024, 9, 1, tzinfo=UTC)
    assert expected_completion_date(40, today=later) - later == (
        expected_completion_date(40, today=earlier) - earlier
    )
