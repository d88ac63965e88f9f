"""Derived timeline records."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class TimelineItem(BaseModel):
    """A project's span on the timeline. Derived, never persisted."""

    id: str
    name: str
    start_date: datetime
    end_date: datetime
    progress: int
    status: str
    color: str


class TimeRange(BaseModel):
    start: datetime
    end: datetime

    @property
    def days(self) -> int:
        return (self.end - self.start).days
