"""Shared test fixtures for Trackboard."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from trackboard.config import Config
from trackboard.core.projects import ProjectService
from trackboard.events.bus import EventBus
from trackboard.models.project import Project
from trackboard.storage.sqlite_store import SQLiteStore


@pytest.fixture
def tmp_db(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
async def store(tmp_db: Path) -> SQLiteStore:
    s = SQLiteStore(tmp_db)
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(workspace_path=tmp_path, functions_url="https://fn.test/functions/v1")


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def service(store: SQLiteStore, event_bus: EventBus) -> ProjectService:
    return ProjectService(store, event_bus)


@pytest.fixture
def make_project() -> Callable[..., Project]:
    """Factory for in-memory projects with fixed timestamps."""

    def _make(name: str = "Project", **fields: Any) -> Project:
        fields.setdefault("created_at", datetime(2024, 1, 1, tzinfo=UTC))
        fields.setdefault("last_updated", datetime(2024, 1, 1, tzinfo=UTC))
        return Project(name=name, **fields)

    return _make
