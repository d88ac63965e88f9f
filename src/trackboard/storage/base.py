"""Abstract interface to the project backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ProjectStore(ABC):
    """Read/write/delete project records by id.

    Records are plain dicts with snake_case keys, as produced by
    ``Project.to_storage()``.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the backend for use."""

    @abstractmethod
    async def close(self) -> None:
        """Release connections."""

    @abstractmethod
    async def insert_project(self, project: dict[str, Any]) -> dict[str, Any]:
        """Insert a project. Returns the inserted record."""

    @abstractmethod
    async def insert_projects(self, projects: list[dict[str, Any]]) -> int:
        """Insert several projects atomically: all or none. Returns the count."""

    @abstractmethod
    async def get_project(self, project_id: str) -> dict[str, Any] | None:
        """Get a project by id, or None."""

    @abstractmethod
    async def update_project(
        self, project_id: str, updates: dict[str, Any]
    ) -> dict[str, Any] | None:
        """Apply updates. Returns the updated record or None if missing."""

    @abstractmethod
    async def delete_project(self, project_id: str) -> bool:
        """Delete a project. Returns True if it existed."""

    @abstractmethod
    async def list_projects(self) -> list[dict[str, Any]]:
        """All projects, most recently updated first."""

    @abstractmethod
    async def existing_ids(self, ids: list[str]) -> set[str]:
        """Subset of ``ids`` already present."""

    @abstractmethod
    async def get_stats(self) -> dict[str, Any]:
        """Counts for status output."""
