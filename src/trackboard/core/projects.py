"""Project service: validated CRUD, listing and bulk import/export."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from trackboard.core import codec
from trackboard.core.filters import filter_projects, sort_projects
from trackboard.core.tags import normalize_tags
from trackboard.errors import ValidationError, from_pydantic
from trackboard.events.bus import EventBus
from trackboard.events.types import EventType
from trackboard.models.filters import ProjectFilter
from trackboard.models.project import ActivityLog, Project
from trackboard.storage.base import ProjectStore

logger = logging.getLogger(__name__)

INITIAL_ACTIVITY = "Initial project setup completed"

_IMMUTABLE_FIELDS = {"id", "created_at"}


class ProjectService:
    """Validated access to the project store."""

    def __init__(self, store: ProjectStore, event_bus: EventBus) -> None:
        """Initialize ProjectService.

        Args:
            store: Backend holding the project records
            event_bus: Event bus for emitting change events
        """
        self._store = store
        self._event_bus = event_bus

    async def create_project(self, *, name: str, **fields: Any) -> Project:
        """Create and store a new project.

        Args:
            name: Project name (required, cannot be blank)
            **fields: Any other Project field (status, type, progress, tags, ...)

        Returns:
            Created Project instance

        Raises:
            ValidationError: If any field violates the project invariants
        """
        if "tags" in fields and fields["tags"] is not None:
            fields["tags"] = normalize_tags(fields["tags"])
        now = datetime.now(UTC)
        fields.setdefault("created_at", now)
        fields.setdefault("last_updated", now)
        if not fields.get("activity_logs"):
            fields["activity_logs"] = [ActivityLog(text=INITIAL_ACTIVITY, date=now)]

        try:
            project = Project(name=name, **fields)
        except PydanticValidationError as e:
            raise from_pydantic(e) from e

        if await self._store.existing_ids([project.id]):
            raise ValidationError(f"Project id already exists: {project.id}", field="id")

        await self._store.insert_project(project.to_storage())
        logger.info("Created project: %s (id=%s)", project.name, project.id)

        await self._event_bus.emit(
            EventType.PROJECT_CREATED,
            {"project_id": project.id, "name": project.name},
        )
        return project

    async def get_project(self, project_id: str) -> Project | None:
        data = await self._store.get_project(project_id)
        if not data:
            return None
        return Project(**data)

    async def update_project(self, project_id: str, **updates: Any) -> Project | None:
        """Update fields of a project and bump its last-updated timestamp.

        Args:
            project_id: Project identifier
            **updates: Fields to change

        Returns:
            Updated Project, or None if the project does not exist

        Raises:
            ValidationError: If a field is unknown, immutable or invalid
        """
        current = await self.get_project(project_id)
        if current is None:
            return None

        for key in updates:
            if key in _IMMUTABLE_FIELDS:
                raise ValidationError(f"{key} cannot be changed", field=key)
            if key not in Project.model_fields:
                raise ValidationError(f"Unknown project field: {key}", field=key)

        if updates.get("tags") is not None:
            updates["tags"] = normalize_tags(updates["tags"])

        merged = {**current.model_dump(), **updates, "last_updated": datetime.now(UTC)}
        try:
            updated = Project.model_validate(merged)
        except PydanticValidationError as e:
            raise from_pydantic(e) from e

        stored = updated.to_storage()
        changes = {key: stored[key] for key in (*updates, "last_updated")}
        await self._store.update_project(project_id, changes)
        logger.info("Updated project: %s (id=%s)", updated.name, project_id)

        await self._event_bus.emit(
            EventType.PROJECT_UPDATED,
            {"project_id": project_id, "fields": sorted(updates)},
        )
        return updated

    async def log_activity(self, project_id: str, text: str) -> Project | None:
        """Append an entry to a project's activity log."""
        if not text or not text.strip():
            raise ValidationError("Activity text cannot be empty", field="text")
        current = await self.get_project(project_id)
        if current is None:
            return None
        logs = [*current.activity_logs, ActivityLog(text=text.strip())]
        return await self.update_project(project_id, activity_logs=logs)

    async def delete_project(self, project_id: str) -> bool:
        deleted = await self._store.delete_project(project_id)
        if not deleted:
            return False

        logger.info("Deleted project: id=%s", project_id)
        await self._event_bus.emit(EventType.PROJECT_DELETED, {"project_id": project_id})
        return True

    async def list_projects(
        self,
        filters: ProjectFilter | None = None,
        *,
        sort_by: str | None = None,
    ) -> list[Project]:
        """Fetch all projects, then filter and optionally sort them.

        Without ``sort_by`` the backend order (most recently updated first)
        is kept.
        """
        rows = await self._store.list_projects()
        projects = filter_projects((Project(**row) for row in rows), filters)
        if sort_by:
            projects = sort_projects(projects, sort_by)
        return projects

    async def import_csv(self, text: str) -> list[Project]:
        """Parse CSV and store every project, or nothing if parsing fails.

        Raises:
            ParseError: If the CSV is malformed; no project is written
        """
        return await self._import(codec.import_csv(text), source="CSV")

    async def import_json(self, text: str) -> list[Project]:
        return await self._import(codec.import_json(text), source="JSON")

    async def _import(self, parsed: list[Project], *, source: str) -> list[Project]:
        if not parsed:
            logger.warning("No valid projects found in %s data", source)
            return []

        taken = await self._store.existing_ids([p.id for p in parsed])
        now = datetime.now(UTC)
        entry = ActivityLog(text=f"Project imported from {source}", date=now)

        imported: list[Project] = []
        for project in parsed:
            update: dict[str, Any] = {"activity_logs": [*project.activity_logs, entry]}
            if project.id in taken:
                update["id"] = str(uuid.uuid4())
            taken.add(update.get("id", project.id))
            imported.append(project.model_copy(update=update))

        await self._store.insert_projects([p.to_storage() for p in imported])
        logger.info("Imported %d projects from %s", len(imported), source)

        await self._event_bus.emit(
            EventType.PROJECTS_IMPORTED,
            {"count": len(imported), "source": source},
        )
        return imported

    async def export(self, fmt: str, filters: ProjectFilter | None = None) -> str:
        """Render the (optionally filtered) project list as CSV or JSON text."""
        projects = await self.list_projects(filters)
        content = codec.export_projects(projects, fmt)
        await self._event_bus.emit(
            EventType.PROJECTS_EXPORTED,
            {"count": len(projects), "format": fmt},
        )
        return content
