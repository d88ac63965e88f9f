"""SQLite project store, the local stand-in for the hosted backend."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import aiosqlite

from trackboard.storage.base import ProjectStore

logger = logging.getLogger(__name__)

_COLUMNS: tuple[str, ...] = (
    "id",
    "name",
    "description",
    "type",
    "status",
    "usefulness",
    "is_monetized",
    "progress",
    "tags",
    "github_url",
    "website_url",
    "next_action",
    "category",
    "pinned",
    "account_used",
    "chat_links",
    "analysis_text",
    "milestones",
    "activity_logs",
    "ai_tasks",
    "created_at",
    "last_updated",
)

# Whitelist for UPDATE statements
_UPDATABLE: set[str] = set(_COLUMNS) - {"id", "created_at"}

_JSON_FIELDS: tuple[str, ...] = ("tags", "chat_links", "milestones", "activity_logs", "ai_tasks")
_BOOL_FIELDS: tuple[str, ...] = ("is_monetized", "pinned")

_INSERT_SQL = (
    f"INSERT INTO projects ({', '.join(_COLUMNS)}) "
    f"VALUES ({', '.join(':' + c for c in _COLUMNS)})"
)


class SQLiteStore(ProjectStore):
    """aiosqlite-backed project store with WAL mode."""

    def __init__(self, db_path: Path, *, wal_mode: bool = True) -> None:
        self.db_path = db_path
        self.wal_mode = wal_mode
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Create the database file and apply the schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(str(self.db_path))
        self._db.row_factory = aiosqlite.Row

        if self.wal_mode:
            await self._db.execute("PRAGMA journal_mode=WAL")

        await self._db.executescript(_load_sql("projects.sql"))
        await self._db.commit()
        logger.info("Initialized SQLite store at %s", self.db_path)

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise RuntimeError("Store not initialized. Call initialize() first.")
        return self._db

    async def insert_project(self, project: dict[str, Any]) -> dict[str, Any]:
        await self.db.execute(_INSERT_SQL, _to_row(project))
        await self.db.commit()
        return project

    async def insert_projects(self, projects: list[dict[str, Any]]) -> int:
        if not projects:
            return 0
        try:
            await self.db.executemany(_INSERT_SQL, [_to_row(p) for p in projects])
        except aiosqlite.Error:
            await self.db.rollback()
            raise
        await self.db.commit()
        return len(projects)

    async def get_project(self, project_id: str) -> dict[str, Any] | None:
        cursor = await self.db.execute("SELECT * FROM projects WHERE id = ?", (project_id,))
        row = await cursor.fetchone()
        return _row_to_dict(row) if row else None

    async def update_project(
        self, project_id: str, updates: dict[str, Any]
    ) -> dict[str, Any] | None:
        existing = await self.get_project(project_id)
        if not existing:
            return None

        rejected = set(updates) - _UPDATABLE - {"id"}
        if rejected:
            logger.warning("Rejected invalid project columns: %s", rejected)
        updates = _to_row({k: v for k, v in updates.items() if k in _UPDATABLE}, partial=True)
        if not updates:
            return existing

        set_clause = ", ".join(f"{key} = :{key}" for key in updates)
        await self.db.execute(
            f"UPDATE projects SET {set_clause} WHERE id = :_id",
            {**updates, "_id": project_id},
        )
        await self.db.commit()
        return await self.get_project(project_id)

    async def delete_project(self, project_id: str) -> bool:
        cursor = await self.db.execute("DELETE FROM projects WHERE id = ?", (project_id,))
        await self.db.commit()
        return cursor.rowcount > 0

    async def list_projects(self) -> list[dict[str, Any]]:
        cursor = await self.db.execute("SELECT * FROM projects ORDER BY last_updated DESC")
        rows = await cursor.fetchall()
        return [_row_to_dict(row) for row in rows]

    async def existing_ids(self, ids: list[str]) -> set[str]:
        if not ids:
            return set()
        placeholders = ",".join("?" * len(ids))
        cursor = await self.db.execute(
            f"SELECT id FROM projects WHERE id IN ({placeholders})", ids
        )
        rows = await cursor.fetchall()
        return {row["id"] for row in rows}

    async def get_stats(self) -> dict[str, Any]:
        cursor = await self.db.execute("SELECT COUNT(*) FROM projects")
        row = await cursor.fetchone()
        total = row[0] if row else 0

        cursor = await self.db.execute(
            "SELECT status, COUNT(*) AS count FROM projects GROUP BY status"
        )
        rows = await cursor.fetchall()

        return {
            "projects": total,
            "by_status": {row["status"]: row["count"] for row in rows},
            "db_path": str(self.db_path),
        }


# --- Helpers ---


def _load_sql(filename: str) -> str:
    """Load an SQL file from the schema package."""
    schema_dir = Path(__file__).parent.parent / "schema"
    return (schema_dir / filename).read_text()


def _to_row(data: dict[str, Any], *, partial: bool = False) -> dict[str, Any]:
    """Serialize list fields to JSON and booleans to ints for SQLite."""
    row = dict(data) if partial else {column: data.get(column) for column in _COLUMNS}
    for field in _JSON_FIELDS:
        if field in row:
            value = row[field]
            row[field] = json.dumps(value if value is not None else [])
    for field in _BOOL_FIELDS:
        if field in row:
            row[field] = int(bool(row[field]))
    return row


def _row_to_dict(row: aiosqlite.Row) -> dict[str, Any]:
    """Convert an aiosqlite Row to a dict, decoding JSON and boolean fields."""
    d = dict(row)
    for key in _JSON_FIELDS:
        if isinstance(d.get(key), str):
            d[key] = json.loads(d[key])
    for key in _BOOL_FIELDS:
        if key in d:
            d[key] = bool(d[key])
    return d
