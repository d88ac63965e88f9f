"""CSV and JSON import/export for project records.

CSV carries the flat fields listed in CSV_COLUMNS. Nested and form-only
fields (CSV_LOSSY_FIELDS) are dropped on CSV export and take their defaults
on import; JSON export is the lossless format.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from collections.abc import Iterable
from datetime import UTC, date, datetime
from enum import Enum
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from trackboard.errors import ParseError, ValidationError, from_pydantic
from trackboard.models.project import TAG_SEPARATOR, Project

logger = logging.getLogger(__name__)

CSV_COLUMNS: tuple[str, ...] = (
    "id",
    "name",
    "description",
    "type",
    "status",
    "usefulness",
    "isMonetized",
    "progress",
    "tags",
    "githubUrl",
    "websiteUrl",
    "nextAction",
    "lastUpdated",
    "createdAt",
    "category",
)

CSV_LOSSY_FIELDS: tuple[str, ...] = (
    "milestones",
    "activityLogs",
    "aiTasks",
    "chatLinks",
    "accountUsed",
    "analysisText",
    "pinned",
)

EXPORT_FORMATS: tuple[str, ...] = ("csv", "json")

_FIELD_FOR_COLUMN: dict[str, str] = {
    "id": "id",
    "name": "name",
    "description": "description",
    "type": "type",
    "status": "status",
    "usefulness": "usefulness",
    "isMonetized": "is_monetized",
    "progress": "progress",
    "tags": "tags",
    "githubUrl": "github_url",
    "websiteUrl": "website_url",
    "nextAction": "next_action",
    "lastUpdated": "last_updated",
    "createdAt": "created_at",
    "category": "category",
}

# Cells read back exactly as written; every other cell is trimmed
_FREE_TEXT_COLUMNS = frozenset({"description", "nextAction", "category"})

# Characters that force a cell to be quoted
_QUOTE_TRIGGERS = (",", '"', "\n", "\r")


def _quote(text: str) -> str:
    return '"' + text.replace('"', '""') + '"'


def _encode_cell(project: Project, column: str) -> str:
    if column == "tags":
        return _quote(TAG_SEPARATOR.join(project.tags))
    if column == "isMonetized":
        return "true" if project.is_monetized else "false"

    value = getattr(project, _FIELD_FOR_COLUMN[column])
    if value is None:
        return ""
    if isinstance(value, datetime):
        text = value.isoformat()
    elif isinstance(value, Enum):
        text = str(value.value)
    else:
        text = str(value)

    if any(ch in text for ch in _QUOTE_TRIGGERS):
        return _quote(text)
    return text


def export_csv(projects: Iterable[Project]) -> str:
    """Render projects as CSV text: a header row then one row per project."""
    lines = [",".join(CSV_COLUMNS)]
    for project in projects:
        lines.append(",".join(_encode_cell(project, column) for column in CSV_COLUMNS))
    return "\n".join(lines)


def export_json(projects: Iterable[Project]) -> str:
    """Render complete project records as a 2-space indented JSON array."""
    return json.dumps([p.to_export() for p in projects], indent=2, ensure_ascii=False)


def _is_blank(record: list[str]) -> bool:
    return not record or (len(record) == 1 and not record[0].strip())


def import_csv(text: str) -> list[Project]:
    """Parse CSV text produced by export_csv (or a compatible sheet).

    Unknown columns are ignored and blank lines skipped. Description, next
    action and category cells are kept verbatim, other cells are trimmed, and
    an empty cell leaves its field unset. Rows without a name
    are skipped with a warning. A row whose cell count differs from the header,
    or whose values fail validation, aborts the whole parse with ParseError.

    Raises:
        ParseError: With ``row`` set to the record index (header is row 0)
    """
    try:
        records = [r for r in csv.reader(io.StringIO(text)) if not _is_blank(r)]
    except csv.Error as e:
        raise ParseError(f"Malformed CSV: {e}") from e

    if not records:
        return []

    header = [cell.strip() for cell in records[0]]
    header[0] = header[0].lstrip("\ufeff")
    if "name" not in header:
        raise ParseError("Header has no 'name' column", row=0)

    unknown = [column for column in header if column not in _FIELD_FOR_COLUMN]
    if unknown:
        logger.info("Ignoring unknown CSV columns: %s", unknown)

    projects: list[Project] = []
    for index, record in enumerate(records[1:], start=1):
        if len(record) != len(header):
            raise ParseError(
                f"Expected {len(header)} columns, found {len(record)}", row=index
            )

        values = dict(zip(header, record, strict=True))
        if not values["name"].strip():
            logger.warning("Skipping CSV row %d: project name is empty", index)
            continue

        data: dict[str, object] = {}
        for column, raw in values.items():
            field = _FIELD_FOR_COLUMN.get(column)
            if field is None:
                continue
            if column in _FREE_TEXT_COLUMNS:
                if raw:
                    data[field] = raw
                continue
            raw = raw.strip()
            if column == "tags":
                data[field] = [t.strip() for t in raw.split(TAG_SEPARATOR) if t.strip()]
            elif column == "isMonetized":
                data[field] = raw.lower() == "true"
            elif raw:
                data[field] = raw

        try:
            projects.append(Project(**data))
        except PydanticValidationError as e:
            raise ParseError(str(from_pydantic(e)), row=index) from e

    logger.info("Parsed %d projects from CSV", len(projects))
    return projects


def import_json(text: str) -> list[Project]:
    """Parse a JSON export back into projects.

    Raises:
        ParseError: With ``row`` set to the zero-based array index of a bad record
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: {e.msg} (line {e.lineno})") from e

    if not isinstance(data, list):
        raise ParseError("Expected a JSON array of projects")

    projects: list[Project] = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ParseError("Expected a project object", row=index)
        try:
            projects.append(Project.model_validate(item))
        except PydanticValidationError as e:
            raise ParseError(str(from_pydantic(e)), row=index) from e
    return projects


def export_filename(fmt: str, today: date | None = None) -> str:
    """Download filename for an export, stamped with the UTC date."""
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(f"Unsupported export format: {fmt}", field="format")
    today = today or datetime.now(UTC).date()
    return f"projects_export_{today.isoformat()}.{fmt}"


def export_projects(projects: Iterable[Project], fmt: str) -> str:
    """Render projects in the given export format."""
    if fmt == "csv":
        return export_csv(projects)
    if fmt == "json":
        return export_json(projects)
    raise ValidationError(f"Unsupported export format: {fmt}", field="format")


def write_export(
    projects: Iterable[Project],
    fmt: str,
    directory: Path,
    *,
    today: date | None = None,
) -> Path:
    """Write an export file into ``directory`` and return its path."""
    content = export_projects(projects, fmt)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / export_filename(fmt, today)
    path.write_text(content, encoding="utf-8")
    logger.info("Exported projects to %s", path)
    return path
