"""FastMCP server — 4 consolidated tools, 2 resources, 1 prompt."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, Any, Literal

import anyio
from fastmcp import FastMCP
from pydantic import Field

from trackboard import __version__
from trackboard.config import Config
from trackboard.core import analytics
from trackboard.core.advisor import suggest_next_step, weekly_sprint
from trackboard.core.codec import export_filename
from trackboard.core.dashboard import DashboardState
from trackboard.core.filters import build_filter
from trackboard.core.insights import InsightsClient, InsightsPanel, ProjectInsightsPanel
from trackboard.core.projects import ProjectService
from trackboard.core.tags import TagSuggestionIndex
from trackboard.core.timeline import calculate_time_range, projects_to_timeline
from trackboard.errors import ParseError, TrackboardError
from trackboard.events.bus import EventBus
from trackboard.models.project import ProjectStatus
from trackboard.storage.sqlite_store import SQLiteStore

logger = logging.getLogger(__name__)


def _json(data: dict[str, Any]) -> str:
    return json.dumps(data, default=str)


def _ok(data: dict[str, Any]) -> str:
    """Return a versioned JSON success response."""
    return _json({**data, "_v": "1.0"})


def _err(msg: str, **extra: Any) -> str:
    """Return a versioned JSON error response."""
    return _json({"_v": "1.0", "error": msg, **extra})


def create_server(db_path: str, *, config: Config | None = None) -> FastMCP:
    """Create FastMCP server with 4 consolidated tools.

    The store is opened on first use and closed when the server shuts down.
    """
    config = config or Config.load()

    state: dict[str, Any] = {}
    _lock = asyncio.Lock()

    async def _shutdown() -> None:
        async with _lock:
            store = state.get("store")
            state.clear()
        if store is not None:
            await store.close()
            logger.info("Closed project store: %s", db_path)

    @asynccontextmanager
    async def _lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
        try:
            yield {}
        finally:
            # The session task group may already be cancelled here
            with anyio.CancelScope(shield=True):
                await _shutdown()

    mcp = FastMCP("trackboard", version=__version__, lifespan=_lifespan)

    async def _init() -> dict[str, Any]:
        async with _lock:
            if "init_failed" in state:
                raise RuntimeError(f"Trackboard init previously failed for {db_path}")
            if "projects" not in state:
                store = SQLiteStore(Path(db_path))
                try:
                    await store.initialize()
                except Exception as e:
                    await store.close()
                    state["init_failed"] = True
                    logger.error("Failed to initialize database: %s", e)
                    raise RuntimeError(f"Trackboard init failed: {db_path}") from e
                bus = EventBus()
                state["store"] = store
                state["bus"] = bus
                state["projects"] = ProjectService(store, bus)
                state["dashboard"] = DashboardState(
                    sort_by=config.default_sort, view_mode=config.default_view_mode
                )
                client = InsightsClient(config)
                state["panel"] = InsightsPanel(client, event_bus=bus)
                state["project_panel"] = ProjectInsightsPanel(
                    client,
                    event_bus=bus,
                    project_limit=config.insight_project_limit,
                )
                state["tags"] = TagSuggestionIndex(
                    limit=config.tag_suggestion_limit,
                    default_count=config.tag_default_count,
                )
        return state

    # ── tb_projects ───────────────────────────────────────────

    @mcp.tool()
    async def tb_projects(
        action: Annotated[
            Literal["add", "get", "update", "delete", "log", "list"],
            Field(description="add | get | update | delete | log | list"),
        ],
        project_id: Annotated[
            str | None,
            Field(description="Project ID (get, update, delete, log)"),
        ] = None,
        name: Annotated[
            str | None,
            Field(description="Project name (add, update)"),
        ] = None,
        fields: Annotated[
            dict[str, Any] | None,
            Field(description="Other project fields, e.g. status, progress, tags (add, update)"),
        ] = None,
        text: Annotated[
            str | None,
            Field(description="Activity log text (log)"),
        ] = None,
        status: Annotated[
            str | None,
            Field(description="Status filter or 'All Status' (list)"),
        ] = None,
        type: Annotated[
            str | None,
            Field(description="Type filter or 'All Types' (list)"),
        ] = None,
        usefulness: Annotated[
            str | None,
            Field(description="Usefulness filter 1-5 or 'All Ratings' (list)"),
        ] = None,
        monetized_only: Annotated[
            bool,
            Field(description="Only monetized projects (list)"),
        ] = False,
        tags: Annotated[
            list[str] | None,
            Field(description="Projects must carry all of these tags (list)"),
        ] = None,
        search: Annotated[
            str | None,
            Field(description="Case-insensitive name search (list)"),
        ] = None,
        sort_by: Annotated[
            str | None,
            Field(description="name | status | usefulness | progress (list)"),
        ] = None,
        detail: Annotated[
            str,
            Field(description="summary or full (list, default: summary)"),
        ] = "summary",
    ) -> str:
        """Create, read, update, delete and filter tracked projects.

Actions: add (create project), get (one project in full), update (change fields), delete, log (append activity entry), list (filter and sort)."""  # noqa: E501
        s = await _init()
        svc: ProjectService = s["projects"]

        try:
            if action == "add":
                if not name or not name.strip():
                    return _err("name is required for add")
                project = await svc.create_project(name=name, **(fields or {}))
                return _ok(project.to_response(detail="full"))

            if action == "list":
                filters = build_filter(
                    status=status,
                    type=type,
                    usefulness=usefulness,
                    monetized_only=monetized_only,
                    tags=tags,
                    search_query=search,
                )
                projects = await svc.list_projects(filters, sort_by=sort_by)
                items = [p.to_response(detail=detail) for p in projects]
                return _ok({"count": len(items), "projects": items})

            if not project_id or not project_id.strip():
                return _err(f"project_id is required for {action}")
            project_id = project_id.strip()

            if action == "get":
                project = await svc.get_project(project_id)
                if project is None:
                    return _err(f"Project {project_id} not found")
                step = suggest_next_step(project)
                return _ok({
                    **project.to_response(detail="full"),
                    "next_step": step.model_dump(),
                })

            if action == "update":
                updates = dict(fields or {})
                if name is not None:
                    updates["name"] = name
                if not updates:
                    return _err("fields or name is required for update")
                project = await svc.update_project(project_id, **updates)
                if project is None:
                    return _err(f"Project {project_id} not found")
                return _ok(project.to_response(detail="full"))

            if action == "delete":
                if not await svc.delete_project(project_id):
                    return _err(f"Project {project_id} not found")
                return _ok({"deleted": project_id})

            if action == "log":
                if not text:
                    return _err("text is required for log")
                project = await svc.log_activity(project_id, text)
                if project is None:
                    return _err(f"Project {project_id} not found")
                return _ok({
                    "id": project.id,
                    "activity_logs": [
                        log.model_dump(mode="json") for log in project.activity_logs
                    ],
                })
        except TrackboardError as e:
            return _err(str(e), field=getattr(e, "field", None))

        return _err(f"Unknown action: {action}")

    # ── tb_transfer ───────────────────────────────────────────

    @mcp.tool()
    async def tb_transfer(
        action: Annotated[
            Literal["export", "import"],
            Field(description="export | import"),
        ],
        format: Annotated[
            Literal["csv", "json"],
            Field(description="csv or json"),
        ] = "json",
        content: Annotated[
            str | None,
            Field(description="CSV or JSON text to import (import)"),
        ] = None,
    ) -> str:
        """Export all projects as CSV or JSON text, or import projects from such text.

An import is all-or-nothing: a malformed row rejects the whole batch."""
        s = await _init()
        svc: ProjectService = s["projects"]

        if action == "export":
            text = await svc.export(format)
            return _ok({"filename": export_filename(format), "content": text})

        if not content:
            return _err("content is required for import")
        try:
            if format == "json":
                imported = await svc.import_json(content)
            else:
                imported = await svc.import_csv(content)
        except ParseError as e:
            return _err(str(e), row=e.row)
        except TrackboardError as e:
            return _err(str(e))
        if not imported:
            return _err("No valid projects found")
        return _ok({
            "imported": len(imported),
            "ids": [p.id for p in imported],
        })

    # ── tb_view ───────────────────────────────────────────────

    @mcp.tool()
    async def tb_view(
        action: Annotated[
            Literal["timeline", "stats", "sprint", "tags", "groups"],
            Field(description="timeline | stats | sprint | tags | groups"),
        ],
        query: Annotated[
            str | None,
            Field(description="Partial tag to complete (tags)"),
        ] = None,
        exclude: Annotated[
            list[str] | None,
            Field(description="Tags already chosen (tags)"),
        ] = None,
        group_by: Annotated[
            str,
            Field(description="status | type | category (groups)"),
        ] = "status",
    ) -> str:
        """Derived dashboard views: timeline bars, analytics, weekly sprint, tag suggestions and project groups."""  # noqa: E501
        s = await _init()

        if action == "tags":
            suggestions = s["tags"].suggest(query or "", exclude=exclude or ())
            return _ok({"suggestions": suggestions})

        projects = await s["projects"].list_projects()

        if action == "timeline":
            items = projects_to_timeline(projects)
            window = calculate_time_range(items)
            return _ok({
                "range": window.model_dump(mode="json"),
                "items": [item.model_dump(mode="json") for item in items],
            })

        if action == "stats":
            return _ok(analytics.summarize(projects))

        if action == "sprint":
            return _ok({
                "sprint": [suggestion.model_dump() for suggestion in weekly_sprint(projects)]
            })

        if action == "groups":
            dashboard: DashboardState = s["dashboard"]
            try:
                dashboard.set_group_by(group_by)
            except TrackboardError as e:
                return _err(str(e))
            groups = dashboard.grouped(projects)
            return _ok({
                "group_by": group_by,
                "groups": {
                    title: [p.to_response() for p in members]
                    for title, members in groups.items()
                },
            })

        return _err(f"Unknown action: {action}")

    # ── tb_insights ───────────────────────────────────────────

    @mcp.tool()
    async def tb_insights(
        action: Annotated[
            Literal["summary", "projects", "priorities", "tasks"],
            Field(description="summary | projects | priorities | tasks"),
        ],
        project_id: Annotated[
            str | None,
            Field(description="Project whose analysis text becomes tasks (tasks)"),
        ] = None,
        analysis_text: Annotated[
            str | None,
            Field(description="Analysis text; defaults to the project's stored text (tasks)"),
        ] = None,
        refresh: Annotated[
            bool,
            Field(description="Ignore cached per-project insights (projects)"),
        ] = False,
    ) -> str:
        """AI-generated insights: cross-project summary, per-project insights, attention priorities, or tasks from an analysis text."""  # noqa: E501
        s = await _init()
        svc: ProjectService = s["projects"]
        projects = await svc.list_projects()

        if action == "summary":
            panel: InsightsPanel = s["panel"]
            insight = await panel.refresh(projects)
            if insight is None:
                return _err(panel.error or "No insight available")
            return _ok(insight.model_dump(mode="json"))

        if action == "projects":
            project_panel: ProjectInsightsPanel = s["project_panel"]
            insights = await project_panel.refresh(projects, force=refresh)
            if not insights:
                return _err(project_panel.error or "No insight available")
            return _ok({"insights": [i.model_dump() for i in insights]})

        client = InsightsClient(config)
        try:
            if action == "priorities":
                result = await client.fetch_priorities(projects)
                return _ok(result.model_dump())

            if action == "tasks":
                if not project_id:
                    return _err("project_id is required for tasks")
                project = await svc.get_project(project_id.strip())
                if project is None:
                    return _err(f"Project {project_id} not found")
                text = analysis_text or project.analysis_text or ""
                tasks = await client.generate_tasks(text, project.ai_tasks)
                updated = await svc.update_project(
                    project.id, ai_tasks=tasks, analysis_text=text
                )
                if updated is None:
                    return _err(f"Project {project_id} not found")
                return _ok({
                    "id": updated.id,
                    "ai_tasks": [t.model_dump(mode="json") for t in updated.ai_tasks],
                })
        except TrackboardError as e:
            return _err(str(e))

        return _err(f"Unknown action: {action}")

    # ── Resources ─────────────────────────────────────────────

    @mcp.resource("tb://projects")
    async def tb_resource_projects() -> str:
        """All projects with status and progress."""
        s = await _init()
        projects = await s["projects"].list_projects(sort_by="name")
        return _ok({
            "count": len(projects),
            "projects": [p.to_response() for p in projects],
        })

    @mcp.resource("tb://stats")
    async def tb_resource_stats() -> str:
        """Dashboard analytics and storage overview."""
        s = await _init()
        projects = await s["projects"].list_projects()
        return _ok({
            "analytics": analytics.summarize(projects),
            "store": await s["store"].get_stats(),
        })

    # ── Prompts ───────────────────────────────────────────────

    @mcp.prompt()
    async def tb_weekly_review() -> str:
        """Weekly review — active projects, their next steps, and a suggested sprint."""
        s = await _init()
        projects = await s["projects"].list_projects(sort_by="usefulness")

        parts = ["# Weekly Project Review\n"]
        active = [
            p
            for p in projects
            if p.status not in (ProjectStatus.COMPLETED, ProjectStatus.ABANDONED)
        ]
        if not active:
            parts.append("No active projects.")
            return "\n".join(parts)

        parts.append("## Active Projects")
        for p in active:
            step = suggest_next_step(p)
            parts.append(f"- **{p.name}** ({p.status.value}, {p.progress}%)")
            parts.append(f"    Next: {p.next_action or step.step}")

        sprint = weekly_sprint(projects)
        if sprint:
            parts.append("\n## Suggested Sprint")
            for suggestion in sprint:
                parts.append(f"- {suggestion.project_name}")
                for task in suggestion.tasks:
                    parts.append(f"    - {task}")

        return "\n".join(parts)

    return mcp
