"""CLI — init, add, list, show, update, delete, log, export, import, timeline, tags,
stats, deadlines, sprint, insights, priorities, serve."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from trackboard.config import Config
from trackboard.core import analytics
from trackboard.core.advisor import suggest_next_step, weekly_sprint
from trackboard.core.codec import EXPORT_FORMATS, export_projects, write_export
from trackboard.core.dashboard import DashboardState
from trackboard.core.filters import GROUP_KEYS, SORT_KEYS, build_filter
from trackboard.core.insights import InsightsClient, InsightsPanel, ProjectInsightsPanel
from trackboard.core.projects import ProjectService
from trackboard.core.tags import TagSuggestionIndex
from trackboard.core.timeline import calculate_time_range, projects_to_timeline
from trackboard.errors import TrackboardError
from trackboard.events.bus import EventBus
from trackboard.models.project import Project, ProjectStatus, ProjectType
from trackboard.storage.sqlite_store import SQLiteStore

T = TypeVar("T")

STATUS_CHOICES = [s.value for s in ProjectStatus]
TYPE_CHOICES = [t.value for t in ProjectType]


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def _run(coro_fn: Callable[[], Awaitable[T]]) -> T:
    """Run an async command body, turning Trackboard errors into exit code 1."""
    try:
        return asyncio.run(coro_fn())
    except TrackboardError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


async def _with_service(config: Config, body: Callable[[ProjectService], Awaitable[T]]) -> T:
    if not config.db_path.exists():
        raise TrackboardError(f"No database at {config.db_path}. Run 'trackboard init' first.")
    store = SQLiteStore(config.db_path)
    await store.initialize()
    try:
        return await body(ProjectService(store, EventBus()))
    finally:
        await store.close()


def _project_table(projects: list[Project], title: str = "Projects") -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Status")
    table.add_column("Type")
    table.add_column("Useful", justify="right")
    table.add_column("Progress", justify="right", style="magenta")
    table.add_column("Tags", style="green")
    for p in projects:
        table.add_row(
            p.id[:8],
            ("* " if p.pinned else "") + p.name,
            p.status.value,
            p.type.value,
            str(p.usefulness),
            f"{p.progress}%",
            ", ".join(p.tags),
        )
    return table


def _field_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by add and update."""
    options = [
        click.option("--description", default=None),
        click.option("--type", "type_", type=click.Choice(TYPE_CHOICES), default=None),
        click.option("--status", type=click.Choice(STATUS_CHOICES), default=None),
        click.option("--usefulness", type=int, default=None, help="Rating 1-5"),
        click.option("--monetized/--not-monetized", default=None),
        click.option("--progress", type=int, default=None, help="Percent 0-100"),
        click.option("--tag", "tags", multiple=True, help="Repeatable"),
        click.option("--github", "github_url", default=None),
        click.option("--website", "website_url", default=None),
        click.option("--next-action", default=None),
        click.option("--category", default=None),
        click.option("--pinned/--unpinned", default=None),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _collect_fields(**raw: Any) -> dict[str, Any]:
    fields = {
        "description": raw["description"],
        "type": raw["type_"],
        "status": raw["status"],
        "usefulness": raw["usefulness"],
        "is_monetized": raw["monetized"],
        "progress": raw["progress"],
        "tags": list(raw["tags"]) or None,
        "github_url": raw["github_url"],
        "website_url": raw["website_url"],
        "next_action": raw["next_action"],
        "category": raw["category"],
        "pinned": raw["pinned"],
    }
    return {key: value for key, value in fields.items() if value is not None}


@click.group()
@click.version_option(package_name="trackboard")
@click.option(
    "--workspace",
    type=click.Path(file_okay=False),
    default=None,
    help="Workspace directory (default: ~/.trackboard)",
)
@click.pass_context
def main(ctx: click.Context, workspace: str | None) -> None:
    """Trackboard — track side projects, their progress and their timelines."""
    path = Path(workspace).expanduser().resolve() if workspace else None
    config = Config.load(path)
    _setup_logging(config.log_level)
    ctx.obj = config


@main.command()
@click.pass_obj
def init(config: Config) -> None:
    """Initialize a new workspace."""

    async def _init() -> None:
        store = SQLiteStore(config.db_path)
        await store.initialize()
        await store.close()

    asyncio.run(_init())
    config.save()
    click.echo(f"Initialized workspace at {config.workspace_path}")
    click.echo(f"Database: {config.db_path}")


@main.command()
@click.argument("name")
@_field_options
@click.pass_obj
def add(config: Config, name: str, **raw: Any) -> None:
    """Add a project."""
    fields = _collect_fields(**raw)

    async def _add() -> Project:
        return await _with_service(
            config, lambda svc: svc.create_project(name=name, **fields)
        )

    project = _run(_add)
    Console().print(
        Panel(
            f"[green]✓[/green] Project created: {project.name}\n"
            f"ID: {project.id}\n"
            f"Status: {project.status.value} · Progress: {project.progress}%",
            title="Project Created",
        )
    )


@main.command(name="list")
@click.option("--status", default=None, help="Status or 'All Status'")
@click.option("--type", "type_", default=None, help="Type or 'All Types'")
@click.option("--usefulness", default=None, help="Rating 1-5 or 'All Ratings'")
@click.option("--monetized", "monetized_only", is_flag=True, help="Monetized projects only")
@click.option("--tag", "tags", multiple=True, help="Require tag (repeatable)")
@click.option("--search", "search_query", default=None, help="Search project names")
@click.option("--sort", "sort_by", type=click.Choice(SORT_KEYS), default=None)
@click.option("--group", "group_by", type=click.Choice(GROUP_KEYS), default=None)
@click.pass_obj
def list_cmd(
    config: Config,
    status: str | None,
    type_: str | None,
    usefulness: str | None,
    monetized_only: bool,
    tags: tuple[str, ...],
    search_query: str | None,
    sort_by: str | None,
    group_by: str | None,
) -> None:
    """List projects matching the given filters."""

    async def _list() -> dict[str, list[Project]]:
        state = DashboardState(
            filters=build_filter(
                status=status,
                type=type_,
                usefulness=usefulness,
                monetized_only=monetized_only,
                tags=list(tags) or None,
                search_query=search_query,
            ),
            sort_by=sort_by or config.default_sort,
            group_by=group_by or "status",
        )
        projects = await _with_service(config, lambda svc: svc.list_projects())
        if group_by:
            return state.grouped(projects)
        return {"Projects": state.apply(projects)}

    groups = _run(_list)
    console = Console()
    if not any(groups.values()):
        console.print("[yellow]No projects match these filters[/yellow]")
        return
    for title, projects in groups.items():
        console.print(_project_table(projects, title=f"{title} ({len(projects)})"))


@main.command()
@click.argument("project_id")
@click.pass_obj
def show(config: Config, project_id: str) -> None:
    """Show one project as JSON."""

    async def _show() -> Project | None:
        return await _with_service(config, lambda svc: svc.get_project(project_id))

    project = _run(_show)
    if project is None:
        click.echo(f"Error: Project {project_id} not found", err=True)
        sys.exit(1)
    click.echo(json.dumps(project.to_export(), indent=2))


@main.command()
@click.argument("project_id")
@click.option("--name", default=None)
@_field_options
@click.pass_obj
def update(config: Config, project_id: str, name: str | None, **raw: Any) -> None:
    """Update fields of a project."""
    fields = _collect_fields(**raw)
    if name is not None:
        fields["name"] = name
    if not fields:
        click.echo("Nothing to update", err=True)
        sys.exit(1)

    async def _update() -> Project | None:
        return await _with_service(
            config, lambda svc: svc.update_project(project_id, **fields)
        )

    project = _run(_update)
    if project is None:
        click.echo(f"Error: Project {project_id} not found", err=True)
        sys.exit(1)
    click.echo(f"Updated {project.name} ({', '.join(sorted(fields))})")


@main.command()
@click.argument("project_id")
@click.confirmation_option(prompt="Delete this project?")
@click.pass_obj
def delete(config: Config, project_id: str) -> None:
    """Delete a project."""

    async def _delete() -> bool:
        return await _with_service(config, lambda svc: svc.delete_project(project_id))

    if not _run(_delete):
        click.echo(f"Error: Project {project_id} not found", err=True)
        sys.exit(1)
    click.echo(f"Deleted {project_id}")


@main.command()
@click.argument("project_id")
@click.argument("text")
@click.pass_obj
def log(config: Config, project_id: str, text: str) -> None:
    """Add an activity log entry to a project."""

    async def _log() -> Project | None:
        return await _with_service(config, lambda svc: svc.log_activity(project_id, text))

    project = _run(_log)
    if project is None:
        click.echo(f"Error: Project {project_id} not found", err=True)
        sys.exit(1)
    click.echo(f"Logged activity on {project.name} ({len(project.activity_logs)} entries)")


@main.command()
@click.option("--format", "fmt", type=click.Choice(EXPORT_FORMATS), default="csv")
@click.option("--output", type=click.Path(file_okay=False), default=None, help="Directory")
@click.option("--stdout", "to_stdout", is_flag=True, help="Print instead of writing a file")
@click.pass_obj
def export(config: Config, fmt: str, output: str | None, to_stdout: bool) -> None:
    """Export all projects to CSV or JSON."""

    async def _export() -> list[Project]:
        return await _with_service(config, lambda svc: svc.list_projects())

    projects = _run(_export)
    if to_stdout:
        click.echo(export_projects(projects, fmt))
        return

    directory = Path(output) if output else config.export_dir
    path = write_export(projects, fmt, directory)
    click.echo(f"Exported {len(projects)} projects to {path}")


@main.command(name="import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "fmt", type=click.Choice(EXPORT_FORMATS), default=None)
@click.pass_obj
def import_cmd(config: Config, file: str, fmt: str | None) -> None:
    """Import projects from a CSV or JSON file. Nothing is written on errors."""
    path = Path(file)
    fmt = fmt or ("json" if path.suffix.lower() == ".json" else "csv")
    text = path.read_text(encoding="utf-8")

    async def _import() -> list[Project]:
        async def body(svc: ProjectService) -> list[Project]:
            if fmt == "json":
                return await svc.import_json(text)
            return await svc.import_csv(text)

        return await _with_service(config, body)

    imported = _run(_import)
    if not imported:
        click.echo("No valid projects found", err=True)
        sys.exit(1)
    click.echo(f"Imported {len(imported)} projects from {path.name}")


@main.command()
@click.pass_obj
def timeline(config: Config) -> None:
    """Show the project timeline."""

    async def _timeline() -> list[Project]:
        return await _with_service(config, lambda svc: svc.list_projects())

    items = projects_to_timeline(_run(_timeline))
    window = calculate_time_range(items)

    table = Table(title=f"Timeline {window.start:%Y-%m-%d} → {window.end:%Y-%m-%d}")
    table.add_column("Project", style="cyan")
    table.add_column("Status")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Progress", justify="right")
    for item in sorted(items, key=lambda i: i.start_date):
        table.add_row(
            item.name,
            f"[{item.color}]{item.status}[/]",
            f"{item.start_date:%Y-%m-%d}",
            f"{item.end_date:%Y-%m-%d}",
            f"{item.progress}%",
        )
    Console().print(table)


@main.command()
@click.argument("query", default="")
@click.pass_obj
def tags(config: Config, query: str) -> None:
    """Suggest tags matching QUERY."""
    index = TagSuggestionIndex(
        limit=config.tag_suggestion_limit, default_count=config.tag_default_count
    )
    for tag in index.suggest(query):
        click.echo(tag)


@main.command()
@click.pass_obj
def stats(config: Config) -> None:
    """Show project analytics."""

    async def _stats() -> list[Project]:
        return await _with_service(config, lambda svc: svc.list_projects())

    click.echo(json.dumps(analytics.summarize(_run(_stats)), indent=2))


@main.command()
@click.option("--limit", type=int, default=None, help="Show at most this many milestones.")
@click.pass_obj
def deadlines(config: Config, limit: int | None) -> None:
    """List open milestones, soonest due first."""

    async def _deadlines() -> list[Project]:
        return await _with_service(config, lambda svc: svc.list_projects())

    rows = analytics.upcoming_deadlines(_run(_deadlines), limit=limit)
    if not rows:
        Console().print("[yellow]No upcoming deadlines[/yellow]")
        return

    table = Table(title="Upcoming Deadlines")
    table.add_column("Due")
    table.add_column("Milestone", style="cyan")
    table.add_column("Project")
    table.add_column("Days", justify="right")
    for row in rows:
        days = str(row["days_remaining"])
        if row["overdue"]:
            days = f"[red]{days} overdue[/red]"
        table.add_row(row["due_date"], row["title"], row["project_name"], days)
    Console().print(table)


@main.command()
@click.pass_obj
def sprint(config: Config) -> None:
    """Suggest a weekly sprint and next steps."""

    async def _sprint() -> list[Project]:
        return await _with_service(config, lambda svc: svc.list_projects())

    projects = _run(_sprint)
    console = Console()
    suggestions = weekly_sprint(projects)
    if not suggestions:
        console.print("[yellow]No sprint candidates[/yellow]")
    by_id = {p.id: p for p in projects}
    for suggestion in suggestions:
        step = suggest_next_step(by_id[suggestion.project_id])
        body = "\n".join(f"• {task}" for task in suggestion.tasks)
        console.print(
            Panel(
                f"{body}\n\n[dim]{suggestion.rationale}[/dim]\n"
                f"Next step: {step.step} (effort {step.effort}, risk {step.risk})",
                title=suggestion.project_name,
            )
        )


@main.command()
@click.option(
    "--per-project", is_flag=True, help="One insight per active project instead of a summary."
)
@click.pass_obj
def insights(config: Config, per_project: bool) -> None:
    """Generate AI insights for your projects."""
    if per_project:
        _project_insights(config)
        return

    async def _insights() -> InsightsPanel:
        projects = await _with_service(config, lambda svc: svc.list_projects())
        panel = InsightsPanel(InsightsClient(config))
        await panel.refresh(projects)
        return panel

    panel = _run(_insights)
    if panel.insight is None:
        click.echo(f"Error: {panel.error}", err=True)
        sys.exit(1)
    Console().print(
        Panel(
            f"[bold]Summary[/bold]\n{panel.insight.summary}\n\n"
            f"[bold]Suggestions[/bold]\n{panel.insight.suggestions}\n\n"
            f"[bold]Trends[/bold]\n{panel.insight.trends}",
            title="AI Project Insights",
        )
    )



def _project_insights(config: Config) -> None:
    async def _insights() -> ProjectInsightsPanel:
        projects = await _with_service(config, lambda svc: svc.list_projects())
        panel = ProjectInsightsPanel(
            InsightsClient(config), project_limit=config.insight_project_limit
        )
        await panel.refresh(projects)
        return panel

    panel = _run(_insights)
    if not panel.insights:
        click.echo(f"Error: {panel.error}", err=True)
        sys.exit(1)
    console = Console()
    for insight in panel.insights:
        console.print(
            Panel(
                f"{insight.summary}\n\n"
                f"[bold]Next[/bold] {insight.suggestion}\n"
                f"[dim]{insight.motivation}[/dim]",
                title=insight.project_name,
            )
        )


@main.command()
@click.pass_obj
def priorities(config: Config) -> None:
    """Ask the AI which projects need attention."""

    async def _priorities() -> Any:
        projects = await _with_service(config, lambda svc: svc.list_projects())
        return await InsightsClient(config).fetch_priorities(projects)

    result = _run(_priorities)
    table = Table(title="AI Priorities")
    table.add_column("Kind")
    table.add_column("Project", style="cyan")
    table.add_column("Reason")
    for item in result.high_priority:
        table.add_row(f"[red]{item.priority}[/red]", item.name, item.reason)
    for item in result.neglected:
        table.add_row("[yellow]neglected[/yellow]", item.name, item.reason)
    Console().print(table)


@main.command()
@click.option("--transport", type=click.Choice(["stdio"]), default="stdio")
@click.pass_obj
def serve(config: Config, transport: str) -> None:
    """Start the MCP server."""
    if not config.db_path.exists():
        click.echo(
            f"Error: No database at {config.db_path}. Run 'trackboard init' first.", err=True
        )
        sys.exit(1)

    from trackboard.server import create_server

    server = create_server(str(config.db_path), config=config)
    server.run(transport=transport)  # type: ignore[arg-type]


if __name__ == "__main__":
    main()
