"""Clients for the LLM-backed serverless functions.

Each call is a single request/response: the caller waits, then either gets a
parsed result or a NetworkError. There are no retries; the user re-triggers.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any, Literal

import httpx
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from trackboard.config import Config
from trackboard.errors import NetworkError, ValidationError
from trackboard.events.bus import EventBus
from trackboard.events.types import EventType
from trackboard.models.project import AITask, Project, ProjectStatus

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "AI insights could not be generated at the moment. Please try again later."


class Insight(BaseModel):
    """Cross-project summary returned by the insights function."""

    summary: str = "No summary available"
    suggestions: str = "No suggestions available"
    trends: str = "No trends available"
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ProjectInsight(BaseModel):
    """Summary, next step and encouragement for one project."""

    project_id: str
    project_name: str
    summary: str
    suggestion: str
    motivation: str


class PriorityItem(BaseModel):
    name: str
    reason: str = ""
    priority: Literal["high", "medium", "low"] = "low"
    project_id: str | None = None


class Priorities(BaseModel):
    high_priority: list[PriorityItem] = Field(default_factory=list)
    neglected: list[PriorityItem] = Field(default_factory=list)


def _text_or(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return default


def _normalize_priority(value: Any) -> Literal["low", "medium", "high"]:
    lowered = str(value or "").lower()
    if lowered == "high":
        return "high"
    if lowered == "low":
        return "low"
    return "medium"


class InsightsClient:
    """HTTP client for the insights, priorities and task-generation functions."""

    def __init__(self, config: Config, *, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._client = client

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._config.api_key:
            headers["Authorization"] = f"Bearer {self._config.api_key}"
        return headers

    async def _post(self, function: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = self._config.function_url(function)
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, headers=self._headers())
            else:
                async with httpx.AsyncClient(timeout=self._config.request_timeout) as client:
                    response = await client.post(url, json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            logger.warning("Request to %s failed: %s", function, e)
            raise NetworkError(f"Could not reach {function}: {e}") from e

        if not response.is_success:
            logger.warning("%s returned %d: %s", function, response.status_code, response.text)
            raise NetworkError(
                f"{function} returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise NetworkError(f"{function} returned a non-JSON body") from e

        if not isinstance(data, dict):
            raise NetworkError(f"{function} returned an unexpected payload")
        if data.get("error"):
            raise NetworkError(f"{function} failed: {data['error']}")
        return data

    async def generate_insights(self, projects: Sequence[Project]) -> Insight:
        """Summarize projects; sends only the reduced per-project fields."""
        if not projects:
            raise ValidationError("No projects available to analyze", field="projects")

        data = await self._post(
            self._config.insights_function,
            {"projects": [p.insight_payload() for p in projects]},
        )
        return Insight(
            summary=_text_or(data.get("summary"), "No summary available"),
            suggestions=_text_or(data.get("suggestions"), "No suggestions available"),
            trends=_text_or(data.get("trends"), "No trends available"),
        )

    async def project_insights(self, projects: Sequence[Project]) -> list[ProjectInsight]:
        """Per-project insights, mapped back to projects by position.

        The function answers with one insight per project sent, in order.
        """
        if not projects:
            raise ValidationError("No projects available to analyze", field="projects")

        data = await self._post(
            self._config.project_insights_function,
            {"projects": [p.insight_payload() for p in projects]},
        )
        raw = data.get("insights")
        if not isinstance(raw, list):
            raise NetworkError("Invalid response from AI service: missing insights")

        try:
            return [
                ProjectInsight(
                    project_id=project.id,
                    project_name=project.name,
                    summary=item["summary"],
                    suggestion=item["suggestion"],
                    motivation=item["motivation"],
                )
                for project, item in zip(projects, raw, strict=False)
            ]
        except (PydanticValidationError, TypeError, KeyError) as e:
            raise NetworkError("Invalid response from AI service: malformed insights") from e

    async def fetch_priorities(self, projects: Sequence[Project]) -> Priorities:
        """Ask which active projects deserve attention and which are neglected."""
        active = [p for p in projects if p.status != ProjectStatus.COMPLETED]
        if not active:
            return Priorities()

        payload = {
            "projects": [
                {
                    "id": p.id,
                    "name": p.name,
                    "progress": p.progress,
                    "nextAction": p.next_action or "No next action specified",
                    "lastUpdated": p.last_updated.isoformat(),
                    "status": p.status.value,
                    "tags": list(p.tags),
                    "milestones": [m.model_dump(by_alias=True) for m in p.milestones],
                }
                for p in active
            ]
        }
        data = await self._post(self._config.priorities_function, payload)

        raw = data.get("priorities")
        if not isinstance(raw, dict):
            raise NetworkError("Invalid response from AI: missing priorities")

        ids_by_name = {p.name: p.id for p in active}
        try:
            return Priorities(
                high_priority=[
                    PriorityItem(**item, project_id=ids_by_name.get(item.get("name")))
                    for item in raw.get("highPriority") or []
                ],
                neglected=[
                    PriorityItem(**item, project_id=ids_by_name.get(item.get("name")))
                    for item in raw.get("neglected") or []
                ],
            )
        except (PydanticValidationError, TypeError, AttributeError) as e:
            raise NetworkError("Invalid response from AI: malformed priority items") from e

    async def generate_tasks(
        self, analysis_text: str, existing: Sequence[AITask] = ()
    ) -> list[AITask]:
        """Turn analysis text into tasks, appended after the existing ones."""
        if not analysis_text or not analysis_text.strip():
            raise ValidationError("Analysis text is required", field="analysis_text")

        data = await self._post(
            self._config.tasks_function, {"analysisText": analysis_text.strip()}
        )
        raw_tasks = data.get("tasks")
        if not isinstance(raw_tasks, list):
            raise NetworkError("Invalid response from task generation service")

        new_tasks = []
        for raw in raw_tasks:
            if not isinstance(raw, dict):
                continue
            new_tasks.append(
                AITask(
                    id=str(uuid.uuid4()),
                    title=raw.get("title") or raw.get("name") or "Untitled Task",
                    description=raw.get("description") or None,
                    priority=_normalize_priority(raw.get("priority")),
                    category=raw.get("category") or "General",
                )
            )
        return [*existing, *new_tasks]


class InsightsPanel:
    """Holds the latest cross-project insight and survives failed refreshes intact."""

    def __init__(self, client: InsightsClient, *, event_bus: EventBus | None = None) -> None:
        self._client = client
        self._event_bus = event_bus
        self.insight: Insight | None = None
        self.error: str | None = None
        self.loading = False

    async def refresh(self, projects: Sequence[Project]) -> Insight | None:
        """Request a new insight covering every project.

        Returns the new insight, or None when nothing could be generated. On
        failure ``error`` holds a user-facing message and ``insight`` still
        holds the previous result.
        """
        if not projects:
            self.error = "No projects available to analyze"
            return None

        self.loading = True
        self.error = None
        try:
            insight = await self._client.generate_insights(projects)
        except (NetworkError, ValidationError) as e:
            logger.warning("Insight refresh failed: %s", e)
            self.error = FAILURE_MESSAGE
            await _emit(self._event_bus, EventType.INSIGHTS_FAILED, {"error": str(e)})
            return None
        finally:
            self.loading = False

        self.insight = insight
        await _emit(
            self._event_bus, EventType.INSIGHTS_GENERATED, {"projects": len(projects)}
        )
        return insight


class ProjectInsightsPanel:
    """Per-project insights for the first few active projects.

    Results are cached until ``refresh(force=True)``. A failed refresh keeps
    the previous insights.
    """

    def __init__(
        self,
        client: InsightsClient,
        *,
        event_bus: EventBus | None = None,
        project_limit: int = 5,
    ) -> None:
        self._client = client
        self._event_bus = event_bus
        self._project_limit = project_limit
        self.insights: list[ProjectInsight] = []
        self.error: str | None = None
        self.loading = False
        self.last_fetched: datetime | None = None

    async def refresh(
        self, projects: Sequence[Project], *, force: bool = False
    ) -> list[ProjectInsight]:
        active = [p for p in projects if p.status != ProjectStatus.COMPLETED]
        if not active:
            self.error = "No active projects available"
            return []
        if self.insights and not force:
            return self.insights

        selected = active[: self._project_limit]
        self.loading = True
        self.error = None
        try:
            insights = await self._client.project_insights(selected)
        except (NetworkError, ValidationError) as e:
            logger.warning("Project insight refresh failed: %s", e)
            self.error = FAILURE_MESSAGE
            await _emit(self._event_bus, EventType.INSIGHTS_FAILED, {"error": str(e)})
            return []
        finally:
            self.loading = False

        self.insights = insights
        self.last_fetched = datetime.now(UTC)
        await _emit(
            self._event_bus,
            EventType.INSIGHTS_GENERATED,
            {"projects": len(selected), "per_project": True},
        )
        return insights


async def _emit(event_bus: EventBus | None, event_type: EventType, data: dict[str, Any]) -> None:
    if event_bus is not None:
        await event_bus.emit(event_type, data)
