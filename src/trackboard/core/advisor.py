"""Rule-based next-step and sprint suggestions.

These run locally and need no network; the LLM-backed equivalents live in
trackboard.core.insights.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Literal

from pydantic import BaseModel

from trackboard.models.project import Project, ProjectStatus

Level = Literal["low", "medium", "high"]

_INACTIVE = {ProjectStatus.ABANDONED, ProjectStatus.COMPLETED}


class NextStep(BaseModel):
    step: str
    effort: Level
    motivation: str
    risk: Level


class SprintSuggestion(BaseModel):
    project_id: str
    project_name: str
    tasks: list[str]
    rationale: str


def suggest_next_step(project: Project) -> NextStep:
    """Pick a next step from progress, usefulness, links and milestones."""
    if project.status == ProjectStatus.ABANDONED:
        return NextStep(
            step="Project archived - no actions needed",
            effort="low",
            motivation="Focus energy on active projects",
            risk="low",
        )

    progress = project.progress
    if progress < 20:
        if not project.github_url:
            return NextStep(
                step="Set up version control and create initial project structure",
                effort="low",
                motivation="Strong foundation accelerates future development",
                risk="low",
            )
        return NextStep(
            step="Define core features and create development roadmap",
            effort="medium",
            motivation="Clear direction prevents scope creep and wasted effort",
            risk="medium",
        )

    if progress < 50:
        if project.usefulness >= 4 and not project.milestones:
            return NextStep(
                step="Break remaining work into weekly milestones with deadlines",
                effort="low",
                motivation="High-value projects deserve structured execution",
                risk="low",
            )
        return NextStep(
            step="Implement core functionality and test with target users",
            effort="high",
            motivation="Early feedback prevents costly late-stage changes",
            risk="medium",
        )

    if progress < 80:
        if not project.website_url and project.is_monetized:
            return NextStep(
                step="Create landing page and prepare for market validation",
                effort="medium",
                motivation="Monetized projects need marketing presence",
                risk="low",
            )
        return NextStep(
            step="Focus on polish, documentation, and user experience",
            effort="medium",
            motivation="Quality finishing touches separate good from great",
            risk="low",
        )

    if project.status not in (ProjectStatus.LAUNCH, ProjectStatus.COMPLETED):
        return NextStep(
            step="Prepare launch strategy and gather initial user feedback",
            effort="medium",
            motivation="You're so close! Time to share your work with the world",
            risk="medium",
        )
    return NextStep(
        step="Monitor metrics, gather feedback, and plan next iteration",
        effort="low",
        motivation="Successful projects evolve based on real user needs",
        risk="low",
    )


def _sprint_tasks(project: Project) -> list[str]:
    if project.progress < 30:
        return [
            "Define project architecture and dependencies"
            if project.github_url
            else "Set up repository and initial codebase",
            "Create user stories and acceptance criteria",
            "Design basic UI mockups or wireframes",
        ]
    if project.progress < 60:
        return [
            "Implement core feature functionality",
            "Add error handling and edge cases",
            "Create basic documentation and setup guide",
        ]
    return [
        "Polish user interface and user experience",
        "Update website with latest features"
        if project.website_url
        else "Create project landing page",
        "Prepare for beta testing or launch",
    ]


def weekly_sprint(projects: Sequence[Project], *, size: int = 3) -> list[SprintSuggestion]:
    """Up to ``size`` useful, unfinished projects worth a focused week."""
    candidates = [
        p
        for p in projects
        if p.status not in _INACTIVE and p.usefulness >= 3 and p.progress < 70
    ]
    candidates.sort(key=lambda p: (-p.usefulness, p.progress))

    return [
        SprintSuggestion(
            project_id=p.id,
            project_name=p.name,
            tasks=_sprint_tasks(p),
            rationale=(
                f"High usefulness ({p.usefulness}/5) with {p.progress}% progress"
                " - ready for focused sprint"
            ),
        )
        for p in candidates[:size]
    ]
