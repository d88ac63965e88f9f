"""Tests for the project service."""

from __future__ import annotations

import json

import pytest

from trackboard.core.codec import export_csv
from trackboard.core.filters import build_filter
from trackboard.core.projects import INITIAL_ACTIVITY, ProjectService
from trackboard.errors import ParseError, ValidationError
from trackboard.events.types import EventType


async def test_create_project_minimal(service):
    project = await service.create_project(name="  Side Quest  ")

    assert project.name == "Side Quest"
    assert project.status == "Idea"
    assert project.type == "Personal"
    assert project.usefulness == 3
    assert project.progress == 0
    assert [log.text for log in project.activity_logs] == [INITIAL_ACTIVITY]
    assert project.created_at == project.last_updated


async def test_create_project_normalizes_tags(service):
    project = await service.create_project(name="Tagged", tags=["React", " react ", "AI"])
    assert project.tags == ["react", "ai"]


async def test_create_project_persists(service):
    project = await service.create_project(name="Stored", progress=40, is_monetized=True)
    fetched = await service.get_project(project.id)
    assert fetched == project


async def test_create_project_emits_event(service, event_bus):
    events = []

    async def capture(event_type, data):
        events.append((event_type, data))

    event_bus.on(EventType.PROJECT_CREATED, capture)
    project = await service.create_project(name="Event Test")

    assert events == [
        (EventType.PROJECT_CREATED, {"project_id": project.id, "name": "Event Test"})
    ]


@pytest.mark.parametrize(
    "fields",
    [
        {"name": "   "},
        {"name": "Bad", "progress": 101},
        {"name": "Bad", "usefulness": 0},
        {"name": "Bad", "status": "Shipping"},
        {"name": "Bad", "tags": ["a;b"]},
    ],
)
async def test_create_project_rejects_invalid(service, fields):
    with pytest.raises(ValidationError):
        await service.create_project(**fields)
    assert await service.list_projects() == []


async def test_create_project_rejects_taken_id(service):
    first = await service.create_project(name="One")
    with pytest.raises(ValidationError) as exc:
        await service.create_project(name="Two", id=first.id)
    assert exc.value.field == "id"
    assert [p.name for p in await service.list_projects()] == ["One"]


async def test_get_missing_project(service):
    assert await service.get_project("nope") is None


async def test_update_project(service):
    project = await service.create_project(name="Before")
    updated = await service.update_project(
        project.id, name="After", progress=75, tags=["Python"]
    )

    assert updated.name == "After"
    assert updated.progress == 75
    assert updated.tags == ["python"]
    assert updated.created_at == project.created_at
    assert updated.last_updated >= project.last_updated
    assert await service.get_project(project.id) == updated


async def test_update_rejects_immutable_and_unknown(service):
    project = await service.create_project(name="Fixed")
    with pytest.raises(ValidationError):
        await service.update_project(project.id, id="other")
    with pytest.raises(ValidationError):
        await service.update_project(project.id, owner="someone")
    with pytest.raises(ValidationError):
        await service.update_project(project.id, progress=-1)
    assert (await service.get_project(project.id)).progress == 0


async def test_update_missing_project(service):
    assert await service.update_project("nope", progress=10) is None


async def test_log_activity(service):
    project = await service.create_project(name="Busy")
    updated = await service.log_activity(project.id, "  Wrote docs ")
    assert [log.text for log in updated.activity_logs] == [INITIAL_ACTIVITY, "Wrote docs"]

    with pytest.raises(ValidationError):
        await service.log_activity(project.id, " ")


async def test_delete_project(service, event_bus):
    project = await service.create_project(name="Gone")
    assert await service.delete_project(project.id) is True
    assert await service.get_project(project.id) is None
    assert await service.delete_project(project.id) is False
    assert event_bus.recent(1)[0]["type"] == EventType.PROJECT_DELETED


async def test_list_projects_filtered_and_sorted(service):
    await service.create_project(name="b", usefulness=2, tags=["web"])
    await service.create_project(name="A", usefulness=5, tags=["web"])
    await service.create_project(name="C", usefulness=4)

    web = await service.list_projects(build_filter(tags=["web"]), sort_by="name")
    assert [p.name for p in web] == ["A", "b"]

    by_value = await service.list_projects(sort_by="usefulness")
    assert [p.name for p in by_value] == ["A", "C", "b"]


async def test_import_csv(service, event_bus):
    imported = await service.import_csv("name,progress,tags\nOne,10,\"a;b\"\nTwo,20,\n")

    assert [p.name for p in imported] == ["One", "Two"]
    assert imported[0].tags == ["a", "b"]
    assert imported[0].activity_logs[-1].text == "Project imported from CSV"
    assert len(await service.list_projects()) == 2
    assert event_bus.recent(1)[0]["data"] == {"count": 2, "source": "CSV"}


async def test_import_is_atomic(service):
    with pytest.raises(ParseError) as exc:
        await service.import_csv("name,progress\nGood,10\nBad,500\n")
    assert exc.value.row == 2
    assert await service.list_projects() == []


async def test_import_empty(service):
    assert await service.import_csv("") == []
    assert await service.import_json("[]") == []


async def test_import_reassigns_colliding_ids(service):
    existing = await service.create_project(name="Original")
    payload = json.dumps([{"id": existing.id, "name": "Copy"}])

    [copy] = await service.import_json(payload)

    assert copy.id != existing.id
    assert copy.activity_logs[-1].text == "Project imported from JSON"
    assert len(await service.list_projects()) == 2


async def test_csv_export_import_round_trip(service, store, event_bus):
    await service.create_project(name="Alpha", status="Build", progress=30, tags=["cli"])
    csv_text = await service.export("csv")
    assert csv_text == export_csv(await service.list_projects())

    other_store = type(store)(store.db_path.with_name("other.db"))
    await other_store.initialize()
    try:
        other = ProjectService(other_store, event_bus)
        [restored] = await other.import_csv(csv_text)
        assert restored.name == "Alpha"
        assert restored.status == "Build"
        assert restored.tags == ["cli"]
    finally:
        await other_store.close()


async def test_export_json(service, event_bus):
    await service.create_project(name="Exported")
    data = json.loads(await service.export("json"))
    assert data[0]["name"] == "Exported"
    assert event_bus.recent(1)[0]["data"] == {"count": 1, "format": "json"}
