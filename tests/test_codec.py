"""Tests for CSV/JSON import and export."""

from __future__ import annotations

import json
from datetime import UTC, date, datetime

import pytest
from pydantic import ValidationError as PydanticValidationError

from trackboard.core.codec import (
    CSV_COLUMNS,
    export_csv,
    export_filename,
    export_json,
    export_projects,
    import_csv,
    import_json,
    write_export,
)
from trackboard.errors import ParseError, ValidationError
from trackboard.models.project import ActivityLog, Milestone

HEADER = ",".join(CSV_COLUMNS)


@pytest.fixture
def project(make_project):
    return make_project(
        "Trackboard",
        description='A "dashboard", with commas',
        type="Open Source",
        status="Build",
        usefulness=4,
        is_monetized=True,
        progress=55,
        tags=["python", "cli"],
        github_url="https://github.com/example/trackboard",
        next_action="Ship v1",
        category="Tools",
        pinned=True,
        milestones=[Milestone(title="Beta", due_date="2024-03-01")],
        activity_logs=[ActivityLog(text="Started", date=datetime(2024, 1, 2, tzinfo=UTC))],
    )


class TestExportCsv:
    def test_empty_list_is_header_only(self):
        assert export_csv([]) == HEADER

    def test_header_and_row_count(self, project, make_project):
        lines = export_csv([project, make_project("Other")]).split("\n")
        assert lines[0] == HEADER
        assert len(lines) == 3

    def test_tags_are_quoted_and_joined(self, project):
        row = export_csv([project]).split("\n")[1]
        assert '"python;cli"' in row

    def test_empty_tags_are_quoted(self, make_project):
        row = export_csv([make_project("Bare")]).split("\n")[1]
        assert ',"",' in row

    def test_booleans_render_lowercase(self, project, make_project):
        lines = export_csv([project, make_project("Free")]).split("\n")
        assert ",true," in lines[1]
        assert ",false," in lines[2]

    def test_quotes_are_escaped(self, project):
        row = export_csv([project]).split("\n")[1]
        assert '"A ""dashboard"", with commas"' in row

    def test_missing_optionals_are_empty(self, make_project):
        row = export_csv([make_project("Bare")]).split("\n")[1]
        cells = row.split(",")
        assert cells[CSV_COLUMNS.index("githubUrl")] == ""


class TestImportCsv:
    def test_round_trip_keeps_flat_fields(self, project):
        [restored] = import_csv(export_csv([project]))
        assert restored.id == project.id
        assert restored.name == project.name
        assert restored.description == project.description
        assert restored.type == project.type
        assert restored.status == project.status
        assert restored.usefulness == 4
        assert restored.is_monetized is True
        assert restored.progress == 55
        assert restored.tags == ["python", "cli"]
        assert restored.github_url == project.github_url
        assert restored.website_url is None
        assert restored.next_action == "Ship v1"
        assert restored.category == "Tools"
        assert restored.created_at == project.created_at
        assert restored.last_updated == project.last_updated

    def test_round_trip_keeps_order(self, project, make_project):
        originals = [
            make_project("Zulu", status="Launch", usefulness=1, tags=["z"]),
            project,
            make_project("alpha", type="Education", progress=100, is_monetized=True),
        ]
        restored = import_csv(export_csv(originals))
        for before, after in zip(originals, restored, strict=True):
            assert (after.name, after.status, after.type) == (before.name, before.status, before.type)
            assert (after.usefulness, after.is_monetized, after.progress, after.tags) == (
                before.usefulness,
                before.is_monetized,
                before.progress,
                before.tags,
            )

    def test_round_trip_drops_nested_fields(self, project):
        [restored] = import_csv(export_csv([project]))
        assert restored.milestones == []
        assert restored.activity_logs == []
        assert restored.pinned is False

    def test_multiline_description_survives(self, make_project):
        original = make_project("Notes", description="line one\nline two")
        [restored] = import_csv(export_csv([original]))
        assert restored.description == "line one\nline two"

    def test_free_text_whitespace_survives(self, make_project):
        original = make_project(
            "Pad", description="  indented", next_action="ship ", category="   "
        )
        [restored] = import_csv(export_csv([original]))
        assert (restored.description, restored.next_action, restored.category) == (
            "  indented",
            "ship ",
            "   ",
        )

    def test_empty_text_round_trips_as_unset(self, make_project):
        original = make_project("Blank", description="", category="")
        assert original.category is None
        [restored] = import_csv(export_csv([original]))
        assert restored.description is None
        assert restored.category is None

    def test_typed_cells_are_trimmed(self):
        [p] = import_csv("name,status,progress,isMonetized\nTrim, Build , 30 , TRUE \n")
        assert p.status == "Build"
        assert p.progress == 30
        assert p.is_monetized is True

    def test_empty_input(self):
        assert import_csv("") == []
        assert import_csv("\n\n") == []

    def test_header_only(self):
        assert import_csv(HEADER) == []

    def test_minimal_columns_get_defaults(self):
        [p] = import_csv("name,status\nSide Quest,Planning\n")
        assert p.name == "Side Quest"
        assert p.status == "Planning"
        assert p.type == "Personal"
        assert p.usefulness == 3
        assert p.progress == 0
        assert p.tags == []

    def test_bom_in_header(self):
        [p] = import_csv("\ufeffname,progress\nBOM,10\n")
        assert p.name == "BOM"
        assert p.progress == 10

    def test_crlf_line_endings(self):
        projects = import_csv("name,progress\r\nOne,10\r\nTwo,20\r\n")
        assert [p.name for p in projects] == ["One", "Two"]

    def test_unknown_columns_ignored(self):
        [p] = import_csv("name,owner\nSolo,someone\n")
        assert p.name == "Solo"

    def test_blank_name_rows_skipped(self):
        projects = import_csv("name,progress\n,10\n  ,20\nKept,30\n")
        assert [p.name for p in projects] == ["Kept"]

    def test_missing_name_column(self):
        with pytest.raises(ParseError) as exc:
            import_csv("title,progress\nX,1\n")
        assert exc.value.row == 0

    def test_column_count_mismatch_reports_row(self):
        with pytest.raises(ParseError) as exc:
            import_csv("name,progress\nGood,10\nBad,20,extra\n")
        assert exc.value.row == 2
        assert str(exc.value).startswith("Row 2:")

    def test_invalid_value_reports_row(self):
        with pytest.raises(ParseError) as exc:
            import_csv("name,status\nFine,Idea\nBroken,Shipping\n")
        assert exc.value.row == 2

    def test_progress_out_of_range(self):
        with pytest.raises(ParseError) as exc:
            import_csv("name,progress\nToo Far,150\n")
        assert exc.value.row == 1

    def test_tags_are_split_and_trimmed(self):
        [p] = import_csv('name,tags\nTagged," a ; b ;;c"\n')
        assert p.tags == ["a", "b", "c"]

    def test_tag_with_separator_cannot_be_exported(self, make_project):
        with pytest.raises(PydanticValidationError):
            make_project("Split", tags=["a;b"])


class TestJson:
    def test_empty_list(self):
        assert export_json([]) == "[]"

    def test_uses_camel_case_keys(self, project):
        [data] = json.loads(export_json([project]))
        assert data["isMonetized"] is True
        assert data["githubUrl"] == project.github_url
        assert data["activityLogs"][0]["text"] == "Started"

    def test_round_trip_is_lossless(self, project):
        [restored] = import_json(export_json([project]))
        assert restored == project

    def test_unicode_is_kept(self, make_project):
        text = export_json([make_project("Café ☕")])
        assert "Café ☕" in text

    def test_invalid_json(self):
        with pytest.raises(ParseError) as exc:
            import_json("{not json")
        assert exc.value.row is None

    def test_not_an_array(self):
        with pytest.raises(ParseError):
            import_json('{"name": "x"}')

    def test_bad_record_reports_index(self):
        with pytest.raises(ParseError) as exc:
            import_json('[{"name": "ok"}, {"name": "bad", "usefulness": 9}]')
        assert exc.value.row == 1

    def test_non_object_record(self):
        with pytest.raises(ParseError) as exc:
            import_json('[{"name": "ok"}, 42]')
        assert exc.value.row == 1


class TestFiles:
    def test_export_filename(self):
        assert export_filename("csv", date(2024, 5, 6)) == "projects_export_2024-05-06.csv"
        assert export_filename("json", date(2024, 5, 6)) == "projects_export_2024-05-06.json"

    def test_unsupported_format(self, project):
        with pytest.raises(ValidationError):
            export_filename("xml")
        with pytest.raises(ValidationError):
            export_projects([project], "xml")

    def test_write_export(self, tmp_path, project):
        path = write_export([project], "json", tmp_path / "out", today=date(2024, 5, 6))
        assert path == tmp_path / "out" / "projects_export_2024-05-06.json"
        assert import_json(path.read_text(encoding="utf-8")) == [project]
