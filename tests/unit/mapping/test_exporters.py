"""Tests for Excel and JSON export of confirmed selections."""

from __future__ import annotations

import json
from pathlib import Path

import openpyxl
import pytest

from mapstudio.mapping.exporters import (
    export_to_excel,
    export_to_json,
    format_path,
    path_leaf,
)
from mapstudio.models.lifecycle import ExportBundle
from mapstudio.models.mapping import PathType, Suggestion


@pytest.fixture()
def bundle() -> ExportBundle:
    """A confirmed selection with one unselected row."""
    return ExportBundle(
        project_code="ORDERS",
        version_code="1.0.0",
        source_type="JSON",
        target_type="JSON_SCHEMA",
        confirmed_by="studio-user",
        confirmed_at="2026-01-05T10:00:00+00:00",
        mappings=[
            Suggestion(
                source_path="user.id",
                target_path="id",
                confidence=0.95,
                reason="Field name and type exact match",
                selected=True,
            ),
            Suggestion(
                source_path="user.name",
                target_path="fullName",
                confidence=0.55,
                selected=True,
                manual_override=True,
                notes="renamed by hand",
                target_artifact_name="users.xsd",
                target_artifact_type="XSD",
            ),
            Suggestion(source_path="user.age", target_path="age", confidence=0.7),
        ],
    )


class TestFormatPath:
    @pytest.mark.parametrize(
        ("path", "path_type", "expected"),
        [
            ("user.address.city", PathType.JSON_PATH, "$.user.address.city"),
            ("user.address.city", PathType.XML_PATH, "/user/address/city"),
            ("user//id", PathType.JSON_PATH, "$.user.id"),
            ("", PathType.JSON_PATH, "$"),
            (None, PathType.XML_PATH, "/"),
        ],
    )
    def test_notation(self, path: str | None, path_type: PathType, expected: str) -> None:
        assert format_path(path, path_type) == expected

    def test_leaf_keeps_case(self) -> None:
        assert path_leaf("order.lineItems") == "lineItems"
        assert path_leaf("/a/b/") == "b"


class TestExportToExcel:
    def test_three_sheets(self, bundle: ExportBundle, tmp_path: Path) -> None:
        out = export_to_excel(bundle, tmp_path / "out" / "mapping.xlsx")
        wb = openpyxl.load_workbook(out)
        assert wb.sheetnames == ["SourceTarget", "Mappings", "Summary"]

    def test_source_target_sheet_has_selected_rows_only(
        self, bundle: ExportBundle, tmp_path: Path
    ) -> None:
        out = export_to_excel(bundle, tmp_path / "mapping.xlsx", PathType.XML_PATH)
        ws = openpyxl.load_workbook(out)["SourceTarget"]
        rows = list(ws.iter_rows(values_only=True))
        assert rows[0] == ("Source", "Target", "Path", "Path Type")
        assert rows[1:] == [
            ("id", "id", "/user/id", "XML_PATH"),
            ("name", "fullName", "/user/name", "XML_PATH"),
        ]

    def test_mappings_sheet_has_every_row(self, bundle: ExportBundle, tmp_path: Path) -> None:
        out = export_to_excel(bundle, tmp_path / "mapping.xlsx")
        ws = openpyxl.load_workbook(out)["Mappings"]
        rows = list(ws.iter_rows(values_only=True))
        assert len(rows) == 4
        edited = rows[2]
        assert edited[0] == "Y"
        assert edited[5] == "EDITED"
        assert edited[7] == "renamed by hand"
        assert edited[8] == "Y"
        assert edited[9] == "users.xsd"
        assert rows[3][0] == "N"
        assert rows[1][5] == "LLM_DERIVED"

    def test_summary_sheet(self, bundle: ExportBundle, tmp_path: Path) -> None:
        out = export_to_excel(bundle, tmp_path / "mapping.xlsx")
        ws = openpyxl.load_workbook(out)["Summary"]
        summary = {row[0]: row[1] for row in ws.iter_rows(values_only=True)}
        assert summary["Project Code"] == "ORDERS"
        assert summary["Version"] == "1.0.0"
        assert summary["Path Type"] == "JSON_PATH"
        assert summary["Selected Mappings"] == 2


class TestExportToJson:
    def test_round_trips_bundle(self, bundle: ExportBundle, tmp_path: Path) -> None:
        out = export_to_json(bundle, tmp_path / "mapping.json")
        payload = json.loads(out.read_text())
        assert payload["project_code"] == "ORDERS"
        assert len(payload["mappings"]) == 3
        assert ExportBundle.model_validate(payload) == bundle
