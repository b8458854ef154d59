"""Tests for suggestion, selection, and lifecycle models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from mapstudio.models.lifecycle import ExportBundle
from mapstudio.models.mapping import MappingOrigin, MappingSelection, PathType, Suggestion


class TestMappingOrigin:
    def test_explicit_origin_wins(self) -> None:
        assert MappingOrigin.resolve(" IMPORTED ", manual_override=True) == "IMPORTED"

    @pytest.mark.parametrize(
        ("override", "expected"),
        [(True, "EDITED"), (False, "LLM_DERIVED")],
    )
    def test_derived_from_override(self, override: bool, expected: str) -> None:
        assert MappingOrigin.resolve(None, override) == expected
        assert MappingOrigin.resolve("  ", override) == expected


class TestPathType:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("xml_path", PathType.XML_PATH),
            ("XML_PATH", PathType.XML_PATH),
            ("JSON_PATH", PathType.JSON_PATH),
            ("xpath", PathType.JSON_PATH),
            (None, PathType.JSON_PATH),
        ],
    )
    def test_from_value(self, raw: str | None, expected: PathType) -> None:
        assert PathType.from_value(raw) == expected


class TestSuggestion:
    def test_confidence_bounds(self) -> None:
        with pytest.raises(ValidationError):
            Suggestion(source_path="a", target_path="b", confidence=1.5)

    def test_resolved_origin(self) -> None:
        edited = Suggestion(source_path="a", target_path="b", confidence=0.5, manual_override=True)
        assert edited.resolved_origin == "EDITED"
        assert Suggestion(source_path="a", target_path="b", confidence=0.5).resolved_origin == (
            "LLM_DERIVED"
        )


class TestMappingSelection:
    def test_selected_count(self) -> None:
        selection = MappingSelection(
            project_code="ORDERS",
            version_code="1.0.0",
            mappings=[
                Suggestion(source_path="a", target_path="x", confidence=0.9, selected=True),
                Suggestion(source_path="b", target_path="y", confidence=0.9),
            ],
        )
        assert selection.selected_count == 1
        assert selection.model_dump()["selected_count"] == 1

    def test_validates_from_json_file_payload(self) -> None:
        payload = (
            '{"project_code":"ORDERS","version_code":"2","path_type":"XML_PATH",'
            '"mappings":[{"source_path":"a","target_path":"x","confidence":0.9,'
            '"selected":true}],"selected_count":1}'
        )
        selection = MappingSelection.model_validate_json(payload)
        assert selection.path_type == PathType.XML_PATH
        assert selection.selected_count == 1


class TestExportBundle:
    def test_selected_mappings(self) -> None:
        bundle = ExportBundle(
            project_code="ORDERS",
            version_code="1.0.0",
            confirmed_at="2026-01-05T10:00:00+00:00",
            mappings=[
                Suggestion(source_path="a", target_path="x", confidence=0.9, selected=True),
                Suggestion(source_path="b", target_path="y", confidence=0.9),
            ],
        )
        assert [m.source_path for m in bundle.selected_mappings] == ["a"]
