"""Tests for FieldPath and TargetType resolution."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from mapstudio.models.fields import FieldPath, FieldType, TargetType, looks_like_xml


class TestTargetTypeResolve:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("XSD+WSDL", TargetType.XSD_WSDL),
            ("xsd_wsdl", TargetType.XSD_WSDL),
            ("wsdl", TargetType.XSD_WSDL),
            ("xsd", TargetType.XSD),
            (" json_schema ", TargetType.JSON_SCHEMA),
            ("json-schema", TargetType.JSON_SCHEMA),
            ("xml", TargetType.XML),
        ],
    )
    def test_explicit_names(self, raw: str, expected: TargetType) -> None:
        assert TargetType.resolve(raw) == expected

    def test_unknown_name_sniffs_content(self) -> None:
        assert TargetType.resolve("protobuf", '<xs:schema xmlns:xs="x"/>') == TargetType.XSD

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ('<wsdl:definitions xmlns:wsdl="http://schemas.xmlsoap.org/wsdl/"/>', TargetType.XSD_WSDL),
            ('<xsd:schema xmlns:xsd="http://www.w3.org/2001/XMLSchema"/>', TargetType.XSD),
            ("<order><id>1</id></order>", TargetType.XML),
            ('{"properties": {}}', TargetType.JSON_SCHEMA),
            ('{"id": 1}', TargetType.JSON),
            (None, TargetType.JSON),
        ],
    )
    def test_sniff(self, text: str | None, expected: TargetType) -> None:
        assert TargetType.resolve(None, text) == expected

    def test_xml_family(self) -> None:
        assert TargetType.XSD.is_xml_type
        assert TargetType.XSD_WSDL.is_xml_type
        assert TargetType.XML.is_xml_type
        assert not TargetType.JSON_SCHEMA.is_xml_type


class TestFieldPath:
    def test_defaults(self) -> None:
        field = FieldPath(path="user.id")
        assert field.type == FieldType.STRING
        assert field.required is False
        assert field.artifact_name is None

    def test_type_from_string(self) -> None:
        assert FieldPath(path="a", type="boolean").type == FieldType.BOOLEAN

    def test_unknown_type_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            FieldPath(path="a", type="date")


class TestLooksLikeXml:
    def test_leading_whitespace_is_ignored(self) -> None:
        assert looks_like_xml("  \n<a/>")
        assert not looks_like_xml('{"a": 1}')
        assert not looks_like_xml(None)
