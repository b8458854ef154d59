"""Canonical field model shared by the source flattener and target schema parser.

A FieldPath is the ephemeral descriptor of one leaf value (source side) or
one declared field (target side). Lists of FieldPath are produced fresh per
resolution request and are never persisted directly.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

_WSDL_NAMESPACE = "schemas.xmlsoap.org/wsdl"
_XSD_MARKERS = ("<xsd:schema", "<xs:schema")


class FieldType(StrEnum):
    """Semantic type of a field, independent of the document format."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"


class TargetType(StrEnum):
    """Format of the declared target schema.

    JSON and XML are the generic variants used when the content is neither
    a JSON Schema nor an XSD/WSDL.
    """

    JSON_SCHEMA = "JSON_SCHEMA"
    JSON = "JSON"
    XSD = "XSD"
    XSD_WSDL = "XSD_WSDL"
    XML = "XML"

    @property
    def is_xml_type(self) -> bool:
        return self in (TargetType.XSD, TargetType.XSD_WSDL, TargetType.XML)

    @classmethod
    def resolve(cls, raw_type: str | None, schema_text: str | None = None) -> TargetType:
        """Resolve the target type from an explicit name, else sniff the content.

        Args:
            raw_type: Explicit type name such as "XSD+WSDL", "xsd", "JSON_SCHEMA".
                Blank or unknown names fall through to content sniffing.
            schema_text: Raw schema text used for sniffing.

        Returns:
            The resolved TargetType.
        """
        value = (raw_type or "").strip().upper().replace("-", "_")
        if value in ("XSD+WSDL", "XSD_WSDL", "WSDL"):
            return cls.XSD_WSDL
        if value in cls.__members__:
            return cls[value]
        return cls.sniff(schema_text)

    @classmethod
    def sniff(cls, schema_text: str | None) -> TargetType:
        """Infer the target type from schema content alone."""
        text = (schema_text or "").strip()
        lowered = text.lower()
        if text.startswith("<"):
            if "<wsdl:definitions" in lowered or (
                "<definitions" in lowered and _WSDL_NAMESPACE in lowered
            ):
                return cls.XSD_WSDL
            if any(marker in lowered for marker in _XSD_MARKERS):
                return cls.XSD
            return cls.XML
        if '"properties"' in text or '"$schema"' in text:
            return cls.JSON_SCHEMA
        return cls.JSON


def looks_like_xml(text: str | None) -> bool:
    """True when the stripped text starts with '<'."""
    return text is not None and text.strip().startswith("<")


class FieldPath(BaseModel):
    """One addressable field in a source document or target schema."""

    path: str = Field(..., description="Canonical dot/bracket locator, unique within its list")
    type: FieldType = Field(default=FieldType.STRING, description="Semantic field type")
    required: bool = Field(default=False, description="Target-only: field must be mapped")
    artifact_name: str | None = Field(
        default=None, description="Schema artifact the field was declared in (multi-document targets)"
    )
    artifact_type: str | None = Field(
        default=None, description="Artifact kind, e.g. 'XSD' or 'WSDL'"
    )
    description: str = Field(default="", description="Free-text description used for embeddings")
