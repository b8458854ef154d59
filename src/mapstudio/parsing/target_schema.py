"""Parse a declared target schema into an ordered list of FieldPaths.

Supports JSON Schema (top-level ``properties`` only), XSD, and XSD+WSDL
bundles made of several schema artifacts. Parsing is best-effort: malformed
schemas yield an empty field list and a logged warning, never an exception.
"""

from __future__ import annotations

import json
from typing import Any

from loguru import logger
from lxml import etree
from pydantic import BaseModel, Field

from mapstudio.models.fields import FieldPath, FieldType, TargetType, looks_like_xml
from mapstudio.parsing.source_flattener import flatten_json, flatten_xml

DEFAULT_XSD_NAME = "target.xsd"
DEFAULT_WSDL_NAME = "target.wsdl"

# XSD primitive (local name, lowercased) -> semantic type. Anything else is a string.
XSD_TYPE_MAP: dict[str, FieldType] = {
    "int": FieldType.NUMBER,
    "integer": FieldType.NUMBER,
    "long": FieldType.NUMBER,
    "short": FieldType.NUMBER,
    "decimal": FieldType.NUMBER,
    "float": FieldType.NUMBER,
    "double": FieldType.NUMBER,
    "boolean": FieldType.BOOLEAN,
    "date": FieldType.STRING,
    "datetime": FieldType.STRING,
    "time": FieldType.STRING,
}

JSON_SCHEMA_TYPE_MAP: dict[str, FieldType] = {
    "string": FieldType.STRING,
    "integer": FieldType.NUMBER,
    "number": FieldType.NUMBER,
    "boolean": FieldType.BOOLEAN,
    "null": FieldType.NULL,
}

_WRAPPER_SUFFIXES = ("request", "response")
_BUILTIN_TYPE_PREFIXES = ("xsd:", "xs:")
_WRAPPER_CHILDREN = frozenset({"complextype", "sequence"})


class SchemaArtifact(BaseModel):
    """One named schema document in a multi-document target."""

    name: str = Field(default=DEFAULT_XSD_NAME)
    content: str = Field(default="")


class TargetSchemaInput(BaseModel):
    """Everything the parser needs to describe one target schema."""

    schema_text: str = Field(default="", description="Effective target schema text")
    target_type: TargetType = Field(default=TargetType.JSON_SCHEMA)
    xsd_text: str = Field(default="")
    wsdl_text: str = Field(default="")
    xsd_name: str = Field(default=DEFAULT_XSD_NAME)
    wsdl_name: str = Field(default=DEFAULT_WSDL_NAME)
    xsd_artifacts: list[SchemaArtifact] = Field(default_factory=list)


def _xml_parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)


def _local_name(element: etree._Element) -> str:
    return etree.QName(element).localname


# ---------------------------------------------------------------------------
# JSON Schema
# ---------------------------------------------------------------------------


def normalize_json_schema_type(raw: Any) -> FieldType:
    """Map a JSON Schema ``type`` value to a FieldType.

    A list of types uses its first non-null member. Objects and arrays are
    not traversed and surface as strings.
    """
    if isinstance(raw, list):
        candidates = [str(t) for t in raw if str(t) != "null"]
        raw = candidates[0] if candidates else "null"
    if raw is None:
        return FieldType.STRING
    return JSON_SCHEMA_TYPE_MAP.get(str(raw).strip().lower(), FieldType.STRING)


def parse_json_schema_fields(schema_text: str | None) -> list[FieldPath]:
    """Read the top-level ``properties`` of a JSON Schema.

    Nested object/array properties are reported as single fields; their own
    properties are not recursed into.

    Args:
        schema_text: JSON Schema document text.

    Returns:
        One FieldPath per top-level property, in declaration order.
    """
    try:
        schema = json.loads(schema_text or "")
    except (ValueError, RecursionError) as e:
        logger.warning("Target JSON Schema could not be parsed: {err}", err=e)
        return []
    if not isinstance(schema, dict):
        return []
    return _json_schema_properties(schema)


def _json_schema_properties(schema: dict[str, Any]) -> list[FieldPath]:
    required_raw = schema.get("required")
    required = {str(r) for r in required_raw} if isinstance(required_raw, list) else set()

    properties = schema.get("properties")
    if not isinstance(properties, dict):
        return []

    fields: list[FieldPath] = []
    for name, prop in properties.items():
        path = str(name)
        field_type = FieldType.STRING
        description = ""
        if isinstance(prop, dict):
            if "type" in prop:
                field_type = normalize_json_schema_type(prop["type"])
            description = str(prop.get("description") or "")
        fields.append(
            FieldPath(path=path, type=field_type, required=path in required, description=description)
        )
    return fields


# ---------------------------------------------------------------------------
# XSD / WSDL
# ---------------------------------------------------------------------------


def normalize_xsd_type(raw_type: str | None) -> FieldType:
    """Map an XSD type reference (``xs:int``, ``decimal``...) to a FieldType."""
    if raw_type is None or not raw_type.strip():
        return FieldType.STRING
    base = raw_type.strip().lower().split(":", 1)[-1]
    return XSD_TYPE_MAP.get(base, FieldType.STRING)


def is_wrapper_element(name: str, raw_type: str | None, element: etree._Element) -> bool:
    """True for envelope/operation elements that are not data leaves.

    An element is a wrapper when its name ends in Request/Response, its type
    refers to a non-builtin namespace prefix, or it declares an inline
    complexType/sequence. Descendants of a wrapper are still scanned.
    """
    if not name.strip():
        return True
    if name.lower().endswith(_WRAPPER_SUFFIXES):
        return True

    type_ref = (raw_type or "").strip().lower()
    if type_ref and ":" in type_ref and not type_ref.startswith(_BUILTIN_TYPE_PREFIXES):
        return True

    return any(
        isinstance(child.tag, str) and _local_name(child).lower() in _WRAPPER_CHILDREN
        for child in element
    )


def parse_xsd_fields(
    schema_text: str | None,
    artifact_name: str | None = DEFAULT_XSD_NAME,
    artifact_type: str | None = "XSD",
) -> list[FieldPath]:
    """Scan every element/attribute declaration of an XSD or WSDL document.

    Args:
        schema_text: XSD or WSDL text.
        artifact_name: Artifact the fields are tagged with.
        artifact_type: "XSD" or "WSDL".

    Returns:
        Declared fields in document order, first occurrence of a path wins.
        Attribute paths are prefixed with '@'.
    """
    if schema_text is None or not schema_text.strip():
        return []

    try:
        root = etree.fromstring(schema_text.strip().encode("utf-8"), _xml_parser())
    except (ValueError, etree.XMLSyntaxError) as e:
        logger.warning(
            "Target schema artifact {name} could not be parsed: {err}",
            name=artifact_name,
            err=e,
        )
        return []

    name_tag = artifact_name.strip() if artifact_name and artifact_name.strip() else DEFAULT_XSD_NAME
    type_tag = artifact_type.strip() if artifact_type and artifact_type.strip() else "XSD"

    fields: list[FieldPath] = []
    seen: set[str] = set()
    for element in root.iter():
        if not isinstance(element.tag, str):
            continue
        kind = _local_name(element).lower()
        if kind not in ("element", "attribute"):
            continue

        name = (element.get("name") or "").strip()
        if not name:
            continue
        raw_type = element.get("type")
        if kind == "element" and is_wrapper_element(name, raw_type, element):
            logger.debug("Skipping wrapper element {name}", name=name)
            continue

        path = f"@{name}" if kind == "attribute" else name
        if path in seen:
            continue
        seen.add(path)

        required = element.get("minOccurs") != "0" and (element.get("use") or "").lower() != "optional"
        fields.append(
            FieldPath(
                path=path,
                type=normalize_xsd_type(raw_type),
                required=required,
                artifact_name=name_tag,
                artifact_type=type_tag,
            )
        )
    return fields


def dedupe_by_path(fields: list[FieldPath]) -> list[FieldPath]:
    """Drop later fields whose path was already seen, preserving order."""
    index: dict[str, FieldPath] = {}
    for f in fields:
        if f.path.strip():
            index.setdefault(f.path, f)
    return list(index.values())


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def parse_target_fields(spec: TargetSchemaInput) -> list[FieldPath]:
    """Parse a target schema of any supported type into FieldPaths.

    Args:
        spec: Target schema text(s) plus the resolved TargetType.

    Returns:
        Ordered target fields with required flags.
    """
    target_type = spec.target_type

    if target_type == TargetType.XSD_WSDL:
        merged: list[FieldPath] = []
        artifact_count = 0
        artifacts = [a for a in spec.xsd_artifacts if a.content.strip()]
        if artifacts:
            for artifact in artifacts:
                merged.extend(
                    parse_xsd_fields(artifact.content, artifact.name or DEFAULT_XSD_NAME, "XSD")
                )
            artifact_count += len(artifacts)
        elif spec.xsd_text.strip():
            merged.extend(parse_xsd_fields(spec.xsd_text, spec.xsd_name, "XSD"))
            artifact_count += 1
        if spec.wsdl_text.strip():
            merged.extend(parse_xsd_fields(spec.wsdl_text, spec.wsdl_name, "WSDL"))
            artifact_count += 1
        if merged:
            fields = dedupe_by_path(merged)
            logger.info(
                "Parsed {n} target fields from {a} XSD/WSDL artifacts",
                n=len(fields),
                a=artifact_count,
            )
            return fields

    if target_type.is_xml_type or looks_like_xml(spec.schema_text):
        fields = parse_xsd_fields(spec.schema_text, spec.xsd_name, "XSD")
        if not fields and (
            target_type == TargetType.XML or TargetType.sniff(spec.schema_text) == TargetType.XML
        ):
            fields = _flatten_instance_xml(spec.schema_text)
        return fields

    if target_type == TargetType.JSON:
        return _parse_generic_json(spec.schema_text)

    return parse_json_schema_fields(spec.schema_text)


def _flatten_instance_xml(text: str) -> list[FieldPath]:
    try:
        return flatten_xml(text.strip())
    except (ValueError, etree.XMLSyntaxError) as e:
        logger.warning("Target XML document could not be parsed: {err}", err=e)
        return []


def _parse_generic_json(text: str) -> list[FieldPath]:
    try:
        document = json.loads(text or "")
        if isinstance(document, dict) and isinstance(document.get("properties"), dict):
            return _json_schema_properties(document)
        return flatten_json(document)
    except (ValueError, RecursionError) as e:
        logger.warning("Target JSON document could not be parsed: {err}", err=e)
        return []


def resolve_effective_target_schema(
    target_type: TargetType,
    target_schema: str,
    target_schema_json: str = "",
    target_schema_xsd: str = "",
    target_schema_wsdl: str = "",
) -> str:
    """Pick the schema text that represents the target for its type.

    Type-specific inputs win over the generic ``target_schema`` text.
    """
    if target_type == TargetType.JSON_SCHEMA and target_schema_json.strip():
        return target_schema_json
    if target_type == TargetType.XSD and target_schema_xsd.strip():
        return target_schema_xsd
    if target_type == TargetType.XSD_WSDL:
        if target_schema_xsd.strip():
            return target_schema_xsd
        if target_schema_wsdl.strip():
            return target_schema_wsdl
    return target_schema


def target_schema_snapshot(
    target_type: TargetType,
    target_schema: str,
    target_schema_xsd: str = "",
    target_schema_wsdl: str = "",
) -> str:
    """Serialize the target schema into the JSON payload stored on a mapping version."""
    payload: dict[str, Any] = {"targetType": target_type.value}
    if target_type == TargetType.JSON_SCHEMA:
        try:
            payload["schema"] = json.loads(target_schema)
        except ValueError:
            payload["schemaText"] = target_schema
    elif target_type == TargetType.XSD_WSDL:
        payload["xsdSchemaText"] = target_schema_xsd
        payload["wsdlText"] = target_schema_wsdl
        payload["schemaText"] = target_schema
    else:
        payload["schemaText"] = target_schema
    return json.dumps(payload)
