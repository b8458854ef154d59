"""Dialogue session carrier shared with the external conversation orchestrator.

The orchestrator owns the session and its state name. Studio actions only
read schema text and prior outputs from it and write their results back
under the keys in :class:`SessionKeys`.
"""

from __future__ import annotations

from typing import Any

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from mapstudio.models.fields import FieldPath
from mapstudio.parsing.target_schema import SchemaArtifact


class SessionKeys:
    """Session key names, statuses, and input defaults."""

    PROJECT_CODE = "projectCode"
    MAPPING_VERSION = "mappingVersion"
    SOURCE_TYPE = "sourceType"
    TARGET_TYPE = "targetType"
    SOURCE_SPEC = "sourceSpec"
    TARGET_SCHEMA = "targetSchema"
    TARGET_SCHEMA_JSON = "targetSchemaJson"
    TARGET_SCHEMA_XSD = "targetSchemaXsd"
    TARGET_SCHEMA_WSDL = "targetSchemaWsdl"
    TARGET_SCHEMA_XSD_NAME = "targetSchemaXsdName"
    TARGET_SCHEMA_WSDL_NAME = "targetSchemaWsdlName"
    TARGET_SCHEMA_XSD_LIST = "targetSchemaXsdList"

    PARSED_SOURCE_FIELDS = "parsed_source_fields"
    PARSED_TARGET_FIELDS = "parsed_target_fields"
    TARGET_TYPE_NORMALIZED = "target_type"
    MAPPING_SUGGESTIONS = "mapping_suggestions"
    VALIDATION_REPORT = "validation_report"
    MISSING_REQUIRED = "missing_required"
    TYPE_MISMATCH = "type_mismatch"
    DUPLICATE_TARGETS = "duplicate_targets"
    PARSE_STATUS = "parse_status"
    PARSE_RESULT = "parse_result"
    SUGGESTION_STATUS = "suggestion_status"
    VALIDATION_STATUS = "validation_status"
    PUBLISH_STATUS = "publish_status"
    PUBLISH_RESULT = "publish_result"

    STATUS_DONE = "DONE"
    STATUS_SKIPPED = "SKIPPED"
    STATE_AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"

    DEFAULT_PROJECT_CODE = "MAPPER_DEMO_PROJECT"
    DEFAULT_MAPPING_VERSION = "1.0.0"
    DEFAULT_SOURCE_TYPE = "JSON"
    DEFAULT_SOURCE_SPEC = "{}"
    DEFAULT_TARGET_SCHEMA = "{}"
    DEFAULT_TARGET_SCHEMA_XSD_NAME = "target.xsd"
    DEFAULT_TARGET_SCHEMA_WSDL_NAME = "target.wsdl"
    DEFAULT_TARGET_TYPE = "JSON_SCHEMA"

    TRANSIENT = (
        PARSE_STATUS,
        PARSE_RESULT,
        SUGGESTION_STATUS,
        MAPPING_SUGGESTIONS,
        VALIDATION_STATUS,
        VALIDATION_REPORT,
        MISSING_REQUIRED,
        TYPE_MISMATCH,
        DUPLICATE_TARGETS,
        PUBLISH_STATUS,
        PUBLISH_RESULT,
    )


class StudioSession(BaseModel):
    """Current dialogue state plus the key/value maps it carries."""

    state: str = ""
    input_params: dict[str, Any] = Field(default_factory=dict)
    context: dict[str, Any] = Field(default_factory=dict)

    def read_value(self, key: str, default: str = "") -> str:
        """Read a string from input params, then context; blank counts as missing."""
        for source in (self.input_params, self.context):
            value = source.get(key)
            if value is not None and str(value).strip():
                return str(value)
        return default

    def read_artifact_list(self, key: str) -> list[SchemaArtifact]:
        """Read a list of ``{"name", "content"}`` artifacts, skipping non-dict items."""
        raw = self.input_params.get(key)
        if raw is None:
            raw = self.context.get(key)
        if not isinstance(raw, list):
            return []
        artifacts: list[SchemaArtifact] = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            artifacts.append(
                SchemaArtifact(
                    name=str(item.get("name") or SessionKeys.DEFAULT_TARGET_SCHEMA_XSD_NAME),
                    content=str(item.get("content") or ""),
                )
            )
        return artifacts

    def read_field_list(self, key: str) -> list[FieldPath]:
        """Read a previously stored field list from input params."""
        raw = self.input_params.get(key)
        if not isinstance(raw, list):
            return []
        fields: list[FieldPath] = []
        for item in raw:
            if isinstance(item, FieldPath):
                fields.append(item)
                continue
            if not isinstance(item, dict):
                continue
            try:
                fields.append(FieldPath.model_validate(item))
            except ValidationError as e:
                logger.debug("Skipping malformed field in {key}: {err}", key=key, err=e)
        return fields

    def put(self, key: str, value: Any) -> None:
        self.input_params[key] = value

    def clear_transient_statuses(self) -> None:
        """Drop per-action statuses and results from a previous run."""
        for key in SessionKeys.TRANSIENT:
            self.input_params.pop(key, None)
