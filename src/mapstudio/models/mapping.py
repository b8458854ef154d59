"""Correspondence suggestion models.

These models define the contract between the resolver tiers, the review
lifecycle, and the exporters. A Suggestion is a value object owned by the
caller of a single resolution request; MappingSelection is what the author
submits back for save/confirm.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field, computed_field

DEFAULT_TRANSFORM_TYPE = "DIRECT"


class MappingOrigin(StrEnum):
    """Who produced the mapping row the author submitted."""

    LLM_DERIVED = "LLM_DERIVED"
    EDITED = "EDITED"

    @classmethod
    def resolve(cls, raw_origin: str | None, manual_override: bool) -> str:
        """Return the explicit origin when given, else derive it from the override flag."""
        if raw_origin is not None and raw_origin.strip():
            return raw_origin.strip()
        return (cls.EDITED if manual_override else cls.LLM_DERIVED).value


class SuggestionTier(StrEnum):
    """Resolver tier that produced a suggestion."""

    LEXICAL = "lexical"
    ASSISTED = "assisted"
    EMBEDDING = "embedding"


class PathType(StrEnum):
    """Notation used when rendering source paths for export."""

    JSON_PATH = "JSON_PATH"
    XML_PATH = "XML_PATH"

    @classmethod
    def from_value(cls, value: str | None) -> PathType:
        if value is not None and value.strip().upper() == cls.XML_PATH.value:
            return cls.XML_PATH
        return cls.JSON_PATH


class Suggestion(BaseModel):
    """A proposed source-to-target field pairing with confidence and rationale."""

    source_path: str = Field(..., description="Source FieldPath.path")
    target_path: str = Field(..., description="Target FieldPath.path")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Confidence score 0.0-1.0")
    transform_type: str = Field(
        default=DEFAULT_TRANSFORM_TYPE, description="Transform applied between source and target"
    )
    reason: str = Field(default="", description="Why the pairing was proposed")
    origin: str | None = Field(
        default=None,
        description="Explicit origin; when unset it is derived from manual_override",
    )
    selected: bool = Field(default=False, description="Author accepted this row")
    manual_override: bool = Field(default=False, description="Author edited the pairing by hand")
    notes: str = Field(default="", description="Author notes")
    tier: SuggestionTier | None = Field(
        default=None, description="Resolver tier that produced the row (None for hand-written rows)"
    )
    target_artifact_name: str | None = Field(default=None)
    target_artifact_type: str | None = Field(default=None)

    @property
    def resolved_origin(self) -> str:
        return MappingOrigin.resolve(self.origin, self.manual_override)


class MappingSelection(BaseModel):
    """The author's submitted selection for one project/version pair."""

    project_code: str = Field(..., description="Mapping project identifier")
    version_code: str = Field(..., description="Mapping version identifier")
    source_type: str = Field(default="JSON")
    target_type: str = Field(default="JSON_SCHEMA")
    path_type: PathType = Field(default=PathType.JSON_PATH)
    mappings: list[Suggestion] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def selected_count(self) -> int:
        return sum(1 for m in self.mappings if m.selected)


class ValidationReport(BaseModel):
    """Structural checks over a suggestion list before publishing."""

    missing_required: list[str] = Field(default_factory=list)
    type_mismatch: list[str] = Field(default_factory=list)
    duplicate_targets: list[str] = Field(default_factory=list)
    ready_to_publish: bool = True
