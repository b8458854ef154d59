"""Persistent lifecycle models for mapping versions and confirmation audits.

MappingVersion and ConfirmationAudit rows are owned by the persistence
gateway (MappingStore). The lifecycle manager only reads and writes them
through well-defined store operations.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

from mapstudio.models.mapping import Suggestion

DEFAULT_ACTOR = "studio-user"


class VersionStatus(StrEnum):
    """Stored status of a mapping version."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class LifecycleState(StrEnum):
    """Derived lifecycle position of a project/version pair.

    DRAFT -> SAVED -> CONFIRMED -> PUBLISHED. A save always drops a
    CONFIRMED version back to SAVED.
    """

    DRAFT = "DRAFT"
    SAVED = "SAVED"
    CONFIRMED = "CONFIRMED"
    PUBLISHED = "PUBLISHED"


class MappingVersion(BaseModel):
    """A versioned mapping artifact for a project."""

    project_code: str
    version_code: str
    status: VersionStatus = VersionStatus.DRAFT
    target_schema_snapshot: str = Field(default="{}", description="JSON payload of the target schema")
    created_by: str = DEFAULT_ACTOR
    created_at: str = Field(..., description="ISO 8601 creation timestamp")
    saved_at: str | None = Field(default=None, description="ISO 8601 timestamp of the last save")
    published_at: str | None = None
    artifact_id: str | None = None


class MappingFieldRow(BaseModel):
    """One persisted, selected source-to-target mapping row."""

    source_path: str
    target_path: str
    transform_type: str = "DIRECT"
    transform_config: str = Field(default="{}", description="JSON: override/origin/artifact metadata")
    confidence: float = 0.0
    reasoning: str = ""


class ConfirmationAudit(BaseModel):
    """Immutable record that a human approved a specific selection."""

    project_code: str
    version_code: str
    confirmed: bool = True
    confirmed_by: str = DEFAULT_ACTOR
    selected_count: int = Field(..., ge=0)
    mapping_snapshot: str = Field(..., description="JSON array of the submitted suggestions")
    notes: str = ""
    created_at: str


class SaveResult(BaseModel):
    project_code: str
    version_code: str
    saved_count: int
    selected_count: int
    saved_at: str


class ConfirmResult(BaseModel):
    project_code: str
    version_code: str
    confirmed: bool
    selected_count: int
    confirmed_at: str


class PublishResult(BaseModel):
    """Outcome of a publish attempt; skipped publishes are not errors."""

    project_code: str
    version_code: str
    skipped: bool = False
    reason: str = ""
    artifact_id: str | None = None
    published_at: str | None = None


class ExportBundle(BaseModel):
    """The confirmed selection handed to an export renderer."""

    project_code: str
    version_code: str
    source_type: str = ""
    target_type: str = ""
    confirmed_by: str = DEFAULT_ACTOR
    confirmed_at: str
    mappings: list[Suggestion] = Field(default_factory=list)

    @property
    def selected_mappings(self) -> list[Suggestion]:
        return [m for m in self.mappings if m.selected]
