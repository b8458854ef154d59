"""Pydantic data models for fields, suggestions, and mapping lifecycle rows."""

from mapstudio.models.fields import FieldPath, FieldType, TargetType
from mapstudio.models.lifecycle import (
    ConfirmationAudit,
    ConfirmResult,
    ExportBundle,
    LifecycleState,
    MappingFieldRow,
    MappingVersion,
    PublishResult,
    SaveResult,
    VersionStatus,
)
from mapstudio.models.mapping import (
    MappingOrigin,
    MappingSelection,
    PathType,
    Suggestion,
    SuggestionTier,
    ValidationReport,
)

__all__ = [
    "ConfirmResult",
    "ConfirmationAudit",
    "ExportBundle",
    "FieldPath",
    "FieldType",
    "LifecycleState",
    "MappingFieldRow",
    "MappingOrigin",
    "MappingSelection",
    "MappingVersion",
    "PathType",
    "PublishResult",
    "SaveResult",
    "Suggestion",
    "SuggestionTier",
    "TargetType",
    "ValidationReport",
    "VersionStatus",
]
