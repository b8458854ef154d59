"""Mapping lifecycle: persistence gateway and save/confirm/export/publish transitions."""

from mapstudio.review.lifecycle import (
    ExportPreconditionError,
    LifecycleError,
    MappingLifecycleManager,
    MappingValidationError,
    PersistenceError,
)
from mapstudio.review.store import MappingStore

__all__ = [
    "ExportPreconditionError",
    "LifecycleError",
    "MappingLifecycleManager",
    "MappingStore",
    "MappingValidationError",
    "PersistenceError",
]
