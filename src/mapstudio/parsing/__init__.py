"""Source document flattening and target schema parsing.

Both sides produce ordered lists of :class:`~mapstudio.models.fields.FieldPath`
that feed the correspondence resolver.
"""

from mapstudio.parsing.source_flattener import flatten_source
from mapstudio.parsing.target_schema import (
    SchemaArtifact,
    TargetSchemaInput,
    parse_target_fields,
)

__all__ = ["SchemaArtifact", "TargetSchemaInput", "flatten_source", "parse_target_fields"]
