"""AI-assisted matching (resolver tier 2).

Sends both field lists to a text-generation capability and keeps only the
returned pairings that reference known paths. The LLM proposes; this module
validates. Any failure degrades to an empty result.
"""

from __future__ import annotations

import json

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mapstudio.llm.protocols import TextGenerator
from mapstudio.mapping.lexical import clamp
from mapstudio.mapping.prompts import MAPPING_HINT, MAPPING_INSTRUCTIONS
from mapstudio.models.fields import FieldPath
from mapstudio.models.mapping import DEFAULT_TRANSFORM_TYPE, Suggestion, SuggestionTier

DEFAULT_REASON = "AI semantic mapping"


class AssistedSuggestionItem(BaseModel):
    """One pairing as returned by the model."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    source_path: str = Field(..., alias="sourcePath")
    target_path: str = Field(..., alias="targetPath")
    confidence: float = Field(..., description="Confidence between 0 and 1")
    transform_type: str = Field(default=DEFAULT_TRANSFORM_TYPE, alias="transformType")
    reason: str = Field(default="")


class AssistedSuggestionBatch(BaseModel):
    """Response envelope the model is constrained to."""

    model_config = ConfigDict(extra="forbid")

    suggestions: list[AssistedSuggestionItem]


def response_schema() -> dict:
    """JSON Schema sent to the text-generation capability."""
    schema = AssistedSuggestionBatch.model_json_schema(by_alias=True)
    # Every item key is mandatory in the constrained output.
    item = schema["$defs"]["AssistedSuggestionItem"]
    item["required"] = list(item["properties"].keys())
    return schema


def build_context(source_fields: list[FieldPath], target_fields: list[FieldPath]) -> str:
    """Serialize the field lists and instructions into the context payload."""
    return json.dumps(
        {
            "sourceFields": [f.model_dump(mode="json", exclude_none=True) for f in source_fields],
            "targetFields": [f.model_dump(mode="json", exclude_none=True) for f in target_fields],
            "instructions": MAPPING_INSTRUCTIONS,
        }
    )


def assisted_suggestions(
    generator: TextGenerator,
    source_fields: list[FieldPath],
    target_fields: list[FieldPath],
) -> list[Suggestion]:
    """Run tier 2 and return validated suggestions in target-schema order.

    Items naming an unknown source/target path, failing schema validation,
    or reusing an already-claimed source or target are dropped.

    Args:
        generator: Text-generation capability.
        source_fields: Flattened source fields.
        target_fields: Parsed target fields.

    Returns:
        Validated suggestions; empty on any call or parse failure.
    """
    if not source_fields or not target_fields:
        return []

    try:
        raw = generator.generate_structured_json(
            MAPPING_HINT,
            response_schema(),
            build_context(source_fields, target_fields),
        )
        parsed = json.loads(raw)
    except Exception as e:
        logger.warning("AI-assisted mapping tier failed, continuing without it: {err}", err=e)
        return []

    items = parsed.get("suggestions") if isinstance(parsed, dict) else None
    if not isinstance(items, list):
        logger.warning("AI-assisted mapping response had no suggestions array")
        return []

    allowed_sources = {f.path for f in source_fields if f.path.strip()}
    target_order = {f.path: i for i, f in enumerate(target_fields) if f.path.strip()}
    target_by_path = {f.path: f for f in target_fields if f.path.strip()}

    claimed_sources: set[str] = set()
    covered_targets: set[str] = set()
    accepted: list[Suggestion] = []
    dropped = 0

    for raw_item in items:
        try:
            item = AssistedSuggestionItem.model_validate(raw_item)
        except ValidationError:
            dropped += 1
            continue

        source_path = item.source_path.strip()
        target_path = item.target_path.strip()
        if source_path not in allowed_sources or target_path not in target_order:
            dropped += 1
            continue
        if source_path in claimed_sources or target_path in covered_targets:
            dropped += 1
            continue

        claimed_sources.add(source_path)
        covered_targets.add(target_path)
        target = target_by_path[target_path]
        accepted.append(
            Suggestion(
                source_path=source_path,
                target_path=target_path,
                confidence=round(clamp(item.confidence, 0.0, 1.0), 2),
                transform_type=item.transform_type.strip() or DEFAULT_TRANSFORM_TYPE,
                reason=item.reason.strip() or DEFAULT_REASON,
                tier=SuggestionTier.ASSISTED,
                target_artifact_name=target.artifact_name,
                target_artifact_type=target.artifact_type,
            )
        )

    if dropped:
        logger.debug("Dropped {n} invalid AI-assisted suggestions", n=dropped)

    accepted.sort(key=lambda s: target_order[s.target_path])
    return accepted
