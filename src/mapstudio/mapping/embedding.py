"""Embedding-similarity gap filling (resolver tier 3).

Covers target fields still unmapped after tiers 1-2 by cosine similarity
between synthesized field descriptions. Required targets accept a lower
similarity than optional ones to maximize coverage.
"""

from __future__ import annotations

import numpy as np
from loguru import logger

from mapstudio.llm.protocols import Embedder
from mapstudio.mapping.lexical import clamp
from mapstudio.models.fields import FieldPath
from mapstudio.models.mapping import DEFAULT_TRANSFORM_TYPE, Suggestion, SuggestionTier

REQUIRED_THRESHOLD = 0.25
OPTIONAL_THRESHOLD = 0.40
CONFIDENCE_FLOOR = 0.55
CONFIDENCE_CEILING = 0.95
REASON = "Semantic similarity (embedding)"


def describe_field(field: FieldPath) -> str:
    """Text that represents a field in embedding space."""
    return f"path: {field.path}, type: {field.type.value}, description: {field.description}"


def embed_field(embedder: Embedder, field: FieldPath) -> list[float]:
    """Embed one field; any failure yields an empty vector."""
    try:
        vector = embedder.embed(describe_field(field))
        return [] if vector is None else [float(x) for x in vector]
    except Exception as e:
        logger.warning("Embedding failed for field {path}: {err}", path=field.path, err=e)
        return []


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity; 0.0 for empty, mismatched, or zero-norm vectors."""
    if not a or not b or len(a) != len(b):
        return 0.0
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    na = float(np.linalg.norm(va))
    nb = float(np.linalg.norm(vb))
    if na == 0.0 or nb == 0.0:
        return 0.0
    return float(np.dot(va, vb) / (na * nb))


def embedding_gap_fill(
    embedder: Embedder,
    existing: list[Suggestion],
    source_fields: list[FieldPath],
    target_fields: list[FieldPath],
) -> list[Suggestion]:
    """Append embedding-based suggestions for targets not yet covered.

    Args:
        embedder: Embedding capability.
        existing: Suggestions from earlier tiers. Their sources count as used
            and their targets as covered.
        source_fields: Flattened source fields.
        target_fields: Parsed target fields, in schema order.

    Returns:
        ``existing`` followed by the new gap-fill suggestions.
    """
    out = list(existing)
    if not source_fields or not target_fields:
        return out

    covered = {s.target_path for s in out}
    used = {s.source_path for s in out}
    pending = [t for t in target_fields if t.path.strip() and t.path not in covered]
    if not pending:
        return out

    source_vectors: dict[str, list[float]] = {}
    for source in source_fields:
        if source.path.strip() and source.path not in source_vectors:
            source_vectors[source.path] = embed_field(embedder, source)

    added = 0
    for target in pending:
        target_vector = embed_field(embedder, target)

        best_source: str | None = None
        best_score = -1.0
        for source_path, vector in source_vectors.items():
            if source_path in used:
                continue
            score = cosine_similarity(vector, target_vector)
            if score > best_score:
                best_source, best_score = source_path, score

        threshold = REQUIRED_THRESHOLD if target.required else OPTIONAL_THRESHOLD
        if best_source is None or best_score < threshold:
            continue

        used.add(best_source)
        covered.add(target.path)
        out.append(
            Suggestion(
                source_path=best_source,
                target_path=target.path,
                confidence=round(clamp(best_score, CONFIDENCE_FLOOR, CONFIDENCE_CEILING), 2),
                transform_type=DEFAULT_TRANSFORM_TYPE,
                reason=REASON,
                tier=SuggestionTier.EMBEDDING,
                target_artifact_name=target.artifact_name,
                target_artifact_type=target.artifact_type,
            )
        )
        added += 1

    logger.info(
        "Embedding gap fill covered {added} of {pending} unmapped target fields",
        added=added,
        pending=len(pending),
    )
    return out
