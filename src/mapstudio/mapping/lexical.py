"""Deterministic lexical matching (resolver tier 1).

Scores source/target path pairs by token overlap plus an exact-leaf bonus.
No external calls -- purely rule-based, and the tier every other tier
falls back to.
"""

from __future__ import annotations

import re

from mapstudio.models.fields import FieldPath
from mapstudio.models.mapping import DEFAULT_TRANSFORM_TYPE, Suggestion, SuggestionTier

ACCEPT_THRESHOLD = 0.35
LEAF_BONUS = 0.35
CONFIDENCE_FLOOR = 0.60
CONFIDENCE_CEILING = 0.95

REASON_LEAF_MATCH = "Field name and type exact match"
REASON_TOKEN_OVERLAP = "Semantic and description similarity"

_SEPARATORS = re.compile(r"[.\[\]_\- ]+")
_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")
_INDEX = re.compile(r"\[[0-9]+\]")


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def tokenize(path: str | None) -> set[str]:
    """Split a path into lowercase tokens on separators and camelCase boundaries.

    ``"order.lineItems[0].unit_price"`` -> ``{"order", "line", "items", "0", "unit", "price"}``
    """
    if path is None or not path.strip():
        return set()
    tokens: set[str] = set()
    for segment in _SEPARATORS.split(path):
        if not segment.strip():
            continue
        spaced = _CAMEL_BOUNDARY.sub(r"\1 \2", segment)
        tokens.update(t for t in spaced.lower().split() if t)
    return tokens


def leaf(path: str | None) -> str:
    """Final path segment with array indexes removed, lowercased."""
    if path is None or not path.strip():
        return ""
    normalized = _INDEX.sub("", path)
    return normalized.rsplit(".", 1)[-1].lower()


def score_pair(source_path: str, target_path: str) -> tuple[float, str]:
    """Score one source path against one target path.

    Returns:
        Tuple of (score, reason). ``score = |overlap| / |target tokens|``
        plus LEAF_BONUS when the leaves match case-insensitively.
    """
    source_tokens = tokenize(source_path)
    target_tokens = tokenize(target_path)
    if not source_tokens or not target_tokens:
        return 0.0, "Low semantic similarity"

    overlap_score = len(source_tokens & target_tokens) / len(target_tokens)
    leaf_match = leaf(source_path) == leaf(target_path)
    score = overlap_score + (LEAF_BONUS if leaf_match else 0.0)
    return score, REASON_LEAF_MATCH if leaf_match else REASON_TOKEN_OVERLAP


def lexical_confidence(score: float) -> float:
    return round(clamp(0.50 + 0.45 * score, CONFIDENCE_FLOOR, CONFIDENCE_CEILING), 2)


def lexical_suggestions(
    source_fields: list[FieldPath],
    target_fields: list[FieldPath],
    used_sources: set[str] | None = None,
) -> list[Suggestion]:
    """Run tier 1 as a single sequential pass over the target fields.

    For each target in schema order, the highest-scoring unused source wins
    (first source wins on exact ties) and is claimed so it cannot match
    another target.

    Args:
        source_fields: Flattened source fields.
        target_fields: Parsed target fields, in schema order.
        used_sources: Source paths already claimed by earlier work. Not mutated.

    Returns:
        Suggestions in target-schema order.
    """
    if not source_fields or not target_fields:
        return []

    claimed = set(used_sources or ())
    suggestions: list[Suggestion] = []

    for target in target_fields:
        if not target.path.strip():
            continue

        best_path: str | None = None
        best_score = 0.0
        best_reason = ""
        for source in source_fields:
            if not source.path.strip() or source.path in claimed:
                continue
            score, reason = score_pair(source.path, target.path)
            if best_path is None or score > best_score:
                best_path, best_score, best_reason = source.path, score, reason

        if best_path is None or best_score < ACCEPT_THRESHOLD:
            continue

        claimed.add(best_path)
        suggestions.append(
            Suggestion(
                source_path=best_path,
                target_path=target.path,
                confidence=lexical_confidence(best_score),
                transform_type=DEFAULT_TRANSFORM_TYPE,
                reason=best_reason,
                tier=SuggestionTier.LEXICAL,
                target_artifact_name=target.artifact_name,
                target_artifact_type=target.artifact_type,
            )
        )

    return suggestions
