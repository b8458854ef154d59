"""Structural validation of a suggestion list against its field lists.

Checks coverage of required target fields, source/target type
compatibility, and targets mapped more than once. These are existence and
shape checks only; transform expressions are not evaluated.
"""

from __future__ import annotations

from collections import Counter

from loguru import logger

from mapstudio.models.fields import FieldPath, FieldType
from mapstudio.models.mapping import Suggestion, ValidationReport


def check_required_coverage(
    suggestions: list[Suggestion],
    target_fields: list[FieldPath],
) -> list[str]:
    """Return required target paths that no suggestion covers, in schema order."""
    covered = {s.target_path for s in suggestions}
    return [t.path for t in target_fields if t.required and t.path not in covered]


def check_type_mismatches(
    suggestions: list[Suggestion],
    source_fields: list[FieldPath],
    target_fields: list[FieldPath],
) -> list[str]:
    """Describe pairings whose source type cannot flow into the target type.

    Any type may flow into a string target, and a null-typed source value
    carries no type information, so neither counts as a mismatch.
    """
    source_types = {f.path: f.type for f in source_fields}
    target_types = {f.path: f.type for f in target_fields}

    mismatches: list[str] = []
    for s in suggestions:
        src = source_types.get(s.source_path)
        tgt = target_types.get(s.target_path)
        if src is None or tgt is None:
            continue
        if src == tgt or tgt == FieldType.STRING or src == FieldType.NULL:
            continue
        mismatches.append(f"{s.source_path} -> {s.target_path} ({src.value} != {tgt.value})")
    return mismatches


def check_duplicate_targets(suggestions: list[Suggestion]) -> list[str]:
    """Target paths mapped by more than one suggestion, in first-seen order."""
    counts = Counter(s.target_path for s in suggestions)
    return [path for path, n in counts.items() if n > 1]


def build_validation_report(
    suggestions: list[Suggestion],
    source_fields: list[FieldPath],
    target_fields: list[FieldPath],
) -> ValidationReport:
    """Run all structural checks and summarize publish readiness.

    Type mismatches are reported but do not block publishing; missing
    required targets and duplicate targets do.
    """
    missing = check_required_coverage(suggestions, target_fields)
    mismatches = check_type_mismatches(suggestions, source_fields, target_fields)
    duplicates = check_duplicate_targets(suggestions)

    if missing:
        logger.warning(
            "Missing required target fields: {fields}",
            fields=", ".join(missing),
        )
    for issue in mismatches:
        logger.warning("Type mismatch: {issue}", issue=issue)

    return ValidationReport(
        missing_required=missing,
        type_mismatch=mismatches,
        duplicate_targets=duplicates,
        ready_to_publish=not missing and not duplicates,
    )
