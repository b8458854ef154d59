"""Render a confirmed mapping selection to Excel and JSON.

Provides:
- format_path / path_leaf: source-path rendering as JSONPath ($.a.b) or XPath (/a/b)
- export_to_json: Pydantic serialization of the ExportBundle
- export_to_excel: openpyxl workbook with 3 sheets (SourceTarget, Mappings, Summary)
  including conditional formatting on the confidence column.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from pathlib import Path

from loguru import logger
from openpyxl import Workbook
from openpyxl.formatting.rule import CellIsRule
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from mapstudio.models.lifecycle import ExportBundle
from mapstudio.models.mapping import DEFAULT_TRANSFORM_TYPE, PathType

_SLASHES = re.compile(r"/+")
_DOTS = re.compile(r"\.+")


def _normalize_path(path: str | None) -> str:
    value = _SLASHES.sub(".", (path or "").strip())
    return _DOTS.sub(".", value).strip(".")


def format_path(path: str | None, path_type: PathType) -> str:
    """Render a dotted source path in the requested notation.

    ``user.address.city`` -> ``$.user.address.city`` (JSON_PATH) or
    ``/user/address/city`` (XML_PATH).
    """
    normalized = _normalize_path(path)
    if path_type == PathType.XML_PATH:
        return "/" + normalized.replace(".", "/") if normalized else "/"
    return "$." + normalized if normalized else "$"


def path_leaf(path: str | None) -> str:
    """Last segment of a dotted or slashed path, case preserved."""
    normalized = _normalize_path(path)
    return normalized.rsplit(".", 1)[-1] if normalized else ""


def export_to_json(bundle: ExportBundle, output_path: Path) -> Path:
    """Export a confirmed selection to JSON via Pydantic serialization.

    Args:
        bundle: The confirmed selection to export.
        output_path: File path to write the JSON output.

    Returns:
        The path written.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(bundle.model_dump_json(indent=2))
    logger.info("Exported mapping to JSON: {path}", path=output_path)
    return output_path


def export_to_excel(
    bundle: ExportBundle,
    output_path: Path,
    path_type: PathType = PathType.JSON_PATH,
) -> Path:
    """Export a confirmed selection to an Excel workbook with 3 sheets.

    Sheet 1 - SourceTarget: selected rows as source leaf / target / formatted path.
    Sheet 2 - Mappings: every submitted row with selection flag, transform,
        confidence (GREEN >= 0.85, YELLOW >= 0.6, RED below), origin and notes.
    Sheet 3 - Summary: project metadata and counts.

    Args:
        bundle: The confirmed selection to export.
        output_path: File path to write the .xlsx output.
        path_type: Notation for the Path column.

    Returns:
        The path written.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()

    ws_primary = wb.active
    ws_primary.title = "SourceTarget"  # type: ignore[union-attr]
    _write_source_target_sheet(ws_primary, bundle, path_type)  # type: ignore[arg-type]

    ws_mappings = wb.create_sheet("Mappings")
    _write_mappings_sheet(ws_mappings, bundle)

    ws_summary = wb.create_sheet("Summary")
    _write_summary_sheet(ws_summary, bundle, path_type)

    wb.save(output_path)
    logger.info(
        "Exported mapping to Excel: {path} ({n} selected rows)",
        path=output_path,
        n=len(bundle.selected_mappings),
    )
    return output_path


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

_PRIMARY_HEADERS = ["Source", "Target", "Path", "Path Type"]

_MAPPING_HEADERS = [
    "Selected",
    "Source Path",
    "Target Path",
    "Transform",
    "Confidence",
    "Origin",
    "Reason",
    "Notes",
    "Manual Override",
    "Artifact Name",
    "Artifact Type",
]

_HEADER_FONT = Font(bold=True)
_GREEN_FILL = PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid")
_YELLOW_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
_RED_FILL = PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid")

_COL_WIDTHS = {
    "Source": 24,
    "Target": 28,
    "Path": 40,
    "Path Type": 12,
    "Selected": 9,
    "Source Path": 36,
    "Target Path": 36,
    "Transform": 12,
    "Confidence": 11,
    "Origin": 13,
    "Reason": 36,
    "Notes": 30,
    "Manual Override": 15,
    "Artifact Name": 20,
    "Artifact Type": 13,
}


def _write_headers(ws: object, headers: list[str]) -> None:
    for col_idx, header in enumerate(headers, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)  # type: ignore[union-attr]
        cell.font = _HEADER_FONT
        col_letter = get_column_letter(col_idx)
        ws.column_dimensions[col_letter].width = _COL_WIDTHS.get(header, 15)  # type: ignore[union-attr]


def _write_source_target_sheet(ws: object, bundle: ExportBundle, path_type: PathType) -> None:
    """Populate the SourceTarget sheet with selected rows only."""
    _write_headers(ws, _PRIMARY_HEADERS)

    for row_idx, mapping in enumerate(bundle.selected_mappings, start=2):
        ws.cell(row=row_idx, column=1, value=path_leaf(mapping.source_path))  # type: ignore[union-attr]
        ws.cell(row=row_idx, column=2, value=mapping.target_path.strip())  # type: ignore[union-attr]
        ws.cell(row=row_idx, column=3, value=format_path(mapping.source_path, path_type))  # type: ignore[union-attr]
        ws.cell(row=row_idx, column=4, value=path_type.value)  # type: ignore[union-attr]


def _write_mappings_sheet(ws: object, bundle: ExportBundle) -> None:
    """Populate the Mappings sheet with every submitted row."""
    _write_headers(ws, _MAPPING_HEADERS)

    for row_idx, m in enumerate(bundle.mappings, start=2):
        values = [
            "Y" if m.selected else "N",
            m.source_path.strip(),
            m.target_path.strip(),
            m.transform_type.strip() or DEFAULT_TRANSFORM_TYPE,
            m.confidence,
            m.resolved_origin,
            m.reason.strip(),
            m.notes.strip(),
            "Y" if m.manual_override else "N",
            m.target_artifact_name or "",
            m.target_artifact_type or "",
        ]
        for col_idx, value in enumerate(values, start=1):
            ws.cell(row=row_idx, column=col_idx, value=value)  # type: ignore[union-attr]

    if not bundle.mappings:
        return

    last_row = len(bundle.mappings) + 1
    ws.auto_filter.ref = f"A1:{get_column_letter(len(_MAPPING_HEADERS))}{last_row}"  # type: ignore[union-attr]

    # Confidence is column 5 (E)
    range_str = f"E2:E{last_row}"
    ws.conditional_formatting.add(  # type: ignore[union-attr]
        range_str,
        CellIsRule(operator="greaterThanOrEqual", formula=["0.85"], fill=_GREEN_FILL),
    )
    ws.conditional_formatting.add(  # type: ignore[union-attr]
        range_str,
        CellIsRule(operator="between", formula=["0.6", "0.8499"], fill=_YELLOW_FILL),
    )
    ws.conditional_formatting.add(  # type: ignore[union-attr]
        range_str,
        CellIsRule(operator="lessThan", formula=["0.6"], fill=_RED_FILL),
    )


def _write_summary_sheet(ws: object, bundle: ExportBundle, path_type: PathType) -> None:
    """Populate the Summary sheet."""
    label_font = Font(bold=True)
    wrap_align = Alignment(wrap_text=True)

    ws.column_dimensions["A"].width = 22  # type: ignore[union-attr]
    ws.column_dimensions["B"].width = 40  # type: ignore[union-attr]

    rows: list[tuple[str, str | int]] = [
        ("Project Code", bundle.project_code),
        ("Version", bundle.version_code),
        ("Source Type", bundle.source_type),
        ("Target Type", bundle.target_type),
        ("Path Type", path_type.value),
        ("Confirmed By", bundle.confirmed_by),
        ("Confirmed At", bundle.confirmed_at),
        ("Exported At", datetime.now(tz=UTC).isoformat()),
        ("Selected Mappings", len(bundle.selected_mappings)),
    ]

    for row_idx, (label, value) in enumerate(rows, start=1):
        label_cell = ws.cell(row=row_idx, column=1, value=label)  # type: ignore[union-attr]
        label_cell.font = label_font
        value_cell = ws.cell(row=row_idx, column=2, value=value)  # type: ignore[union-attr]
        value_cell.alignment = wrap_align
