"""Rich display helpers for terminal output.

Provides formatted display functions for parsed field lists, resolver
suggestions, validation reports, and lifecycle status using Rich tables
and panels.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from mapstudio.models.fields import FieldPath
from mapstudio.models.lifecycle import LifecycleState, MappingVersion
from mapstudio.models.mapping import Suggestion, ValidationReport

_STATE_STYLES = {
    LifecycleState.DRAFT: "dim",
    LifecycleState.SAVED: "yellow",
    LifecycleState.CONFIRMED: "green",
    LifecycleState.PUBLISHED: "bold green",
}


def _confidence_style(confidence: float) -> str:
    if confidence >= 0.85:
        return "green"
    if confidence >= 0.6:
        return "yellow"
    return "red"


def display_field_table(fields: list[FieldPath], title: str, console: Console) -> None:
    """Print a table of parsed fields.

    Columns: Path, Type, Required, Artifact, Description

    Args:
        fields: Ordered FieldPath list.
        title: Table title (e.g. "Source Fields").
        console: Rich Console for output.
    """
    table = Table(title=title, show_lines=False)
    table.add_column("Path", style="bold cyan", no_wrap=True)
    table.add_column("Type", no_wrap=True)
    table.add_column("Required", justify="center")
    table.add_column("Artifact", style="dim")
    table.add_column("Description", max_width=40)

    for f in fields:
        table.add_row(
            f.path,
            f.type.value,
            "[bold]Y[/bold]" if f.required else "",
            f.artifact_name or "",
            f.description,
        )

    console.print(table)
    console.print(f"[bold]{len(fields)}[/bold] fields")


def display_suggestions(suggestions: list[Suggestion], console: Console) -> None:
    """Print resolver suggestions with color-coded confidence.

    GREEN >= 0.85, YELLOW >= 0.6, RED below.

    Args:
        suggestions: Suggestions in resolver output order.
        console: Rich Console for output.
    """
    table = Table(title="Mapping Suggestions", show_lines=True)
    table.add_column("Target", style="bold", no_wrap=True)
    table.add_column("Source", style="cyan", no_wrap=True)
    table.add_column("Confidence", justify="right")
    table.add_column("Tier", no_wrap=True)
    table.add_column("Transform", no_wrap=True)
    table.add_column("Reason", max_width=40)

    for s in suggestions:
        table.add_row(
            s.target_path,
            s.source_path,
            Text(f"{s.confidence:.2f}", style=_confidence_style(s.confidence)),
            s.tier.value if s.tier else "",
            s.transform_type,
            s.reason,
        )

    console.print(table)

    by_tier: dict[str, int] = {}
    for s in suggestions:
        key = s.tier.value if s.tier else "manual"
        by_tier[key] = by_tier.get(key, 0) + 1
    parts = ", ".join(f"{k}: {v}" for k, v in by_tier.items())
    console.print(f"[bold]{len(suggestions)}[/bold] suggestions" + (f" ({parts})" if parts else ""))


def display_validation_report(report: ValidationReport, console: Console) -> None:
    """Print the structural validation report as a panel."""
    lines: list[str] = []
    if report.ready_to_publish:
        lines.append("[bold green]Ready to publish[/bold green]")
    else:
        lines.append("[bold red]Not ready to publish[/bold red]")

    if report.missing_required:
        lines.append(f"\n[bold red]Missing required ({len(report.missing_required)}):[/bold red]")
        lines.extend(f"  - {p}" for p in report.missing_required)
    if report.duplicate_targets:
        lines.append(
            f"\n[bold red]Duplicate targets ({len(report.duplicate_targets)}):[/bold red]"
        )
        lines.extend(f"  - {p}" for p in report.duplicate_targets)
    if report.type_mismatch:
        lines.append(f"\n[yellow]Type mismatches ({len(report.type_mismatch)}):[/yellow]")
        lines.extend(f"  - {p}" for p in report.type_mismatch)

    console.print(Panel("\n".join(lines), title="Validation", expand=False))


def display_lifecycle_status(
    project_code: str,
    version_code: str,
    state: LifecycleState,
    version: MappingVersion | None,
    console: Console,
) -> None:
    """Print the lifecycle state and stored metadata of one mapping version."""
    table = Table(title=f"{project_code} / {version_code}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("State", Text(state.value, style=_STATE_STYLES.get(state, "")))
    if version is not None:
        table.add_row("Created By", version.created_by)
        table.add_row("Created At", version.created_at)
        table.add_row("Saved At", version.saved_at or "-")
        table.add_row("Published At", version.published_at or "-")
        table.add_row("Artifact ID", version.artifact_id or "-")
    else:
        table.add_row("Version", "[dim]not created yet[/dim]")

    console.print(table)
