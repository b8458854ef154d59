"""MapStudio CLI application entry point.

Provides commands for inspecting parsed fields, generating mapping
suggestions, and driving the save/confirm/export/publish lifecycle of a
mapping version.

Usage:
    mapstudio fields <source> <target>
    mapstudio suggest <source> <target> -o selection.json
    mapstudio save <selection.json>
    mapstudio confirm <selection.json>
    mapstudio export <project> <version> -o mapping.xlsx
    mapstudio publish <project> <version> --state AWAITING_CONFIRMATION
    mapstudio status <project> <version>
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console

if TYPE_CHECKING:
    from mapstudio.models.fields import FieldPath
    from mapstudio.models.mapping import MappingSelection
    from mapstudio.review.lifecycle import MappingLifecycleManager

app = typer.Typer(
    name="mapstudio",
    help="Resolve field-level mappings between source documents and target schemas.",
    no_args_is_help=True,
)

console = Console()

_DEFAULT_DB = Path(".mapstudio/mapstudio.db")

DbOption = Annotated[
    Path,
    typer.Option("--db", help="SQLite database holding mapping versions"),
]


@app.command()
def version() -> None:
    """Show the current version."""
    from mapstudio import __version__

    console.print(f"mapstudio {__version__}")


def _check_api_key() -> bool:
    """Check if ANTHROPIC_API_KEY is set. Print error and return False if not."""
    import os

    if not os.environ.get("ANTHROPIC_API_KEY"):
        console.print(
            "[bold red]Error:[/bold red] ANTHROPIC_API_KEY environment variable is not set.\n"
            "Set it with: [bold]export ANTHROPIC_API_KEY=sk-...[/bold]"
        )
        return False
    return True


def _read_text(path: Path) -> str:
    if not path.is_file():
        console.print(f"[bold red]Error:[/bold red] File not found: {path}")
        raise typer.Exit(code=1)
    return path.read_text(encoding="utf-8")


def _parse_pair(
    source: Path,
    target: Path,
    target_type: str | None,
) -> tuple[list[FieldPath], list[FieldPath], str]:
    from mapstudio.models.fields import TargetType
    from mapstudio.parsing import TargetSchemaInput, flatten_source, parse_target_fields

    source_text = _read_text(source)
    target_text = _read_text(target)

    resolved = TargetType.resolve(target_type, target_text)
    source_fields = flatten_source(source_text)
    target_fields = parse_target_fields(
        TargetSchemaInput(
            schema_text=target_text,
            target_type=resolved,
            xsd_name=target.name,
        )
    )
    return source_fields, target_fields, resolved.value


def _open_lifecycle(db: Path) -> MappingLifecycleManager:
    from mapstudio.review import MappingLifecycleManager, MappingStore

    return MappingLifecycleManager(MappingStore(db))


def _load_selection(path: Path) -> MappingSelection:
    from pydantic import ValidationError

    from mapstudio.models.mapping import MappingSelection

    try:
        return MappingSelection.model_validate_json(_read_text(path))
    except ValidationError as e:
        console.print(f"[bold red]Error:[/bold red] Invalid selection file {path}:\n{e}")
        raise typer.Exit(code=1) from e


@app.command()
def fields(
    source: Annotated[Path, typer.Argument(help="Source JSON or XML instance document")],
    target: Annotated[Path, typer.Argument(help="Target JSON Schema, XSD, or WSDL")],
    target_type: Annotated[
        str | None,
        typer.Option("--target-type", "-t", help="JSON_SCHEMA, JSON, XSD, XSD_WSDL or XML"),
    ] = None,
) -> None:
    """Show the flattened source fields and parsed target fields."""
    from mapstudio.cli.display import display_field_table

    source_fields, target_fields, resolved = _parse_pair(source, target, target_type)

    display_field_table(source_fields, "Source Fields", console)
    console.print()
    display_field_table(target_fields, f"Target Fields ({resolved})", console)


@app.command()
def suggest(
    source: Annotated[Path, typer.Argument(help="Source JSON or XML instance document")],
    target: Annotated[Path, typer.Argument(help="Target JSON Schema, XSD, or WSDL")],
    target_type: Annotated[
        str | None,
        typer.Option("--target-type", "-t", help="JSON_SCHEMA, JSON, XSD, XSD_WSDL or XML"),
    ] = None,
    ai: Annotated[
        bool,
        typer.Option("--ai/--no-ai", help="Use Claude when lexical matching finds nothing"),
    ] = False,
    embeddings: Annotated[
        bool,
        typer.Option("--embeddings/--no-embeddings", help="Fill gaps by embedding similarity"),
    ] = False,
    model: Annotated[
        str | None,
        typer.Option("--model", help="Claude model ID for the AI-assisted tier"),
    ] = None,
    project: Annotated[
        str,
        typer.Option("--project", "-p", help="Project code written to the selection file"),
    ] = "MAPPER_DEMO_PROJECT",
    version_code: Annotated[
        str,
        typer.Option("--version", "-v", help="Mapping version written to the selection file"),
    ] = "1.0.0",
    select_all: Annotated[
        bool,
        typer.Option("--select-all", help="Mark every suggestion as selected in the output"),
    ] = False,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write suggestions as a selection JSON file"),
    ] = None,
) -> None:
    """Generate source-to-target mapping suggestions.

    Runs lexical matching, then (optionally) the AI-assisted and embedding
    tiers, and prints a validation report for the result.

    --ai requires ANTHROPIC_API_KEY to be set.
    """
    from mapstudio.cli.display import display_suggestions, display_validation_report
    from mapstudio.mapping import CorrespondenceResolver, build_validation_report
    from mapstudio.models.fields import looks_like_xml
    from mapstudio.models.mapping import MappingSelection

    if ai and not _check_api_key():
        raise typer.Exit(code=1)

    console.print("\n[bold blue][1/2][/bold blue] Parsing source and target...")
    source_fields, target_fields, resolved = _parse_pair(source, target, target_type)

    generator = None
    if ai:
        from mapstudio.llm.client import DEFAULT_MODEL, StudioLLMClient

        generator = StudioLLMClient(model=model or DEFAULT_MODEL)

    embedder = None
    if embeddings:
        from mapstudio.llm.embeddings import ChromaEmbeddingClient

        try:
            embedder = ChromaEmbeddingClient()
        except Exception as e:
            console.print(f"[yellow]Warning: embedding model unavailable: {e}[/yellow]")

    console.print(
        f"[bold blue][2/2][/bold blue] Resolving {len(target_fields)} target fields..."
    )
    resolver = CorrespondenceResolver(generator=generator, embedder=embedder)
    suggestions = resolver.resolve(source_fields, target_fields)

    console.print()
    display_suggestions(suggestions, console)
    console.print()
    display_validation_report(
        build_validation_report(suggestions, source_fields, target_fields), console
    )

    if output is not None:
        if select_all:
            suggestions = [s.model_copy(update={"selected": True}) for s in suggestions]
        selection = MappingSelection(
            project_code=project,
            version_code=version_code,
            source_type="XML" if looks_like_xml(_read_text(source)) else "JSON",
            target_type=resolved,
            mappings=suggestions,
        )
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(selection.model_dump_json(indent=2))
        console.print(f"\n[green]Selection written to {output}[/green]")


@app.command()
def save(
    selection_file: Annotated[Path, typer.Argument(help="Selection JSON file")],
    db: DbOption = _DEFAULT_DB,
) -> None:
    """Persist the selected rows of a mapping version.

    Saving always clears any earlier confirmation of the version.
    """
    from mapstudio.review import LifecycleError

    selection = _load_selection(selection_file)
    lifecycle = _open_lifecycle(db)
    try:
        result = lifecycle.save(selection)
    except LifecycleError as e:
        console.print(f"[bold red]Error saving mapping:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    console.print(
        f"[green]Saved {result.saved_count} of {result.selected_count} selected rows "
        f"for {result.project_code}/{result.version_code}[/green]"
    )


@app.command()
def confirm(
    selection_file: Annotated[Path, typer.Argument(help="Selection JSON file")],
    db: DbOption = _DEFAULT_DB,
) -> None:
    """Record a manual confirmation of the submitted selection."""
    from mapstudio.review import LifecycleError

    selection = _load_selection(selection_file)
    lifecycle = _open_lifecycle(db)
    try:
        result = lifecycle.confirm(selection)
    except LifecycleError as e:
        console.print(f"[bold red]Error confirming mapping:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    console.print(
        f"[green]Confirmed {result.selected_count} mappings "
        f"for {result.project_code}/{result.version_code}[/green]"
    )


@app.command()
def export(
    project: Annotated[str, typer.Argument(help="Project code")],
    version_code: Annotated[str, typer.Argument(help="Mapping version")],
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Output .xlsx or .json file"),
    ],
    path_type: Annotated[
        str,
        typer.Option("--path-type", help="JSON_PATH or XML_PATH notation for source paths"),
    ] = "JSON_PATH",
    db: DbOption = _DEFAULT_DB,
) -> None:
    """Export the confirmed selection of a mapping version."""
    from mapstudio.mapping.exporters import export_to_excel, export_to_json
    from mapstudio.models.mapping import PathType
    from mapstudio.review import LifecycleError

    lifecycle = _open_lifecycle(db)
    try:
        bundle = lifecycle.export(project, version_code)
    except LifecycleError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    if output.suffix.lower() == ".json":
        export_to_json(bundle, output)
    else:
        export_to_excel(bundle, output, PathType.from_value(path_type))
    console.print(
        f"[green]Exported {len(bundle.selected_mappings)} mappings to {output}[/green]"
    )


@app.command()
def publish(
    project: Annotated[str, typer.Argument(help="Project code")],
    version_code: Annotated[str, typer.Argument(help="Mapping version")],
    state: Annotated[
        str,
        typer.Option("--state", help="Current conversation state name"),
    ] = "",
    db: DbOption = _DEFAULT_DB,
) -> None:
    """Publish a mapping version when the conversation awaits confirmation."""
    from mapstudio.review import LifecycleError

    lifecycle = _open_lifecycle(db)
    try:
        result = lifecycle.publish(project, version_code, state)
    except LifecycleError as e:
        console.print(f"[bold red]Error publishing mapping:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    if result.skipped:
        console.print(f"[yellow]Publish skipped: {result.reason}[/yellow]")
        return
    console.print(
        f"[green]Published {project}/{version_code} as artifact {result.artifact_id}[/green]"
    )


@app.command()
def status(
    project: Annotated[str, typer.Argument(help="Project code")],
    version_code: Annotated[str, typer.Argument(help="Mapping version")],
    db: DbOption = _DEFAULT_DB,
) -> None:
    """Show the lifecycle state of a mapping version."""
    from mapstudio.cli.display import display_lifecycle_status
    from mapstudio.review import MappingStore
    from mapstudio.review.lifecycle import MappingLifecycleManager

    store = MappingStore(db)
    lifecycle = MappingLifecycleManager(store)
    display_lifecycle_status(
        project,
        version_code,
        lifecycle.state(project, version_code),
        store.get_version(project, version_code),
        console,
    )
