"""CLI interface for the aska content pipeline."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from aska.config import AskaConfig, load_config, merge_cli_overrides
from aska.content.models import Prompt, SourceStatus
from aska.content.store import ContentStore
from aska.generator.batch import batch_generate, count_unprocessed_sources
from aska.generator.fanout import process_source_for_all_suitable_types
from aska.generator.flow import TrackStatus, generate_for_track
from aska.generator.tracks import TRACKS, get_track
from aska.prompts import PromptType
from aska.sourcing.ingest import ingest_source

app = typer.Typer(
    name="aska",
    help="Ingest hockey source text and generate draft content from it.",
)
prompts_app = typer.Typer(help="Manage the prompt library.")
app.add_typer(prompts_app, name="prompts")

console = Console()


class _State:
    config: AskaConfig = AskaConfig()


_state = _State()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from aska import __version__

        console.print(f"aska {__version__}")
        raise typer.Exit()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _store() -> ContentStore:
    return ContentStore(_state.config.store_path)


@app.callback()
def main(
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a TOML config file."),
    ] = None,
    store_dir: Annotated[
        Optional[Path],
        typer.Option("--store", help="Directory holding the content store."),
    ] = None,
    model: Annotated[
        Optional[str],
        typer.Option("--model", help="Model name or alias (sonnet, haiku, opus)."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Aska - source ingestion and content generation."""
    _setup_logging(verbose)
    config = load_config(config_path)
    _state.config = merge_cli_overrides(
        config,
        store_directory=str(store_dir) if store_dir else None,
        model=model,
    )


@app.command()
def ingest(
    file: Annotated[
        Path,
        typer.Argument(help="Text file to ingest.", exists=True, dir_okay=False),
    ],
    title: Annotated[
        Optional[str],
        typer.Option("--title", "-t", help="Use this title instead of the AI title."),
    ] = None,
) -> None:
    """Ingest one source text file."""
    raw = file.read_text(encoding="utf-8")
    result = ingest_source(raw, _store(), title_override=title, config=_state.config)
    if not result.ok:
        console.print(f"[red]Error:[/red] {escape(result.error or '')}")
        raise typer.Exit(1)

    meta = result.metadata
    console.print(f"[green]Ingested source {result.record_id}[/green]: {escape(meta.title)}")
    category = f" / {meta.category}" if meta.category else ""
    console.print(f"  Theme: {escape(meta.theme + category)}")
    console.print(f"  Tags: {escape(', '.join(meta.tags))}")
    console.print(f"  Words: {meta.word_count}")
    if meta.suitability_analysis:
        for key, entry in meta.suitability_analysis.items():
            mark = "[green]yes[/green]" if entry.suitable else "[dim]no[/dim]"
            console.print(f"  {escape(key)}: {mark} ({round(entry.confidence * 100)}%)")
    else:
        console.print("  [yellow]No suitability analysis[/yellow]")


@app.command()
def generate(
    track: Annotated[str, typer.Argument(help="Track key, e.g. facts or trivia-true-false.")],
    source_id: Annotated[int, typer.Argument(help="Source id.")],
    instructions: Annotated[
        Optional[str],
        typer.Option("--instructions", "-i", help="Extra instructions appended to the prompt."),
    ] = None,
) -> None:
    """Generate one track's content for one source."""
    if get_track(track) is None:
        console.print(f"[red]Error:[/red] Unknown track: {track}")
        raise typer.Exit(1)

    result = generate_for_track(
        track,
        source_id,
        _store(),
        config=_state.config,
        additional_instructions=instructions,
    )
    if result.status == TrackStatus.FAILED:
        console.print(f"[red]Failed:[/red] {escape(result.message)}")
        if result.retryable:
            console.print("[yellow]This error is temporary; try again later.[/yellow]")
        raise typer.Exit(1)
    if result.status == TrackStatus.SKIPPED:
        console.print(f"[yellow]Skipped:[/yellow] {escape(result.message)}")
        return
    console.print(f"[green]{escape(result.message)}[/green]")


@app.command()
def fanout(
    source_id: Annotated[int, typer.Argument(help="Source id.")],
    min_confidence: Annotated[
        Optional[float],
        typer.Option("--min-confidence", help="Suitability confidence threshold (0-1)."),
    ] = None,
) -> None:
    """Run every suitable track for one source."""
    result = process_source_for_all_suitable_types(
        source_id,
        _store(),
        min_confidence=min_confidence,
        config=_state.config,
    )
    for entry in result.processed:
        colour = "green" if entry.success else "red"
        console.print(f"[{colour}]{entry.content_type}[/{colour}]: {escape(entry.message)}")
    for entry in result.skipped:
        console.print(f"[dim]{entry.content_type}: skipped ({escape(entry.reason)})[/dim]")
    console.print(f"Processed {result.total_processed}, skipped {result.total_skipped}.")
    if not result.success:
        raise typer.Exit(1)


@app.command()
def batch(
    track: Annotated[str, typer.Argument(help="Track key.")],
    count: Annotated[
        int,
        typer.Option("--count", "-n", min=1, help="Maximum number of sources to process."),
    ] = 5,
) -> None:
    """Run one track over the next unprocessed sources."""
    definition = get_track(track)
    if definition is None:
        console.print(f"[red]Error:[/red] Unknown track: {track}")
        raise typer.Exit(1)

    store = _store()
    remaining = count_unprocessed_sources(definition, store)
    console.print(
        f"{definition.label}: {remaining.available} of {remaining.total} "
        "active source(s) unprocessed"
    )
    result = batch_generate(definition, count, store, config=_state.config)
    for entry in result.results:
        colour = "green" if entry.success else "red"
        console.print(f"  [{colour}]source {entry.source_id}[/{colour}]: {escape(entry.message)}")
    console.print(escape(result.message))
    if not result.success:
        raise typer.Exit(1)


@app.command()
def sources(
    status: Annotated[
        Optional[SourceStatus],
        typer.Option("--status", "-s", help="Only list sources with this status."),
    ] = None,
) -> None:
    """List ingested sources."""
    records = _store().list_sources(status)
    if not records:
        console.print("[yellow]No sources found.[/yellow]")
        raise typer.Exit(0)

    table = Table("ID", "Title", "Theme", "Status", "Used for")
    for record in records:
        table.add_row(
            str(record.id),
            escape(record.title),
            record.theme.value,
            record.content_status.value,
            escape(", ".join(record.used_for)),
        )
    console.print(table)


@app.command()
def tracks() -> None:
    """List the registered generation tracks."""
    table = Table("Key", "Label", "Prompt type", "Table")
    for definition in TRACKS.values():
        table.add_row(
            definition.key.value,
            definition.label,
            definition.prompt_type.value,
            definition.target_table,
        )
    console.print(table)


@prompts_app.command("set")
def prompts_set(
    prompt_type: Annotated[PromptType, typer.Argument(help="Prompt type.")],
    file: Annotated[
        Path,
        typer.Argument(help="File holding the prompt text.", exists=True, dir_okay=False),
    ],
    name: Annotated[
        Optional[str],
        typer.Option("--name", help="Prompt name. Defaults to the file stem."),
    ] = None,
) -> None:
    """Store FILE as the active prompt for TYPE, deactivating older ones."""
    content = file.read_text(encoding="utf-8").strip()
    if not content:
        console.print(f"[red]Error:[/red] {file} is empty")
        raise typer.Exit(1)

    store = _store()
    for existing in store.list_prompts():
        if existing.prompt_type == prompt_type.value and existing.is_active:
            store.upsert_prompt(existing.model_copy(update={"is_active": False}))
    stored = store.upsert_prompt(
        Prompt(
            prompt_name=name or file.stem,
            prompt_type=prompt_type.value,
            prompt_content=content,
        )
    )
    console.print(f"[green]Stored prompt {stored.id}[/green] for {prompt_type.value}")


@prompts_app.command("show")
def prompts_show(
    prompt_type: Annotated[PromptType, typer.Argument(help="Prompt type.")],
) -> None:
    """Print the active prompt for TYPE."""
    prompt = _store().get_active_prompt(prompt_type.value)
    if prompt is None:
        console.print(f"[yellow]No active prompt for {prompt_type.value}[/yellow]")
        raise typer.Exit(1)
    console.print(f"[bold]{prompt.prompt_name}[/bold] (id {prompt.id})")
    console.print(prompt.prompt_content, markup=False)
