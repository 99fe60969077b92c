"""Command-line interface for medvocab.

Uses Typer for a modern, type-hinted CLI experience.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console

# Load environment variables (e.g. MEDVOCAB_HOME) from .env files
# Priority: local .env > ~/.medvocab/.env
_user_env = Path.home() / ".medvocab" / ".env"
if _user_env.exists():
    load_dotenv(_user_env)
load_dotenv()
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from medvocab import __version__
from medvocab.config import EngineConfig, load_engine_config
from medvocab.errors import MedvocabError, format_error_for_display
from medvocab.logging import LogLevel, set_verbosity
from medvocab.vocabulary.compiler import compile_directory
from medvocab.vocabulary.correction import CorrectionEngine
from medvocab.vocabulary.index import FORMAT_VERSION, Matcher, read_index
from medvocab.vocabulary.overlay import Overlay, ensure_overlay_file
from medvocab.vocabulary.phonetic import available_schemes, get_encoder
from medvocab.vocabulary.terms import Category, bundled_sources_dir

app = typer.Typer(
    name="medvocab",
    help="Correct mis-transcribed medical vocabulary in speech-recognition output.",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

_state: dict[str, Path | None] = {"config": None}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"medvocab version {__version__}")
        raise typer.Exit()


def _print_error(error: Exception) -> None:
    console.print(f"[red]Error:[/red] {escape(format_error_for_display(error))}")


def _load_config(
    index: Path | None = None,
    overlay: Path | None = None,
) -> EngineConfig:
    try:
        config = load_engine_config(_state["config"])
    except MedvocabError as e:
        _print_error(e)
        raise typer.Exit(1)

    updates = {}
    if index is not None:
        updates["index_path"] = index
    if overlay is not None:
        updates["overlay_path"] = overlay
    return config.model_copy(update=updates) if updates else config


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show informational log messages.")
    ] = False,
    quiet: Annotated[
        bool, typer.Option("--quiet", "-q", help="Only show errors.")
    ] = False,
    config: Annotated[
        Optional[Path], typer.Option("--config", "-c", help="Engine config file (JSON).")
    ] = None,
) -> None:
    """medvocab - hybrid vocabulary correction.

    [bold]compile[/bold]: build a binary index from categorized term lists.

    [bold]correct[/bold]: rewrite text using the index and the user overlay.
    """
    if quiet:
        set_verbosity(LogLevel.QUIET)
    elif verbose:
        set_verbosity(LogLevel.VERBOSE)
    _state["config"] = config


@app.command("compile")
def compile_cmd(
    output: Annotated[Path, typer.Argument(help="Where to write the compiled index")],
    sources: Annotated[
        Optional[Path],
        typer.Option(
            "--sources",
            "-s",
            help="Directory of <category>.txt source files (defaults to the bundled set)",
        ),
    ] = None,
    scheme: Annotated[
        str, typer.Option("--scheme", help="Phonetic scheme for stored digests")
    ] = "metaphone",
) -> None:
    """Compile vocabulary source files into a binary index."""
    if scheme not in available_schemes():
        console.print(f"[red]Error:[/red] Unknown phonetic scheme '{escape(scheme)}'.")
        raise typer.Exit(1)

    source_dir = sources or bundled_sources_dir()
    try:
        report = compile_directory(source_dir, output, encoder=get_encoder(scheme))
    except MedvocabError as e:
        _print_error(e)
        raise typer.Exit(1)

    table = Table(title="Compiled vocabulary")
    table.add_column("Category", style="cyan")
    table.add_column("Terms", justify="right")
    for category in Category:
        table.add_row(category.value, str(report.per_category.get(category.value, 0)))
    console.print(table)

    console.print(
        f"[green]Wrote[/green] {escape(str(output))}: {report.term_count} terms, "
        f"{report.correction_count} corrections"
    )
    for name in report.sources_missing:
        console.print(f"[yellow]Warning:[/yellow] source file missing: {name}")
    if report.skipped_lines:
        console.print(f"[yellow]Warning:[/yellow] {report.skipped_lines} malformed line(s) skipped")
    if report.dropped_mappings:
        console.print(
            f"[yellow]Warning:[/yellow] {report.dropped_mappings} mapping(s) dropped "
            "(variant is also a canonical term)"
        )
    if report.is_empty:
        console.print("[red bold]Vocabulary is empty: corrections will be disabled.[/red bold]")


@app.command()
def correct(
    text: Annotated[
        Optional[str], typer.Argument(help="Text to correct (reads stdin when omitted)")
    ] = None,
    index: Annotated[
        Optional[Path], typer.Option("--index", "-i", help="Compiled index file")
    ] = None,
    overlay: Annotated[
        Optional[Path], typer.Option("--overlay", "-o", help="User overlay file")
    ] = None,
    show_log: Annotated[
        bool, typer.Option("--log", help="List every substitution that was made")
    ] = False,
    save_log: Annotated[
        Optional[Path], typer.Option("--save-log", help="Write the substitutions to a JSON file")
    ] = None,
) -> None:
    """Correct vocabulary in TEXT and print the result."""
    if text is None:
        text = sys.stdin.read()

    engine = CorrectionEngine.from_config(_load_config(index, overlay))
    corrected, log = engine.process_with_log(text)

    console.print(corrected, markup=False, highlight=False, soft_wrap=True)

    if show_log and len(log):
        table = Table(title=f"{len(log)} correction(s)")
        table.add_column("Original")
        table.add_column("Corrected", style="green")
        table.add_column("Source", style="cyan")
        table.add_column("Score", justify="right")
        for c in log.corrections:
            table.add_row(
                escape(c.original), escape(c.corrected), c.match_type, f"{c.confidence:.2f}"
            )
        console.print(table)

    if save_log is not None:
        try:
            log.save(save_log)
        except MedvocabError as e:
            _print_error(e)
            raise typer.Exit(1)
        console.print(f"[green]Correction log saved:[/green] {escape(str(save_log))}")


@app.command()
def lookup(
    word: Annotated[str, typer.Argument(help="Word to look up")],
    index: Annotated[
        Optional[Path], typer.Option("--index", "-i", help="Compiled index file")
    ] = None,
    overlay: Annotated[
        Optional[Path], typer.Option("--overlay", "-o", help="User overlay file")
    ] = None,
) -> None:
    """Explain how WORD would be corrected."""
    config = _load_config(index, overlay)
    engine = CorrectionEngine.from_config(config)

    overlay_hit = engine.overlay.snapshot().find_correction(word)
    if overlay_hit is not None:
        console.print(
            f"[cyan]overlay[/cyan] {escape(word)} -> [green]{escape(overlay_hit)}[/green]"
        )
        return

    match = engine.matcher.lookup(word)
    if match is not None and match.source == "exact":
        category = engine.matcher.category_of(match.term)
        tag = f" ({category.value})" if category else ""
        console.print(
            f"[cyan]exact[/cyan] {escape(word)} -> [green]{escape(match.term)}[/green]{tag}"
        )
        return

    candidates = engine.matcher.rank_candidates(word)
    if not candidates:
        console.print(f"No candidates within edit distance {config.matching.max_distance}.")
        return

    table = Table(title=f"Candidates for '{escape(word)}'")
    table.add_column("Term", style="cyan")
    table.add_column("Distance", justify="right")
    table.add_column("Edit", justify="right")
    table.add_column("Phonetic", justify="right")
    table.add_column("Combined", justify="right")
    for c in candidates:
        table.add_row(
            escape(c.term),
            str(c.distance),
            f"{c.edit_score:.3f}",
            f"{c.phonetic_score:.3f}",
            f"{c.combined:.3f}",
        )
    console.print(table)

    if match is not None:
        console.print(f"Accepted: [green]{escape(match.term)}[/green]")
    else:
        console.print(
            f"No candidate above the acceptance threshold ({config.matching.accept_threshold})."
        )


@app.command()
def info(
    index: Annotated[Path, typer.Argument(help="Compiled index file")],
) -> None:
    """Show details of a compiled index."""
    try:
        artifact = read_index(index)
    except MedvocabError as e:
        _print_error(e)
        raise typer.Exit(1)

    matcher = Matcher(artifact)
    counts = "\n".join(
        f"  {category.value}: {len(matcher.terms_in_category(category))}"
        for category in Category
    )
    console.print(Panel(
        f"[cyan]Format version:[/cyan] {FORMAT_VERSION}\n"
        f"[cyan]Phonetic scheme:[/cyan] {artifact.phonetic_scheme}\n"
        f"[cyan]Terms:[/cyan] {len(matcher)}\n"
        f"[cyan]Corrections:[/cyan] {matcher.correction_count}\n"
        f"[cyan]Sources:[/cyan] {', '.join(artifact.sources) or 'none'}\n\n"
        f"[cyan]By category:[/cyan]\n{counts}",
        title=escape(str(index)),
    ))


@app.command("init-overlay")
def init_overlay(
    path: Annotated[
        Optional[Path], typer.Argument(help="Overlay file (defaults to the configured path)")
    ] = None,
) -> None:
    """Create the user overlay file with examples if it does not exist."""
    target = path or _load_config().resolved_overlay_path()
    existed = target.exists()

    try:
        ensure_overlay_file(target)
    except MedvocabError as e:
        _print_error(e)
        raise typer.Exit(1)

    if existed:
        console.print(f"Overlay already exists: {escape(str(target))}")
    else:
        console.print(f"[green]Created[/green] {escape(str(target))}")
    console.print(f"Entries: {len(Overlay.load(target))}")


if __name__ == "__main__":
    app()
