"""
Mod Folder Matcher - CLI Interface.

A command-line interface for classifying mod folders against a catalog of
known game entities. Each folder is auto-matched, queued for review, or
reported as unmatched.

Usage Examples:
    # Match every folder under a mods directory (Quick, then Full if needed)
    modmatcher match /games/Mods --catalog catalog.json

    # Single Full pass with the offline mechanical re-rank
    modmatcher match /games/Mods --catalog catalog.json --mode full --mechanical-rerank

    # Show the signals collected from one folder
    modmatcher signals /games/Mods/RaidenShogun --mode full

    # Summarize a catalog file
    modmatcher inspect-catalog catalog.json
"""

import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from modmatcher.catalog import Catalog, CatalogLoadError, load_catalog
from modmatcher.matching import (
    MECHANICAL_ACCEPT_MARGIN,
    MECHANICAL_ACCEPT_THRESHOLD,
    HttpRerankProvider,
    MechanicalRerankProvider,
    RerankContext,
)
from modmatcher.models import MatchMode
from modmatcher.orchestration import MatchOrchestrator
from modmatcher.scanning import ModFolderScanner, SignalBudget, collect_signals
from modmatcher.ui import MatchTUI

__version__ = "1.0.0"

MODE_CHOICES = ("quick", "full", "phased")

app = typer.Typer(
    name="modmatcher",
    help="Mod Folder Matcher - Classify mod folders against a game entity catalog.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    """Display version information and exit."""
    if value:
        console.print(f"Mod Folder Matcher v{__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Route module loggers to stderr; DEBUG when verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )


def validate_directory(path: Path, label: str) -> None:
    """
    Validate that a directory exists and is readable.

    Raises:
        typer.Exit: If validation fails with descriptive error message.
    """
    if not path.exists():
        console.print(f"[red]Error:[/red] {label} does not exist: {path}")
        raise typer.Exit(1)

    if not path.is_dir():
        console.print(f"[red]Error:[/red] {label} is not a directory: {path}")
        raise typer.Exit(1)

    if not os.access(path, os.R_OK):
        console.print(f"[red]Error:[/red] Permission denied - cannot read: {path}")
        raise typer.Exit(1)


def validate_mode(value: str) -> str:
    """
    Validate the match mode option.

    Raises:
        typer.BadParameter: If value is not a known mode.
    """
    normalized = value.strip().lower()
    if normalized not in MODE_CHOICES:
        raise typer.BadParameter(f"Mode must be one of: {', '.join(MODE_CHOICES)}")
    return normalized


def validate_single_mode(value: str) -> str:
    normalized = validate_mode(value)
    if normalized == "phased":
        raise typer.BadParameter("Mode must be 'quick' or 'full'")
    return normalized


def open_catalog(path: Path, version: Optional[str] = None) -> Catalog:
    """Load a catalog, reporting failures and exiting with status 1."""
    try:
        return load_catalog(path, version=version)
    except CatalogLoadError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def build_rerank_context(
    mechanical: bool,
    rerank_url: Optional[str],
    rerank_key: Optional[str],
    rerank_model: Optional[str],
    catalog_version: Optional[str],
) -> Optional[RerankContext]:
    """Build the re-rank context selected by the CLI options, if any.

    Raises:
        typer.Exit: If the options conflict or a key is missing.
    """
    if mechanical and rerank_url:
        console.print(
            "[red]Error:[/red] --mechanical-rerank and --rerank-url cannot be combined"
        )
        raise typer.Exit(1)

    if mechanical:
        return RerankContext(
            provider=MechanicalRerankProvider(),
            catalog_version=catalog_version,
            accept_threshold=MECHANICAL_ACCEPT_THRESHOLD,
            accept_margin=MECHANICAL_ACCEPT_MARGIN,
            require_primary_evidence=True,
        )

    if rerank_url:
        if not rerank_key or not rerank_key.strip():
            console.print(
                "[red]Error:[/red] --rerank-url requires --rerank-key "
                "or the MODMATCHER_RERANK_KEY environment variable"
            )
            raise typer.Exit(1)
        provider_kwargs = {"base_url": rerank_url}
        if rerank_model:
            provider_kwargs["model"] = rerank_model
        return RerankContext(
            provider=HttpRerankProvider(rerank_key, **provider_kwargs),
            catalog_version=catalog_version,
        )

    return None


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Mod Folder Matcher - Classify mod folders against a game entity catalog."""
    pass


@app.command()
def match(
    mods_path: Path = typer.Argument(
        ...,
        help="Directory whose immediate subfolders are mod folders.",
        exists=False,  # We do our own validation
    ),
    catalog_file: Path = typer.Option(
        ...,
        "--catalog",
        "-c",
        help="Catalog JSON file.",
    ),
    mode: str = typer.Option(
        "phased",
        "--mode",
        "-m",
        help="Match mode: quick, full, or phased (quick then full).",
        callback=validate_mode,
    ),
    object_type: Optional[str] = typer.Option(
        None,
        "--object-type",
        "-t",
        help="Expected object type (e.g. Character); other types are penalized.",
    ),
    mechanical_rerank: bool = typer.Option(
        False,
        "--mechanical-rerank",
        help="Re-rank ambiguous Full results with the offline point scorer.",
    ),
    rerank_url: Optional[str] = typer.Option(
        None,
        "--rerank-url",
        help="Chat completions URL for the HTTP re-rank provider.",
    ),
    rerank_key: Optional[str] = typer.Option(
        None,
        "--rerank-key",
        envvar="MODMATCHER_RERANK_KEY",
        help="API key for the HTTP re-rank provider.",
    ),
    rerank_model: Optional[str] = typer.Option(
        None,
        "--rerank-model",
        help="Model name for the HTTP re-rank provider.",
    ),
    catalog_version: Optional[str] = typer.Option(
        None,
        "--catalog-version",
        help="Catalog version used in re-rank cache keys.",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        "-l",
        help="Path for the report log (default: timestamped file in the current directory).",
    ),
    no_log: bool = typer.Option(
        False,
        "--no-log",
        help="Do not write a report log.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Enable verbose output and debug logging.",
    ),
) -> None:
    """
    Match every mod folder under MODS_PATH against the catalog.

    Displays one result per folder, the candidates of each folder that
    needs review, and a summary. A report log is written unless --no-log
    is given.
    """
    configure_logging(verbose)
    validate_directory(mods_path, "Mods path")

    catalog = open_catalog(catalog_file, version=catalog_version)
    rerank_context = build_rerank_context(
        mechanical_rerank, rerank_url, rerank_key, rerank_model, catalog.version
    )

    try:
        orchestrator = MatchOrchestrator(
            mods_path=mods_path,
            catalog=catalog,
            mode=None if mode == "phased" else MatchMode(mode),
            object_type_hint=object_type,
            rerank_context=rerank_context,
            log_file_path=log_file,
            write_log=not no_log,
            verbose=verbose,
            tui=MatchTUI(console),
        )
        summary = orchestrator.run()

        if summary.errors:
            console.print(f"\n[yellow]Completed with {len(summary.errors)} error(s).[/yellow]")

    except KeyboardInterrupt:
        console.print("\n[yellow]Match interrupted by user.[/yellow]")
        raise typer.Exit(130)

    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    except OSError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    finally:
        if rerank_context is not None and isinstance(rerank_context.provider, HttpRerankProvider):
            rerank_context.provider.close()


@app.command()
def signals(
    folder: Path = typer.Argument(
        ...,
        help="A single mod folder.",
        exists=False,
    ),
    mode: str = typer.Option(
        "quick",
        "--mode",
        "-m",
        help="Signal budget: quick or full.",
        callback=validate_single_mode,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Enable debug logging.",
    ),
) -> None:
    """
    Show the signals collected from one mod folder.
    """
    configure_logging(verbose)
    validate_directory(folder, "Folder")

    match_mode = MatchMode(mode)
    scanner = ModFolderScanner()
    folder = folder.resolve()
    content = scanner.scan_folder_content(folder, SignalBudget.for_mode(match_mode).max_depth)
    folder_signals = collect_signals(folder, content, match_mode)

    MatchTUI(console).display_signals(folder, folder_signals, match_mode.value)
    for error in scanner.get_errors():
        console.print(f"[yellow]Warning:[/yellow] {error}")


@app.command("inspect-catalog")
def inspect_catalog(
    catalog_file: Path = typer.Argument(
        ...,
        help="Catalog JSON file.",
        exists=False,
    ),
) -> None:
    """
    Summarize a catalog: entry count, object types and index sizes.
    """
    catalog = open_catalog(catalog_file)
    MatchTUI(console).display_catalog_overview(catalog)


if __name__ == "__main__":
    app()
