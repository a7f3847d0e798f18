"""Terminal output for the mod folder matcher.

This module provides the MatchTUI class, a Rich-based display for batch
match results, folder signals and catalog overviews.

Example:
    from modmatcher.ui import MatchTUI

    tui = MatchTUI()
    tui.display_scan_header(mods_path, total_folders=42, mode_label="phased")
    tui.display_match_results(summary.records)
    tui.display_run_summary(summary)
"""

from collections import Counter
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table

from modmatcher.catalog import Catalog
from modmatcher.models import FolderMatchRecord, FolderSignals, MatchRunSummary, MatchStatus
from modmatcher.models.result_summary import (
    confidence_percent,
    describe_reason,
    score_to_percentage,
    summarize,
)

_STATUS_MARKUP = {
    MatchStatus.AUTO_MATCHED: "[green]Auto[/green]",
    MatchStatus.NEEDS_REVIEW: "[yellow]Review[/yellow]",
    MatchStatus.NO_MATCH: "[red]No match[/red]",
}


class MatchTUI:
    """Rich-based terminal display for match runs.

    Args:
        console: Optional Rich Console instance for output. Pass a Console
            writing to a StringIO to capture output in tests.

    Attributes:
        console: The Rich Console instance used for all output.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def display_scan_header(self, mods_path: Path, total_folders: int, mode_label: str) -> None:
        """Show the mods path, folder count and mode in a header panel."""
        header_text = (
            f"Mods path: {mods_path}\n"
            f"Mod folders found: {total_folders:,}\n"
            f"Mode: {mode_label}"
        )
        self.console.print(Panel(header_text, title="Match Run", border_style="blue"))

    def create_progress_callback(
        self, total_folders: int
    ) -> Tuple[Progress, Callable[[int], None]]:
        """Create a progress bar and a callback that sets the completed count.

        The caller must use the returned Progress as a context manager.

        Example:
            progress, callback = tui.create_progress_callback(len(folders))
            with progress:
                for i, folder in enumerate(folders):
                    match(folder)
                    callback(i + 1)
        """
        progress = Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=self.console,
        )
        task = progress.add_task("Matching folders", total=total_folders)

        def callback(completed: int) -> None:
            progress.update(task, completed=completed)

        return progress, callback

    def display_match_results(self, records: List[FolderMatchRecord]) -> None:
        """Show one row per folder, then the candidates of each review result.

        Args:
            records: Folder match records in scan order.
        """
        if not records:
            self.console.print("[yellow]No mod folders found.[/yellow]")
            return

        table = Table(title="Match Results")
        table.add_column("#", justify="right", style="cyan", no_wrap=True)
        table.add_column("Folder", style="white")
        table.add_column("Status", justify="center")
        table.add_column("Match", style="magenta")
        table.add_column("Confidence", justify="center")
        table.add_column("Mode", style="dim")
        table.add_column("Summary")

        for idx, record in enumerate(records, start=1):
            result = record.result
            folder_name = self._truncate_name(record.folder.display_name, max_length=40)
            if record.folder.is_disabled:
                folder_name += " [dim](disabled)[/dim]"

            match_name = result.best.name if result.best is not None else "-"
            if record.variant_name:
                match_name += f" / {record.variant_name}"

            table.add_row(
                str(idx),
                folder_name,
                _STATUS_MARKUP[result.status],
                match_name,
                self._format_confidence(confidence_percent(result)),
                record.mode_used.value,
                summarize(result),
            )

        self.console.print(table)

        for record in records:
            if record.result.status is MatchStatus.NEEDS_REVIEW:
                self._display_review_candidates(record)

    def _display_review_candidates(self, record: FolderMatchRecord) -> None:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Candidate", style="magenta")
        table.add_column("Type", style="cyan")
        table.add_column("Confidence", justify="center")
        table.add_column("Evidence")

        for candidate in record.result.candidates_topk:
            evidence = sorted({describe_reason(reason) for reason in candidate.reasons})
            table.add_row(
                candidate.name,
                candidate.object_type or "-",
                self._format_confidence(score_to_percentage(candidate)),
                ", ".join(evidence) or "-",
            )

        title = f"Review: {self._truncate_name(record.folder.display_name, max_length=50)}"
        self.console.print(Panel(table, title=title, border_style="yellow"))

    def display_run_summary(self, summary: MatchRunSummary) -> None:
        """Show counts, duration and any errors of a run."""
        self.console.print(Panel("Match Summary", border_style="green"))

        table = Table(show_header=True, header_style="bold")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")

        table.add_row("Folders matched", f"{summary.total_folders:,}")
        table.add_row("Auto-matched", f"{summary.auto_matched:,}")
        table.add_row("Needs review", f"{summary.needs_review:,}")
        table.add_row("No match", f"{summary.no_match:,}")
        table.add_row("Duration", self._format_duration(summary.duration_seconds))
        self.console.print(table)

        if summary.errors:
            self._display_errors(summary.errors)

    def display_signals(self, folder: Path, signals: FolderSignals, mode_label: str) -> None:
        """Show the collected signals of one folder."""
        table = Table(show_header=True, header_style="bold")
        table.add_column("Signal", style="cyan")
        table.add_column("Values")

        table.add_row("Folder tokens", self._join(signals.folder_tokens))
        table.add_row("Normalized name", signals.folder_name_normalized or "-")
        table.add_row("Deep name tokens", self._join(signals.deep_name_tokens))
        table.add_row("INI section tokens", self._join(signals.ini_section_tokens))
        table.add_row("INI content tokens", self._join(signals.ini_content_tokens))
        table.add_row("INI-derived strings", self._join(signals.ini_derived_strings))
        table.add_row("INI hashes", self._join(signals.ini_hashes))
        table.add_row(
            "Scanned",
            f"{signals.scanned_ini_files} ini files, {signals.scanned_ini_bytes:,} bytes, "
            f"{signals.scanned_name_items} names",
        )
        table.add_row("Fingerprint", signals.fingerprint)

        title = f"Signals ({mode_label}): {self._truncate_name(folder.name, max_length=50)}"
        self.console.print(Panel(table, title=title, border_style="blue"))

    def display_catalog_overview(self, catalog: Catalog) -> None:
        """Show entry counts per object type and index sizes."""
        indexes = catalog.indexes
        header_text = (
            f"Entries: {len(catalog):,}\n"
            f"Version: {catalog.version or 'unknown'}\n"
            f"Indexed tokens: {len(indexes.token_index):,}\n"
            f"Indexed hashes: {len(indexes.hash_index):,}"
        )
        self.console.print(Panel(header_text, title="Catalog", border_style="blue"))

        type_counts = Counter(entry.object_type or "Unknown" for entry in catalog.entries)
        if not type_counts:
            return

        table = Table(title="Object Types")
        table.add_column("Object Type", style="cyan")
        table.add_column("Entries", justify="right")
        for object_type, count in sorted(type_counts.items()):
            table.add_row(object_type, f"{count:,}")
        self.console.print(table)

    def _display_errors(self, errors: List[str]) -> None:
        error_panel = Panel(
            "\n".join(f"- {error}" for error in errors),
            title=f"[red]Errors ({len(errors)})[/red]",
            border_style="red",
        )
        self.console.print(error_panel)

    def _format_confidence(self, confidence_pct: int) -> str:
        """Format a percentage with color coding."""
        if confidence_pct >= 90:
            return f"[green]{confidence_pct}%[/green]"
        elif confidence_pct >= 70:
            return f"[yellow]{confidence_pct}%[/yellow]"
        else:
            return f"[red]{confidence_pct}%[/red]"

    def _format_duration(self, seconds: float) -> str:
        total_seconds = int(seconds)
        if total_seconds < 60:
            return f"{seconds:.1f}s"
        minutes, secs = divmod(total_seconds, 60)
        return f"{minutes}m {secs}s"

    def _join(self, values) -> str:
        return ", ".join(values) if values else "-"

    def _truncate_name(self, name: str, max_length: int = 60) -> str:
        """Truncate long names with an ellipsis."""
        if len(name) > max_length:
            return name[: max_length - 3] + "..."
        return name
