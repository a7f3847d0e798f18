"""MatchLogger for writing batch match reports in a sectioned text format.

This module provides the MatchLogger class, which writes a plain-text report
with a header, a scan phase, one entry per folder decision, and a summary.
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional, TextIO

from modmatcher.models import (
    FolderMatchRecord,
    MatchRunSummary,
    MatchStatus,
)
from modmatcher.models.result_summary import (
    confidence_percent,
    describe_reason,
    score_to_percentage,
    summarize,
)

_STATUS_LABELS = {
    MatchStatus.AUTO_MATCHED: "AUTO-MATCHED",
    MatchStatus.NEEDS_REVIEW: "NEEDS REVIEW",
    MatchStatus.NO_MATCH: "NO MATCH",
}


class MatchLogger:
    """Report writer for batch match runs.

    Usage:
        with MatchLogger(mode_label="phased") as logger:
            logger.log_header()
            logger.log_scan_phase(mods_path, catalog_size, total_folders)
            for record in records:
                logger.log_folder_result(record)
            logger.log_summary(summary)

    Attributes:
        SEPARATOR: The 65-character separator line used between sections.
    """

    SEPARATOR = "=" * 65

    def __init__(
        self,
        log_file_path: Optional[Path] = None,
        mode_label: str = "phased",
    ) -> None:
        """Initialize the MatchLogger.

        Args:
            log_file_path: Optional path for the report. If not provided,
                a timestamped filename in the current directory is used.
            mode_label: Match mode shown in the header.

        Raises:
            OSError: If the log file path is not writable.
        """
        self._mode_label = mode_label
        self._start_timestamp = datetime.now()
        self._file_handle: Optional[TextIO] = None
        self._folder_counter = 0

        if log_file_path is None:
            timestamp_str = self._start_timestamp.strftime("%Y-%m-%d_%H-%M-%S")
            self._log_file_path = Path.cwd() / f"match_log_{timestamp_str}.log"
        else:
            self._log_file_path = Path(log_file_path)

        self._validate_path()

    def _validate_path(self) -> None:
        parent = self._log_file_path.parent
        if not parent.exists():
            raise OSError(f"Parent directory does not exist: {parent}")
        if not parent.is_dir():
            raise OSError(f"Parent path is not a directory: {parent}")
        try:
            test_file = parent / f".modmatcher_test_{id(self)}"
            test_file.touch()
            test_file.unlink()
        except PermissionError:
            raise OSError(f"Permission denied: cannot write to {parent}")

    def __enter__(self) -> "MatchLogger":
        try:
            self._file_handle = open(self._log_file_path, "w", encoding="utf-8")
        except OSError as e:
            raise OSError(f"Cannot open log file for writing: {e}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._file_handle is not None:
            try:
                self._file_handle.close()
            except OSError as e:
                print(f"Warning: Error closing log file: {e}", file=sys.stderr)
            finally:
                self._file_handle = None

    def get_log_path(self) -> Path:
        """Get the path to the log file."""
        return self._log_file_path

    def log_header(self) -> None:
        """Write the title, timestamp and match mode."""
        self._write_separator()
        self._write_line("Mod Folder Matcher - Match Log")
        self._write_separator()
        self._write_line(f"Timestamp: {self._format_timestamp(self._start_timestamp)}")
        self._write_line(f"Mode: {self._mode_label.upper()}")
        self._write_line("")

    def log_scan_phase(
        self,
        mods_path: Path,
        catalog_size: int,
        total_folders: int,
        catalog_version: Optional[str] = None,
        scan_errors: Optional[List[str]] = None,
    ) -> None:
        """Write the scan phase section.

        Args:
            mods_path: Scanned mods directory.
            catalog_size: Number of catalog entries.
            total_folders: Number of mod folders found.
            catalog_version: Catalog version string, if known.
            scan_errors: Walker errors collected while listing folders.
        """
        self._write_separator()
        self._write_line("SCAN PHASE")
        self._write_separator()
        self._write_line(f"Mods Path: {mods_path}")
        self._write_line(f"Catalog entries: {catalog_size}")
        if catalog_version:
            self._write_line(f"Catalog version: {catalog_version}")
        self._write_line(f"Mod folders found: {total_folders}")
        if scan_errors:
            self._write_line("Scan errors:")
            for error in scan_errors:
                self._write_line(f"- {error}", indent=2)
        self._write_line("")

    def log_folder_result(self, record: FolderMatchRecord) -> None:
        """Write one folder decision, with its candidates when under review.

        Args:
            record: The folder's match record.
        """
        if self._folder_counter == 0:
            self._write_separator()
            self._write_line("MATCH PHASE")
            self._write_separator()
            self._write_line("")

        self._folder_counter += 1
        result = record.result
        disabled = " [disabled]" if record.folder.is_disabled else ""

        self._write_line(f"Folder {self._folder_counter}: {record.folder.display_name}{disabled}")
        self._write_line(
            f"Status: {_STATUS_LABELS[result.status]} ({record.mode_used.value})", indent=2
        )
        self._write_line(f"Summary: {summarize(result)}", indent=2)

        if result.status is MatchStatus.AUTO_MATCHED and result.best is not None:
            self._write_line(
                f"Match: {result.best.name} ({confidence_percent(result)}%)", indent=2
            )
            if record.variant_name:
                self._write_line(f"Variant: {record.variant_name}", indent=2)
            for reason in result.best.reasons:
                self._write_line(f"- {describe_reason(reason)}", indent=4)
        elif result.status is MatchStatus.NEEDS_REVIEW:
            self._write_line("Candidates:", indent=2)
            for candidate in result.candidates_topk:
                self._write_line(
                    f"- {candidate.name} [{candidate.object_type}] "
                    f"({score_to_percentage(candidate)}%)",
                    indent=4,
                )

        self._write_line(
            f"Scanned: {result.evidence.scanned_ini_files} ini files, "
            f"{result.evidence.scanned_name_items} names",
            indent=2,
        )
        self._write_line("")

    def log_summary(self, summary: MatchRunSummary) -> None:
        """Write the summary section.

        Args:
            summary: The run summary with aggregated counts.
        """
        self._write_separator()
        self._write_line("SUMMARY")
        self._write_separator()
        self._write_line(f"Total folders matched: {summary.total_folders}")
        self._write_line(f"Auto-matched: {summary.auto_matched}")
        self._write_line(f"Needs review: {summary.needs_review}")
        self._write_line(f"No match: {summary.no_match}")

        if summary.errors:
            self._write_line(f"Total errors: {len(summary.errors)}")
            self._write_line("Errors:")
            for error in summary.errors:
                self._write_line(f"  - {error}")

        self._write_line(f"Duration: {self._format_duration(summary.duration_seconds)}")
        self._write_line("")
        self._write_line(f"Log file: {self._log_file_path}")
        self._write_separator()

    def _format_duration(self, seconds: float) -> str:
        """Format duration as "45s", "5m 23s" or "1h 5m 30s"."""
        total_seconds = int(seconds)

        if total_seconds < 60:
            return f"{total_seconds}s"

        hours = total_seconds // 3600
        minutes = (total_seconds % 3600) // 60
        secs = total_seconds % 60

        if hours > 0:
            return f"{hours}h {minutes}m {secs}s"
        return f"{minutes}m {secs}s"

    def _format_timestamp(self, dt: datetime) -> str:
        return dt.strftime("%Y-%m-%d %H:%M:%S")

    def _write_separator(self) -> None:
        self._write_line(self.SEPARATOR)

    def _write_line(self, text: str, indent: int = 0) -> None:
        """Write a line with optional indentation; failures go to stderr."""
        if self._file_handle is None:
            print(
                f"Warning: Attempted to write to closed log file: {text}",
                file=sys.stderr,
            )
            return

        try:
            self._file_handle.write(" " * indent + text + "\n")
        except OSError as e:
            print(f"Warning: Error writing to log file: {e}", file=sys.stderr)
