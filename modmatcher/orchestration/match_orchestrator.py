"""MatchOrchestrator for matching every mod folder under a mods directory.

This module provides the MatchOrchestrator class, which coordinates
ModFolderScanner, StagedMatcher, MatchTUI and MatchLogger for a batch run.

Example:
    from modmatcher.catalog import load_catalog
    from modmatcher.orchestration import MatchOrchestrator
    from pathlib import Path

    orchestrator = MatchOrchestrator(
        mods_path=Path("/games/Mods"),
        catalog=load_catalog(Path("catalog.json")),
    )
    summary = orchestrator.run()
"""

import sys
import time
from pathlib import Path
from typing import List, Optional

from modmatcher.catalog import Catalog
from modmatcher.matching import RerankContext, StagedMatcher, resolve_variant
from modmatcher.models import (
    FolderMatchRecord,
    MatchMode,
    MatchRunSummary,
    MatchStatus,
    ModFolder,
)
from modmatcher.orchestration.match_logger import MatchLogger
from modmatcher.scanning import IniTokenizationConfig, ModFolderScanner, SignalCache
from modmatcher.ui import MatchTUI


class MatchOrchestrator:
    """Runs the staged matcher over every mod folder of a mods directory.

    Each run uses a fresh SignalCache, so the Quick and Full passes of the
    phased match share collected signals but nothing survives between runs.

    Attributes:
        mods_path: Resolved mods directory.
        catalog: The catalog to match against.
        mode: Single match mode, or None for the phased Quick-then-Full match.
        log_file_path: Optional report path; a timestamped name otherwise.
        write_log: Whether to write a report file at all.
        verbose: Whether to display extra details.
    """

    def __init__(
        self,
        mods_path: Path,
        catalog: Catalog,
        mode: Optional[MatchMode] = None,
        object_type_hint: Optional[str] = None,
        rerank_context: Optional[RerankContext] = None,
        ini_config: Optional[IniTokenizationConfig] = None,
        log_file_path: Optional[Path] = None,
        write_log: bool = True,
        verbose: bool = False,
        tui: Optional[MatchTUI] = None,
    ) -> None:
        """Initialize the MatchOrchestrator.

        Args:
            mods_path: Directory whose immediate children are mod folders.
            catalog: The catalog to match against.
            mode: MatchMode.QUICK or MatchMode.FULL to run a single pass;
                None runs the phased match.
            object_type_hint: Expected object type of every folder.
            rerank_context: Optional re-rank configuration.
            ini_config: INI tokenizer additions.
            log_file_path: Optional report path.
            write_log: Whether to write a report file.
            verbose: Whether to display extra details.
            tui: Display to use; a default MatchTUI otherwise.

        Raises:
            ValueError: If mods_path does not exist or is not a directory.
        """
        resolved_path = mods_path.resolve()
        if not resolved_path.exists():
            raise ValueError(f"Mods path does not exist: {mods_path}")
        if not resolved_path.is_dir():
            raise ValueError(f"Mods path is not a directory: {mods_path}")

        self.mods_path = resolved_path
        self.catalog = catalog
        self.mode = mode
        self.log_file_path = log_file_path
        self.write_log = write_log
        self.verbose = verbose

        self._scanner = ModFolderScanner()
        self._matcher = StagedMatcher(
            catalog,
            ini_config=ini_config,
            rerank_context=rerank_context,
            object_type_hint=object_type_hint,
        )
        self._tui = tui or MatchTUI()
        self._errors: List[str] = []

    @property
    def mode_label(self) -> str:
        return self.mode.value if self.mode is not None else "phased"

    def run(self) -> MatchRunSummary:
        """Match every mod folder, display the results and write the report.

        Returns:
            MatchRunSummary with per-folder records and status counts.
        """
        start_time = time.time()
        self._errors.clear()
        self._scanner.clear_errors()

        folders = self._scanner.scan_mod_folders(self.mods_path)
        scan_errors = self._scanner.get_errors()
        self._errors.extend(scan_errors)

        self._tui.display_scan_header(self.mods_path, len(folders), self.mode_label)

        records = self._match_folders(folders)

        # Walk errors of individual folders, after the mods-path errors
        self._errors.extend(self._scanner.get_errors()[len(scan_errors):])

        summary = self._aggregate_summary(records, time.time() - start_time)

        self._tui.display_match_results(records)
        self._tui.display_run_summary(summary)

        if self.write_log:
            self._write_report(summary, len(folders), scan_errors)

        return summary

    def _match_folders(self, folders: List[ModFolder]) -> List[FolderMatchRecord]:
        cache = SignalCache()
        records: List[FolderMatchRecord] = []

        progress, callback = self._tui.create_progress_callback(len(folders))
        with progress:
            for idx, folder in enumerate(folders, start=1):
                try:
                    records.append(self._match_one(folder, cache))
                except OSError as e:
                    error_msg = f"Error matching {folder.raw_name}: {e}"
                    self._errors.append(error_msg)
                    if self.verbose:
                        self._tui.console.print(f"[yellow]Warning: {error_msg}[/yellow]")
                callback(idx)

        if self.verbose:
            stats = cache.get_cache_stats()
            self._tui.console.print(
                f"[dim]Signal cache: {stats['size']} entries, "
                f"{stats['hits']} hits, {stats['misses']} misses[/dim]"
            )
        return records

    def _match_one(self, folder: ModFolder, cache: SignalCache) -> FolderMatchRecord:
        if self.mode is None:
            result, mode_used = self._matcher.match_folder_phased(
                folder.path, cache=cache, scanner=self._scanner
            )
        else:
            result = self._matcher.match_path(
                folder.path, self.mode, cache=cache, scanner=self._scanner
            )
            mode_used = self.mode

        variant_name = None
        if result.status is MatchStatus.AUTO_MATCHED and result.best is not None:
            variant_name = resolve_variant(self.catalog, result.best.entry_id, result.signals)

        return FolderMatchRecord(
            folder=folder, result=result, mode_used=mode_used, variant_name=variant_name
        )

    def _write_report(
        self, summary: MatchRunSummary, total_folders: int, scan_errors: List[str]
    ) -> None:
        try:
            with MatchLogger(
                log_file_path=self.log_file_path, mode_label=self.mode_label
            ) as logger:
                logger.log_header()
                logger.log_scan_phase(
                    mods_path=self.mods_path,
                    catalog_size=len(self.catalog),
                    total_folders=total_folders,
                    catalog_version=self.catalog.version,
                    scan_errors=scan_errors,
                )
                for record in summary.records:
                    logger.log_folder_result(record)
                logger.log_summary(summary)

                if self.verbose:
                    self._tui.console.print(f"[dim]Log file: {logger.get_log_path()}[/dim]")
        except OSError as e:
            print(f"Warning: Could not create log file: {e}", file=sys.stderr)

    def _aggregate_summary(
        self, records: List[FolderMatchRecord], duration: float
    ) -> MatchRunSummary:
        statuses = [record.result.status for record in records]
        return MatchRunSummary(
            total_folders=len(records),
            auto_matched=statuses.count(MatchStatus.AUTO_MATCHED),
            needs_review=statuses.count(MatchStatus.NEEDS_REVIEW),
            no_match=statuses.count(MatchStatus.NO_MATCH),
            records=records,
            errors=self._errors.copy(),
            duration_seconds=duration,
        )
