"""Staged matcher: runs a pipeline profile over one folder's signals.

A match invocation seeds a candidate pool from the catalog indexes, then
applies the profile's stages in order. After every stage the acceptance
gate may end the match early with AutoMatched (or a forced NeedsReview).
When no stage accepts, direct name support is applied and the result is
finalized. Full mode can then consult a re-rank provider and, as a last
resort, rescue a NoMatch by the root folder name.

Example:
    >>> from modmatcher.matching import StagedMatcher
    >>> matcher = StagedMatcher(catalog)
    >>> result, mode_used = matcher.match_folder_phased(Path("/games/Mods/Raiden"))
    >>> result.status
    <MatchStatus.AUTO_MATCHED: 'auto_matched'>
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple

from modmatcher.catalog.catalog import Catalog
from modmatcher.models.data_models import (
    Confidence,
    FolderContent,
    FolderSignals,
    MatchMode,
    MatchStatus,
    ScoreState,
    StagedMatchResult,
)
from modmatcher.scanning.folder_scanner import ModFolderScanner
from modmatcher.scanning.ini_tokenizer import IniTokenizationConfig
from modmatcher.scanning.signal_cache import SignalCache
from modmatcher.scanning.signal_collector import SignalBudget, collect_signals

from .acceptance import FinalizeConfig, StageAcceptConfig, finalize_review, try_stage_accept
from .candidate_pool import (
    DEFAULT_MIN_POOL,
    DEFAULT_SEED_CAP,
    replenish_candidates,
    seed_candidates,
)
from .name_rescue import apply_root_folder_rescue
from .rerank import RerankContext, apply_rerank
from .stages import (
    ScoreStates,
    StageContext,
    apply_alias_recheck_stage,
    apply_alias_stage,
    apply_deep_stage,
    apply_direct_name_support_stage,
    apply_hash_stage,
    apply_ini_stage,
    apply_substring_pass_a,
    apply_substring_pass_b,
    apply_token_overlap_stage,
    apply_weighted_token_overlap_stage,
)

logger = logging.getLogger(__name__)

StageApplier = Callable[[StageContext, ScoreStates], None]


@dataclass(frozen=True)
class StageSpec:
    """One scoring stage plus its acceptance gate."""
    name: str
    applier: StageApplier
    threshold: float                  # Minimum leader score to accept
    margin: float                     # Minimum gap to the runner-up
    floor: Confidence                 # Confidence floor on acceptance


@dataclass(frozen=True)
class PipelineProfile:
    """Ordered stages and finalization settings for one match mode."""
    mode: MatchMode
    stages: Tuple[StageSpec, ...]
    review_min: float                 # Score that qualifies for review
    top_k: int = 5
    seed_cap: int = DEFAULT_SEED_CAP
    min_pool: int = DEFAULT_MIN_POOL
    root_rescue: bool = False         # Rescue NoMatch by root folder name

    def __post_init__(self) -> None:
        if self.top_k < 1:
            raise ValueError(f"top_k must be at least 1, got {self.top_k}")
        if self.seed_cap < 0 or self.min_pool < 0:
            raise ValueError(
                f"seed_cap and min_pool must be non-negative, got {self.seed_cap}, {self.min_pool}"
            )


QUICK_PROFILE = PipelineProfile(
    mode=MatchMode.QUICK,
    stages=(
        StageSpec("hash", apply_hash_stage, 10.0, 6.0, Confidence.HIGH),
        StageSpec("alias", apply_alias_stage, 12.0, 6.0, Confidence.HIGH),
        StageSpec("substring_a", apply_substring_pass_a, 12.0, 6.0, Confidence.HIGH),
        StageSpec("deep", apply_deep_stage, 14.0, 4.0, Confidence.MEDIUM),
        StageSpec("ini", apply_ini_stage, 14.0, 4.0, Confidence.MEDIUM),
        StageSpec("substring_b", apply_substring_pass_b, 14.0, 4.0, Confidence.HIGH),
        StageSpec("token_overlap", apply_token_overlap_stage, 12.0, 4.0, Confidence.MEDIUM),
    ),
    review_min=10.0,
)

FULL_PROFILE = PipelineProfile(
    mode=MatchMode.FULL,
    stages=(
        StageSpec("hash", apply_hash_stage, 10.0, 4.0, Confidence.HIGH),
        StageSpec("alias", apply_alias_stage, 12.0, 4.0, Confidence.HIGH),
        StageSpec("substring_a", apply_substring_pass_a, 16.0, 3.0, Confidence.HIGH),
        StageSpec("deep", apply_deep_stage, 16.0, 3.0, Confidence.MEDIUM),
        StageSpec("ini", apply_ini_stage, 16.0, 3.0, Confidence.MEDIUM),
        StageSpec("substring_b", apply_substring_pass_b, 16.0, 3.0, Confidence.HIGH),
        StageSpec("alias_recheck", apply_alias_recheck_stage, 12.0, 4.0, Confidence.HIGH),
        StageSpec(
            "weighted_token_overlap",
            apply_weighted_token_overlap_stage,
            14.0,
            3.0,
            Confidence.MEDIUM,
        ),
    ),
    review_min=12.0,
    root_rescue=True,
)

PROFILES = {MatchMode.QUICK: QUICK_PROFILE, MatchMode.FULL: FULL_PROFILE}


class StagedMatcher:
    """Matches mod folders against a catalog with staged scoring.

    The matcher itself holds no per-folder state; each call builds its own
    score states, so one instance can serve a whole batch.

    Attributes:
        catalog: The catalog to match against.
        ini_config: INI tokenizer additions used when collecting signals.
        rerank_context: Optional re-rank configuration (Full mode only).
        object_type_hint: Expected object type; mismatches are penalized.
        profiles: Pipeline profile per mode.

    Example:
        >>> matcher = StagedMatcher(catalog, object_type_hint="Character")
        >>> result = matcher.match_signals(signals, MatchMode.QUICK)
    """

    def __init__(
        self,
        catalog: Catalog,
        ini_config: Optional[IniTokenizationConfig] = None,
        rerank_context: Optional[RerankContext] = None,
        object_type_hint: Optional[str] = None,
        quick_profile: PipelineProfile = QUICK_PROFILE,
        full_profile: PipelineProfile = FULL_PROFILE,
    ) -> None:
        if quick_profile.mode != MatchMode.QUICK or full_profile.mode != MatchMode.FULL:
            raise ValueError("quick_profile and full_profile must match their modes")
        self.catalog = catalog
        self.ini_config = ini_config
        self.rerank_context = rerank_context
        self.object_type_hint = object_type_hint
        self.profiles = {MatchMode.QUICK: quick_profile, MatchMode.FULL: full_profile}

    def match_signals(
        self, signals: FolderSignals, mode: MatchMode, allow_rerank: bool = True
    ) -> StagedMatchResult:
        """Run the profile for `mode` over already collected signals.

        Args:
            signals: Folder signals.
            mode: Match mode selecting the profile.
            allow_rerank: Whether the re-rank provider may be consulted.
                Only Full mode ever consults it.

        Returns:
            The staged match result.
        """
        profile = self.profiles[mode]
        ctx = StageContext.build(self.catalog, signals, mode, self.object_type_hint)

        pool = seed_candidates(
            self.catalog.indexes, signals.ini_hashes, ctx.observed_tokens, profile.seed_cap
        )
        pool = replenish_candidates(
            self.catalog.indexes, pool, ctx.buckets, profile.min_pool, profile.seed_cap
        )

        if pool:
            result = self._run_stages(ctx, profile, {entry_id: ScoreState() for entry_id in pool})
        else:
            logger.debug(f"match: empty_pool | mode={mode.value}")
            result = StagedMatchResult.no_match(signals)

        if allow_rerank and mode == MatchMode.FULL:
            result = apply_rerank(result, signals, self.catalog, mode, self.rerank_context)

        if result.status == MatchStatus.NO_MATCH and profile.root_rescue:
            rescued = apply_root_folder_rescue(self.catalog, signals)
            if rescued.status != MatchStatus.NO_MATCH:
                logger.debug(
                    f"match: root_folder_rescue | candidates={len(rescued.candidates_topk)}"
                )
                result = rescued

        return result

    def _run_stages(
        self, ctx: StageContext, profile: PipelineProfile, states: ScoreStates
    ) -> StagedMatchResult:
        for spec in profile.stages:
            spec.applier(ctx, states)
            accepted = try_stage_accept(
                ctx,
                states,
                StageAcceptConfig(
                    mode=profile.mode,
                    threshold=spec.threshold,
                    margin=spec.margin,
                    review_min_score=profile.review_min,
                    top_k=profile.top_k,
                    best_confidence=spec.floor,
                ),
            )
            if accepted is not None:
                logger.debug(
                    f"match: stage={spec.name} status={accepted.status.value} "
                    f"mode={profile.mode.value}"
                )
                return accepted

        apply_direct_name_support_stage(ctx, states)
        return finalize_review(
            ctx,
            states,
            FinalizeConfig(
                mode=profile.mode, review_min_score=profile.review_min, top_k=profile.top_k
            ),
        )

    def match_folder(
        self,
        folder: Path,
        content: FolderContent,
        mode: MatchMode,
        cache: Optional[SignalCache] = None,
        allow_rerank: bool = True,
    ) -> StagedMatchResult:
        """Collect signals for a walked folder and match them.

        Args:
            folder: Mod folder root.
            content: Walker output for the folder.
            mode: Match mode.
            cache: Optional batch signal cache.
            allow_rerank: Whether the re-rank provider may be consulted.

        Returns:
            The staged match result.
        """
        if cache is not None:
            signals = cache.get_or_compute(folder, content, mode, self.ini_config)
        else:
            signals = collect_signals(folder, content, mode, self.ini_config)
        return self.match_signals(signals, mode, allow_rerank=allow_rerank)

    def match_path(
        self,
        folder: Path,
        mode: MatchMode,
        cache: Optional[SignalCache] = None,
        scanner: Optional[ModFolderScanner] = None,
        allow_rerank: bool = True,
    ) -> StagedMatchResult:
        """Walk a folder to the depth its mode needs, then match it.

        A cached snapshot for (folder, mode) skips the walk entirely.
        """
        if cache is not None:
            signals = cache.get(folder, mode)
            if signals is not None:
                return self.match_signals(signals, mode, allow_rerank=allow_rerank)

        scanner = scanner if scanner is not None else ModFolderScanner()
        content = scanner.scan_folder_content(folder, SignalBudget.for_mode(mode).max_depth)
        return self.match_folder(folder, content, mode, cache, allow_rerank=allow_rerank)

    def match_folder_phased(
        self,
        folder: Path,
        cache: Optional[SignalCache] = None,
        scanner: Optional[ModFolderScanner] = None,
    ) -> Tuple[StagedMatchResult, MatchMode]:
        """Quick first, Full only when Quick did not auto-match.

        The re-rank provider is consulted only in the Full pass.

        Args:
            folder: Mod folder root.
            cache: Optional batch signal cache shared by both passes.
            scanner: Walker whose errors the caller wants to collect.

        Returns:
            Tuple of (result, mode of the pass that produced it).
        """
        quick = self.match_path(folder, MatchMode.QUICK, cache, scanner, allow_rerank=False)
        if quick.status == MatchStatus.AUTO_MATCHED:
            return quick, MatchMode.QUICK

        full = self.match_path(folder, MatchMode.FULL, cache, scanner)
        return full, MatchMode.FULL
