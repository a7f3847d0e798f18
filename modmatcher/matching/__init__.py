"""Staged matching package for the mod folder matcher.

This package scores a folder's signals against the catalog:

- StagedMatcher: runs the Quick or Full pipeline profile, or both phased.
- Stage appliers and scoring contributions (hash, alias, substring, deep,
  INI, token overlap, direct name support).
- Acceptance gate, review finalization and root folder rescue.
- Re-rank providers: mechanical (offline points) and HTTP (chat completions).
- resolve_variant: variant detection for a matched entry.

Example:
    >>> from modmatcher.matching import StagedMatcher
    >>> matcher = StagedMatcher(catalog)
    >>> result, mode_used = matcher.match_folder_phased(folder_path)
    >>> if result.best:
    ...     print(f"{result.best.name}: {result.status.value}")
"""

from .acceptance import StageAcceptConfig, build_evidence, finalize_review, try_stage_accept
from .candidate_pool import ObservedTokenBuckets, replenish_candidates, seed_candidates
from .http_rerank import HttpRerankProvider, RerankProviderError
from .mechanical_rerank import (
    MECHANICAL_ACCEPT_MARGIN,
    MECHANICAL_ACCEPT_THRESHOLD,
    MechanicalRerankProvider,
)
from .name_rescue import apply_root_folder_rescue
from .pipeline import FULL_PROFILE, QUICK_PROFILE, PipelineProfile, StagedMatcher, StageSpec
from .rerank import (
    RerankCache,
    RerankCacheKey,
    RerankContext,
    RerankProvider,
    RerankRequest,
    apply_rerank,
    build_rerank_cache_key,
)
from .stages import StageContext
from .variant_resolver import resolve_variant

__all__ = [
    "FULL_PROFILE",
    "HttpRerankProvider",
    "MECHANICAL_ACCEPT_MARGIN",
    "MECHANICAL_ACCEPT_THRESHOLD",
    "MechanicalRerankProvider",
    "ObservedTokenBuckets",
    "PipelineProfile",
    "QUICK_PROFILE",
    "RerankCache",
    "RerankCacheKey",
    "RerankContext",
    "RerankProvider",
    "RerankProviderError",
    "RerankRequest",
    "StageAcceptConfig",
    "StageContext",
    "StageSpec",
    "StagedMatcher",
    "apply_rerank",
    "apply_root_folder_rescue",
    "build_evidence",
    "build_rerank_cache_key",
    "finalize_review",
    "replenish_candidates",
    "resolve_variant",
    "seed_candidates",
    "try_stage_accept",
]
