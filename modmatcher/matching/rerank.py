"""Optional re-rank of NeedsReview results by a pluggable provider.

A provider scores the top candidates of an ambiguous result in [0, 1].
When the provider's favourite clears both the accept threshold and the
accept margin over the runner-up, the result is promoted to AutoMatched.

Provider scores are cached per (signals fingerprint, catalog version). A
provider that raises or replies with something other than a score mapping
is logged and treated as "no opinion"; failures are not cached. Non-finite
scores are dropped.

Example:
    >>> context = RerankContext(provider=MechanicalRerankProvider(),
    ...                         accept_threshold=0.85)
    >>> result = apply_rerank(result, signals, catalog, MatchMode.FULL, context)
"""

import logging
import math
import threading
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Protocol, Tuple

from blake3 import blake3

from modmatcher.catalog.catalog import Catalog
from modmatcher.models.data_models import (
    Candidate,
    Confidence,
    FolderSignals,
    MatchMode,
    MatchStatus,
    StagedMatchResult,
)
from modmatcher.models.match_reason import AiRerank
from modmatcher.scanning.signal_collector import compute_fingerprint

from .acceptance import sort_candidates
from .scoring import cap_reasons, has_primary_evidence

logger = logging.getLogger(__name__)

DEFAULT_ACCEPT_THRESHOLD = 0.7
DEFAULT_ACCEPT_MARGIN = 0.15
DEFAULT_CATALOG_VERSION = "db-version-unknown"


@dataclass(frozen=True)
class RerankCacheKey:
    signals_hash: str                 # blake3 hex over mode and fingerprint
    catalog_version: str


@dataclass(frozen=True)
class RerankRequest:
    """What a provider is asked to score."""
    mode: MatchMode
    cache_key: RerankCacheKey
    candidate_entry_ids: Tuple[int, ...]
    candidates: Tuple[Candidate, ...] = ()   # Snapshots, same order as the ids


class RerankProvider(Protocol):
    """Scores candidates of an ambiguous match.

    Implementations return a mapping of entry id to a score in [0, 1] and
    may raise any exception on failure.
    """

    def rerank(
        self, request: RerankRequest, signals: FolderSignals, catalog: Catalog
    ) -> Dict[int, float]:
        ...


class RerankCache:
    """Lock-guarded provider score cache, safe to share between threads."""

    def __init__(self) -> None:
        self._entries: Dict[RerankCacheKey, Dict[int, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: RerankCacheKey) -> Optional[Dict[int, float]]:
        with self._lock:
            cached = self._entries.get(key)
            return dict(cached) if cached is not None else None

    def insert(self, key: RerankCacheKey, scores: Dict[int, float]) -> None:
        with self._lock:
            self._entries[key] = dict(scores)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


@dataclass
class RerankContext:
    """Caller-owned re-rank configuration.

    Attributes:
        provider: The provider to consult.
        cache: Optional shared score cache.
        catalog_version: Catalog version for cache keys; blank means unknown.
        accept_threshold: Minimum provider score of the winner.
        accept_margin: Minimum gap between the winner and the runner-up.
        require_primary_evidence: Only promote a winner that already has
            content evidence.
    """
    provider: RerankProvider
    cache: Optional[RerankCache] = field(default_factory=RerankCache)
    catalog_version: Optional[str] = None
    accept_threshold: float = DEFAULT_ACCEPT_THRESHOLD
    accept_margin: float = DEFAULT_ACCEPT_MARGIN
    require_primary_evidence: bool = False

    def __post_init__(self) -> None:
        if not 0.0 <= self.accept_threshold <= 1.0:
            raise ValueError(
                f"accept_threshold must be between 0 and 1, got {self.accept_threshold}"
            )
        if not 0.0 <= self.accept_margin <= 1.0:
            raise ValueError(f"accept_margin must be between 0 and 1, got {self.accept_margin}")

    @property
    def effective_catalog_version(self) -> str:
        version = (self.catalog_version or "").strip()
        return version or DEFAULT_CATALOG_VERSION


def build_rerank_cache_key(
    signals: FolderSignals, mode: MatchMode, catalog_version: str
) -> RerankCacheKey:
    """Hash the mode and the signal fingerprint into a cache key.

    Signals built by hand without a fingerprint are fingerprinted here.
    """
    fingerprint = signals.fingerprint or compute_fingerprint(signals)
    hasher = blake3()
    hasher.update(mode.value.encode("utf-8"))
    hasher.update(b"\x00")
    hasher.update(fingerprint.encode("utf-8"))
    return RerankCacheKey(signals_hash=hasher.hexdigest(), catalog_version=catalog_version)


def apply_rerank(
    result: StagedMatchResult,
    signals: FolderSignals,
    catalog: Catalog,
    mode: MatchMode,
    context: Optional[RerankContext],
) -> StagedMatchResult:
    """Promote a NeedsReview result when the provider clearly prefers one candidate.

    Args:
        result: Result of the staged pipeline.
        signals: Signals the result was computed from.
        catalog: The catalog.
        mode: Mode of the pass that produced the result.
        context: Re-rank configuration; None disables re-ranking.

    Returns:
        The promoted AutoMatched result, or `result` unchanged.
    """
    if context is None or result.status != MatchStatus.NEEDS_REVIEW:
        return result
    if not result.candidates_topk:
        return result

    cache_key = build_rerank_cache_key(signals, mode, context.effective_catalog_version)
    request = RerankRequest(
        mode=mode,
        cache_key=cache_key,
        candidate_entry_ids=tuple(c.entry_id for c in result.candidates_topk),
        candidates=result.candidates_topk,
    )

    scores = _resolve_scores(context, request, signals, catalog)
    if not scores:
        return result

    ranked = sorted(
        result.candidates_topk,
        key=lambda c: (-scores.get(c.entry_id, 0.0), c.name, c.entry_id),
    )
    winner = ranked[0]
    best_score = scores.get(winner.entry_id, 0.0)
    second_score = scores.get(ranked[1].entry_id, 0.0) if len(ranked) > 1 else 0.0

    if best_score < context.accept_threshold:
        return result
    if best_score - second_score < context.accept_margin:
        return result
    if context.require_primary_evidence and not has_primary_evidence(winner.reasons):
        return result

    logger.debug(
        f"rerank: promoted entry={winner.entry_id} ai={best_score:.2f} "
        f"second={second_score:.2f} mode={mode.value}"
    )
    return _promote(result, winner.entry_id, scores)


def _resolve_scores(
    context: RerankContext,
    request: RerankRequest,
    signals: FolderSignals,
    catalog: Catalog,
) -> Dict[int, float]:
    if context.cache is not None:
        cached = context.cache.get(request.cache_key)
        if cached is not None:
            return cached

    try:
        raw_scores = context.provider.rerank(request, signals, catalog)
        scores = _sanitize_scores(raw_scores)
    except Exception as e:
        logger.error(f"Re-rank provider failed: {e}")
        return {}

    if context.cache is not None:
        context.cache.insert(request.cache_key, scores)
    return scores


def _sanitize_scores(raw_scores) -> Dict[int, float]:
    """Clamp provider scores to [0, 1], dropping non-finite values."""
    if not isinstance(raw_scores, dict):
        raise TypeError(f"expected a dict of scores, got {type(raw_scores).__name__}")

    scores: Dict[int, float] = {}
    for entry_id, score in raw_scores.items():
        value = float(score)
        if not math.isfinite(value):
            logger.debug(f"rerank: dropping non-finite score for entry {entry_id}")
            continue
        scores[int(entry_id)] = min(max(value, 0.0), 1.0)
    return scores


def _promote(
    result: StagedMatchResult, winner_id: int, scores: Dict[int, float]
) -> StagedMatchResult:
    promoted: List[Candidate] = []
    for candidate in result.candidates_topk:
        ai_score = scores.get(candidate.entry_id, 0.0)
        updated = replace(candidate, score=min(max(ai_score * 100.0, 0.0), 100.0))
        if candidate.entry_id == winner_id:
            reasons = list(candidate.reasons) + [AiRerank(ai_score=ai_score)]
            updated = replace(
                updated, confidence=Confidence.HIGH, reasons=tuple(cap_reasons(reasons))
            )
        promoted.append(updated)

    ordered = sort_candidates(promoted)
    best = next((c for c in ordered if c.entry_id == winner_id), ordered[0])
    return replace(
        result,
        status=MatchStatus.AUTO_MATCHED,
        best=best,
        candidates_topk=tuple(ordered),
    )
