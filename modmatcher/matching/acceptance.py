"""Stage acceptance and final review decisions.

After every scoring stage the matcher snapshots its candidates and asks
whether the leader is clear enough to auto-match. The snapshot applies two
ranking controls that never touch the underlying ScoreState values:

- a negative-evidence penalty for strong observed tokens that point at
  other catalog entries;
- an object-type mismatch penalty when the caller supplies a type hint.

A leader is accepted only when it clears the stage threshold and margin,
carries primary (content) evidence, and no ambiguity signal (margin
conflict, ultra-close runner-up, multi-entity pack, same-base variants)
forces a review instead.
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from modmatcher.catalog.catalog import Catalog
from modmatcher.catalog.normalizer import condense, normalize_for_matching
from modmatcher.models.data_models import (
    Candidate,
    Confidence,
    Evidence,
    FolderSignals,
    MatchMode,
    MatchStatus,
    ScoreState,
    StagedMatchResult,
)
from modmatcher.models.match_reason import NegativeEvidence, ReasonKind

from .candidate_pool import ObservedTokenBuckets
from .scoring import cap_evidence, cap_reasons
from .stages import StageContext

logger = logging.getLogger(__name__)

OBJECT_TYPE_MISMATCH_PENALTY = 2.0
QUICK_NEGATIVE_PENALTY_PER_HIT = 1.5
QUICK_NEGATIVE_PENALTY_CAP = 8.0
QUICK_STRONG_TOKEN_MIN_LEN = 5
QUICK_STRONG_TOKEN_MAX_DF = 2
FULL_NEGATIVE_PENALTY_PER_HIT = 2.5
FULL_NEGATIVE_PENALTY_CAP = 10.0
FULL_STRONG_TOKEN_DF_DIVISOR = 200
FULL_STRONG_TOKEN_MIN_DF_CAP = 3
ULTRA_CLOSE_PRIMARY_MARGIN = 1.0
ULTRA_CLOSE_ABSOLUTE_MARGIN = 0.5

PRIMARY_DEEP_HITS = 2
PRIMARY_DEEP_RATIO = 0.12


@dataclass(frozen=True)
class StageAcceptConfig:
    """Acceptance gate for one stage."""
    mode: MatchMode
    threshold: float                  # Minimum leader score
    margin: float                     # Minimum gap to the runner-up
    review_min_score: float           # Score that qualifies for review
    top_k: int                        # Candidates kept in the result
    best_confidence: Confidence       # Confidence floor on acceptance

    def __post_init__(self) -> None:
        if self.threshold < 0 or self.margin < 0 or self.review_min_score < 0:
            raise ValueError(
                f"threshold, margin and review_min_score must be non-negative, got "
                f"{self.threshold}, {self.margin}, {self.review_min_score}"
            )
        if self.top_k < 1:
            raise ValueError(f"top_k must be at least 1, got {self.top_k}")


@dataclass(frozen=True)
class FinalizeConfig:
    mode: MatchMode
    review_min_score: float
    top_k: int


@dataclass(frozen=True)
class AmbiguitySnapshot:
    margin_conflict: bool = False
    ultra_close_primary: bool = False
    ultra_close_any: bool = False
    pack_multi_entity: bool = False
    same_base_variant: bool = False

    @property
    def forces_review(self) -> bool:
        return (
            self.ultra_close_primary
            or self.ultra_close_any
            or self.pack_multi_entity
            or self.same_base_variant
        )


def sort_candidates(candidates: Sequence[Candidate]) -> List[Candidate]:
    """Deterministic order: score desc, name asc, entry id asc."""
    return sorted(candidates, key=lambda candidate: candidate.sort_key())


def collect_candidates(catalog: Catalog, states: Dict[int, ScoreState]) -> List[Candidate]:
    """Snapshot score states as sorted Candidates without ranking controls."""
    candidates = []
    for entry_id, state in states.items():
        entry = catalog.entries[entry_id]
        candidates.append(
            Candidate(
                entry_id=entry_id,
                name=entry.name,
                object_type=entry.object_type,
                score=state.score,
                confidence=max(Confidence.LOW, state.max_confidence),
                reasons=tuple(state.reasons),
            )
        )
    return sort_candidates(candidates)


def collect_candidates_with_controls(
    ctx: StageContext, states: Dict[int, ScoreState]
) -> List[Candidate]:
    """Snapshot candidates with negative-evidence and object-type penalties."""
    candidates = collect_candidates(ctx.catalog, states)
    candidates = _apply_negative_evidence(ctx, candidates)
    candidates = _apply_object_type_mismatch(ctx.object_type_hint, candidates)
    return sort_candidates(candidates)


def _strong_observed_tokens(ctx: StageContext) -> List[Tuple[str, List[int]]]:
    token_index = ctx.catalog.indexes.token_index
    full_df_cap = max(len(ctx.catalog) // FULL_STRONG_TOKEN_DF_DIVISOR, FULL_STRONG_TOKEN_MIN_DF_CAP)

    strong = []
    for token in sorted(ctx.observed_tokens):
        posting = token_index.get(token)
        if not posting:
            continue
        if ctx.mode == MatchMode.QUICK:
            is_strong = (
                len(token) >= QUICK_STRONG_TOKEN_MIN_LEN
                and len(posting) <= QUICK_STRONG_TOKEN_MAX_DF
            )
        else:
            is_strong = len(posting) <= full_df_cap
        if is_strong:
            strong.append((token, posting))
    return strong


def _negative_penalty(mode: MatchMode, hits: int) -> float:
    if mode == MatchMode.QUICK:
        return min(hits * QUICK_NEGATIVE_PENALTY_PER_HIT, QUICK_NEGATIVE_PENALTY_CAP)
    return min(hits * FULL_NEGATIVE_PENALTY_PER_HIT, FULL_NEGATIVE_PENALTY_CAP)


def _apply_negative_evidence(ctx: StageContext, candidates: List[Candidate]) -> List[Candidate]:
    strong_tokens = _strong_observed_tokens(ctx)
    if not strong_tokens:
        return candidates

    adjusted = []
    for candidate in candidates:
        entry_tokens = ctx.entry_tokens(candidate.entry_id)
        foreign_hits = sum(
            1
            for token, posting in strong_tokens
            if token not in entry_tokens
            and any(entry_id != candidate.entry_id for entry_id in posting)
        )
        if foreign_hits == 0:
            adjusted.append(candidate)
            continue

        penalty = _negative_penalty(ctx.mode, foreign_hits)
        reasons = [r for r in candidate.reasons if r.kind != ReasonKind.NEGATIVE_EVIDENCE]
        reasons.append(NegativeEvidence(foreign_strong_hits=foreign_hits))
        adjusted.append(
            replace(
                candidate,
                score=max(candidate.score - penalty, 0.0),
                reasons=tuple(cap_reasons(reasons)),
            )
        )
    return adjusted


def _apply_object_type_mismatch(
    object_type_hint: Optional[str], candidates: List[Candidate]
) -> List[Candidate]:
    expected = (object_type_hint or "").strip().lower()
    if not expected:
        return candidates
    return [
        candidate
        if candidate.object_type.lower() == expected
        else replace(candidate, score=max(candidate.score - OBJECT_TYPE_MISMATCH_PENALTY, 0.0))
        for candidate in candidates
    ]


def has_primary_evidence_for_candidate(
    candidate: Candidate, entry_tokens: FrozenSet[str], buckets: ObservedTokenBuckets
) -> bool:
    """Primary evidence check used by the acceptance gate.

    Hash, alias and substring reasons qualify directly. Otherwise any INI
    token hit qualifies, and deep name tokens qualify with at least two
    hits or a hit ratio of 0.12.
    """
    for reason in candidate.reasons:
        if reason.kind == ReasonKind.HASH_OVERLAP and reason.overlap >= 1:
            return True
        if reason.kind in (ReasonKind.ALIAS_STRICT, ReasonKind.SUBSTRING_NAME):
            return True

    ini_hits = len(buckets.ini_section_tokens & entry_tokens) + len(
        buckets.ini_content_tokens & entry_tokens
    )
    if ini_hits >= 1:
        return True

    deep_hits = len(buckets.deep_name_tokens & entry_tokens)
    if deep_hits == 0:
        return False
    deep_ratio = deep_hits / max(len(buckets.deep_name_tokens), 1)
    return deep_hits >= PRIMARY_DEEP_HITS or deep_ratio >= PRIMARY_DEEP_RATIO


def primary_evidence_flags(ctx: StageContext, candidates: Sequence[Candidate]) -> List[bool]:
    return [
        has_primary_evidence_for_candidate(
            candidate, ctx.entry_tokens(candidate.entry_id), ctx.buckets
        )
        for candidate in candidates
    ]


def build_ambiguity_snapshot(
    candidates: Sequence[Candidate],
    primary_flags: Sequence[bool],
    review_min_score: float,
    margin: Optional[float] = None,
) -> AmbiguitySnapshot:
    primary_review_count = sum(
        1
        for candidate, is_primary in zip(candidates, primary_flags)
        if is_primary and candidate.score >= review_min_score
    )
    pack_multi_entity = primary_review_count >= 2

    if len(candidates) < 2:
        return AmbiguitySnapshot(pack_multi_entity=pack_multi_entity)

    first, second = candidates[0], candidates[1]
    gap = first.score - second.score
    top2_primary = primary_flags[0] and primary_flags[1]

    return AmbiguitySnapshot(
        margin_conflict=margin is not None and top2_primary and gap < margin,
        ultra_close_primary=top2_primary and gap < ULTRA_CLOSE_PRIMARY_MARGIN,
        ultra_close_any=gap < ULTRA_CLOSE_ABSOLUTE_MARGIN,
        pack_multi_entity=pack_multi_entity,
        same_base_variant=(
            top2_primary
            and second.score >= review_min_score
            and _is_same_base(first.name, second.name)
        ),
    )


def _is_same_base(left: str, right: str) -> bool:
    # "Raiden" vs "Raiden Shogun Boss" style variant pairs
    left_base = condense(normalize_for_matching(left))
    right_base = condense(normalize_for_matching(right))
    if not left_base or not right_base or left_base == right_base:
        return False
    return left_base in right_base or right_base in left_base


def try_stage_accept(
    ctx: StageContext, states: Dict[int, ScoreState], config: StageAcceptConfig
) -> Optional[StagedMatchResult]:
    """Decide whether the current stage ends the match.

    Args:
        ctx: Stage context for this match.
        states: Live score states.
        config: Stage gate.

    Returns:
        An AutoMatched or NeedsReview result, or None to continue with the
        next stage.
    """
    candidates = collect_candidates_with_controls(ctx, states)
    if not candidates:
        return None

    best = candidates[0]
    second_score = candidates[1].score if len(candidates) > 1 else 0.0

    if best.score < config.threshold:
        logger.debug(
            f"try_stage_accept: threshold_not_met | mode={ctx.mode.value} "
            f"best={best.score:.2f} threshold={config.threshold:.2f}"
        )
        return None

    flags = primary_evidence_flags(ctx, candidates)
    if not flags[0]:
        logger.debug(
            f"try_stage_accept: no_primary_evidence | mode={ctx.mode.value} best={best.score:.2f}"
        )
        return None

    ambiguity = build_ambiguity_snapshot(
        candidates, flags, config.review_min_score, margin=config.margin
    )
    if ambiguity.margin_conflict:
        _log_stage_decision(ctx, candidates, flags, "margin_conflict_review")
        return _ranked_result(ctx, candidates, config.top_k, MatchStatus.NEEDS_REVIEW)

    if best.score - second_score < config.margin:
        logger.debug(
            f"try_stage_accept: margin_insufficient | mode={ctx.mode.value} "
            f"best={best.score:.2f} second={second_score:.2f} margin={config.margin:.2f}"
        )
        return None

    if ambiguity.forces_review:
        _log_stage_decision(ctx, candidates, flags, "ambiguity_forced_review")
        return _ranked_result(ctx, candidates, config.top_k, MatchStatus.NEEDS_REVIEW)

    _log_stage_decision(ctx, candidates, flags, "auto_matched")
    return _ranked_result(
        ctx, candidates, config.top_k, MatchStatus.AUTO_MATCHED, config.best_confidence
    )


def finalize_review(
    ctx: StageContext, states: Dict[int, ScoreState], config: FinalizeConfig
) -> StagedMatchResult:
    """Final decision after every stage ran without an acceptance.

    Returns:
        NeedsReview with the top K when the leader reaches the review
        minimum or the folder looks like a multi-entity pack, otherwise
        NoMatch (with evidence for the leader, if any).
    """
    candidates = collect_candidates_with_controls(ctx, states)
    if not candidates:
        logger.debug(
            f"finalize_review: no_candidates | mode={ctx.mode.value} "
            f"scanned_ini={ctx.signals.scanned_ini_files} "
            f"scanned_names={ctx.signals.scanned_name_items}"
        )
        return StagedMatchResult.no_match(ctx.signals)

    best = candidates[0]
    flags = primary_evidence_flags(ctx, candidates)
    ambiguity = build_ambiguity_snapshot(candidates, flags, config.review_min_score)

    if ambiguity.pack_multi_entity or best.score >= config.review_min_score:
        _log_stage_decision(ctx, candidates, flags, "finalize_review")
        return _ranked_result(ctx, candidates, config.top_k, MatchStatus.NEEDS_REVIEW)

    _log_stage_decision(ctx, candidates, flags, "finalize_no_match")
    return StagedMatchResult(
        status=MatchStatus.NO_MATCH,
        evidence=build_evidence(ctx.catalog, ctx.signals, best),
        signals=ctx.signals,
    )


def _ranked_result(
    ctx: StageContext,
    candidates: List[Candidate],
    top_k: int,
    status: MatchStatus,
    best_confidence: Optional[Confidence] = None,
) -> StagedMatchResult:
    top = sort_candidates(candidates)[: max(top_k, 1)]
    if best_confidence is not None and top:
        top[0] = replace(top[0], confidence=max(top[0].confidence, best_confidence))

    best = top[0] if top else None
    evidence = (
        build_evidence(ctx.catalog, ctx.signals, best)
        if best is not None
        else empty_evidence(ctx.signals)
    )
    return StagedMatchResult(
        status=status,
        best=best,
        candidates_topk=tuple(top),
        evidence=evidence,
        signals=ctx.signals,
    )


def build_evidence(catalog: Catalog, signals: FolderSignals, candidate: Candidate) -> Evidence:
    """Collect the hashes, tokens and sections the candidate actually matched."""
    entry_tokens = catalog.entry_tokens(candidate.entry_id)
    hash_index = catalog.indexes.hash_index

    matched_hashes = [
        hash_value
        for hash_value in signals.ini_hashes
        if candidate.entry_id in hash_index.get(hash_value, ())
    ]
    matched_tokens = [
        token
        for token in signals.folder_tokens + signals.deep_name_tokens + signals.ini_content_tokens
        if token in entry_tokens
    ]
    matched_sections = [token for token in signals.ini_section_tokens if token in entry_tokens]

    return cap_evidence(
        Evidence(
            matched_hashes=tuple(matched_hashes),
            matched_tokens=tuple(matched_tokens),
            matched_sections=tuple(matched_sections),
            scanned_ini_files=signals.scanned_ini_files,
            scanned_name_items=signals.scanned_name_items,
        )
    )


def empty_evidence(signals: FolderSignals) -> Evidence:
    return Evidence(
        scanned_ini_files=signals.scanned_ini_files,
        scanned_name_items=signals.scanned_name_items,
    )


def _log_stage_decision(
    ctx: StageContext,
    candidates: Sequence[Candidate],
    flags: Sequence[bool],
    decision: str,
) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return

    best = candidates[0].score if candidates else 0.0
    second = candidates[1].score if len(candidates) > 1 else 0.0
    foreign_hits = 0
    if candidates:
        for reason in candidates[0].reasons:
            if reason.kind == ReasonKind.NEGATIVE_EVIDENCE:
                foreign_hits = reason.foreign_strong_hits

    logger.debug(
        f"stage_decision: {decision} | mode={ctx.mode.value} best={best:.2f} "
        f"second={second:.2f} margin={best - second:.2f} "
        f"primary=[{flags[0] if flags else False},{flags[1] if len(flags) > 1 else False}] "
        f"foreign_hits={foreign_hits} scanned_ini={ctx.signals.scanned_ini_files} "
        f"scanned_names={ctx.signals.scanned_name_items}"
    )
