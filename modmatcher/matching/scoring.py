"""Scoring primitives shared by every matching stage.

Each ``apply_*`` helper adds a non-negative contribution to a ScoreState,
clamps the score to [0, 100] and records the matching reasons. Reason lists
are capped per candidate; when the cap is exceeded the highest-value reasons
(lowest priority number) are kept in their original order.
"""

from typing import Dict, Iterable, List, Sequence

from modmatcher.models.data_models import Confidence, Evidence, ScoreState
from modmatcher.models.match_reason import (
    AliasStrict,
    DeepNameToken,
    DirectNameSupport,
    HashOverlap,
    IniContentToken,
    IniSectionToken,
    Reason,
    ReasonKind,
    SubstringName,
    TokenOverlap,
)

SCORE_MIN = 0.0
SCORE_MAX = 100.0

MAX_REASONS_PER_CANDIDATE = 12
MAX_EVIDENCE_HASHES = 50
MAX_EVIDENCE_TOKENS = 50
MAX_EVIDENCE_SECTIONS = 50

# Lower values survive reason capping first
REASON_PRIORITY: Dict[ReasonKind, int] = {
    ReasonKind.HASH_OVERLAP: 0,
    ReasonKind.ALIAS_STRICT: 1,
    ReasonKind.SUBSTRING_NAME: 2,
    ReasonKind.NEGATIVE_EVIDENCE: 3,
    ReasonKind.TOKEN_OVERLAP: 4,
    ReasonKind.DEEP_NAME_TOKEN: 5,
    ReasonKind.INI_SECTION_TOKEN: 6,
    ReasonKind.INI_CONTENT_TOKEN: 7,
    ReasonKind.DIRECT_NAME_SUPPORT: 8,
    ReasonKind.AI_RERANK: 9,
    ReasonKind.FOLDER_NAME_RESCUE: 10,
}


def clamp_score(value: float) -> float:
    return min(max(value, SCORE_MIN), SCORE_MAX)


def add_score(state: ScoreState, delta: float) -> None:
    """Add a non-negative delta; negative deltas are treated as zero."""
    state.score = clamp_score(state.score + max(delta, 0.0))


def raise_confidence(state: ScoreState, confidence: Confidence) -> None:
    state.max_confidence = max(state.max_confidence, confidence)


def apply_hash_contribution(
    state: ScoreState, overlap: int, unique_overlap: int, score_delta: float
) -> None:
    """Accumulate hash overlap and upsert the single HashOverlap reason."""
    if overlap <= 0:
        return

    state.overlap += overlap
    state.unique_overlap += unique_overlap
    add_score(state, score_delta)

    replacement = HashOverlap(overlap=state.overlap, unique_overlap=state.unique_overlap)
    for index, reason in enumerate(state.reasons):
        if reason.kind == ReasonKind.HASH_OVERLAP:
            state.reasons[index] = replacement
            break
    else:
        state.reasons.append(replacement)
    state.reasons[:] = cap_reasons(state.reasons)


def apply_alias_contribution(state: ScoreState, alias: str, score_delta: float) -> None:
    if not alias.strip():
        return
    add_score(state, score_delta)
    push_reason_capped(state, AliasStrict(alias=alias))


def apply_substring_contribution(
    state: ScoreState,
    matched_term: str,
    source: str,
    score_delta: float,
    confidence: Confidence,
) -> None:
    add_score(state, score_delta)
    raise_confidence(state, confidence)
    push_reason_capped(state, SubstringName(matched_term=matched_term, source=source))


def apply_token_overlap_contribution(state: ScoreState, ratio: float, scale: float) -> None:
    """Add ratio * scale. A zero ratio adds nothing and records no reason."""
    bounded = min(max(ratio, 0.0), 1.0)
    if bounded <= 0.0:
        return
    add_score(state, bounded * max(scale, 0.0))
    push_reason_capped(state, TokenOverlap(ratio=bounded))


def apply_deep_token_contribution(
    state: ScoreState,
    matched_tokens: Iterable[str],
    ratio: float,
    ratio_weight: float,
    per_token_boost: float,
    token_boost_cap: float,
) -> None:
    """Add ratio * weight plus a capped per-hit bonus, one reason per hit."""
    bounded = min(max(ratio, 0.0), 1.0)
    hits = sorted(set(matched_tokens))
    bonus = min(len(hits) * max(per_token_boost, 0.0), max(token_boost_cap, 0.0))
    add_score(state, bounded * max(ratio_weight, 0.0) + bonus)

    for token in hits:
        push_reason_capped(state, DeepNameToken(token=token))


def apply_ini_token_contribution(
    state: ScoreState,
    section_tokens: Iterable[str],
    content_tokens: Iterable[str],
    ratio: float,
    ratio_weight: float,
) -> None:
    bounded = min(max(ratio, 0.0), 1.0)
    add_score(state, bounded * max(ratio_weight, 0.0))

    for token in sorted(set(section_tokens)):
        push_reason_capped(state, IniSectionToken(token=token))
    for token in sorted(set(content_tokens)):
        push_reason_capped(state, IniContentToken(token=token))


def apply_direct_name_support_contribution(
    state: ScoreState,
    name_tokens: Iterable[str],
    tag_tokens: Iterable[str],
    name_weight: float,
    tag_weight: float,
    name_cap: float,
    tag_cap: float,
) -> None:
    name_hits = sorted(set(name_tokens))
    tag_hits = sorted(set(tag_tokens))

    name_bonus = min(len(name_hits) * max(name_weight, 0.0), max(name_cap, 0.0))
    tag_bonus = min(len(tag_hits) * max(tag_weight, 0.0), max(tag_cap, 0.0))
    add_score(state, name_bonus + tag_bonus)

    for token in name_hits + tag_hits:
        push_reason_capped(state, DirectNameSupport(token=token))


def push_reason_capped(state: ScoreState, reason: Reason) -> None:
    state.reasons.append(reason)
    state.reasons[:] = cap_reasons(state.reasons)


def cap_reasons(reasons: Sequence[Reason]) -> List[Reason]:
    """Keep at most MAX_REASONS_PER_CANDIDATE reasons by priority.

    Args:
        reasons: Reasons in insertion order.

    Returns:
        A new list holding the kept reasons in their original order.
    """
    if len(reasons) <= MAX_REASONS_PER_CANDIDATE:
        return list(reasons)

    ranked = sorted(
        enumerate(reasons), key=lambda item: (REASON_PRIORITY[item[1].kind], item[0])
    )
    kept = sorted(ranked[:MAX_REASONS_PER_CANDIDATE], key=lambda item: item[0])
    return [reason for _, reason in kept]


def has_primary_evidence(reasons: Iterable[Reason]) -> bool:
    """Whether any reason is content evidence rather than name support.

    Hash, alias, substring, deep token and INI token reasons count.
    Token overlap, direct name support, negative evidence, re-rank and
    rescue reasons do not.
    """
    for reason in reasons:
        if reason.kind == ReasonKind.HASH_OVERLAP:
            if reason.overlap >= 1:
                return True
        elif reason.kind in (
            ReasonKind.ALIAS_STRICT,
            ReasonKind.SUBSTRING_NAME,
            ReasonKind.DEEP_NAME_TOKEN,
            ReasonKind.INI_SECTION_TOKEN,
            ReasonKind.INI_CONTENT_TOKEN,
        ):
            return True
    return False


def cap_evidence(evidence: Evidence) -> Evidence:
    """Sort, deduplicate and cap each evidence list."""
    return Evidence(
        matched_hashes=_cap_sorted(evidence.matched_hashes, MAX_EVIDENCE_HASHES),
        matched_tokens=_cap_sorted(evidence.matched_tokens, MAX_EVIDENCE_TOKENS),
        matched_sections=_cap_sorted(evidence.matched_sections, MAX_EVIDENCE_SECTIONS),
        scanned_ini_files=evidence.scanned_ini_files,
        scanned_name_items=evidence.scanned_name_items,
    )


def _cap_sorted(values: Iterable[str], cap: int):
    return tuple(sorted(set(values))[:cap])
