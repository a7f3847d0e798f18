"""Deterministic, offline re-rank provider based on evidence points.

Each candidate earns points for exact and substring name or alias hits in
file and INI-derived strings, a unique hash, entry name words among the
deep tokens, tag substrings, the deep token ratio and INI token hits.
Foreign strong tokens and rescue-only evidence cost points. The total is
divided by 30 and clamped to [0, 1].

Use it with a strict context::

    RerankContext(
        provider=MechanicalRerankProvider(),
        accept_threshold=MECHANICAL_ACCEPT_THRESHOLD,
        accept_margin=MECHANICAL_ACCEPT_MARGIN,
        require_primary_evidence=True,
    )
"""

from typing import Dict, List, Sequence

from modmatcher.catalog.catalog import Catalog
from modmatcher.catalog.normalizer import condense, normalize_for_matching, preprocess_text
from modmatcher.models.data_models import Candidate, Confidence, FolderSignals
from modmatcher.models.match_reason import ReasonKind

from .rerank import RerankRequest
from .stages import MIN_TERM_LEN

MECHANICAL_ACCEPT_THRESHOLD = 0.85
MECHANICAL_ACCEPT_MARGIN = 0.15

PT_EXACT_NAME = 20.0
PT_EXACT_ALIAS = 18.0
PT_UNIQUE_HASH = 18.0
PT_NAME_SUBSTR_SPACED = 14.0
PT_NAME_SUBSTR_COMPACT = 10.0
PT_ALIAS_SUBSTR = 15.0
PT_ALIAS_COMPACT = 11.0
PT_NAME_WORD = 8.0
PT_NAME_WORD_COMPACT = 6.0
PT_TAG_SUBSTR = 6.0
PT_DEEP_RATIO_HIGH = 10.0
PT_DEEP_RATIO_MED = 7.0
PT_DEEP_RATIO_LOW = 4.0
PT_INI_HITS_2 = 6.0
PT_INI_HITS_1 = 3.0
PENALTY_FOREIGN = -3.0
PENALTY_FOREIGN_CAP = -12.0
PENALTY_RESCUE_ONLY = -8.0

SCORE_DIVISOR = 30.0
MAX_NAME_WORD_HITS = 2
MAX_TAG_HITS = 2


class MechanicalRerankProvider:
    """Points-based provider; needs no network and never raises on valid input."""

    def rerank(
        self, request: RerankRequest, signals: FolderSignals, catalog: Catalog
    ) -> Dict[int, float]:
        candidates = request.candidates or tuple(
            Candidate(
                entry_id=entry_id,
                name=catalog.entries[entry_id].name,
                object_type=catalog.entries[entry_id].object_type,
                score=0.0,
                confidence=Confidence.NONE,
            )
            for entry_id in request.candidate_entry_ids
        )
        return {
            candidate.entry_id: min(
                max(compute_points(candidate, signals, catalog) / SCORE_DIVISOR, 0.0), 1.0
            )
            for candidate in candidates
        }


def compute_points(candidate: Candidate, signals: FolderSignals, catalog: Catalog) -> float:
    """Total evidence points for one candidate (may be negative)."""
    entry = catalog.entries[candidate.entry_id]
    name_norm = normalize_for_matching(entry.name)
    name_condensed = condense(name_norm)
    aliases = [normalize_for_matching(a) for v in entry.variants for a in v.aliases]
    aliases = [a for a in aliases if a]
    strings = [s for s in signals.deep_name_strings + signals.ini_derived_strings if s]
    renormalized = [normalize_for_matching(s) for s in strings]

    points = 0.0

    has_exact_name = bool(name_norm) and name_norm in renormalized
    if has_exact_name:
        points += PT_EXACT_NAME

    has_exact_alias = any(alias in renormalized for alias in aliases)
    if has_exact_alias:
        points += PT_EXACT_ALIAS

    if any(
        reason.kind == ReasonKind.HASH_OVERLAP and reason.unique_overlap > 0
        for reason in candidate.reasons
    ):
        points += PT_UNIQUE_HASH

    if not has_exact_name and name_norm:
        if _any_contains(strings, name_norm):
            points += PT_NAME_SUBSTR_SPACED
        elif _any_contains([condense(s) for s in strings], name_condensed):
            points += PT_NAME_SUBSTR_COMPACT

    if not has_exact_alias and aliases:
        if any(_any_contains(strings, alias) for alias in aliases):
            points += PT_ALIAS_SUBSTR
        elif any(_any_contains([condense(s) for s in strings], condense(a)) for a in aliases):
            points += PT_ALIAS_COMPACT

    name_words = sorted(w for w in preprocess_text(entry.name) if len(w) >= 3)
    word_hits = [w for w in name_words if w in signals.deep_name_tokens][:MAX_NAME_WORD_HITS]
    if word_hits:
        points += PT_NAME_WORD * len(word_hits)
    else:
        content_hits = [w for w in name_words if w in signals.ini_content_tokens]
        points += PT_NAME_WORD_COMPACT * len(content_hits[:MAX_NAME_WORD_HITS])

    tag_hits = 0
    condensed_strings = [condense(s) for s in strings]
    for tag in entry.tags:
        tag_condensed = condense(normalize_for_matching(tag))
        if len(tag_condensed) >= MIN_TERM_LEN and _any_contains(condensed_strings, tag_condensed):
            tag_hits += 1
            if tag_hits >= MAX_TAG_HITS:
                break
    points += PT_TAG_SUBSTR * tag_hits

    entry_tokens = catalog.entry_tokens(candidate.entry_id)
    deep_hits = sum(1 for t in signals.deep_name_tokens if t in entry_tokens)
    deep_ratio = deep_hits / max(len(signals.deep_name_tokens), 1)
    if deep_ratio >= 0.20:
        points += PT_DEEP_RATIO_HIGH
    elif deep_ratio >= 0.12:
        points += PT_DEEP_RATIO_MED
    elif deep_ratio >= 0.08:
        points += PT_DEEP_RATIO_LOW

    ini_hits = sum(
        1
        for t in signals.ini_section_tokens + signals.ini_content_tokens
        if t in entry_tokens
    )
    if ini_hits >= 2:
        points += PT_INI_HITS_2
    elif ini_hits == 1:
        points += PT_INI_HITS_1

    negative_reasons = sum(
        1 for reason in candidate.reasons if reason.kind == ReasonKind.NEGATIVE_EVIDENCE
    )
    points += max(PENALTY_FOREIGN * negative_reasons, PENALTY_FOREIGN_CAP)

    if _is_rescue_only(candidate):
        points += PENALTY_RESCUE_ONLY

    return points


def _any_contains(strings: Sequence[str], term: str) -> bool:
    # Observed strings shorter than MIN_TERM_LEN would match almost any term
    return any(
        len(s) >= MIN_TERM_LEN and (term in s or s in term) for s in strings
    ) if term else False


def _is_rescue_only(candidate: Candidate) -> bool:
    return bool(candidate.reasons) and all(
        reason.kind == ReasonKind.FOLDER_NAME_RESCUE for reason in candidate.reasons
    )


__all__: List[str] = [
    "MECHANICAL_ACCEPT_MARGIN",
    "MECHANICAL_ACCEPT_THRESHOLD",
    "MechanicalRerankProvider",
    "compute_points",
]
