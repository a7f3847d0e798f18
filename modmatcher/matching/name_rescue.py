"""Last-resort rescue by root folder name.

When a Full match ends in NoMatch, the normalized folder name is compared by
substring against every entry's name, aliases and tags. Hits are never
auto-matched; they are returned as NeedsReview candidates so a user can
confirm them.
"""

from typing import List

from modmatcher.catalog.catalog import Catalog
from modmatcher.catalog.normalizer import condense, normalize_for_matching
from modmatcher.models.data_models import (
    Candidate,
    CatalogEntry,
    Confidence,
    FolderSignals,
    MatchStatus,
    StagedMatchResult,
)
from modmatcher.models.match_reason import FolderNameRescue

from .acceptance import empty_evidence, sort_candidates
from .stages import MIN_TERM_LEN

SCORE_FOLDER_RESCUE = 8.0
RESCUE_TOP_K = 5


def apply_root_folder_rescue(catalog: Catalog, signals: FolderSignals) -> StagedMatchResult:
    """Match the normalized root folder name against every catalog entry.

    Args:
        catalog: The catalog.
        signals: Signals of the folder; only ``folder_name_normalized`` is used.

    Returns:
        NeedsReview with up to five Medium-confidence candidates, or an
        empty NoMatch when the name is shorter than three characters or
        nothing matches.
    """
    folder_norm = signals.folder_name_normalized
    if len(folder_norm) < MIN_TERM_LEN:
        return StagedMatchResult.no_match(signals)

    candidates: List[Candidate] = []
    for entry_id, entry in enumerate(catalog.entries):
        if not _rescue_hit(entry, folder_norm):
            continue
        candidates.append(
            Candidate(
                entry_id=entry_id,
                name=entry.name,
                object_type=entry.object_type,
                score=SCORE_FOLDER_RESCUE,
                confidence=Confidence.MEDIUM,
                reasons=(FolderNameRescue(matched_term=folder_norm),),
            )
        )

    if not candidates:
        return StagedMatchResult.no_match(signals)

    top = sort_candidates(candidates)[:RESCUE_TOP_K]
    return StagedMatchResult(
        status=MatchStatus.NEEDS_REVIEW,
        best=top[0],
        candidates_topk=tuple(top),
        evidence=empty_evidence(signals),
        signals=signals,
    )


def _rescue_hit(entry: CatalogEntry, folder_norm: str) -> bool:
    folder_condensed = condense(folder_norm)
    name_condensed = condense(normalize_for_matching(entry.name))
    if len(name_condensed) >= MIN_TERM_LEN and _contains_either(folder_condensed, name_condensed):
        return True

    for variant in entry.variants:
        for alias in variant.aliases:
            alias_norm = normalize_for_matching(alias)
            if len(alias_norm) >= MIN_TERM_LEN and _contains_either(folder_norm, alias_norm):
                return True

    for tag in entry.tags:
        tag_norm = normalize_for_matching(tag)
        if len(tag_norm) >= MIN_TERM_LEN and _contains_either(folder_norm, tag_norm):
            return True

    return False


def _contains_either(left: str, right: str) -> bool:
    return left in right or right in left
