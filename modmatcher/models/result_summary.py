"""User-facing summaries of staged match results.

Turns a StagedMatchResult into a short message and a 0-100 confidence
percentage suitable for tables and report logs. Technical reason details
are hidden behind plain messages.

Example:
    >>> from modmatcher.models.result_summary import summarize, confidence_percent
    >>> summarize(result)
    'Verified by file signature'
    >>> confidence_percent(result)
    81
"""

from typing import Dict, Optional, Tuple

from .data_models import Candidate, Confidence, MatchStatus, StagedMatchResult
from .match_reason import Reason, ReasonKind

# Tier bands (floor %, ceiling %)
_TIER_BANDS: Dict[Confidence, Tuple[int, int]] = {
    Confidence.EXCELLENT: (90, 100),
    Confidence.HIGH: (75, 95),
    Confidence.MEDIUM: (45, 74),
    Confidence.LOW: (15, 44),
    Confidence.NONE: (0, 14),
}

# Raw scores at or above this map to the top of a tier band
_SCORE_SPAN = 35.0

_SUMMARY_PRIORITY: Dict[ReasonKind, int] = {
    ReasonKind.HASH_OVERLAP: 0,
    ReasonKind.ALIAS_STRICT: 1,
    ReasonKind.SUBSTRING_NAME: 2,
    ReasonKind.DEEP_NAME_TOKEN: 3,
    ReasonKind.INI_SECTION_TOKEN: 4,
    ReasonKind.INI_CONTENT_TOKEN: 5,
    ReasonKind.TOKEN_OVERLAP: 6,
    ReasonKind.DIRECT_NAME_SUPPORT: 7,
    ReasonKind.FOLDER_NAME_RESCUE: 8,
    ReasonKind.NEGATIVE_EVIDENCE: 9,
    ReasonKind.AI_RERANK: 10,
}

_REASON_MESSAGES: Dict[ReasonKind, str] = {
    ReasonKind.ALIAS_STRICT: "Exact name match",
    ReasonKind.SUBSTRING_NAME: "Name pattern detected",
    ReasonKind.DIRECT_NAME_SUPPORT: "Name match detected",
    ReasonKind.TOKEN_OVERLAP: "Strong similarity detected",
    ReasonKind.DEEP_NAME_TOKEN: "Matched from folder contents",
    ReasonKind.INI_SECTION_TOKEN: "Matched from config data",
    ReasonKind.INI_CONTENT_TOKEN: "Matched from config data",
    ReasonKind.FOLDER_NAME_RESCUE: "Matched from folder name",
    ReasonKind.AI_RERANK: "AI-assisted match",
    ReasonKind.NEGATIVE_EVIDENCE: "Resolved with additional analysis",
}


def describe_reason(reason: Reason) -> str:
    """Return a plain-language message for a reason record.

    Args:
        reason: Any reason record.

    Returns:
        A short message without technical jargon.
    """
    if reason.kind is ReasonKind.HASH_OVERLAP:
        if reason.overlap >= 3:
            return "Verified by multiple file signatures"
        return "Verified by file signature"
    return _REASON_MESSAGES[reason.kind]


def _lead_candidate(result: StagedMatchResult) -> Optional[Candidate]:
    if result.best is not None:
        return result.best
    if result.candidates_topk:
        return result.candidates_topk[0]
    return None


def summarize(result: StagedMatchResult) -> str:
    """Build a human-friendly one-line summary of a result.

    Args:
        result: The match result to summarize.

    Returns:
        Summary string. AutoMatched results use the message of the
        best candidate's most significant reason.
    """
    candidate = _lead_candidate(result)

    if result.status is MatchStatus.AUTO_MATCHED:
        if candidate is None or not candidate.reasons:
            return "Strong match found"
        lead_reason = min(
            candidate.reasons, key=lambda reason: _SUMMARY_PRIORITY[reason.kind]
        )
        return describe_reason(lead_reason)

    if result.status is MatchStatus.NEEDS_REVIEW:
        if candidate is None:
            return "No strong matches found"
        if len(result.candidates_topk) >= 2:
            return "Multiple possible matches found"
        return f"Possible match: {candidate.name}"

    return "No reliable match found"


def score_to_percentage(candidate: Candidate) -> int:
    """Map a candidate's raw score and tier to a 0-100 percentage.

    The tier selects a band; the raw score (0-35) interpolates within it.
    """
    floor, ceiling = _TIER_BANDS[candidate.confidence]
    raw_ratio = min(max(candidate.score / _SCORE_SPAN, 0.0), 1.0)
    pct = int(floor + raw_ratio * (ceiling - floor))
    return min(max(pct, floor), ceiling)


def confidence_percent(result: StagedMatchResult) -> int:
    """Compute a 0-100 confidence percentage for a result.

    Args:
        result: The match result.

    Returns:
        0 for NoMatch; otherwise the lead candidate's percentage, with
        defaults of 10 (review) and 80 (auto) when no candidate exists.
    """
    if result.status is MatchStatus.NO_MATCH:
        return 0

    candidate = _lead_candidate(result)
    if candidate is None:
        return 80 if result.status is MatchStatus.AUTO_MATCHED else 10
    return score_to_percentage(candidate)
