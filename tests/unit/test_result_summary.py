"""
Unit tests for user-facing result summaries.

Tests cover:
- Plain-language reason messages
- One-line summaries per status
- Tier-banded confidence percentages
"""

import pytest

from modmatcher.models import (
    AiRerank,
    AliasStrict,
    Candidate,
    Confidence,
    DeepNameToken,
    DirectNameSupport,
    FolderNameRescue,
    HashOverlap,
    IniContentToken,
    IniSectionToken,
    MatchStatus,
    NegativeEvidence,
    StagedMatchResult,
    SubstringName,
    TokenOverlap,
)
from modmatcher.models.result_summary import (
    confidence_percent,
    describe_reason,
    score_to_percentage,
    summarize,
)


def candidate(name="Zhongli", score=14.0, confidence=Confidence.LOW, reasons=()) -> Candidate:
    return Candidate(
        entry_id=1,
        name=name,
        object_type="Character",
        score=score,
        confidence=confidence,
        reasons=tuple(reasons),
    )


def result_of(status, *candidates) -> StagedMatchResult:
    return StagedMatchResult(
        status=status,
        best=candidates[0] if candidates else None,
        candidates_topk=tuple(candidates),
    )


@pytest.mark.unit
class TestDescribeReason:
    """Tests for reason messages."""

    @pytest.mark.parametrize(
        "reason, message",
        [
            (HashOverlap(overlap=1, unique_overlap=1), "Verified by file signature"),
            (HashOverlap(overlap=3, unique_overlap=0), "Verified by multiple file signatures"),
            (AliasStrict("Raiden Wish"), "Exact name match"),
            (SubstringName("Raiden Shogun", "file"), "Name pattern detected"),
            (DirectNameSupport("zhongli"), "Name match detected"),
            (TokenOverlap(ratio=0.5), "Strong similarity detected"),
            (DeepNameToken("raiden"), "Matched from folder contents"),
            (IniSectionToken("raiden"), "Matched from config data"),
            (IniContentToken("raiden"), "Matched from config data"),
            (FolderNameRescue("raiden"), "Matched from folder name"),
            (AiRerank(ai_score=0.9), "AI-assisted match"),
            (NegativeEvidence(foreign_strong_hits=2), "Resolved with additional analysis"),
        ],
    )
    def test_messages(self, reason, message):
        assert describe_reason(reason) == message


@pytest.mark.unit
class TestSummarize:
    """Tests for one-line summaries."""

    def test_auto_match_uses_most_significant_reason(self):
        lead = candidate(
            confidence=Confidence.HIGH,
            reasons=[TokenOverlap(ratio=1.0), HashOverlap(overlap=1, unique_overlap=1)],
        )
        assert summarize(result_of(MatchStatus.AUTO_MATCHED, lead)) == "Verified by file signature"

    def test_auto_match_alias_beats_name_support(self):
        lead = candidate(reasons=[DirectNameSupport("raiden"), AliasStrict("Raiden Wish")])
        assert summarize(result_of(MatchStatus.AUTO_MATCHED, lead)) == "Exact name match"

    def test_auto_match_without_reasons(self):
        assert summarize(result_of(MatchStatus.AUTO_MATCHED, candidate())) == "Strong match found"

    def test_review_with_several_candidates(self):
        result = result_of(
            MatchStatus.NEEDS_REVIEW, candidate("Nightblade"), candidate("Nightblade Cloak")
        )
        assert summarize(result) == "Multiple possible matches found"

    def test_review_with_one_candidate(self):
        assert summarize(result_of(MatchStatus.NEEDS_REVIEW, candidate())) == "Possible match: Zhongli"

    def test_review_without_candidates(self):
        assert summarize(result_of(MatchStatus.NEEDS_REVIEW)) == "No strong matches found"

    def test_no_match(self):
        assert summarize(StagedMatchResult.no_match()) == "No reliable match found"


@pytest.mark.unit
class TestConfidencePercent:
    """Tests for percentage mapping."""

    @pytest.mark.parametrize(
        "confidence, floor, ceiling",
        [
            (Confidence.EXCELLENT, 90, 100),
            (Confidence.HIGH, 75, 95),
            (Confidence.MEDIUM, 45, 74),
            (Confidence.LOW, 15, 44),
            (Confidence.NONE, 0, 14),
        ],
    )
    def test_tier_bands(self, confidence, floor, ceiling):
        assert score_to_percentage(candidate(score=0.0, confidence=confidence)) == floor
        assert score_to_percentage(candidate(score=70.0, confidence=confidence)) == ceiling
        assert score_to_percentage(candidate(score=-5.0, confidence=confidence)) == floor

    def test_score_interpolates_within_band(self):
        assert score_to_percentage(candidate(score=17.5, confidence=Confidence.HIGH)) == 85

    def test_no_match_is_zero(self):
        assert confidence_percent(StagedMatchResult.no_match()) == 0

    def test_defaults_without_candidates(self):
        assert confidence_percent(result_of(MatchStatus.AUTO_MATCHED)) == 80
        assert confidence_percent(result_of(MatchStatus.NEEDS_REVIEW)) == 10

    def test_uses_lead_candidate(self):
        lead = candidate(score=35.0, confidence=Confidence.HIGH)
        assert confidence_percent(result_of(MatchStatus.AUTO_MATCHED, lead)) == 95
