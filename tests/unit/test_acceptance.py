"""
Unit tests for stage acceptance, review finalization, root folder rescue
and variant detection.

Tests cover:
- Threshold, primary evidence and margin gates
- Margin conflicts and multi-entity packs forcing review
- Negative-evidence and object-type penalties applied to snapshots only
- Finalization into NeedsReview or NoMatch
- Root folder name rescue
- Variant detection by hashes and aliases
"""

import pytest

from modmatcher.catalog import Catalog
from modmatcher.matching import (
    StageAcceptConfig,
    StageContext,
    apply_root_folder_rescue,
    build_evidence,
    finalize_review,
    resolve_variant,
    try_stage_accept,
)
from modmatcher.matching.acceptance import (
    FinalizeConfig,
    build_ambiguity_snapshot,
    collect_candidates_with_controls,
    has_primary_evidence_for_candidate,
    sort_candidates,
)
from modmatcher.models import (
    Candidate,
    Confidence,
    FolderNameRescue,
    FolderSignals,
    HashOverlap,
    MatchMode,
    MatchStatus,
    NegativeEvidence,
    ScoreState,
    TokenOverlap,
)


def accept_config(
    threshold: float = 10.0, margin: float = 6.0, review_min: float = 10.0
) -> StageAcceptConfig:
    return StageAcceptConfig(
        mode=MatchMode.QUICK,
        threshold=threshold,
        margin=margin,
        review_min_score=review_min,
        top_k=5,
        best_confidence=Confidence.HIGH,
    )


def hash_state(score: float) -> ScoreState:
    return ScoreState(score=score, reasons=[HashOverlap(overlap=1, unique_overlap=1)])


def overlap_state(score: float) -> ScoreState:
    return ScoreState(score=score, reasons=[TokenOverlap(ratio=1.0)])


def candidate(entry_id: int, name: str, score: float, reasons=()) -> Candidate:
    return Candidate(
        entry_id=entry_id,
        name=name,
        object_type="Character",
        score=score,
        confidence=Confidence.LOW,
        reasons=tuple(reasons),
    )


@pytest.fixture
def quick_ctx(sample_catalog: Catalog) -> StageContext:
    return StageContext.build(sample_catalog, FolderSignals(), MatchMode.QUICK)


# =============================================================================
# Acceptance gate
# =============================================================================

@pytest.mark.unit
class TestTryStageAccept:
    """Tests for the per-stage acceptance gate."""

    def test_unique_leader_is_accepted_with_floor(self, quick_ctx: StageContext):
        states = {0: hash_state(12.0), 1: overlap_state(2.0)}

        result = try_stage_accept(quick_ctx, states, accept_config())

        assert result.status == MatchStatus.AUTO_MATCHED
        assert result.best.entry_id == 0
        assert result.best.confidence == Confidence.HIGH
        assert [c.entry_id for c in result.candidates_topk] == [0, 1]

    def test_below_threshold_continues(self, quick_ctx: StageContext):
        assert try_stage_accept(quick_ctx, {0: hash_state(9.0)}, accept_config()) is None

    def test_no_primary_evidence_continues(self, quick_ctx: StageContext):
        assert try_stage_accept(quick_ctx, {1: overlap_state(30.0)}, accept_config()) is None

    def test_insufficient_margin_continues(self, quick_ctx: StageContext):
        states = {0: hash_state(12.0), 1: overlap_state(8.0)}

        assert try_stage_accept(quick_ctx, states, accept_config()) is None

    def test_margin_conflict_forces_review(self, quick_ctx: StageContext):
        states = {0: hash_state(12.0), 1: hash_state(8.0)}

        result = try_stage_accept(quick_ctx, states, accept_config())

        assert result.status == MatchStatus.NEEDS_REVIEW
        assert len(result.candidates_topk) == 2

    def test_multi_entity_pack_forces_review(self, quick_ctx: StageContext):
        states = {0: hash_state(30.0), 1: hash_state(12.0)}

        result = try_stage_accept(quick_ctx, states, accept_config())

        assert result.status == MatchStatus.NEEDS_REVIEW
        assert result.best.confidence == Confidence.LOW

    def test_empty_states(self, quick_ctx: StageContext):
        assert try_stage_accept(quick_ctx, {}, accept_config()) is None

    def test_states_are_not_modified(self, quick_ctx: StageContext):
        states = {0: hash_state(12.0)}

        try_stage_accept(quick_ctx, states, accept_config())

        assert states[0].score == 12.0
        assert states[0].reasons == [HashOverlap(overlap=1, unique_overlap=1)]

    @pytest.mark.parametrize("kwargs", [{"threshold": -1.0}, {"margin": -1.0}, {"review_min": -1.0}])
    def test_invalid_config(self, kwargs):
        with pytest.raises(ValueError):
            accept_config(**kwargs)

    def test_invalid_top_k(self):
        with pytest.raises(ValueError, match="top_k"):
            StageAcceptConfig(MatchMode.QUICK, 10.0, 6.0, 10.0, 0, Confidence.HIGH)


@pytest.mark.unit
class TestRankingControls:
    """Tests for snapshot-only penalties."""

    def test_negative_evidence_penalty(self, sample_catalog: Catalog):
        ctx = StageContext.build(
            sample_catalog, FolderSignals(folder_tokens=("raiden", "zhongli")), MatchMode.QUICK
        )
        states = {0: hash_state(12.0)}

        snapshot = collect_candidates_with_controls(ctx, states)

        assert snapshot[0].score == pytest.approx(10.5)
        assert NegativeEvidence(foreign_strong_hits=1) in snapshot[0].reasons
        assert states[0].score == 12.0

    def test_object_type_mismatch_penalty(self, sample_catalog: Catalog):
        ctx = StageContext.build(
            sample_catalog, FolderSignals(), MatchMode.QUICK, object_type_hint="weapon"
        )
        states = {0: hash_state(12.0), 2: hash_state(11.0)}

        snapshot = collect_candidates_with_controls(ctx, states)

        assert [(c.entry_id, c.score) for c in snapshot] == [(2, 11.0), (0, 10.0)]

    def test_sort_is_deterministic(self):
        ordered = sort_candidates(
            [candidate(3, "B", 5.0), candidate(2, "A", 5.0), candidate(1, "A", 5.0), candidate(0, "Z", 9.0)]
        )

        assert [c.entry_id for c in ordered] == [0, 1, 2, 3]


@pytest.mark.unit
class TestPrimaryEvidenceForCandidate:
    """Tests for the acceptance-time primary evidence check."""

    def test_ini_token_hit(self, sample_catalog: Catalog):
        ctx = StageContext.build(
            sample_catalog, FolderSignals(ini_content_tokens=("raiden",)), MatchMode.QUICK
        )
        assert has_primary_evidence_for_candidate(
            candidate(0, "Raiden Shogun", 10.0), ctx.entry_tokens(0), ctx.buckets
        )

    def test_deep_hits(self, sample_catalog: Catalog):
        many = tuple(f"filler{i}" for i in range(20))
        two_hits = StageContext.build(
            sample_catalog, FolderSignals(deep_name_tokens=many + ("raiden", "shogun")), MatchMode.QUICK
        )
        one_hit_sparse = StageContext.build(
            sample_catalog, FolderSignals(deep_name_tokens=many[:9] + ("raiden",)), MatchMode.QUICK
        )
        one_hit_dense = StageContext.build(
            sample_catalog, FolderSignals(deep_name_tokens=many[:4] + ("raiden",)), MatchMode.QUICK
        )
        entry_tokens = sample_catalog.entry_tokens(0)
        lead = candidate(0, "Raiden Shogun", 10.0)

        assert has_primary_evidence_for_candidate(lead, entry_tokens, two_hits.buckets)
        assert not has_primary_evidence_for_candidate(lead, entry_tokens, one_hit_sparse.buckets)
        assert has_primary_evidence_for_candidate(lead, entry_tokens, one_hit_dense.buckets)

    def test_overlap_only_is_not_primary(self, quick_ctx: StageContext):
        lead = candidate(0, "Raiden Shogun", 20.0, [TokenOverlap(ratio=1.0)])
        assert not has_primary_evidence_for_candidate(lead, quick_ctx.entry_tokens(0), quick_ctx.buckets)


@pytest.mark.unit
class TestAmbiguitySnapshot:
    """Tests for ambiguity signals."""

    def test_same_base_variant(self):
        snapshot = build_ambiguity_snapshot(
            [candidate(0, "Raiden", 20.0), candidate(1, "Raiden Boss", 12.0)],
            [True, True],
            review_min_score=10.0,
        )

        assert snapshot.same_base_variant
        assert snapshot.forces_review

    def test_ultra_close_any(self):
        snapshot = build_ambiguity_snapshot(
            [candidate(0, "Keqing", 12.0), candidate(1, "Fischl", 11.8)],
            [True, False],
            review_min_score=10.0,
        )

        assert snapshot.ultra_close_any
        assert not snapshot.ultra_close_primary

    def test_single_candidate(self):
        snapshot = build_ambiguity_snapshot([candidate(0, "Keqing", 12.0)], [True], 10.0)

        assert not snapshot.forces_review


# =============================================================================
# Finalization
# =============================================================================

@pytest.mark.unit
class TestFinalizeReview:
    """Tests for the final decision after all stages."""

    def config(self) -> FinalizeConfig:
        return FinalizeConfig(mode=MatchMode.QUICK, review_min_score=10.0, top_k=1)

    def test_review_when_leader_reaches_minimum(self, quick_ctx: StageContext):
        states = {2: overlap_state(16.0), 3: overlap_state(16.0)}

        result = finalize_review(quick_ctx, states, self.config())

        assert result.status == MatchStatus.NEEDS_REVIEW
        assert [c.name for c in result.candidates_topk] == ["Nightblade"]

    def test_no_match_below_minimum(self, quick_ctx: StageContext):
        result = finalize_review(quick_ctx, {1: overlap_state(6.0)}, self.config())

        assert result.status == MatchStatus.NO_MATCH
        assert result.best is None
        assert result.candidates_topk == ()

    def test_no_candidates(self, quick_ctx: StageContext):
        result = finalize_review(quick_ctx, {}, self.config())

        assert result.status == MatchStatus.NO_MATCH

    def test_evidence_lists_matched_items(self, sample_catalog: Catalog):
        signals = FolderSignals(
            folder_tokens=("pack", "raiden"),
            ini_section_tokens=("body", "raiden"),
            ini_hashes=("aa11bb22", "d94c8962"),
            scanned_ini_files=1,
        )

        evidence = build_evidence(sample_catalog, signals, candidate(0, "Raiden Shogun", 12.0))

        assert evidence.matched_hashes == ("d94c8962",)
        assert evidence.matched_tokens == ("raiden",)
        assert evidence.matched_sections == ("raiden",)
        assert evidence.scanned_ini_files == 1


# =============================================================================
# Root folder rescue
# =============================================================================

@pytest.mark.unit
class TestRootFolderRescue:
    """Tests for last-resort rescue by folder name."""

    def test_condensed_name_hit(self, sample_catalog: Catalog):
        signals = FolderSignals(folder_name_normalized="raidenshogunpack")

        result = apply_root_folder_rescue(sample_catalog, signals)

        assert result.status == MatchStatus.NEEDS_REVIEW
        assert result.best.name == "Raiden Shogun"
        assert result.best.confidence == Confidence.MEDIUM
        assert result.best.score == 8.0
        assert result.best.reasons == (FolderNameRescue(matched_term="raidenshogunpack"),)

    def test_every_matching_entry_is_returned(self, sample_catalog: Catalog):
        result = apply_root_folder_rescue(
            sample_catalog, FolderSignals(folder_name_normalized="nightblade")
        )

        assert [c.name for c in result.candidates_topk] == ["Nightblade", "Nightblade Cloak"]

    def test_short_name_is_never_rescued(self, sample_catalog: Catalog):
        result = apply_root_folder_rescue(sample_catalog, FolderSignals(folder_name_normalized="ei"))

        assert result.status == MatchStatus.NO_MATCH

    def test_no_hit(self, sample_catalog: Catalog):
        result = apply_root_folder_rescue(
            sample_catalog, FolderSignals(folder_name_normalized="zhnogli")
        )

        assert result.status == MatchStatus.NO_MATCH


# =============================================================================
# Variant detection
# =============================================================================

@pytest.mark.unit
class TestResolveVariant:
    """Tests for variant detection of a matched entry."""

    @pytest.mark.parametrize(
        "hashes, expected",
        [(("d94c8962",), "Default"), (("1a2b3c4d",), "Wish"), (("1a2b3c4d", "d94c8962"), "Default")],
    )
    def test_by_hash(self, sample_catalog: Catalog, hashes, expected):
        assert resolve_variant(sample_catalog, 0, FolderSignals(ini_hashes=hashes)) == expected

    def test_by_alias(self, sample_catalog: Catalog):
        signals = FolderSignals(folder_tokens=("raiden",), deep_name_tokens=("wish",))

        assert resolve_variant(sample_catalog, 0, signals) == "Wish"

    def test_nothing_detected(self, sample_catalog: Catalog):
        assert resolve_variant(sample_catalog, 0, FolderSignals(folder_tokens=("raiden",))) is None
        assert resolve_variant(sample_catalog, 2, FolderSignals()) is None

    def test_unknown_entry(self, sample_catalog: Catalog):
        with pytest.raises(IndexError):
            resolve_variant(sample_catalog, 99, FolderSignals())
