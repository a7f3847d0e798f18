"""Scoring stages applied by the staged matcher.

Every stage has the signature ``(ctx, states) -> None`` and only touches
states already in the candidate pool. A stage records its name in each
state's ``applied_stages`` and skips states that already carry it, so
applying a stage twice within one match has no further effect.

Stages, in profile order:
1. hash - INI content hash overlap, rarer hashes weigh more
2. alias - a variant alias fully covered by folder name tokens
3. substring_a / substring_b - name, alias or tag substrings in file
   names (pass A) or INI-derived strings (pass B)
4. deep - subfolder/file stem token overlap
5. ini - INI section and content token overlap
6. alias_recheck - alias coverage against every observed token (Full)
7. token_overlap / weighted_token_overlap - folder name token overlap
8. direct_name_support - entry name and tag words in the folder name
"""

import math
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional

from modmatcher.catalog.catalog import Catalog
from modmatcher.catalog.normalizer import condense, normalize_for_matching, preprocess_text
from modmatcher.models.data_models import (
    CatalogEntry,
    Confidence,
    FolderSignals,
    MatchMode,
    ScoreState,
)
from modmatcher.models.match_reason import ReasonKind

from .candidate_pool import ObservedTokenBuckets
from .scoring import (
    apply_alias_contribution,
    apply_deep_token_contribution,
    apply_direct_name_support_contribution,
    apply_hash_contribution,
    apply_ini_token_contribution,
    apply_substring_contribution,
    apply_token_overlap_contribution,
)

ScoreStates = Dict[int, ScoreState]

# Shortest name, alias, tag or observed string used in substring tests
MIN_TERM_LEN = 3

QUICK_UNIQUE_HASH_SCORE = 12.0
QUICK_SHARED_HASH_SCORE = 3.0
FULL_HASH_BASE_SCORE = 3.0
FULL_HASH_DF_OFFSET = 1.8
FULL_UNIQUE_HASH_BONUS = 9.0

ALIAS_SCORE = 12.0

SCORE_EXACT_NAME = 16.0
SCORE_NAME_SUBSTRING = 10.0
SCORE_ALIAS_SUBSTRING = 11.0
SCORE_TAG_SUBSTRING = 9.0

DEEP_RATIO_WEIGHT = 16.0
DEEP_PER_TOKEN_BOOST = 1.0
DEEP_TOKEN_BOOST_CAP = 6.0
INI_RATIO_WEIGHT = 8.0
TOKEN_OVERLAP_SCALE = 12.0


@dataclass(frozen=True)
class DirectSupportWeights:
    name_weight: float
    tag_weight: float
    name_cap: float
    tag_cap: float


DIRECT_SUPPORT_WEIGHTS = {
    MatchMode.QUICK: DirectSupportWeights(name_weight=4.0, tag_weight=2.0, name_cap=10.0, tag_cap=6.0),
    MatchMode.FULL: DirectSupportWeights(name_weight=2.0, tag_weight=1.0, name_cap=6.0, tag_cap=4.0),
}


@dataclass(frozen=True)
class StageContext:
    """Read-only inputs shared by every stage of one match invocation."""
    catalog: Catalog
    signals: FolderSignals
    mode: MatchMode
    buckets: ObservedTokenBuckets = field(default_factory=ObservedTokenBuckets)
    object_type_hint: Optional[str] = None

    @classmethod
    def build(
        cls,
        catalog: Catalog,
        signals: FolderSignals,
        mode: MatchMode,
        object_type_hint: Optional[str] = None,
    ) -> "StageContext":
        return cls(
            catalog=catalog,
            signals=signals,
            mode=mode,
            buckets=ObservedTokenBuckets.from_signals(signals),
            object_type_hint=object_type_hint,
        )

    @property
    def observed_tokens(self) -> FrozenSet[str]:
        return self.buckets.observed_tokens()

    def entry(self, entry_id: int) -> CatalogEntry:
        return self.catalog.entries[entry_id]

    def entry_tokens(self, entry_id: int) -> FrozenSet[str]:
        return self.catalog.entry_tokens(entry_id)


def _pending(states: ScoreStates, stage_name: str) -> ScoreStates:
    """Return states not yet touched by `stage_name` and mark them."""
    pending = {}
    for entry_id in sorted(states):
        state = states[entry_id]
        if stage_name in state.applied_stages:
            continue
        state.applied_stages.add(stage_name)
        pending[entry_id] = state
    return pending


def apply_hash_stage(ctx: StageContext, states: ScoreStates) -> None:
    """Score each observed hash against the entries that own it.

    Quick mode scores a hash owned by a single entry far above a shared
    one. Full mode weighs by ``3 / ln(df + 1.8)`` plus a unique bonus.
    """
    pending = _pending(states, "hash")
    indexes = ctx.catalog.indexes

    for hash_value in ctx.signals.ini_hashes:
        posting = indexes.hash_index.get(hash_value)
        if not posting:
            continue

        df = indexes.hash_df.get(hash_value, len(posting))
        if ctx.mode == MatchMode.QUICK:
            is_unique = df <= 1
            delta = QUICK_UNIQUE_HASH_SCORE if is_unique else QUICK_SHARED_HASH_SCORE
        else:
            is_unique = df == 1
            delta = FULL_HASH_BASE_SCORE / math.log(df + FULL_HASH_DF_OFFSET)
            if is_unique:
                delta += FULL_UNIQUE_HASH_BONUS

        for entry_id in posting:
            state = pending.get(entry_id)
            if state is not None:
                apply_hash_contribution(state, 1, 1 if is_unique else 0, delta)


def apply_alias_stage(ctx: StageContext, states: ScoreStates) -> None:
    for entry_id, state in _pending(states, "alias").items():
        alias = _covered_alias(ctx.entry(entry_id), ctx.buckets.folder_tokens)
        if alias is not None:
            apply_alias_contribution(state, alias, ALIAS_SCORE)


def apply_alias_recheck_stage(ctx: StageContext, states: ScoreStates) -> None:
    """Alias coverage against all observed tokens, not just the folder name."""
    observed = ctx.observed_tokens
    for entry_id, state in _pending(states, "alias_recheck").items():
        if any(reason.kind == ReasonKind.ALIAS_STRICT for reason in state.reasons):
            continue
        alias = _covered_alias(ctx.entry(entry_id), observed)
        if alias is not None:
            apply_alias_contribution(state, alias, ALIAS_SCORE)


def _covered_alias(entry: CatalogEntry, tokens: FrozenSet[str]) -> Optional[str]:
    # First alias of the first variant whose tokens are all present
    for variant in entry.variants:
        for alias in variant.aliases:
            alias_tokens = preprocess_text(alias)
            if alias_tokens and alias_tokens <= tokens:
                return alias
    return None


def apply_substring_pass_a(ctx: StageContext, states: ScoreStates) -> None:
    """Substring matching over subfolder names and file stems."""
    _apply_substring(ctx, _pending(states, "substring_a"), ctx.signals.deep_name_strings, "file")


def apply_substring_pass_b(ctx: StageContext, states: ScoreStates) -> None:
    """Substring matching over INI section names and path stems."""
    _apply_substring(ctx, _pending(states, "substring_b"), ctx.signals.ini_derived_strings, "ini")


def _apply_substring(
    ctx: StageContext,
    states: ScoreStates,
    observed_strings: Iterable[str],
    label: str,
) -> None:
    observed_strings = tuple(observed_strings)
    if not observed_strings:
        return

    for entry_id, state in states.items():
        entry = ctx.entry(entry_id)
        name_norm = normalize_for_matching(entry.name)
        name_condensed = condense(name_norm)
        alias_terms = _condensed_terms(a for v in entry.variants for a in v.aliases)
        tag_terms = _condensed_terms(entry.tags)

        for observed in observed_strings:
            if len(name_norm) >= MIN_TERM_LEN and observed == name_norm:
                apply_substring_contribution(
                    state, entry.name, label, SCORE_EXACT_NAME, Confidence.EXCELLENT
                )
                continue

            observed_condensed = condense(observed)
            if len(observed_condensed) < MIN_TERM_LEN:
                continue

            if len(name_condensed) >= MIN_TERM_LEN and _contains_either(
                observed_condensed, name_condensed
            ):
                apply_substring_contribution(
                    state, entry.name, label, SCORE_NAME_SUBSTRING, Confidence.HIGH
                )
                continue

            if any(_contains_either(observed_condensed, term) for term in alias_terms):
                apply_substring_contribution(
                    state, entry.name, f"{label}_alias", SCORE_ALIAS_SUBSTRING, Confidence.HIGH
                )
                continue

            if any(_contains_either(observed_condensed, term) for term in tag_terms):
                apply_substring_contribution(
                    state, entry.name, f"{label}_tag", SCORE_TAG_SUBSTRING, Confidence.HIGH
                )


def _condensed_terms(values: Iterable[str]) -> List[str]:
    terms = []
    for value in values:
        term = condense(normalize_for_matching(value))
        if len(term) >= MIN_TERM_LEN:
            terms.append(term)
    return terms


def _contains_either(left: str, right: str) -> bool:
    return left in right or right in left


def apply_deep_stage(ctx: StageContext, states: ScoreStates) -> None:
    deep_tokens = ctx.buckets.deep_name_tokens
    denominator = max(len(deep_tokens), 1)

    for entry_id, state in _pending(states, "deep").items():
        hits = deep_tokens & ctx.entry_tokens(entry_id)
        apply_deep_token_contribution(
            state,
            hits,
            len(hits) / denominator,
            DEEP_RATIO_WEIGHT,
            DEEP_PER_TOKEN_BOOST,
            DEEP_TOKEN_BOOST_CAP,
        )


def apply_ini_stage(ctx: StageContext, states: ScoreStates) -> None:
    section_tokens = ctx.buckets.ini_section_tokens
    content_tokens = ctx.buckets.ini_content_tokens
    denominator = max(len(section_tokens) + len(content_tokens), 1)

    for entry_id, state in _pending(states, "ini").items():
        entry_tokens = ctx.entry_tokens(entry_id)
        section_hits = section_tokens & entry_tokens
        content_hits = content_tokens & entry_tokens
        ratio = (len(section_hits) + len(content_hits)) / denominator
        apply_ini_token_contribution(state, section_hits, content_hits, ratio, INI_RATIO_WEIGHT)


def apply_token_overlap_stage(ctx: StageContext, states: ScoreStates) -> None:
    folder_tokens = ctx.buckets.folder_tokens
    denominator = max(len(folder_tokens), 1)

    for entry_id, state in _pending(states, "token_overlap").items():
        overlap = len(folder_tokens & ctx.entry_tokens(entry_id))
        apply_token_overlap_contribution(state, overlap / denominator, TOKEN_OVERLAP_SCALE)


def apply_weighted_token_overlap_stage(ctx: StageContext, states: ScoreStates) -> None:
    """Folder token overlap weighted by token rarity (IDF)."""
    folder_tokens = ctx.buckets.folder_tokens
    total_weight = sum(ctx.catalog.token_idf(token) for token in folder_tokens)
    total_weight = max(total_weight, 1e-9)

    for entry_id, state in _pending(states, "weighted_token_overlap").items():
        hits = folder_tokens & ctx.entry_tokens(entry_id)
        overlap_weight = sum(ctx.catalog.token_idf(token) for token in hits)
        apply_token_overlap_contribution(state, overlap_weight / total_weight, TOKEN_OVERLAP_SCALE)


def apply_direct_name_support_stage(ctx: StageContext, states: ScoreStates) -> None:
    weights = DIRECT_SUPPORT_WEIGHTS[ctx.mode]
    folder_tokens = ctx.buckets.folder_tokens

    for entry_id, state in _pending(states, "direct_name_support").items():
        entry = ctx.entry(entry_id)
        name_hits = preprocess_text(entry.name) & folder_tokens
        tag_hits = set()
        for tag in entry.tags:
            tag_hits |= preprocess_text(tag) & folder_tokens

        apply_direct_name_support_contribution(
            state,
            name_hits,
            tag_hits,
            weights.name_weight,
            weights.tag_weight,
            weights.name_cap,
            weights.tag_cap,
        )
