"""Candidate pool seeding from the inverted indexes.

Only catalog entries that share at least one observed hash or token with
the folder ever enter scoring. Sources are visited rarest first (shortest
posting list, then key) so that a tight seed cap keeps the most specific
candidates.
"""

from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Set, Tuple

from modmatcher.catalog.indexes import MatcherIndexes
from modmatcher.models.data_models import FolderSignals

DEFAULT_SEED_CAP = 200
DEFAULT_MIN_POOL = 5


@dataclass(frozen=True)
class ObservedTokenBuckets:
    """Observed folder tokens split by where they came from."""
    folder_tokens: FrozenSet[str] = frozenset()
    deep_name_tokens: FrozenSet[str] = frozenset()
    ini_section_tokens: FrozenSet[str] = frozenset()
    ini_content_tokens: FrozenSet[str] = frozenset()

    @classmethod
    def from_signals(cls, signals: FolderSignals) -> "ObservedTokenBuckets":
        return cls(
            folder_tokens=frozenset(signals.folder_tokens),
            deep_name_tokens=frozenset(signals.deep_name_tokens),
            ini_section_tokens=frozenset(signals.ini_section_tokens),
            ini_content_tokens=frozenset(signals.ini_content_tokens),
        )

    def observed_tokens(self) -> FrozenSet[str]:
        """Union of all four buckets."""
        return (
            self.folder_tokens
            | self.deep_name_tokens
            | self.ini_section_tokens
            | self.ini_content_tokens
        )


def seed_candidates(
    indexes: MatcherIndexes,
    observed_hashes: Iterable[str],
    observed_tokens: Iterable[str],
    seed_cap: int = DEFAULT_SEED_CAP,
) -> List[int]:
    """Seed the candidate pool from hash and token postings.

    Args:
        indexes: Catalog indexes.
        observed_hashes: Normalized hashes seen in the folder.
        observed_tokens: Tokens seen in the folder.
        seed_cap: Maximum pool size.

    Returns:
        Sorted, unique entry ids. Empty when nothing observed is indexed.

    Raises:
        ValueError: If seed_cap is negative.
    """
    if seed_cap < 0:
        raise ValueError(f"seed_cap must be non-negative, got {seed_cap}")
    if seed_cap == 0:
        return []

    sources: List[Tuple[str, List[int]]] = []
    seen: Set[str] = set()

    for hash_value in observed_hashes:
        posting = indexes.hash_index.get(hash_value)
        if posting and f"h:{hash_value}" not in seen:
            seen.add(f"h:{hash_value}")
            sources.append((hash_value, posting))

    for token in observed_tokens:
        posting = indexes.token_index.get(token)
        if posting and f"t:{token}" not in seen:
            seen.add(f"t:{token}")
            sources.append((token, posting))

    return sorted(_fill_pool(set(), _rarest_first(sources), seed_cap))


def replenish_candidates(
    indexes: MatcherIndexes,
    pool: Iterable[int],
    buckets: ObservedTokenBuckets,
    min_pool: int = DEFAULT_MIN_POOL,
    seed_cap: int = DEFAULT_SEED_CAP,
) -> List[int]:
    """Top up a small pool from token postings.

    Nothing is added when the pool already reaches `min_pool` or
    `seed_cap`.

    Returns:
        Sorted, unique entry ids.
    """
    current = set(pool)
    if len(current) >= min_pool or len(current) >= seed_cap:
        return sorted(current)

    sources = [
        (token, indexes.token_index[token])
        for token in buckets.observed_tokens()
        if indexes.token_index.get(token)
    ]
    return sorted(_fill_pool(current, _rarest_first(sources), seed_cap))


def _rarest_first(sources: List[Tuple[str, List[int]]]) -> List[Tuple[str, List[int]]]:
    return sorted(sources, key=lambda source: (len(source[1]), source[0]))


def _fill_pool(
    pool: Set[int], sources: List[Tuple[str, List[int]]], seed_cap: int
) -> Set[int]:
    for _key, posting in sources:
        if len(pool) >= seed_cap:
            break
        for entry_id in posting:
            if len(pool) >= seed_cap:
                break
            pool.add(entry_id)
    return pool
