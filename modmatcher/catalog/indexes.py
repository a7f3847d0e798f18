"""Inverted token and hash indexes over the catalog.

Posting lists map a token or normalized hash to the sorted, deduplicated
list of catalog entry ids that carry it. Document frequencies feed the
IDF-style rarity weight used by the candidate pool and weighted scoring.
"""

import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Set


@dataclass(frozen=True)
class MatcherIndexes:
    """Read-only token/hash posting lists and document frequencies."""
    token_index: Dict[str, List[int]] = field(default_factory=dict)
    hash_index: Dict[str, List[int]] = field(default_factory=dict)
    token_df: Dict[str, int] = field(default_factory=dict)
    hash_df: Dict[str, int] = field(default_factory=dict)
    entry_count: int = 0

    @classmethod
    def build(
        cls,
        keywords: Sequence[Iterable[str]],
        hash_sets: Sequence[Iterable[str]],
    ) -> "MatcherIndexes":
        """Build indexes from per-entry token and hash collections.

        Args:
            keywords: Token collection for each entry, by entry id.
            hash_sets: Normalized hash collection for each entry, by entry id.

        Returns:
            A new MatcherIndexes instance.

        Raises:
            ValueError: If the two sequences differ in length.
        """
        if len(keywords) != len(hash_sets):
            raise ValueError(
                f"keywords and hash_sets must align, got {len(keywords)} and {len(hash_sets)}"
            )

        token_postings: Dict[str, Set[int]] = defaultdict(set)
        hash_postings: Dict[str, Set[int]] = defaultdict(set)

        for entry_id, tokens in enumerate(keywords):
            for token in tokens:
                if token:
                    token_postings[token].add(entry_id)

        for entry_id, hashes in enumerate(hash_sets):
            for hash_value in hashes:
                if hash_value:
                    hash_postings[hash_value].add(entry_id)

        token_index = {key: sorted(ids) for key, ids in token_postings.items()}
        hash_index = {key: sorted(ids) for key, ids in hash_postings.items()}

        return cls(
            token_index=token_index,
            hash_index=hash_index,
            token_df={key: len(ids) for key, ids in token_index.items()},
            hash_df={key: len(ids) for key, ids in hash_index.items()},
            entry_count=len(keywords),
        )

    def token_idf(self, token: str) -> float:
        return _idf(self.entry_count, self.token_df.get(token, 0))

    def hash_idf(self, hash_value: str) -> float:
        return _idf(self.entry_count, self.hash_df.get(hash_value, 0))


def _idf(entry_count: int, df: int) -> float:
    """ln((N+1)/(df+1)) + 1"""
    return math.log((entry_count + 1) / (df + 1)) + 1.0
