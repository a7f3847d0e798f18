"""Variant detection for a matched catalog entry.

Once a folder is matched to an entry, the variant (skin) is picked by INI
hash overlap first: the ``hash_db`` variant sharing the most hashes with
the folder wins. Without a hash hit, the first variant whose alias tokens
all appear among the observed tokens is used.
"""

from typing import Optional

from modmatcher.catalog.catalog import Catalog
from modmatcher.catalog.normalizer import normalize_hash, preprocess_text
from modmatcher.models.data_models import FolderSignals

from .candidate_pool import ObservedTokenBuckets


def resolve_variant(catalog: Catalog, entry_id: int, signals: FolderSignals) -> Optional[str]:
    """Detect which variant of an entry a folder contains.

    Args:
        catalog: The catalog.
        entry_id: Matched entry id.
        signals: Signals of the matched folder.

    Returns:
        The variant name, or None when neither hashes nor aliases point at one.

    Raises:
        IndexError: If entry_id is not in the catalog.
    """
    entry = catalog.entries[entry_id]
    observed_hashes = set(signals.ini_hashes)

    best_name: Optional[str] = None
    best_count = 0
    for variant_name in sorted(entry.hash_db):
        variant_hashes = {
            normalized
            for normalized in (normalize_hash(raw) for raw in entry.hash_db[variant_name])
            if normalized is not None
        }
        count = len(variant_hashes & observed_hashes)
        if count > best_count:
            best_name, best_count = variant_name, count
    if best_name is not None:
        return best_name

    observed_tokens = ObservedTokenBuckets.from_signals(signals).observed_tokens()
    for variant in entry.variants:
        for alias in variant.aliases:
            alias_tokens = preprocess_text(alias)
            if alias_tokens and alias_tokens <= observed_tokens:
                return variant.name
    return None
