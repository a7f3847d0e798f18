"""Catalog package for the mod folder matcher.

This package loads the entity catalog and builds its inverted indexes:

- Catalog: immutable entries, keyword sets and indexes.
- MatcherIndexes: token/hash posting lists with document frequencies.
- load_catalog / parse_catalog: JSON loading, raising CatalogLoadError.
- normalizer helpers shared with the signal collector.

Example:
    >>> from modmatcher.catalog import load_catalog
    >>> catalog = load_catalog(Path("catalog.json"))
    >>> catalog.indexes.token_index["raiden"]
    [0]
"""

from .catalog import Catalog, CatalogLoadError, load_catalog, parse_catalog
from .indexes import MatcherIndexes
from .normalizer import normalize_for_matching, normalize_hash, preprocess_text

__all__ = [
    "Catalog",
    "CatalogLoadError",
    "MatcherIndexes",
    "load_catalog",
    "normalize_for_matching",
    "normalize_hash",
    "parse_catalog",
    "preprocess_text",
]
