"""Catalog of known game entities and its JSON loader.

The catalog is built once per load and shared read-only afterwards. It owns
the entry list, the per-entry keyword sets (name tokens plus tag tokens),
and the token/hash inverted indexes.

Two JSON shapes are accepted:

- a bare array of entries;
- an object ``{"entries": [...], "hash_db": {"<entry name>": [hashes]}}``,
  optionally with a ``"version"`` string. ``hash_db`` lists are merged into
  each named entry's ``Default`` variant hashes.

Example:
    >>> from modmatcher.catalog import load_catalog
    >>> catalog = load_catalog(Path("catalog.json"))
    >>> catalog.entries[0].name
    'Raiden Shogun'
"""

import json
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple

from modmatcher.models import CatalogEntry, Variant

from .indexes import MatcherIndexes
from .normalizer import normalize_hash, preprocess_text

DEFAULT_VARIANT = "Default"


class CatalogLoadError(ValueError):
    """Raised when a catalog document cannot be read or parsed."""


class Catalog:
    """Immutable collection of catalog entries plus derived indexes.

    Attributes:
        entries: Catalog entries; an entry's id is its position.
        keywords: Token set per entry (name tokens plus tag tokens).
        indexes: Token and hash posting lists.
        version: Optional catalog version string, used in re-rank cache keys.
    """

    def __init__(
        self,
        entries: Sequence[CatalogEntry],
        version: Optional[str] = None,
    ) -> None:
        self._entries: Tuple[CatalogEntry, ...] = tuple(entries)
        self._keywords: Tuple[FrozenSet[str], ...] = tuple(
            frozenset(_entry_keywords(entry)) for entry in self._entries
        )
        hash_sets = [_entry_hashes(entry) for entry in self._entries]
        self._indexes = MatcherIndexes.build(self._keywords, hash_sets)
        self._version = version

    @classmethod
    def build(
        cls, entries: Sequence[CatalogEntry], version: Optional[str] = None
    ) -> "Catalog":
        return cls(entries, version=version)

    @property
    def entries(self) -> Tuple[CatalogEntry, ...]:
        return self._entries

    @property
    def keywords(self) -> Tuple[FrozenSet[str], ...]:
        return self._keywords

    @property
    def indexes(self) -> MatcherIndexes:
        return self._indexes

    @property
    def version(self) -> Optional[str]:
        return self._version

    def __len__(self) -> int:
        return len(self._entries)

    def entry_tokens(self, entry_id: int) -> FrozenSet[str]:
        return self._keywords[entry_id]

    def token_idf(self, token: str) -> float:
        return self._indexes.token_idf(token)

    def hash_idf(self, hash_value: str) -> float:
        return self._indexes.hash_idf(hash_value)


def _entry_keywords(entry: CatalogEntry) -> set:
    tokens = preprocess_text(entry.name)
    for tag in entry.tags:
        tokens |= preprocess_text(tag)
    return tokens


def _entry_hashes(entry: CatalogEntry) -> set:
    hashes = set()
    for variant_hashes in entry.hash_db.values():
        for raw in variant_hashes:
            normalized = normalize_hash(raw)
            if normalized is not None:
                hashes.add(normalized)
    return hashes


def parse_catalog(data: Any, version: Optional[str] = None) -> Catalog:
    """Build a Catalog from a decoded JSON document.

    Args:
        data: Decoded JSON (list of entries or object with ``entries``).
        version: Catalog version; overrides a ``version`` key in the document.

    Returns:
        The built Catalog.

    Raises:
        CatalogLoadError: If the document shape or any entry is invalid.
    """
    merged_hashes: Dict[str, List[str]] = {}

    if isinstance(data, list):
        raw_entries = data
    elif isinstance(data, dict) and "entries" in data:
        raw_entries = data["entries"]
        if not isinstance(raw_entries, list):
            raise CatalogLoadError("Invalid catalog: 'entries' must be an array")
        hash_db = data.get("hash_db") or {}
        if isinstance(hash_db, dict):
            merged_hashes = {
                str(name): [str(value) for value in values]
                for name, values in hash_db.items()
                if isinstance(values, list)
            }
        if version is None and isinstance(data.get("version"), str):
            version = data["version"]
    else:
        raise CatalogLoadError(
            "Invalid catalog format: expected array or object with 'entries' key"
        )

    entries = [
        _parse_entry(raw, index, merged_hashes) for index, raw in enumerate(raw_entries)
    ]
    return Catalog.build(entries, version=version)


def load_catalog(path: Path, version: Optional[str] = None) -> Catalog:
    """Load and build a catalog from a JSON file.

    Args:
        path: Path to the catalog JSON file.
        version: Optional catalog version override.

    Returns:
        The built Catalog.

    Raises:
        CatalogLoadError: If the file cannot be read or parsed.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise CatalogLoadError(f"Failed to read catalog {path}: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise CatalogLoadError(f"Failed to parse catalog JSON {path}: {e}") from e

    return parse_catalog(data, version=version)


def _parse_entry(
    raw: Any, index: int, merged_hashes: Dict[str, List[str]]
) -> CatalogEntry:
    if not isinstance(raw, dict):
        raise CatalogLoadError(f"Catalog entry {index} is not an object")

    name = raw.get("name")
    if not isinstance(name, str):
        raise CatalogLoadError(f"Catalog entry {index} has no 'name' string")

    hash_db: Dict[str, List[str]] = {}
    raw_hash_db = raw.get("hash_db") or {}
    if not isinstance(raw_hash_db, dict):
        raise CatalogLoadError(f"Catalog entry '{name}' has an invalid 'hash_db'")
    for variant_name, values in raw_hash_db.items():
        hash_db[str(variant_name)] = _string_list(values, name, "hash_db")

    if name in merged_hashes:
        hash_db.setdefault(DEFAULT_VARIANT, []).extend(merged_hashes[name])

    variants = []
    for skin in raw.get("custom_skins") or []:
        if not isinstance(skin, dict) or not isinstance(skin.get("name"), str):
            raise CatalogLoadError(f"Catalog entry '{name}' has an invalid custom skin")
        variants.append(
            Variant(
                name=skin["name"],
                aliases=_string_list(skin.get("aliases"), name, "aliases"),
                thumbnail_path=skin.get("thumbnail_skin_path"),
                rarity=skin.get("rarity"),
            )
        )

    metadata = raw.get("metadata")
    return CatalogEntry(
        name=name,
        object_type=raw.get("object_type") or "",
        tags=_string_list(raw.get("tags"), name, "tags"),
        variants=variants,
        thumbnail_path=raw.get("thumbnail_path"),
        metadata=metadata if isinstance(metadata, dict) else {},
        hash_db=hash_db,
    )


def _string_list(value: Any, entry_name: str, field_name: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise CatalogLoadError(
            f"Catalog entry '{entry_name}' field '{field_name}' must be an array"
        )
    return [str(item) for item in value]
