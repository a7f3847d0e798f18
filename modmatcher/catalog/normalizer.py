"""Text and hash normalization shared by the catalog and signal collector.

Two text forms are used throughout the matcher:

- Token sets (`preprocess_text`): transliterated, lowercased words used for
  inverted-index lookups and overlap ratios.
- Continuous strings (`normalize_for_matching`): noise-stripped names used
  for exact and substring comparison.

Example:
    >>> sorted(preprocess_text("[Mod] Raiden_Shogun-v2"))
    ['mod', 'raiden', 'shogun', 'v2']
    >>> normalize_for_matching("DISABLED Raiden Shogun Mod v2")
    'raiden shogun'
    >>> normalize_hash("0x00000000D94C8962")
    'd94c8962'
"""

import re
from typing import Iterable, Optional, Set

from rapidfuzz.utils import default_process
from text_unidecode import unidecode

# Prefixes stripped from folder names before substring matching
NOISE_PREFIXES = ("[mod]", "[skin]", "[fix]", "[update]", "disabled ")

# Words dropped from continuous match strings
NOISE_SKIPWORDS = frozenset(
    {"mod", "mods", "skin", "fix", "update", "ver", "version", "v", "by", "disabled"}
)

DISABLED_PREFIX = "DISABLED "

_HEX_PATTERN = re.compile(r"^[0-9a-f]{8}$")
_DIGIT_PATTERN = re.compile(r"[0-9]")


def preprocess_text(text: str) -> Set[str]:
    """Tokenize text into a lowercase ASCII token set.

    Args:
        text: Raw folder, file, or catalog name.

    Returns:
        Set of whitespace-separated tokens after transliteration and
        symbol stripping. Empty input yields an empty set.
    """
    if not text:
        return set()
    return set(default_process(unidecode(text)).split())


def strip_noise_prefixes(name: str) -> str:
    """Remove one leading noise prefix such as ``[Mod]`` or ``DISABLED ``."""
    lower = name.lower()
    for prefix in NOISE_PREFIXES:
        if lower.startswith(prefix):
            name = name[len(prefix):]
            break
    return name.strip()


def normalize_for_matching(
    text: str,
    skip_numbers: bool = True,
    skipwords: Iterable[str] = NOISE_SKIPWORDS,
) -> str:
    """Normalize text into a continuous string for substring matching.

    Pipeline: strip noise prefix, transliterate, strip symbols and
    lowercase, drop digits, drop skipwords, collapse whitespace.

    Args:
        text: Raw name to normalize.
        skip_numbers: Drop all digit characters when True.
        skipwords: Words removed from the result.

    Returns:
        The normalized string, possibly empty.
    """
    cleaned = default_process(unidecode(strip_noise_prefixes(text)))
    if skip_numbers:
        cleaned = _DIGIT_PATTERN.sub("", cleaned)
    skip = set(skipwords)
    return " ".join(word for word in cleaned.split() if word not in skip)


def condense(text: str) -> str:
    """Remove spaces so multi-word names match concatenated ones."""
    return text.replace(" ", "")


def normalize_hash(raw: str) -> Optional[str]:
    """Normalize a content hash to lowercase 8-hex form.

    Strips an optional ``0x`` prefix and collapses 16-digit values to
    their low 8 digits.

    Args:
        raw: Hash text as written in an INI file or catalog.

    Returns:
        The normalized hash, or None when the value is malformed.
    """
    value = raw.strip().lower()
    if len(value) > 2 and value.startswith("0x"):
        value = value[2:]
    if len(value) == 16:
        value = value[8:]
    if not _HEX_PATTERN.match(value):
        return None
    return value


def is_disabled_folder(name: str) -> bool:
    return name.startswith(DISABLED_PREFIX)


def normalize_display_name(name: str) -> str:
    if name.startswith(DISABLED_PREFIX):
        name = name[len(DISABLED_PREFIX):]
    return name.strip()
