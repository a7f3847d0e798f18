"""INI file reading, decoding and hash extraction.

Mod INI files come in mixed encodings. Decoding never fails: a BOM selects
UTF-8 or UTF-16, NUL-heavy BOM-less bytes are read as UTF-16 LE, and
everything else is UTF-8, lossy with replacement characters if needed.

Example:
    >>> extract_hashes_from_ini_text("[TextureOverrideBody]\\nhash = 0xD94C8962\\n")
    ['d94c8962']
"""

import codecs
from pathlib import Path
from typing import List, Optional

from modmatcher.catalog.normalizer import normalize_hash

# Minimum share of NUL bytes in odd positions for BOM-less UTF-16 LE
_UTF16_NUL_RATIO = 0.3


def decode_ini_bytes(data: bytes) -> str:
    """Decode INI bytes with fallbacks; never raises.

    Args:
        data: Raw file bytes, possibly truncated by a read budget.

    Returns:
        Decoded text.
    """
    if not data:
        return ""

    if data.startswith(codecs.BOM_UTF8):
        return data[len(codecs.BOM_UTF8):].decode("utf-8", errors="replace")

    if data.startswith(codecs.BOM_UTF16_LE) or data.startswith(codecs.BOM_UTF16_BE):
        return data.decode("utf-16", errors="replace")

    # NUL-heavy ASCII is valid UTF-8, so the UTF-16 check comes first
    if _looks_like_utf16_le(data):
        return data[: len(data) - len(data) % 2].decode("utf-16-le", errors="replace")

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("utf-8", errors="replace")


def _looks_like_utf16_le(data: bytes) -> bool:
    odd_bytes = data[1::2]
    if not odd_bytes:
        return False
    return odd_bytes.count(0) / len(odd_bytes) >= _UTF16_NUL_RATIO


def read_ini_bytes(path: Path, max_bytes: Optional[int] = None) -> bytes:
    """Read up to `max_bytes` bytes of a file.

    Raises:
        OSError: If the file cannot be opened or read.
    """
    with open(path, "rb") as f:
        if max_bytes is None:
            return f.read()
        return f.read(max_bytes)


def read_ini_text(path: Path, max_bytes: Optional[int] = None) -> str:
    """Read and decode an INI file, honoring an optional byte cap.

    Raises:
        OSError: If the file cannot be opened or read.
    """
    return decode_ini_bytes(read_ini_bytes(path, max_bytes))


def extract_hashes_from_ini_text(text: str) -> List[str]:
    """Extract normalized hashes from ``hash = <value>`` lines.

    Only lines whose key is exactly ``hash`` (case-insensitive) count.
    Values may carry a ``0x`` prefix or be 16 hex digits long; invalid
    values are ignored.

    Args:
        text: Decoded INI text.

    Returns:
        Normalized 8-hex hashes in file order (may contain duplicates).
    """
    hashes: List[str] = []

    for line in text.splitlines():
        key, sep, value = line.strip().partition("=")
        if not sep or key.strip().lower() != "hash":
            continue

        normalized = normalize_hash(value)
        if normalized is not None:
            hashes.append(normalized)

    return hashes
