"""Budgeted signal collection for one mod folder.

Turns a folder's walker output into a FolderSignals snapshot: folder name
tokens, deep name tokens and strings from subfolders and file stems, INI
structural tokens, INI hashes, and a blake3 fingerprint over all of it.

Quick mode reads at most two root INI files and 256 KiB from each. Full mode
reads up to ten INI files within three levels, sharing a 1 MiB byte budget
that may cut the last file short. Running out of budget is not an error.

Example:
    >>> scanner = ModFolderScanner()
    >>> budget = SignalBudget.for_mode(MatchMode.FULL)
    >>> content = scanner.scan_folder_content(folder, budget.max_depth)
    >>> signals = collect_signals(folder, content, MatchMode.FULL)
    >>> signals.scanned_ini_files
    3
"""

import logging
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple

from blake3 import blake3

from modmatcher.catalog.normalizer import normalize_for_matching, preprocess_text
from modmatcher.models.data_models import FolderContent, FolderSignals, MatchMode

from .ini_content import decode_ini_bytes, extract_hashes_from_ini_text, read_ini_bytes
from .ini_tokenizer import IniTokenizationConfig, extract_structural_ini_tokens

logger = logging.getLogger(__name__)

QUICK_MAX_INI_FILES = 2
QUICK_MAX_INI_BYTES_PER_FILE = 256 * 1024
QUICK_MAX_NAME_ITEMS = 150
FULL_MAX_INI_FILES = 10
FULL_MAX_TOTAL_INI_BYTES = 1024 * 1024
FULL_MAX_NAME_ITEMS = 500

# Shortest INI-derived string kept for substring matching
MIN_DERIVED_STRING_LEN = 3


@dataclass(frozen=True)
class SignalBudget:
    """Read limits for one match mode."""
    max_depth: int                                  # Deepest INI file considered
    root_ini_only: bool                             # Only depth-1 INI files
    max_ini_files: int
    max_ini_bytes_per_file: Optional[int] = None
    max_ini_bytes_total: Optional[int] = None       # Shared across files
    max_name_items: int = QUICK_MAX_NAME_ITEMS

    def __post_init__(self) -> None:
        for name in ("max_depth", "max_ini_files", "max_name_items"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        for name in ("max_ini_bytes_per_file", "max_ini_bytes_total"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")

    @classmethod
    def for_mode(cls, mode: MatchMode) -> "SignalBudget":
        if mode == MatchMode.QUICK:
            return cls(
                max_depth=1,
                root_ini_only=True,
                max_ini_files=QUICK_MAX_INI_FILES,
                max_ini_bytes_per_file=QUICK_MAX_INI_BYTES_PER_FILE,
                max_name_items=QUICK_MAX_NAME_ITEMS,
            )
        return cls(
            max_depth=3,
            root_ini_only=False,
            max_ini_files=FULL_MAX_INI_FILES,
            max_ini_bytes_total=FULL_MAX_TOTAL_INI_BYTES,
            max_name_items=FULL_MAX_NAME_ITEMS,
        )


def collect_signals(
    folder: Path,
    content: FolderContent,
    mode: MatchMode,
    ini_config: Optional[IniTokenizationConfig] = None,
    budget: Optional[SignalBudget] = None,
) -> FolderSignals:
    """Collect budgeted signals from a walked mod folder.

    Args:
        folder: The mod folder root.
        content: Walker output for the folder.
        mode: Match mode selecting the default budget.
        ini_config: INI tokenizer additions; defaults are used when None.
        budget: Explicit budget overriding the mode default.

    Returns:
        A FolderSignals snapshot with sorted fields and a fingerprint.
    """
    ini_config = ini_config if ini_config is not None else IniTokenizationConfig()
    budget = budget if budget is not None else SignalBudget.for_mode(mode)

    folder_tokens = preprocess_text(folder.name)
    folder_name_normalized = normalize_for_matching(folder.name)

    name_items = _collect_name_items(content, budget.max_name_items)
    deep_name_tokens: Set[str] = set()
    deep_name_strings: Set[str] = set()
    for item in name_items:
        deep_name_tokens |= preprocess_text(item)
        normalized = normalize_for_matching(item)
        if normalized:
            deep_name_strings.add(normalized)

    section_tokens: Set[str] = set()
    content_tokens: Set[str] = set()
    derived_strings: Set[str] = set()
    hashes: Set[str] = set()
    scanned_ini_files = 0
    scanned_ini_bytes = 0

    for ini_path in _select_ini_files(folder, content.ini_files, budget):
        per_file_cap = budget.max_ini_bytes_per_file
        if budget.max_ini_bytes_total is not None:
            remaining = budget.max_ini_bytes_total - scanned_ini_bytes
            if remaining <= 0:
                break
            per_file_cap = remaining if per_file_cap is None else min(per_file_cap, remaining)

        try:
            data = read_ini_bytes(ini_path, per_file_cap)
        except OSError as e:
            logger.warning(f"Skipping unreadable INI file {ini_path}: {e}")
            continue

        scanned_ini_files += 1
        scanned_ini_bytes += len(data)
        text = decode_ini_bytes(data)

        hashes.update(extract_hashes_from_ini_text(text))

        buckets = extract_structural_ini_tokens(text, ini_config)
        section_tokens.update(buckets.section_tokens)
        content_tokens.update(buckets.key_tokens)
        content_tokens.update(buckets.path_tokens)

        for raw in buckets.section_strings + buckets.path_strings:
            normalized = normalize_for_matching(raw)
            if len(normalized) >= MIN_DERIVED_STRING_LEN:
                derived_strings.add(normalized)

    fields = dict(
        folder_tokens=tuple(sorted(folder_tokens)),
        deep_name_tokens=tuple(sorted(deep_name_tokens)),
        deep_name_strings=tuple(sorted(deep_name_strings)),
        folder_name_normalized=folder_name_normalized,
        ini_derived_strings=tuple(sorted(derived_strings)),
        ini_section_tokens=tuple(sorted(section_tokens)),
        ini_content_tokens=tuple(sorted(content_tokens)),
        ini_hashes=tuple(sorted(hashes)),
        scanned_ini_files=scanned_ini_files,
        scanned_name_items=len(name_items),
        scanned_ini_bytes=scanned_ini_bytes,
    )
    signals = FolderSignals(**fields)
    return FolderSignals(**fields, fingerprint=compute_fingerprint(signals))


def compute_fingerprint(signals: FolderSignals) -> str:
    """blake3 hex digest over every signal field and counter.

    Each list is written as a label followed by length-prefixed UTF-8
    values, so field boundaries cannot collide.
    """
    hasher = blake3()
    _hash_labeled(hasher, b"folder", signals.folder_tokens)
    _hash_labeled(hasher, b"normalized", (signals.folder_name_normalized,))
    _hash_labeled(hasher, b"deep", signals.deep_name_tokens)
    _hash_labeled(hasher, b"strings", signals.deep_name_strings)
    _hash_labeled(hasher, b"iniderived", signals.ini_derived_strings)
    _hash_labeled(hasher, b"section", signals.ini_section_tokens)
    _hash_labeled(hasher, b"content", signals.ini_content_tokens)
    _hash_labeled(hasher, b"hash", signals.ini_hashes)
    hasher.update(_u64(signals.scanned_ini_files))
    hasher.update(_u64(signals.scanned_name_items))
    hasher.update(_u64(signals.scanned_ini_bytes))
    return hasher.hexdigest()


def _hash_labeled(hasher, label: bytes, values: Iterable[str]) -> None:
    hasher.update(label)
    for value in values:
        encoded = value.encode("utf-8")
        hasher.update(_u64(len(encoded)))
        hasher.update(encoded)


def _u64(value: int) -> bytes:
    return struct.pack("<Q", value)


def _collect_name_items(content: FolderContent, max_items: int) -> List[str]:
    items: Set[str] = set(name for name in content.subfolder_names if name)
    for file_info in content.files:
        stem = file_info.path.stem or Path(file_info.name).stem
        if stem:
            items.add(stem)
    return sorted(items)[:max_items]


def _select_ini_files(
    folder: Path, ini_files: Iterable[Path], budget: SignalBudget
) -> List[Path]:
    selected: List[Tuple[str, Path]] = []
    for ini_path in ini_files:
        try:
            relative = ini_path.relative_to(folder)
        except ValueError:
            continue

        depth = len(relative.parts)
        if budget.root_ini_only:
            if depth != 1:
                continue
        elif depth > budget.max_depth:
            continue

        selected.append((relative.as_posix(), ini_path))

    selected.sort(key=lambda item: item[0])
    return [path for _, path in selected[: budget.max_ini_files]]
