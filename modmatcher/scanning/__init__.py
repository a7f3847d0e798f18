"""Folder scanning and signal collection package.

This package turns a mod folder on disk into matcher evidence:

- ModFolderScanner: Lists mod folders and walks their content without
  following symlinks.
- collect_signals / SignalBudget: Budgeted extraction of name tokens, INI
  tokens and INI hashes into a FolderSignals snapshot.
- SignalCache: Per-batch (folder, mode) cache of collected signals.
- INI helpers: mixed-encoding decoding, hash extraction and structural
  tokenization.

Example:
    >>> from modmatcher.scanning import ModFolderScanner, collect_signals
    >>> scanner = ModFolderScanner()
    >>> content = scanner.scan_folder_content(folder, max_depth=1)
    >>> signals = collect_signals(folder, content, MatchMode.QUICK)
"""

from .folder_scanner import SCAN_EXTENSIONS, ModFolderScanner
from .ini_content import decode_ini_bytes, extract_hashes_from_ini_text, read_ini_text
from .ini_tokenizer import IniTokenBuckets, IniTokenizationConfig, extract_structural_ini_tokens
from .signal_cache import SignalCache
from .signal_collector import SignalBudget, collect_signals, compute_fingerprint

__all__ = [
    "IniTokenBuckets",
    "IniTokenizationConfig",
    "ModFolderScanner",
    "SCAN_EXTENSIONS",
    "SignalBudget",
    "SignalCache",
    "collect_signals",
    "compute_fingerprint",
    "decode_ini_bytes",
    "extract_hashes_from_ini_text",
    "extract_structural_ini_tokens",
    "read_ini_text",
]
