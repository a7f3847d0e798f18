"""Per-batch cache of collected folder signals.

Signals are expensive to collect (INI reads, tokenization) and the phased
matcher may need the Quick and Full snapshots of the same folder. The cache
is keyed by (folder path, mode) with the path used exactly as passed in.
It lives for one batch and is not invalidated when files change on disk.
"""

import threading
from pathlib import Path
from typing import Dict, Optional, Tuple

from modmatcher.models.data_models import FolderContent, FolderSignals, MatchMode

from .ini_tokenizer import IniTokenizationConfig
from .signal_collector import collect_signals


class SignalCache:
    """Thread-safe (folder, mode) -> FolderSignals cache with hit/miss stats.

    Attributes:
        _cache: Mapping of (folder path as given, mode) to collected signals.
        _hits: Number of cache hits.
        _misses: Number of cache misses.
    """

    def __init__(self) -> None:
        self._cache: Dict[Tuple[Path, MatchMode], FolderSignals] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, folder: Path, mode: MatchMode) -> Optional[FolderSignals]:
        with self._lock:
            return self._cache.get((folder, mode))

    def get_or_compute(
        self,
        folder: Path,
        content: FolderContent,
        mode: MatchMode,
        ini_config: Optional[IniTokenizationConfig] = None,
    ) -> FolderSignals:
        """Return cached signals or collect and store them.

        Args:
            folder: Mod folder root.
            content: Walker output for the folder.
            mode: Match mode.
            ini_config: INI tokenizer additions.

        Returns:
            The FolderSignals for (folder, mode).
        """
        key = (folder, mode)
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                self._hits += 1
                return cached
            self._misses += 1

        signals = collect_signals(folder, content, mode, ini_config)

        with self._lock:
            return self._cache.setdefault(key, signals)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0

    def get_cache_stats(self) -> Dict[str, int]:
        """Get cache statistics.

        Returns:
            Dictionary with 'size', 'hits' and 'misses' counts.
        """
        with self._lock:
            return {"size": len(self._cache), "hits": self._hits, "misses": self._misses}

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
