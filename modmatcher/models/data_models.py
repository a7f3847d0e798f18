"""
Core data models for the mod folder matcher.

This module contains the following types:
- MatchMode, MatchStatus, Confidence: enums driving the staged matcher
- Variant, CatalogEntry: catalog records loaded from JSON
- FileInfo, FolderContent, ModFolder: walker output for one mod folder
- FolderSignals: budgeted evidence extracted from a folder
- ScoreState: mutable per-candidate running score during one match
- Candidate, Evidence, StagedMatchResult: immutable match output
- FolderMatchRecord, MatchRunSummary: batch results for the orchestrator
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

from .match_reason import Reason


class MatchMode(Enum):
    """Signal budget and scoring profile for a match run."""
    QUICK = "quick"                   # Root INI files only, shallow walk
    FULL = "full"                     # Deeper walk, shared 1 MiB INI budget


class MatchStatus(Enum):
    """Terminal outcome of a staged match."""
    AUTO_MATCHED = "auto_matched"     # Accepted without review
    NEEDS_REVIEW = "needs_review"     # Top candidates returned for review
    NO_MATCH = "no_match"             # Nothing reliable found


class Confidence(IntEnum):
    """Ordered confidence tiers; comparisons follow the tier order."""
    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    EXCELLENT = 4


@dataclass(frozen=True)
class Variant:
    """A named skin/variant of a catalog entry."""
    name: str                                         # Variant display name
    aliases: List[str] = field(default_factory=list)  # Alternate names
    thumbnail_path: Optional[str] = None              # Per-variant thumbnail
    rarity: Optional[str] = None                      # Free-form rarity label


@dataclass(frozen=True)
class CatalogEntry:
    """Represents one known game object in the catalog."""
    name: str                                         # Display name
    object_type: str = "Other"                        # Character, Weapon, UI, ...
    tags: List[str] = field(default_factory=list)     # Free-text tags/aliases
    variants: List[Variant] = field(default_factory=list)
    thumbnail_path: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    hash_db: Dict[str, List[str]] = field(default_factory=dict)  # Variant -> hashes


@dataclass(frozen=True)
class FileInfo:
    """A file found while walking a mod folder."""
    path: Path                        # Full path
    name: str                         # File name with extension
    extension: str                    # Lowercase extension without dot


@dataclass
class FolderContent:
    """Walker output for one folder."""
    subfolder_names: List[str] = field(default_factory=list)
    files: List[FileInfo] = field(default_factory=list)
    ini_files: List[Path] = field(default_factory=list)


@dataclass(frozen=True)
class ModFolder:
    """An immediate child folder of the mods directory."""
    path: Path                        # Full path to folder
    raw_name: str                     # Name on disk
    display_name: str                 # Name without DISABLED prefix
    is_disabled: bool                 # Has DISABLED prefix


@dataclass(frozen=True)
class FolderSignals:
    """Budgeted evidence snapshot for one (folder, mode) pair."""
    folder_tokens: Tuple[str, ...] = ()
    deep_name_tokens: Tuple[str, ...] = ()
    deep_name_strings: Tuple[str, ...] = ()       # Normalized, not tokenized
    folder_name_normalized: str = ""              # Used by root folder rescue only
    ini_derived_strings: Tuple[str, ...] = ()     # Section names + path stems
    ini_section_tokens: Tuple[str, ...] = ()
    ini_content_tokens: Tuple[str, ...] = ()      # Key tokens + path tokens
    ini_hashes: Tuple[str, ...] = ()              # Normalized 8-hex hashes
    scanned_ini_files: int = 0
    scanned_name_items: int = 0
    scanned_ini_bytes: int = 0
    fingerprint: str = ""                         # blake3 hex over all fields


@dataclass
class ScoreState:
    """Running score for one candidate during one match invocation."""
    score: float = 0.0
    max_confidence: Confidence = Confidence.NONE
    reasons: List[Reason] = field(default_factory=list)
    overlap: int = 0                  # Cumulative hash overlap
    unique_overlap: int = 0           # Cumulative unique hash overlap
    applied_stages: Set[str] = field(default_factory=set)


@dataclass(frozen=True)
class Candidate:
    """Immutable snapshot of a scored catalog entry."""
    entry_id: int                     # Index in the catalog
    name: str                         # Entry display name
    object_type: str                  # Entry object type
    score: float                      # Aggregate score (0-100)
    confidence: Confidence            # Confidence tier
    reasons: Tuple[Reason, ...] = ()  # Explanation records

    def sort_key(self) -> Tuple[float, str, int]:
        """Deterministic ordering: score desc, name asc, entry id asc."""
        return (-self.score, self.name, self.entry_id)


@dataclass(frozen=True)
class Evidence:
    """Evidence the best candidate actually matched."""
    matched_hashes: Tuple[str, ...] = ()
    matched_tokens: Tuple[str, ...] = ()
    matched_sections: Tuple[str, ...] = ()
    scanned_ini_files: int = 0
    scanned_name_items: int = 0


@dataclass(frozen=True)
class StagedMatchResult:
    """Outcome of matching one folder against the catalog."""
    status: MatchStatus
    best: Optional[Candidate] = None
    candidates_topk: Tuple[Candidate, ...] = ()
    evidence: Evidence = field(default_factory=Evidence)
    signals: FolderSignals = field(default_factory=FolderSignals)

    @classmethod
    def no_match(cls, signals: Optional[FolderSignals] = None) -> "StagedMatchResult":
        """Build an empty NoMatch result."""
        signals = signals if signals is not None else FolderSignals()
        return cls(
            status=MatchStatus.NO_MATCH,
            evidence=Evidence(
                scanned_ini_files=signals.scanned_ini_files,
                scanned_name_items=signals.scanned_name_items,
            ),
            signals=signals,
        )


@dataclass
class FolderMatchRecord:
    """One folder's result within a batch run."""
    folder: ModFolder                 # Matched mod folder
    result: StagedMatchResult         # Final result
    mode_used: MatchMode              # Last mode that ran
    variant_name: Optional[str] = None  # Detected variant of the best entry


@dataclass
class MatchRunSummary:
    """Summary of a batch run returned by MatchOrchestrator."""
    total_folders: int = 0            # Folders matched
    auto_matched: int = 0             # AutoMatched results
    needs_review: int = 0             # NeedsReview results
    no_match: int = 0                 # NoMatch results
    records: List[FolderMatchRecord] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0     # Total wall time
