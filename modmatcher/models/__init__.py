"""
Models package for the mod folder matcher.

This package provides convenient imports for all data models:
- ReasonKind and the reason records: typed match explanations
- MatchMode, MatchStatus, Confidence: matcher enums
- CatalogEntry, Variant: catalog records
- FolderContent, FileInfo, ModFolder: walker output
- FolderSignals: budgeted folder evidence
- ScoreState, Candidate, Evidence, StagedMatchResult: matcher state and output
- FolderMatchRecord, MatchRunSummary: batch results
"""

from .match_reason import (
    AiRerank,
    AliasStrict,
    DeepNameToken,
    DirectNameSupport,
    FolderNameRescue,
    HashOverlap,
    IniContentToken,
    IniSectionToken,
    NegativeEvidence,
    Reason,
    ReasonKind,
    SubstringName,
    TokenOverlap,
)
from .data_models import (
    Candidate,
    CatalogEntry,
    Confidence,
    Evidence,
    FileInfo,
    FolderContent,
    FolderMatchRecord,
    FolderSignals,
    MatchMode,
    MatchRunSummary,
    MatchStatus,
    ModFolder,
    ScoreState,
    StagedMatchResult,
    Variant,
)

__all__ = [
    "AiRerank",
    "AliasStrict",
    "DeepNameToken",
    "DirectNameSupport",
    "FolderNameRescue",
    "HashOverlap",
    "IniContentToken",
    "IniSectionToken",
    "NegativeEvidence",
    "Reason",
    "ReasonKind",
    "SubstringName",
    "TokenOverlap",
    "Candidate",
    "CatalogEntry",
    "Confidence",
    "Evidence",
    "FileInfo",
    "FolderContent",
    "FolderMatchRecord",
    "FolderSignals",
    "MatchMode",
    "MatchRunSummary",
    "MatchStatus",
    "ModFolder",
    "ScoreState",
    "StagedMatchResult",
    "Variant",
]
