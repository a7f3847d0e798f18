"""Mod Folder Matcher - staged matching of mod folders against a catalog.

A Python application that classifies messily named game mod folders against
a curated catalog of known entities using content hashes, name and INI
tokens, and staged acceptance rules.
"""

__version__ = "1.0.0"

from .models import (
    Candidate,
    CatalogEntry,
    Confidence,
    FolderSignals,
    MatchMode,
    MatchStatus,
    StagedMatchResult,
)

__all__ = [
    "__version__",
    "Candidate",
    "CatalogEntry",
    "Confidence",
    "FolderSignals",
    "MatchMode",
    "MatchStatus",
    "StagedMatchResult",
]


def main() -> None:
    """Entry point for the modmatcher CLI application.

    Imports and runs the Typer app from the modmatcher.cli module.
    """
    from modmatcher.cli import app
    app()
