"""Batch orchestration package for the mod folder matcher.

This package contains the components that run a whole mods directory:
- MatchLogger: Sectioned report of a run written to a timestamped log file.
- MatchOrchestrator: Scans mod folders, matches each one and reports.
"""

from modmatcher.orchestration.match_logger import MatchLogger
from modmatcher.orchestration.match_orchestrator import MatchOrchestrator

__all__ = ["MatchLogger", "MatchOrchestrator"]
