"""Terminal display package for the mod folder matcher.

This package contains the MatchTUI class, which renders match results,
folder signals and catalog overviews with Rich.
"""

from .match_tui import MatchTUI

__all__ = ["MatchTUI"]
