# apps/matches/models/__init__.py
# ================================================================================
"""
Aggregate re-exports for the matches app models.

Allows `from apps.matches.models import Match, MatchSide`.
"""

from __future__ import annotations

from .comment import MatchComment
from .match import Match, MatchManager, MatchQuerySet
from .side import MatchSide

__all__ = [
    "Match",
    "MatchComment",
    "MatchManager",
    "MatchQuerySet",
    "MatchSide",
]
