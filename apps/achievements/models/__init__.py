# apps/achievements/models/__init__.py
"""Aggregate re-exports for the achievements app models."""

from __future__ import annotations

from .badge import Badge, BadgeAward
from .hall import HallEntry, HallEntryQuerySet
from .milestone import Milestone

__all__ = [
    "Badge",
    "BadgeAward",
    "HallEntry",
    "HallEntryQuerySet",
    "Milestone",
]
