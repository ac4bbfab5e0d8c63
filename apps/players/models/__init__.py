# apps/players/models/__init__.py
"""
Aggregate re-exports for the players app models.

Allows `from apps.players.models import Player`.
"""

from __future__ import annotations

from .player import Player, PlayerQuerySet

__all__ = [
    "Player",
    "PlayerQuerySet",
]
