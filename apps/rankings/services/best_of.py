# apps/rankings/services/best_of.py
"""'Best of' awards: one linear pass over every player per category."""

from __future__ import annotations

from typing import Any

from apps.players.models import Player
from apps.rankings.conf import BEST_OF_CATEGORIES


def best_of(players: list[Player] | None = None) -> list[dict[str, Any]]:
    """
    Leader of each category. Ties go to whoever comes first in display-name
    order; a category nobody has scored in yet has no holder.
    """
    if players is None:
        players = list(Player.objects.order_by("display_name", "player_id"))

    results = []
    for key, (label, attribute) in BEST_OF_CATEGORIES.items():
        leader: Player | None = None
        best = 0
        for player in players:
            value = getattr(player, attribute)
            if value > best:
                leader, best = player, value
        results.append(
            {
                "category": key,
                "label": label,
                "player_id": leader.player_id if leader else None,
                "display_name": leader.display_name if leader else None,
                "value": best if leader else 0,
            },
        )
    return results
