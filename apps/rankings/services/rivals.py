# apps/rankings/services/rivals.py
"""Head-to-head records of one player against everyone they have faced."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from apps.core.conf import DRAW
from apps.matches.models import Match
from apps.players.models import Player


@dataclass(slots=True)
class HeadToHead:
    opponent_id: str
    display_name: str
    matches: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0
    goals_for: int = 0
    goals_against: int = 0


def head_to_head(player: Player) -> dict[str, Any]:
    """Raises nothing for newcomers: they simply have no rivals yet."""
    records: dict[str, HeadToHead] = {}
    matches = Match.objects.involving(player.player_id).with_sides()
    for match in matches:
        opponent = match.opponent if match.created_by_id == player.player_id else match.created_by
        record = records.setdefault(
            opponent.player_id,
            HeadToHead(opponent_id=opponent.player_id, display_name=opponent.display_name),
        )
        scores = {side.player_id: side.score for side in match.sides.all()}
        record.matches += 1
        record.goals_for += scores.get(player.player_id, 0)
        record.goals_against += scores.get(opponent.player_id, 0)
        if match.winner_id == player.player_id:
            record.wins += 1
        elif match.winner_id == DRAW:
            record.draws += 1
        else:
            record.losses += 1

    rivals = sorted(records.values(), key=lambda r: (-r.matches, r.display_name.casefold()))
    data = [asdict(r) for r in rivals]
    return {
        "player_id": player.player_id,
        "top_rival": data[0] if data else None,
        "data": data,
    }
