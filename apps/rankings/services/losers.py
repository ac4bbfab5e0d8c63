# apps/rankings/services/losers.py
"""The wooden-spoon table: who lost the most, and how badly, in a window."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from apps.matches.models import Match
from common.time_utils import window_start


@dataclass(slots=True)
class LoserRow:
    player_id: str
    display_name: str
    losses: int = 0
    goals_conceded: int = 0
    biggest_defeat: dict[str, Any] | None = field(default=None)


def losers_board(window: str, *, now: datetime | None = None) -> dict[str, Any]:
    start = window_start(window, now)
    rows: dict[str, LoserRow] = {}
    matches = Match.objects.decisive().played_between(start).with_sides()
    for match in matches:
        loser = match.opponent if match.loser_id == match.opponent_id else match.created_by
        scores = {side.player_id: side.score for side in match.sides.all()}
        conceded = scores.get(match.winner_id, 0)
        scored = scores.get(loser.player_id, 0)

        row = rows.setdefault(loser.player_id, LoserRow(player_id=loser.player_id, display_name=loser.display_name))
        row.losses += 1
        row.goals_conceded += conceded
        margin = conceded - scored
        if row.biggest_defeat is None or margin > row.biggest_defeat["margin"]:
            row.biggest_defeat = {
                "match_id": match.pk,
                "score": f"{scored}-{conceded}",
                "winner_id": match.winner_id,
                "margin": margin,
            }

    ordered = sorted(rows.values(), key=lambda r: (-r.goals_conceded, -r.losses, r.display_name.casefold()))
    return {
        "window": window,
        "since": start.isoformat() if start else None,
        "data": [
            {
                "rank": position,
                "player_id": r.player_id,
                "display_name": r.display_name,
                "losses": r.losses,
                "goals_conceded": r.goals_conceded,
                "biggest_defeat": r.biggest_defeat,
            }
            for position, r in enumerate(ordered, start=1)
        ],
    }
