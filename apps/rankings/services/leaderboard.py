# apps/rankings/services/leaderboard.py
# ===============================================================================
"""
Standings tables.

All-time standings read the stored aggregates. Monthly and yearly standings
are replayed from the side scores of the matches inside the window; when a
replayed result disagrees with the stored `winner_id`, the match is reported
rather than silently reconciled.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Final

import structlog

from apps.core.conf import DRAW
from apps.core.utils import safe_ratio
from apps.matches.conf import Outcome, outcome_from_scores
from apps.matches.models import Match
from apps.players.models import Player
from common.time_utils import WINDOW_ALL_TIME, window_start

log: Final = structlog.get_logger(__name__).bind(component="Leaderboard")


@dataclass(slots=True)
class StandingRow:
    player_id: str
    display_name: str
    avatar_url: str
    wins: int = 0
    losses: int = 0
    draws: int = 0
    goals_for: int = 0
    goals_against: int = 0

    @property
    def matches_played(self) -> int:
        return self.wins + self.losses + self.draws

    @property
    def win_rate(self) -> float:
        return safe_ratio(self.wins, self.wins + self.losses)

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against

    def sort_key(self) -> tuple:
        return (-self.wins, -self.win_rate, -self.goal_difference, self.display_name.casefold())

    def to_json(self) -> dict[str, Any]:
        data = asdict(self)
        data["matches_played"] = self.matches_played
        data["win_rate"] = round(self.win_rate * 100, 1)
        data["goal_difference"] = self.goal_difference
        return data

    @classmethod
    def blank(cls, player: Player) -> StandingRow:
        return cls(player_id=player.player_id, display_name=player.display_name, avatar_url=player.avatar_url)


def _ranked(rows: list[StandingRow]) -> list[dict[str, Any]]:
    ordered = sorted(rows, key=StandingRow.sort_key)
    return [{"rank": position, **row.to_json()} for position, row in enumerate(ordered, start=1)]


def all_time_standings() -> list[dict[str, Any]]:
    rows = []
    for player in Player.objects.all():
        row = StandingRow.blank(player)
        row.wins, row.losses, row.draws = player.wins, player.losses, player.draws
        row.goals_for, row.goals_against = player.goals_for, player.goals_against
        rows.append(row)
    return _ranked(rows)


def replay_matches(matches, rows: dict[str, StandingRow]) -> list[int]:
    """
    Fold *matches* (sides prefetched) into *rows*; returns ids of matches whose
    scores disagree with the recorded winner.
    """
    divergent: list[int] = []
    for match in matches:
        sides = {side.player_id: side.score for side in match.sides.all()}
        if len(sides) != 2:
            log.warning("Match without two sides skipped", match_id=match.pk)
            continue
        (first_id, first_score), (second_id, second_score) = sides.items()

        replayed = outcome_from_scores(first_score, second_score)
        if replayed == Outcome.WIN:
            replayed_winner = first_id
        elif replayed == Outcome.LOSS:
            replayed_winner = second_id
        else:
            replayed_winner = DRAW
        if replayed_winner != match.winner_id:
            log.warning(
                "Score-derived result disagrees with recorded winner",
                match_id=match.pk,
                recorded=match.winner_id,
                replayed=replayed_winner,
            )
            divergent.append(match.pk)

        for player_id, own, other in ((first_id, first_score, second_score), (second_id, second_score, first_score)):
            row = rows.get(player_id)
            if row is None:
                continue
            outcome = outcome_from_scores(own, other)
            setattr(row, outcome.result_field, getattr(row, outcome.result_field) + 1)
            row.goals_for += own
            row.goals_against += other
    return divergent


def windowed_standings(window: str, *, now: datetime | None = None) -> dict[str, Any]:
    start = window_start(window, now)
    rows = {player.player_id: StandingRow.blank(player) for player in Player.objects.all()}
    matches = Match.objects.played_between(start).prefetch_related("sides").order_by("played_at", "id")
    divergent = replay_matches(matches, rows)
    return {
        "since": start.isoformat() if start else None,
        "data": _ranked(list(rows.values())),
        "divergent_match_ids": divergent,
    }


def leaderboard(window: str, *, now: datetime | None = None) -> dict[str, Any]:
    if window == WINDOW_ALL_TIME:
        payload: dict[str, Any] = {"since": None, "data": all_time_standings(), "divergent_match_ids": []}
    else:
        payload = windowed_standings(window, now=now)
    return {"window": window, **payload}
