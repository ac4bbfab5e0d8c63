# apps/matches/services/queries.py
"""Read helpers shared by the effects engine and the views."""

from __future__ import annotations

from dataclasses import dataclass

from asgiref.sync import sync_to_async

from apps.matches.models import Match


@dataclass(frozen=True, slots=True)
class MatchSummary:
    """Winner/loser view of a decisive match (or both players of a draw)."""

    match_id: int
    is_draw: bool
    winner_id: str
    winner_name: str
    winner_score: int
    loser_id: str
    loser_name: str
    loser_score: int
    roast: str

    @property
    def goal_difference(self) -> int:
        return self.winner_score - self.loser_score


def get_match_summary(match_id: int) -> MatchSummary:
    """Raises Match.DoesNotExist for unknown ids."""
    match = Match.objects.with_sides().get(pk=match_id)
    scores = {side.player_id: side.score for side in match.sides.all()}
    players = {match.created_by_id: match.created_by, match.opponent_id: match.opponent}

    if match.is_draw:
        first_id, second_id = match.created_by_id, match.opponent_id
    else:
        first_id, second_id = match.winner_id, match.loser_id

    return MatchSummary(
        match_id=match.pk,
        is_draw=match.is_draw,
        winner_id=first_id,
        winner_name=players[first_id].display_name,
        winner_score=scores.get(first_id, 0),
        loser_id=second_id,
        loser_name=players[second_id].display_name,
        loser_score=scores.get(second_id, 0),
        roast=match.roast,
    )


aget_match_summary = sync_to_async(get_match_summary, thread_sensitive=True)
