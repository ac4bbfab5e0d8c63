# apps/matches/serializers.py
# ================================================================================
"""Read-only serializers for the 'matches' app."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from apps.core.utils import safe_percent
from apps.matches.services.match_commit import SIDE_COLUMNS
from apps.players.serializers import PlayerSerializer

if TYPE_CHECKING:
    from .models import Match, MatchComment, MatchSide


class MatchSerializer:
    @staticmethod
    def serialize_side(side: MatchSide) -> dict[str, Any]:
        data = {"side": side.side, "player_id": side.player_id}
        data.update({column: getattr(side, column) for column in SIDE_COLUMNS})
        # the printed figure wins; otherwise derive it
        if data["pass_accuracy"] is None:
            data["pass_accuracy"] = safe_percent(side.successful_passes, side.passes)
        data["shot_accuracy"] = safe_percent(side.shots_on_target, side.shots)
        return data

    @staticmethod
    def serialize_comment(comment: MatchComment) -> dict[str, Any]:
        return {
            "id": comment.pk,
            "author_id": comment.author_id,
            "text": comment.text,
            "created_at": comment.created_at,
        }

    @classmethod
    def serialize_match(cls, match: Match, *, include_comments: bool = False) -> dict[str, Any]:
        """Expects `with_sides()` (and `comments` prefetched when included)."""
        data = {
            "id": match.pk,
            "created_by": PlayerSerializer.serialize_summary(match.created_by),
            "opponent": PlayerSerializer.serialize_summary(match.opponent),
            "winner_id": match.winner_id,
            "is_draw": match.is_draw,
            "user_team_side": match.user_team_side,
            "team1_name": match.team1_name,
            "team2_name": match.team2_name,
            "played_at": match.played_at,
            "roast": match.roast,
            "sides": [cls.serialize_side(s) for s in sorted(match.sides.all(), key=lambda s: s.side)],
        }
        if include_comments:
            data["comments"] = [cls.serialize_comment(c) for c in match.comments.all()]
        return data

    @classmethod
    def serialize_matches(cls, matches: list[Match]) -> list[dict[str, Any]]:
        return [cls.serialize_match(m) for m in matches]
