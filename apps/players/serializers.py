# apps/players/serializers.py
# ================================================================================
"""Read-only, dict-building serializers for the 'players' app."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import Player


class PlayerSerializer:
    @staticmethod
    def serialize_summary(player: Player) -> dict[str, Any]:
        return {
            "player_id": player.player_id,
            "display_name": player.display_name,
            "team_name": player.team_name,
            "avatar_url": player.avatar_url,
        }

    @staticmethod
    def serialize_stats(player: Player) -> dict[str, Any]:
        return {
            **player.stat_block(),
            "matches_played": player.matches_played,
            "win_rate": round(player.win_rate * 100, 1),
            "pass_accuracy": player.pass_accuracy,
            "shot_accuracy": player.shot_accuracy,
        }

    @classmethod
    def serialize_player(cls, player: Player, *, include_badges: bool = False) -> dict[str, Any]:
        data = {
            **cls.serialize_summary(player),
            "real_name": player.real_name,
            "created_at": player.created_at,
            "stats": cls.serialize_stats(player),
        }
        if include_badges:
            data["badges"] = [
                {"slug": b.slug, "name": b.name, "icon_name": b.icon_name, "description": b.description}
                for b in player.badges.all()
            ]
        return data

    @classmethod
    def serialize_players(cls, players: list[Player]) -> list[dict[str, Any]]:
        return [cls.serialize_player(p) for p in players]
