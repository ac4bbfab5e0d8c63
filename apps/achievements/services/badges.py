# apps/achievements/services/badges.py
# ===============================================================================
"""Badge evaluation: compare a player's numbers with every badge they lack."""

from __future__ import annotations

from typing import Final

import structlog
from asgiref.sync import sync_to_async

from apps.achievements.conf import HISTORY_STATS, BadgeStat
from apps.achievements.models import Badge, BadgeAward
from apps.core.conf import DRAW
from apps.matches.models import Match
from apps.players.models import Player

log: Final = structlog.get_logger(__name__).bind(handler="BadgeEvaluator")


def history_stats(player_id: str) -> dict[str, int]:
    """
    Clean sheets and current streaks, replayed from the player's matches in
    play order. A draw ends both streaks.
    """
    clean_sheets = win_streak = loss_streak = 0
    matches = Match.objects.involving(player_id).prefetch_related("sides").order_by("played_at", "id")
    for match in matches:
        conceded = next((side.score for side in match.sides.all() if side.player_id != player_id), 0)
        if conceded == 0:
            clean_sheets += 1
        if match.winner_id == player_id:
            win_streak, loss_streak = win_streak + 1, 0
        elif match.winner_id == DRAW:
            win_streak = loss_streak = 0
        else:
            win_streak, loss_streak = 0, loss_streak + 1
    return {
        BadgeStat.CLEAN_SHEETS: clean_sheets,
        BadgeStat.WIN_STREAK: win_streak,
        BadgeStat.LOSS_STREAK: loss_streak,
    }


def player_stats(player: Player, *, with_history: bool = True) -> dict[str, int]:
    """Every value a badge or milestone criterion can refer to."""
    stats = {**player.stat_block(), BadgeStat.MATCHES_PLAYED: player.matches_played}
    if with_history:
        stats.update(history_stats(player.player_id))
    return {str(key): value for key, value in stats.items()}


class BadgeEvaluator:
    """Awards every catalog badge a player now qualifies for. Safe to repeat."""

    def evaluate_sync(self, player_id: str, *, match_id: int | None = None) -> list[Badge]:
        player = Player.objects.get(pk=player_id)  # fresh read, after the commit
        earned = set(BadgeAward.objects.filter(player_id=player_id).values_list("badge_id", flat=True))
        pending = list(Badge.objects.exclude(slug__in=earned))
        if not pending:
            return []

        needs_history = any(badge.criteria_stat in HISTORY_STATS for badge in pending)
        stats = player_stats(player, with_history=needs_history)
        qualified = [badge for badge in pending if badge.is_met_by(stats)]
        if not qualified:
            return []

        BadgeAward.objects.bulk_create(
            [BadgeAward(player_id=player_id, badge=badge, match_id=match_id) for badge in qualified],
            ignore_conflicts=True,
        )
        log.info(
            "Badges awarded",
            player_id=player_id,
            match_id=match_id,
            badges=[badge.slug for badge in qualified],
        )
        return qualified

    async def evaluate(self, player_id: str, *, match_id: int | None = None) -> list[Badge]:
        return await sync_to_async(self.evaluate_sync, thread_sensitive=True)(player_id, match_id=match_id)
