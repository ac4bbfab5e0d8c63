# apps/achievements/services/hall.py
# ===============================================================================
"""Hall of Fame and Hall of Shame entries for decisive matches."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

import structlog

from apps.achievements.conf import FAME_TITLE, SHAME_TITLE, HallKind
from apps.achievements.models import HallEntry
from apps.matches.services.queries import aget_match_summary

if TYPE_CHECKING:
    from apps.core.services.narrative import NarrativeGenerator
    from apps.matches.services.queries import MatchSummary

log: Final = structlog.get_logger(__name__).bind(handler="HallOfFameWriter")


def _goals(n: int) -> str:
    return f"{n} goal" if n == 1 else f"{n} goals"


def build_entries(summary: MatchSummary, *, fame_narrative: str, shame_narrative: str) -> list[HallEntry]:
    gd = summary.goal_difference
    return [
        HallEntry(
            kind=HallKind.FAME,
            title=FAME_TITLE,
            description=f"{summary.winner_name} defeated {summary.loser_name}",
            match_id=summary.match_id,
            subject_id=summary.winner_id,
            opponent_id=summary.loser_id,
            stat=f"Won by {_goals(gd)}",
            narrative=fame_narrative,
        ),
        HallEntry(
            kind=HallKind.SHAME,
            title=SHAME_TITLE,
            description=f"{summary.loser_name} was defeated by {summary.winner_name}",
            match_id=summary.match_id,
            subject_id=summary.loser_id,
            opponent_id=summary.winner_id,
            stat=f"Lost by {_goals(gd)}",
            narrative=shame_narrative,
        ),
    ]


class HallOfFameWriter:
    def __init__(self, narrator: NarrativeGenerator) -> None:
        self._narrator = narrator

    async def record(self, match_id: int) -> list[HallEntry]:
        """Write one fame and one shame entry. Draws produce nothing; reruns are no-ops."""
        summary = await aget_match_summary(match_id)
        if summary.is_draw:
            return []

        if await HallEntry.objects.filter(match_id=match_id).acount() >= len(HallKind):
            log.debug("Hall entries already recorded", match_id=match_id)
            return []

        roasts = await self._narrator.hall_roasts(
            winner=summary.winner_name,
            loser=summary.loser_name,
            winner_score=summary.winner_score,
            loser_score=summary.loser_score,
        )
        entries = build_entries(summary, fame_narrative=roasts.fame, shame_narrative=roasts.shame)
        await HallEntry.objects.abulk_create(entries, ignore_conflicts=True)
        log.info("Hall entries recorded", match_id=match_id, winner_id=summary.winner_id, loser_id=summary.loser_id)
        return entries
