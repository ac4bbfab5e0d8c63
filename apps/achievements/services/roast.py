# apps/achievements/services/roast.py
"""The winner's taunt shown on the match page."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

import structlog

from apps.matches.models import Match
from apps.matches.services.queries import aget_match_summary

if TYPE_CHECKING:
    from apps.core.services.narrative import NarrativeGenerator

log: Final = structlog.get_logger(__name__).bind(handler="MatchRoastWriter")


class MatchRoastWriter:
    def __init__(self, narrator: NarrativeGenerator) -> None:
        self._narrator = narrator

    async def write(self, match_id: int) -> str | None:
        """Store a roast unless the match is a draw or already has one."""
        summary = await aget_match_summary(match_id)
        if summary.is_draw or summary.roast:
            return None

        roast = await self._narrator.match_roast(
            winner=summary.winner_name,
            loser=summary.loser_name,
            winner_score=summary.winner_score,
            loser_score=summary.loser_score,
        )
        if not roast:
            return None

        # never overwrite a roast a player wrote in the meantime
        updated = await Match.objects.filter(pk=match_id, roast="").aupdate(roast=roast)
        if updated:
            log.info("Match roast stored", match_id=match_id)
            return roast
        return None
