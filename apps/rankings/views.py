# apps/rankings/views.py
# ======================================================================
"""Asynchronous API views for standings, best-of awards and the losers' table."""

from __future__ import annotations

from typing import Any

from asgiref.sync import sync_to_async
from django.http import HttpRequest

from apps.rankings import conf
from apps.rankings.services.best_of import best_of
from apps.rankings.services.leaderboard import leaderboard
from apps.rankings.services.losers import losers_board
from common.views_utils import BaseAppView


# --- /rankings/leaderboard ---
class LeaderboardView(BaseAppView):
    """GET /api/v1/rankings/leaderboard?window=monthly|yearly|all-time"""

    CACHE_TTL = conf.TIMEOUTS.get("leaderboard", 30)

    def _get_params(self, request: HttpRequest, **kwargs) -> dict[str, Any]:
        return {
            "window": self.get_choice_param(
                request,
                "window",
                list(conf.LEADERBOARD_WINDOWS),
                default=conf.DEFAULT_LEADERBOARD_WINDOW,
            ),
        }

    async def _produce_payload(self, p: dict[str, Any]) -> dict[str, Any]:
        payload = await sync_to_async(leaderboard, thread_sensitive=True)(conf.LEADERBOARD_WINDOWS[p["window"]])
        # report the public window name back
        return {**payload, "window": p["window"]}


# --- /rankings/best-of ---
class BestOfView(BaseAppView):
    """GET /api/v1/rankings/best-of"""

    CACHE_TTL = conf.TIMEOUTS.get("best_of", 60)

    def _get_params(self, request: HttpRequest, **kwargs) -> dict[str, Any]:
        return {}

    async def _produce_payload(self, p: dict[str, Any]) -> dict[str, Any]:
        data = await sync_to_async(best_of, thread_sensitive=True)()
        return {"count": len(data), "data": data}


# --- /rankings/losers ---
class LosersView(BaseAppView):
    """GET /api/v1/rankings/losers?window=day|month|year"""

    CACHE_TTL = conf.TIMEOUTS.get("losers", 60)

    def _get_params(self, request: HttpRequest, **kwargs) -> dict[str, Any]:
        return {
            "window": self.get_choice_param(
                request,
                "window",
                list(conf.LOSER_WINDOWS),
                default=conf.DEFAULT_LOSER_WINDOW,
            ),
        }

    async def _produce_payload(self, p: dict[str, Any]) -> dict[str, Any]:
        return await sync_to_async(losers_board, thread_sensitive=True)(p["window"])
