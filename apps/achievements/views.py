# apps/achievements/views.py
# ======================================================================
"""Asynchronous API views for badges and the halls of fame and shame."""

from __future__ import annotations

from typing import Any

import structlog
from django.db.models import Count
from django.http import Http404, HttpRequest
from pydantic import BaseModel, ConfigDict, Field

from apps.achievements import conf
from apps.achievements.conf import HallKind
from apps.achievements.models import Badge, BadgeAward, HallEntry
from apps.achievements.serializers import BadgeSerializer, HallEntrySerializer
from common.errors import PermissionDeniedError
from common.views_utils import BaseAppView, BaseAsyncView, OrjsonResponse, Page

log = structlog.get_logger(__name__).bind(component="AchievementViews")


class NarrativeBody(BaseModel):
    narrative: str = Field(max_length=2000)

    model_config = ConfigDict(str_strip_whitespace=True)


# --- /badges ---
class BadgeListView(BaseAppView):
    """GET /api/v1/badges – the materialised catalog, or one player's set with `?player=`."""

    CACHE_TTL = conf.TIMEOUTS.get("badge_list", 60)

    def _get_params(self, request: HttpRequest, **kwargs) -> dict[str, Any]:
        return {"player_id": request.GET.get("player", "").strip()}

    async def _produce_payload(self, p: dict[str, Any]) -> dict[str, Any]:
        qs = Badge.objects.annotate(holder_count=Count("awards"))
        if p["player_id"]:
            qs = qs.filter(slug__in=BadgeAward.objects.filter(player_id=p["player_id"]).values("badge_id"))
        badges = [b async for b in qs]
        return {"count": len(badges), "data": BadgeSerializer.serialize_badges(badges)}


# --- /hall ---
class HallListView(BaseAppView):
    """GET /api/v1/hall – newest first; `?kind=fame|shame`, `?player=`."""

    CACHE_TTL = conf.TIMEOUTS.get("hall_list", 30)

    def _get_params(self, request: HttpRequest, **kwargs) -> dict[str, Any]:
        page = self.get_page(request)
        return {
            "page_num": page.number,
            "page_size": page.size,
            "kind": self.get_choice_param(request, "kind", [*HallKind.values, "all"], default="all"),
            "player_id": request.GET.get("player", "").strip(),
        }

    async def _produce_payload(self, p: dict[str, Any]) -> dict[str, Any]:
        qs = HallEntry.objects.all()
        if p["kind"] != "all":
            qs = qs.filter(kind=p["kind"])
        if p["player_id"]:
            qs = qs.about(p["player_id"])
        page = Page(p["page_num"], p["page_size"])
        total = await qs.acount()
        entries = [e async for e in qs[page.offset : page.offset + page.size]]
        return page.wrap(total, HallEntrySerializer.serialize_entries(entries))


# --- /hall/<id> ---
class HallEntryDetailView(BaseAsyncView):
    """GET one entry; PATCH lets the player it is about rewrite the narrative."""

    async def get(self, request: HttpRequest, entry_id: int) -> OrjsonResponse:
        return OrjsonResponse(HallEntrySerializer.serialize_entry(await self._get_entry(entry_id)))

    async def patch(self, request: HttpRequest, entry_id: int) -> OrjsonResponse:
        player_id = self.get_acting_player_id(request)
        body = self.parse_body(request, NarrativeBody)
        entry = await self._get_entry(entry_id)
        if entry.subject_id != player_id:
            raise PermissionDeniedError("Only the player this entry is about can edit it.")

        entry.narrative = body.narrative
        await entry.asave(update_fields=["narrative", "updated_at"])
        log.info("Hall narrative edited", entry_id=entry.pk, player_id=player_id)
        return OrjsonResponse(HallEntrySerializer.serialize_entry(entry))

    @staticmethod
    async def _get_entry(entry_id: int) -> HallEntry:
        try:
            return await HallEntry.objects.aget(pk=entry_id)
        except HallEntry.DoesNotExist as e:
            msg = f"Hall entry {entry_id} not found."
            raise Http404(msg) from e
