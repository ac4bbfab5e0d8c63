# apps/players/views.py
# ======================================================================
"""Asynchronous API views for the 'players' application."""

from __future__ import annotations

from typing import Any

import structlog
from asgiref.sync import sync_to_async
from django.db import IntegrityError
from django.http import Http404, HttpRequest

from apps.achievements.services.milestones import amilestone_progress
from apps.achievements.services.notifications import NotificationInbox
from apps.players import conf
from apps.players.conf import PlayerRegistration
from apps.players.models import Player
from apps.players.serializers import PlayerSerializer
from apps.rankings.services.rivals import head_to_head
from common.errors import PermissionDeniedError, ServiceError
from common.views_utils import BaseAppView, BaseAsyncView, OrjsonResponse, Page

log = structlog.get_logger(__name__).bind(component="PlayerViews")


class PlayerExistsError(ServiceError):
    status_code = 409
    default_detail = "A player with this id already exists."


async def _get_player(player_id: str, *, with_badges: bool = False) -> Player:
    qs = Player.objects.with_badges() if with_badges else Player.objects.all()
    try:
        return await qs.aget(pk=player_id)
    except Player.DoesNotExist as e:
        msg = f"Player {player_id} not found."
        raise Http404(msg) from e


# --- /players ---
class PlayerListView(BaseAppView):
    """GET /api/v1/players – everyone, for opponent pickers and profiles.
    POST /api/v1/players – signup: create a player with an empty stat block."""

    CACHE_TTL = conf.TIMEOUTS.get("player_list", 30)

    def _get_params(self, request: HttpRequest, **kwargs) -> dict[str, Any]:
        page = self.get_page(request)
        return {
            "page_num": page.number,
            "page_size": page.size,
            "search_q": request.GET.get("search", "").strip(),
        }

    async def _produce_payload(self, p: dict[str, Any]) -> dict[str, Any]:
        qs = Player.objects.all()
        if p["search_q"]:
            qs = qs.filter(display_name__icontains=p["search_q"])
        page = Page(p["page_num"], p["page_size"])
        total = await qs.acount()
        players = [pl async for pl in qs[page.offset : page.offset + page.size]]
        return page.wrap(total, PlayerSerializer.serialize_players(players))

    async def post(self, request: HttpRequest, **kwargs) -> OrjsonResponse:
        body = self.parse_body(request, PlayerRegistration)
        if self.get_acting_player_id(request) != body.player_id:
            raise PermissionDeniedError("Players can only register themselves.")
        try:
            player = await Player.objects.acreate(
                player_id=body.player_id,
                display_name=body.display_name,
                real_name=body.real_name,
                team_name=body.team_name,
                avatar_url=str(body.avatar_url) if body.avatar_url else "",
            )
        except IntegrityError as e:
            raise PlayerExistsError(player_id=body.player_id) from e
        log.info("Player registered", player_id=player.player_id)
        return OrjsonResponse(PlayerSerializer.serialize_player(player), status=201)


# --- /players/<id> ---
class PlayerDetailView(BaseAppView):
    """GET /api/v1/players/{player_id} – profile, stat block and badges."""

    CACHE_TTL = conf.TIMEOUTS.get("player_detail", 30)

    def _get_params(self, request: HttpRequest, **kwargs) -> dict[str, Any]:
        return {"player_id": kwargs["player_id"]}

    async def _produce_payload(self, p: dict[str, Any]) -> dict[str, Any]:
        player = await _get_player(p["player_id"], with_badges=True)
        return await sync_to_async(PlayerSerializer.serialize_player)(player, include_badges=True)


# --- /players/<id>/journey ---
class PlayerJourneyView(BaseAppView):
    """GET /api/v1/players/{player_id}/journey – progress towards each milestone."""

    CACHE_TTL = conf.TIMEOUTS.get("player_journey", 60)

    def _get_params(self, request: HttpRequest, **kwargs) -> dict[str, Any]:
        return {"player_id": kwargs["player_id"]}

    async def _produce_payload(self, p: dict[str, Any]) -> dict[str, Any]:
        player = await _get_player(p["player_id"])
        return {"player_id": player.player_id, "data": await amilestone_progress(player)}


# --- /players/<id>/rivals ---
class PlayerRivalsView(BaseAppView):
    """GET /api/v1/players/{player_id}/rivals – head-to-head records."""

    CACHE_TTL = conf.TIMEOUTS.get("player_rivals", 60)

    def _get_params(self, request: HttpRequest, **kwargs) -> dict[str, Any]:
        return {"player_id": kwargs["player_id"]}

    async def _produce_payload(self, p: dict[str, Any]) -> dict[str, Any]:
        player = await _get_player(p["player_id"])
        return await sync_to_async(head_to_head, thread_sensitive=True)(player)


# --- /players/<id>/notifications ---
class PlayerNotificationsView(BaseAsyncView):
    """GET /api/v1/players/{player_id}/notifications – drain the badge-unlock inbox. Never cached."""

    inbox = NotificationInbox()

    async def get(self, request: HttpRequest, player_id: str) -> OrjsonResponse:
        if self.get_acting_player_id(request) != player_id:
            raise PermissionDeniedError("You can only read your own notifications.")
        items = await self.inbox.drain(player_id)
        return OrjsonResponse({"player_id": player_id, "count": len(items), "data": items})
