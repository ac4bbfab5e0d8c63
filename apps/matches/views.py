# apps/matches/views.py
# ======================================================================
"""Asynchronous API views for the 'matches' application."""

from __future__ import annotations

from typing import Any

import structlog
from asgiref.sync import sync_to_async
from django.http import Http404, HttpRequest
from pydantic import BaseModel, ConfigDict, Field

from apps.matches import conf
from apps.matches.exceptions import UnknownPlayerError
from apps.matches.models import Match, MatchComment
from apps.matches.schemas import ExtractionRequest, ImageBlob, MatchSubmission
from apps.matches.serializers import MatchSerializer
from apps.matches.services.extraction import StatsExtractor
from apps.matches.services.match_commit import MatchCommitService
from apps.matches.services.workflow import ConfirmationWorkflow
from apps.players.models import Player
from common.errors import PermissionDeniedError
from common.views_utils import BaseAppView, BaseAsyncView, OrjsonResponse, Page

log = structlog.get_logger(__name__).bind(component="MatchViews")


class CommentBody(BaseModel):
    text: str = Field(min_length=1, max_length=conf.MAX_COMMENT_LENGTH)

    model_config = ConfigDict(str_strip_whitespace=True)


class RoastBody(BaseModel):
    roast: str = Field(max_length=conf.MAX_ROAST_LENGTH)

    model_config = ConfigDict(str_strip_whitespace=True)


def get_extractor() -> StatsExtractor:
    return StatsExtractor()


def get_commit_service() -> MatchCommitService:
    return MatchCommitService()


async def _get_match(match_id: int, *, with_comments: bool = False) -> Match:
    qs = Match.objects.with_sides()
    if with_comments:
        qs = qs.prefetch_related("comments")
    try:
        return await qs.aget(pk=match_id)
    except Match.DoesNotExist as e:
        msg = f"Match {match_id} not found."
        raise Http404(msg) from e


async def _get_known_player(player_id: str) -> Player:
    player = await Player.objects.filter(pk=player_id).afirst()
    if player is None:
        raise UnknownPlayerError(missing=[player_id])
    return player


# --- /matches ---
class MatchListView(BaseAppView):
    """GET /api/v1/matches – newest first, optionally only one player's.
    POST /api/v1/matches – confirm and commit an extracted match."""

    CACHE_TTL = conf.TIMEOUTS.get("match_list", 30)

    def _get_params(self, request: HttpRequest, **kwargs) -> dict[str, Any]:
        page = self.get_page(request)
        return {
            "page_num": page.number,
            "page_size": page.size,
            "player_id": request.GET.get("player", "").strip(),
        }

    async def _produce_payload(self, p: dict[str, Any]) -> dict[str, Any]:
        qs = Match.objects.with_sides()
        if p["player_id"]:
            qs = qs.involving(p["player_id"])
        page = Page(p["page_num"], p["page_size"])
        total = await qs.acount()
        matches = [m async for m in qs[page.offset : page.offset + page.size]]
        return page.wrap(total, MatchSerializer.serialize_matches(matches))

    async def post(self, request: HttpRequest, **kwargs) -> OrjsonResponse:
        player_id = self.get_acting_player_id(request)
        body = self.parse_body(request, MatchSubmission)
        player = await _get_known_player(player_id)

        workflow = ConfirmationWorkflow.from_extracted(player_id, body.extracted, team_name=player.team_name)
        workflow.select_side(body.user_team_side)
        workflow.select_opponent(body.opponent_id)
        workflow.select_outcome(body.outcome)
        payload = workflow.confirm(played_at=body.played_at)

        match = await get_commit_service().commit_async(payload)
        match = await _get_match(match.pk)
        return OrjsonResponse(MatchSerializer.serialize_match(match), status=201)


# --- /matches/extract ---
class MatchExtractView(BaseAsyncView):
    """POST /api/v1/matches/extract – read the stats off a screenshot. Nothing is stored."""

    async def post(self, request: HttpRequest, **kwargs) -> OrjsonResponse:
        player_id = self.get_acting_player_id(request)
        body = self.parse_body(request, ExtractionRequest)
        player = await _get_known_player(player_id)

        workflow = ConfirmationWorkflow(player_id, team_name=player.team_name)
        workflow.attach_image(ImageBlob.from_data_uri(body.image))
        state = await workflow.extract(get_extractor())

        return OrjsonResponse(
            {
                "extracted": state.extracted.model_dump(mode="json", exclude={"team1_stats": {"user_id"}, "team2_stats": {"user_id"}}),
                "suggested_side": state.suggested_side,
                "suggested_outcome": state.suggested_outcome,
            },
        )


# --- /matches/<id> ---
class MatchDetailView(BaseAppView):
    """GET /api/v1/matches/{match_id} – both stat lines, roast and comments."""

    CACHE_TTL = conf.TIMEOUTS.get("match_detail", 60)

    def _get_params(self, request: HttpRequest, **kwargs) -> dict[str, Any]:
        return {"match_id": kwargs["match_id"]}

    async def _produce_payload(self, p: dict[str, Any]) -> dict[str, Any]:
        match = await _get_match(p["match_id"], with_comments=True)
        return MatchSerializer.serialize_match(match, include_comments=True)


# --- /matches/<id>/roast ---
class MatchRoastView(BaseAsyncView):
    """PATCH /api/v1/matches/{match_id}/roast – participants may rewrite the roast."""

    async def patch(self, request: HttpRequest, match_id: int) -> OrjsonResponse:
        player_id = self.get_acting_player_id(request)
        body = self.parse_body(request, RoastBody)
        match = await _get_match(match_id)
        if player_id not in (match.created_by_id, match.opponent_id):
            raise PermissionDeniedError("Only the two players can edit this roast.")

        match.roast = body.roast
        await sync_to_async(match.save, thread_sensitive=True)(update_fields=["roast", "updated_at"])
        log.info("Roast edited", match_id=match.pk, player_id=player_id)
        return OrjsonResponse({"id": match.pk, "roast": match.roast})


# --- /matches/<id>/comments ---
class MatchCommentsView(BaseAsyncView):
    """GET lists the thread; POST appends to it."""

    async def get(self, request: HttpRequest, match_id: int) -> OrjsonResponse:
        if not await Match.objects.filter(pk=match_id).aexists():
            raise Http404(f"Match {match_id} not found.")
        comments = [c async for c in MatchComment.objects.filter(match_id=match_id)]
        return OrjsonResponse({"count": len(comments), "data": [MatchSerializer.serialize_comment(c) for c in comments]})

    async def post(self, request: HttpRequest, match_id: int) -> OrjsonResponse:
        player_id = self.get_acting_player_id(request)
        body = self.parse_body(request, CommentBody)
        await _get_known_player(player_id)
        if not await Match.objects.filter(pk=match_id).aexists():
            raise Http404(f"Match {match_id} not found.")

        comment = await MatchComment.objects.acreate(match_id=match_id, author_id=player_id, text=body.text)
        return OrjsonResponse(MatchSerializer.serialize_comment(comment), status=201)
