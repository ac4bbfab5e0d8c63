# apps/core/views/stream.py
"""Server-sent events feed of badge unlocks for one player."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import orjson
import structlog
from django.utils import timezone
from starlette.responses import JSONResponse, StreamingResponse

from apps.achievements.services.notifications import NotificationInbox
from apps.core.conf import STREAM_MAX_ITERATIONS, STREAM_POLL_INTERVAL_S
from apps.players.models import Player
from common.views_utils import PLAYER_HEADER

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request

log = structlog.get_logger(__name__).bind(component="NotificationStream")


# --------------------------------------------------------------------------- stream generator
async def _notification_stream_gen(
    player_id: str,
    *,
    inbox: NotificationInbox,
    iterations: int = STREAM_MAX_ITERATIONS,
    delay_s: float = STREAM_POLL_INTERVAL_S,
) -> AsyncIterator[bytes]:
    """
    Poll the inbox and yield one SSE frame per notification.

    Yields at most `iterations` polls, then a closing frame; the client is
    expected to reconnect.
    """
    sent = 0
    for _ in range(iterations):
        try:
            items = await inbox.drain(player_id)
        except Exception as exc:
            log.exception("Notification poll failed", player_id=player_id)
            error = {"error": str(exc), "timestamp": timezone.now().isoformat()}
            yield f"event: error\ndata: {orjson.dumps(error).decode()}\n\n".encode()
            items = []

        for item in items:
            sent += 1
            yield f"id: {sent}\nevent: {item.get('type', 'notification')}\ndata: {orjson.dumps(item).decode()}\n\n".encode()
        if not items:
            yield b": keep-alive\n\n"

        await asyncio.sleep(delay_s)

    yield b'event: complete\ndata: {"status": "stream_complete"}\n\n'


# --------------------------------------------------------------------------- endpoint
async def notification_stream(request: Request) -> StreamingResponse | JSONResponse:
    """
    GET /notifications-stream/{player_id}

    Only the player themselves may listen (`X-Player-Id` header).
    """
    player_id = request.path_params["player_id"]
    acting = (request.headers.get(PLAYER_HEADER) or "").strip()
    if acting != player_id:
        return JSONResponse({"detail": "You can only follow your own notifications."}, status_code=403)
    if not await Player.objects.filter(pk=player_id).aexists():
        return JSONResponse({"detail": f"Player {player_id} not found."}, status_code=404)

    log.info("Notification stream opened", player_id=player_id)
    return StreamingResponse(
        _notification_stream_gen(player_id, inbox=NotificationInbox()),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "Access-Control-Allow-Origin": "*",
        },
    )
