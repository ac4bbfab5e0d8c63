import json

import pytest
from asgiref.sync import sync_to_async
from starlette.requests import Request

from apps.achievements.services.notifications import NotificationInbox
from apps.core.views import health_check, notification_stream
from apps.core.views.stream import _notification_stream_gen
from conftest import register


def _request(path: str, *, query: bytes = b"", headers=None, path_params=None) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": path,
        "query_string": query,
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "path_params": path_params or {},
    }
    return Request(scope)


async def test_basic_health_check_skips_dependencies():
    response = await health_check(_request("/health", query=b"check=basic"))

    assert response.status_code == 200
    body = json.loads(response.body)
    assert body["status"] == "ok"
    assert body["version"] == "0.1.0"


@pytest.mark.django_db(transaction=True)
async def test_full_health_check():
    response = await health_check(_request("/health"))

    body = json.loads(response.body)
    assert response.status_code == 200
    assert body["checks"]["database"]["status"] == "healthy"
    assert body["checks"]["cache"]["status"] == "healthy"
    # inline effects and no API key in tests
    assert body["checks"]["message_broker"] == {"status": "disabled"}
    assert body["checks"]["genai"] == {"status": "disabled"}


async def test_stream_yields_one_frame_per_notification():
    inbox = NotificationInbox()
    await inbox.push("u1", [{"type": "badge_unlocked", "badge": "first-victory"}, {"type": "badge_unlocked", "badge": "getting-started"}])

    frames = [frame async for frame in _notification_stream_gen("u1", inbox=inbox, iterations=2, delay_s=0)]

    assert frames[0].startswith(b"id: 1\nevent: badge_unlocked\ndata: ")
    assert b'"badge":"first-victory"' in frames[0]
    assert frames[1].startswith(b"id: 2\n")
    assert frames[2] == b": keep-alive\n\n"
    assert frames[-1].startswith(b"event: complete")
    assert await inbox.peek("u1") == []


async def test_stream_is_private():
    response = await notification_stream(
        _request("/notifications-stream/u1", headers={"X-Player-Id": "u2"}, path_params={"player_id": "u1"}),
    )

    assert response.status_code == 403


@pytest.mark.django_db(transaction=True)
async def test_stream_requires_known_player():
    response = await notification_stream(
        _request("/notifications-stream/ghost", headers={"X-Player-Id": "ghost"}, path_params={"player_id": "ghost"}),
    )

    assert response.status_code == 404


@pytest.mark.django_db(transaction=True)
async def test_stream_opens_for_the_player():
    await sync_to_async(register)("u1")

    response = await notification_stream(
        _request("/notifications-stream/u1", headers={"X-Player-Id": "u1"}, path_params={"player_id": "u1"}),
    )

    assert response.status_code == 200
    assert response.media_type == "text/event-stream"
    assert response.headers["cache-control"] == "no-cache"


async def test_unknown_route_answers_json(async_client):
    response = await async_client.get("/api/v1/nowhere")

    assert response.status_code == 404
    assert response.json() == {"detail": "The requested endpoint was not found."}
