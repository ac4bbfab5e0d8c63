import pytest
from asgiref.sync import sync_to_async
from django.urls import reverse

from apps.achievements.services.catalog import MilestoneCatalog
from apps.achievements.services.notifications import NotificationInbox
from apps.players.models import Player
from conftest import commit_match, make_extracted, register


def _signup(player_id="u1", **extra):
    return {"player_id": player_id, "display_name": "Ana", **extra}


@pytest.mark.django_db(transaction=True)
async def test_register_player(async_client):
    url = reverse("players:list")

    created = await async_client.post(
        url, _signup(team_name="Arsenal"), content_type="application/json", headers={"X-Player-Id": "u1"}
    )
    again = await async_client.post(url, _signup(), content_type="application/json", headers={"X-Player-Id": "u1"})
    impostor = await async_client.post(
        url, _signup("u2"), content_type="application/json", headers={"X-Player-Id": "u3"}
    )
    anonymous = await async_client.post(url, _signup("u4"), content_type="application/json")

    assert created.status_code == 201
    data = created.json()
    assert data["team_name"] == "Arsenal"
    assert data["stats"]["matches_played"] == 0
    assert data["stats"]["win_rate"] == 0.0
    assert again.status_code == 409
    assert impostor.status_code == 403
    assert anonymous.status_code == 401
    assert await Player.objects.acount() == 1


@pytest.mark.django_db(transaction=True)
async def test_register_rejects_blank_name(async_client):
    response = await async_client.post(
        reverse("players:list"),
        {"player_id": "u1", "display_name": "   "},
        content_type="application/json",
        headers={"X-Player-Id": "u1"},
    )

    assert response.status_code == 400
    assert "errors" in response.json()


@pytest.mark.django_db(transaction=True)
@pytest.mark.parametrize("player_id", ["draw", "DRAW"])
async def test_register_rejects_draw_sentinel_id(async_client, player_id):
    response = await async_client.post(
        reverse("players:list"),
        _signup(player_id),
        content_type="application/json",
        headers={"X-Player-Id": player_id},
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["loc"] == ["player_id"]
    assert await Player.objects.acount() == 0


@pytest.mark.django_db(transaction=True)
async def test_player_detail_shows_aggregates(async_client):
    await sync_to_async(register)("u1", "u2")
    await sync_to_async(commit_match)(make_extracted(3, 1), player="u1", opponent="u2")

    response = await async_client.get(reverse("players:detail", args=["u1"]))
    missing = await async_client.get(reverse("players:detail", args=["ghost"]))

    assert response.status_code == 200
    stats = response.json()["stats"]
    assert (stats["wins"], stats["goals_for"], stats["goals_against"]) == (1, 3, 1)
    assert stats["pass_accuracy"] == 80.0
    assert stats["win_rate"] == 100.0
    assert response.json()["badges"] == []
    assert missing.status_code == 404


@pytest.mark.django_db(transaction=True)
async def test_player_list_search(async_client):
    await sync_to_async(register)("u1", "u2")

    response = await async_client.get(reverse("players:list"), {"search": "u2"})

    assert response.json()["count"] == 1
    assert response.json()["data"][0]["player_id"] == "u2"


@pytest.mark.django_db(transaction=True)
async def test_journey_and_rivals(async_client):
    await sync_to_async(register)("u1", "u2")
    await sync_to_async(commit_match)(make_extracted(3, 1), player="u1", opponent="u2")
    await MilestoneCatalog().release_next()

    journey = (await async_client.get(reverse("players:journey", args=["u1"]))).json()
    rivals = (await async_client.get(reverse("players:rivals", args=["u2"]))).json()

    assert journey["data"] == [
        {
            "slug": "first-win",
            "title": "First Win",
            "description": "Win your very first match.",
            "stat": "wins",
            "target": 1,
            "current": 1,
            "progress": 100.0,
            "achieved": True,
        },
    ]
    assert rivals["top_rival"]["opponent_id"] == "u1"
    assert rivals["top_rival"]["losses"] == 1


@pytest.mark.django_db(transaction=True)
async def test_notifications_are_drained_once(async_client):
    await sync_to_async(register)("u1")
    await NotificationInbox().push("u1", [{"type": "badge_unlocked", "badge": "first-victory"}])
    url = reverse("players:notifications", args=["u1"])

    other = await async_client.get(url, headers={"X-Player-Id": "u2"})
    first = await async_client.get(url, headers={"X-Player-Id": "u1"})
    second = await async_client.get(url, headers={"X-Player-Id": "u1"})

    assert other.status_code == 403
    assert first.json()["count"] == 1
    assert first.json()["data"][0]["badge"] == "first-victory"
    assert second.json()["count"] == 0
