import pytest
from asgiref.sync import sync_to_async
from django.urls import reverse

from apps.achievements.conf import BADGE_CATALOG, HallKind
from apps.achievements.models import BadgeAward, HallEntry
from apps.achievements.services.catalog import BadgeCatalog
from apps.achievements.services.effects import DerivedEffectsEngine
from apps.achievements.services.hall import HallOfFameWriter
from apps.achievements.services.roast import MatchRoastWriter
from apps.core.services.narrative import NarrativeGenerator
from apps.matches.models import Match
from conftest import FakeNarrator, commit_match, committed_event, make_extracted, register


async def _decisive_match(score1=3, score2=1):
    await sync_to_async(register)("u1", "u2")
    return await sync_to_async(commit_match)(make_extracted(score1, score2), player="u1", opponent="u2")


@pytest.mark.django_db(transaction=True)
async def test_decisive_match_gets_one_fame_and_one_shame_entry(fake_narrator):
    match = await _decisive_match(4, 1)
    writer = HallOfFameWriter(fake_narrator)

    entries = await writer.record(match.pk)
    rerun = await writer.record(match.pk)

    assert rerun == []
    fame = await HallEntry.objects.fame().aget(match_id=match.pk)
    shame = await HallEntry.objects.shame().aget(match_id=match.pk)
    assert len(entries) == 2
    assert (fame.subject_id, fame.opponent_id) == ("u1", "u2")
    assert fame.description == "U1 defeated U2"
    assert fame.stat == "Won by 3 goals"
    assert fame.narrative == "U1 is unstoppable"
    assert (shame.subject_id, shame.stat) == ("u2", "Lost by 3 goals")
    assert shame.narrative == "U2 should retire"
    assert fake_narrator.calls == ["hall_roasts"]


@pytest.mark.django_db(transaction=True)
async def test_hall_uses_fallback_captions_without_model():
    match = await _decisive_match(2, 1)

    await HallOfFameWriter(NarrativeGenerator()).record(match.pk)

    fame = await HallEntry.objects.fame().aget(match_id=match.pk)
    shame = await HallEntry.objects.shame().aget(match_id=match.pk)
    assert fame.narrative == "U1 dominated with an impressive victory!"
    assert fame.stat == "Won by 1 goal"
    assert shame.narrative == "U2 faced a tough defeat this time."


@pytest.mark.django_db(transaction=True)
async def test_draw_has_no_hall_entries_or_roast(fake_narrator):
    await sync_to_async(register)("u1", "u2")
    match = await sync_to_async(commit_match)(make_extracted(2, 2), player="u1", opponent="u2", outcome="draw")

    assert await HallOfFameWriter(fake_narrator).record(match.pk) == []
    assert await MatchRoastWriter(fake_narrator).write(match.pk) is None
    assert await HallEntry.objects.acount() == 0
    assert fake_narrator.calls == []


@pytest.mark.django_db(transaction=True)
async def test_roast_is_stored_once_and_never_overwrites(fake_narrator):
    match = await _decisive_match()
    writer = MatchRoastWriter(fake_narrator)

    assert await writer.write(match.pk) == "Too easy."
    assert await writer.write(match.pk) is None
    assert (await Match.objects.aget(pk=match.pk)).roast == "Too easy."


@pytest.mark.django_db(transaction=True)
async def test_player_written_roast_is_kept():
    match = await _decisive_match()
    match.roast = "I let him win."
    await sync_to_async(match.save)(update_fields=["roast", "updated_at"])

    assert await MatchRoastWriter(FakeNarrator(roast="Nope.")).write(match.pk) is None
    assert (await Match.objects.aget(pk=match.pk)).roast == "I let him win."


@pytest.mark.django_db(transaction=True)
async def test_empty_model_answer_stores_no_roast():
    match = await _decisive_match()

    assert await MatchRoastWriter(FakeNarrator(roast=None)).write(match.pk) is None
    assert (await Match.objects.aget(pk=match.pk)).roast == ""


@pytest.mark.django_db(transaction=True)
async def test_all_effects_run_for_a_committed_match(fake_narrator):
    match = await _decisive_match()

    report = await DerivedEffectsEngine(narrator=fake_narrator).run(committed_event(match))

    assert report.ok
    assert report.succeeded == ["badges", "hall", "roast", "catalogs"]
    assert report.results["hall"] == 2
    assert report.results["roast"] is True
    # the catalog is empty before the first upkeep, so nothing is earned yet
    assert report.results["badges"] == {"u1": [], "u2": []}
    assert report.results["catalogs"] == {
        "badges_created": ["first-victory", "goal-scorer"],
        "milestone_released": "first-win",
    }


@pytest.mark.django_db(transaction=True)
async def test_failing_step_does_not_stop_the_others():
    await BadgeCatalog(FakeNarrator(), batch_size=len(BADGE_CATALOG)).ensure()
    match = await _decisive_match()

    report = await DerivedEffectsEngine(narrator=FakeNarrator(fail=True)).run(committed_event(match))

    assert not report.ok
    assert set(report.failed) == {"hall", "roast"}
    assert report.succeeded == ["badges", "catalogs"]
    assert "RuntimeError" in report.failed["hall"]
    assert await BadgeAward.objects.filter(player_id="u1").aexists()
    assert await HallEntry.objects.acount() == 0
    # the match itself is untouched
    stored = await Match.objects.aget(pk=match.pk)
    assert stored.winner_id == "u1" and stored.roast == ""


@pytest.mark.django_db(transaction=True)
async def test_hall_views(async_client, fake_narrator):
    match = await _decisive_match()
    await HallOfFameWriter(fake_narrator).record(match.pk)
    shame = await HallEntry.objects.shame().aget(match_id=match.pk)

    fame_only = await async_client.get(reverse("achievements:hall"), {"kind": HallKind.FAME})
    about_u2 = await async_client.get(reverse("achievements:hall"), {"player": "u2"})
    url = reverse("achievements:hall-entry", args=[shame.pk])
    forbidden = await async_client.patch(
        url, {"narrative": "Ha"}, content_type="application/json", headers={"X-Player-Id": "u1"}
    )
    edited = await async_client.patch(
        url, {"narrative": "Lag."}, content_type="application/json", headers={"X-Player-Id": "u2"}
    )

    assert [e["kind"] for e in fame_only.json()["data"]] == ["fame"]
    assert [e["subject_id"] for e in about_u2.json()["data"]] == ["u2"]
    assert forbidden.status_code == 403
    assert edited.status_code == 200
    assert (await HallEntry.objects.aget(pk=shame.pk)).narrative == "Lag."


@pytest.mark.django_db(transaction=True)
async def test_badge_view_counts_holders(async_client):
    await BadgeCatalog(FakeNarrator(), batch_size=len(BADGE_CATALOG)).ensure()
    match = await _decisive_match()
    await DerivedEffectsEngine(narrator=FakeNarrator()).evaluate_badges(committed_event(match))

    everything = (await async_client.get(reverse("achievements:badges"))).json()
    mine = (await async_client.get(reverse("achievements:badges"), {"player": "u1"})).json()

    assert everything["count"] == len(BADGE_CATALOG)
    holders = {b["slug"]: b["holder_count"] for b in everything["data"]}
    assert holders["getting-started"] == 2
    assert holders["first-victory"] == 1
    assert {b["slug"] for b in mine["data"]} == {"first-victory", "getting-started"}
    assert all(b["holder_count"] >= 1 for b in mine["data"])
