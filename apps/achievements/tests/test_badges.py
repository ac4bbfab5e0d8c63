from datetime import timedelta

import pytest
from asgiref.sync import async_to_sync, sync_to_async
from django.utils import timezone

from apps.achievements.conf import BADGE_CATALOG
from apps.achievements.models import Badge, BadgeAward, Milestone
from apps.achievements.services.badges import BadgeEvaluator, history_stats
from apps.achievements.services.catalog import BadgeCatalog, MilestoneCatalog
from apps.achievements.services.effects import DerivedEffectsEngine
from apps.achievements.services.notifications import NotificationInbox
from conftest import FakeNarrator, commit_match, committed_event, make_extracted, register


async def _seed_full_catalog():
    await BadgeCatalog(FakeNarrator(), batch_size=len(BADGE_CATALOG)).ensure()


@pytest.mark.django_db(transaction=True)
async def test_catalog_materialises_a_batch_at_a_time(fake_narrator):
    catalog = BadgeCatalog(fake_narrator, batch_size=2)

    first = await catalog.ensure()
    second = await catalog.ensure()

    assert [b.slug for b in first] == ["first-victory", "goal-scorer"]
    assert [b.slug for b in second] == ["the-participant", "getting-started"]
    assert first[0].description == "First Victory: Get your first win"
    assert await Badge.objects.acount() == 4


@pytest.mark.django_db(transaction=True)
async def test_catalog_stops_when_complete(fake_narrator):
    await _seed_full_catalog()

    assert await BadgeCatalog(fake_narrator).ensure() == []
    assert await Badge.objects.acount() == len(BADGE_CATALOG)


@pytest.mark.django_db(transaction=True)
async def test_backfill_only_touches_empty_descriptions(fake_narrator):
    await _seed_full_catalog()
    await Badge.objects.filter(slug="first-defeat").aupdate(description="")

    filled = await BadgeCatalog(fake_narrator).backfill_descriptions()

    assert filled == 1
    badge = await Badge.objects.aget(slug="first-defeat")
    assert badge.description == "First Defeat: Lose your first match"


@pytest.mark.django_db(transaction=True)
async def test_milestones_are_released_on_a_cadence():
    catalog = MilestoneCatalog()
    now = timezone.now()

    first = await catalog.release_next(now=now)
    too_soon = await catalog.release_next(now=now + timedelta(days=1))
    forced = await catalog.release_next(force=True)
    later = await catalog.release_next(now=timezone.now() + timedelta(days=4))

    assert first.slug == "first-win"
    assert too_soon is None
    assert forced.slug == "10-wins"
    assert later.slug == "25-wins"
    assert await Milestone.objects.acount() == 3


@pytest.mark.django_db(transaction=True)
async def test_evaluation_awards_once():
    await _seed_full_catalog()
    await sync_to_async(register)("u1", "u2")
    match = await sync_to_async(commit_match)(make_extracted(3, 1), player="u1", opponent="u2")
    evaluator = BadgeEvaluator()

    winner = await evaluator.evaluate("u1", match_id=match.pk)
    again = await evaluator.evaluate("u1", match_id=match.pk)
    loser = await evaluator.evaluate("u2", match_id=match.pk)

    assert {b.slug for b in winner} == {"first-victory", "getting-started"}
    assert again == []
    assert {b.slug for b in loser} == {"first-defeat", "getting-started"}
    assert await BadgeAward.objects.filter(player_id="u1").acount() == 2
    assert await BadgeAward.objects.filter(match_id=match.pk).acount() == 4


@pytest.mark.django_db(transaction=True)
def test_streaks_and_clean_sheets_come_from_history():
    register("u1", "u2")
    start = timezone.now() - timedelta(days=10)
    for day, (scored, conceded) in enumerate([(2, 0), (1, 0), (3, 0)]):
        commit_match(
            make_extracted(scored, conceded),
            player="u1",
            opponent="u2",
            played_at=start + timedelta(days=day),
        )

    assert history_stats("u1") == {"clean_sheets": 3, "win_streak": 3, "loss_streak": 0}
    assert history_stats("u2") == {"clean_sheets": 0, "win_streak": 0, "loss_streak": 3}

    async_to_sync(_seed_full_catalog)()
    evaluator = BadgeEvaluator()
    assert {"serial-winner", "the-fortress"} <= {b.slug for b in evaluator.evaluate_sync("u1")}
    assert "tough-day-at-the-office" in {b.slug for b in evaluator.evaluate_sync("u2")}

    # a draw ends both streaks
    commit_match(make_extracted(1, 1), player="u2", opponent="u1", outcome="draw", played_at=start + timedelta(days=5))
    assert history_stats("u1")["win_streak"] == 0
    assert history_stats("u2")["loss_streak"] == 0


@pytest.mark.django_db(transaction=True)
async def test_only_the_uploader_is_notified(fake_narrator):
    await _seed_full_catalog()
    await sync_to_async(register)("u1", "u2")
    match = await sync_to_async(commit_match)(make_extracted(3, 1), player="u1", opponent="u2")
    inbox = NotificationInbox()
    engine = DerivedEffectsEngine(narrator=fake_narrator, inbox=inbox)

    awarded = await engine.evaluate_badges(committed_event(match))

    assert set(awarded) == {"u1", "u2"}
    assert awarded["u2"]  # the opponent still earns badges
    notices = await inbox.peek("u1")
    assert {n["badge"] for n in notices} == {"first-victory", "getting-started"}
    assert all(n["type"] == "badge_unlocked" for n in notices)
    assert await inbox.peek("u2") == []

    drained = await inbox.drain("u1")
    assert len(drained) == 2
    assert await inbox.peek("u1") == []
