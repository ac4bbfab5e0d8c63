import pytest
from django.db import DatabaseError

from apps.core.conf import DRAW
from apps.matches.exceptions import (
    DuplicateMatchError,
    ImmutableMatchError,
    MatchCommitError,
    UnknownPlayerError,
)
from apps.matches.models import Match, MatchSide
from apps.matches.services.match_commit import MatchCommitService
from apps.matches.services.workflow import ConfirmationWorkflow
from apps.players.models import Player
from conftest import make_extracted


async def _players(*ids):
    for player_id in ids:
        await Player.objects.acreate(player_id=player_id, display_name=player_id.upper())


def _confirm(extracted, *, player="u1", opponent="u2", side="team1", outcome="win"):
    workflow = ConfirmationWorkflow.from_extracted(player, extracted)
    workflow.select_side(side)
    workflow.select_opponent(opponent)
    workflow.select_outcome(outcome)
    return workflow.confirm()


@pytest.mark.django_db(transaction=True)
async def test_three_one_win_updates_both_players(recording_publisher):
    await _players("u1", "u2")
    service = MatchCommitService(publisher=recording_publisher)

    match = await service.commit_async(_confirm(make_extracted(3, 1)))

    assert match.winner_id == "u1"
    u1 = await Player.objects.aget(pk="u1")
    u2 = await Player.objects.aget(pk="u2")
    assert (u1.wins, u1.losses, u1.draws, u1.goals_for, u1.goals_against) == (1, 0, 0, 3, 1)
    assert (u2.wins, u2.losses, u2.draws, u2.goals_for, u2.goals_against) == (0, 1, 0, 1, 3)
    assert u1.passes == 100 and u1.successful_passes == 80 and u1.tackles == 8
    assert await MatchSide.objects.filter(match=match).acount() == 2

    from apps.matches.services.events import wait_for_background_tasks

    await wait_for_background_tasks(timeout=1)
    [event] = recording_publisher.events
    assert event.match_id == match.pk
    assert event.active_player_id == "u1"
    assert set(event.participant_ids) == {"u1", "u2"}


@pytest.mark.django_db(transaction=True)
async def test_resubmission_is_rejected_and_changes_nothing(recording_publisher):
    await _players("u1", "u2")
    service = MatchCommitService(publisher=recording_publisher)
    await service.commit_async(_confirm(make_extracted(3, 1)))
    before = {p.pk: p.stat_block() async for p in Player.objects.all()}

    # same screenshot, uploaded by the loser this time
    with pytest.raises(DuplicateMatchError) as exc_info:
        await service.commit_async(
            _confirm(make_extracted(3, 1), player="u2", opponent="u1", side="team2", outcome="loss"),
        )

    assert exc_info.value.status_code == 409
    assert exc_info.value.detail == "This match has already been uploaded."
    assert await Match.objects.acount() == 1
    assert {p.pk: p.stat_block() async for p in Player.objects.all()} == before


def _stale_duplicate_lookups(monkeypatch, stale):
    """The first *stale* lookups miss, as if a concurrent upload committed right after them."""
    calls = []
    real = MatchCommitService.is_duplicate

    def lookup(fingerprint):
        calls.append(fingerprint)
        return False if len(calls) <= stale else real(fingerprint)

    monkeypatch.setattr(MatchCommitService, "is_duplicate", staticmethod(lookup))
    return calls


@pytest.mark.django_db(transaction=True)
@pytest.mark.parametrize(
    "stale, lookups",
    [
        pytest.param(1, 2, id="caught-by-recheck-under-lock"),
        pytest.param(2, 3, id="caught-by-unique-constraint"),
    ],
)
def test_concurrent_duplicate_is_rejected_after_precheck(monkeypatch, stale, lookups):
    Player.objects.create(player_id="u1", display_name="U1")
    Player.objects.create(player_id="u2", display_name="U2")
    service = MatchCommitService()
    service.persist(_confirm(make_extracted(3, 1)))
    before = {p.pk: p.stat_block() for p in Player.objects.all()}
    calls = _stale_duplicate_lookups(monkeypatch, stale)

    with pytest.raises(DuplicateMatchError):
        service.persist(_confirm(make_extracted(3, 1), player="u2", opponent="u1", side="team2", outcome="loss"))

    assert len(calls) == lookups
    assert Match.objects.count() == 1
    assert MatchSide.objects.count() == 2
    assert {p.pk: p.stat_block() for p in Player.objects.all()} == before


@pytest.mark.django_db(transaction=True)
def test_failed_aggregate_update_rolls_everything_back(monkeypatch):
    Player.objects.create(player_id="u1", display_name="U1")
    Player.objects.create(player_id="u2", display_name="U2")
    calls = []
    original = MatchCommitService._apply_aggregates

    def flaky(self, payload, player_id):
        calls.append(player_id)
        if len(calls) == 2:
            raise DatabaseError("connection lost")
        return original(self, payload, player_id)

    monkeypatch.setattr(MatchCommitService, "_apply_aggregates", flaky)

    with pytest.raises(MatchCommitError) as exc_info:
        MatchCommitService().persist(_confirm(make_extracted(3, 1)))

    assert exc_info.value.retryable
    assert calls == ["u1", "u2"]
    assert Match.objects.count() == 0
    assert MatchSide.objects.count() == 0
    assert all(p.matches_played == 0 and p.goals_for == 0 for p in Player.objects.all())


@pytest.mark.django_db(transaction=True)
def test_draw_counts_for_both_and_stores_sentinel():
    Player.objects.create(player_id="u1", display_name="U1")
    Player.objects.create(player_id="u2", display_name="U2")

    match = MatchCommitService().persist(_confirm(make_extracted(2, 2), outcome="draw"))

    assert match.winner_id == DRAW
    assert match.is_draw and match.loser_id is None
    assert [p.draws for p in Player.objects.order_by("pk")] == [1, 1]
    assert [p.wins + p.losses for p in Player.objects.all()] == [0, 0]


@pytest.mark.django_db(transaction=True)
def test_every_commit_adds_exactly_one_result_per_participant():
    for player_id in ("u1", "u2", "u3"):
        Player.objects.create(player_id=player_id, display_name=player_id)
    service = MatchCommitService()

    service.persist(_confirm(make_extracted(3, 1)))
    service.persist(_confirm(make_extracted(0, 2), opponent="u3", outcome="loss"))
    service.persist(_confirm(make_extracted(1, 1), player="u2", opponent="u3", outcome="draw"))

    played = {p.pk: p.matches_played for p in Player.objects.all()}
    assert played == {"u1": 2, "u2": 2, "u3": 2}
    totals = Player.objects.all()
    assert sum(p.wins for p in totals) == sum(p.losses for p in totals) == 2
    assert sum(p.goals_for for p in totals) == sum(p.goals_against for p in totals)


@pytest.mark.django_db(transaction=True)
def test_unknown_opponent_writes_nothing():
    Player.objects.create(player_id="u1", display_name="U1")

    with pytest.raises(UnknownPlayerError):
        MatchCommitService().persist(_confirm(make_extracted(3, 1), opponent="ghost"))

    assert Match.objects.count() == 0
    assert Player.objects.get(pk="u1").matches_played == 0


@pytest.mark.django_db(transaction=True)
def test_committed_match_only_accepts_roast_edits():
    Player.objects.create(player_id="u1", display_name="U1")
    Player.objects.create(player_id="u2", display_name="U2")
    match = MatchCommitService().persist(_confirm(make_extracted(3, 1)))

    match.roast = "Sit down."
    match.save(update_fields=["roast", "updated_at"])
    assert Match.objects.get(pk=match.pk).roast == "Sit down."

    match.winner_id = "u2"
    with pytest.raises(ImmutableMatchError):
        match.save()
    with pytest.raises(ImmutableMatchError):
        match.save(update_fields=["winner_id"])
    with pytest.raises(ImmutableMatchError):
        Match.objects.filter(pk=match.pk).update(fingerprint="tampered")
    assert Match.objects.get(pk=match.pk).winner_id == "u1"


def test_aggregate_increments_mirror_each_other():
    payload = _confirm(make_extracted(3, 1, team2={"tackles": 12, "redCards": 1}))

    u1 = MatchCommitService.aggregate_increments(payload, "u1")
    u2 = MatchCommitService.aggregate_increments(payload, "u2")

    assert u1["wins"] == 1 and "losses" not in u1
    assert u2["losses"] == 1 and "wins" not in u2
    assert (u1["goals_for"], u1["goals_against"]) == (u2["goals_against"], u2["goals_for"]) == (3, 1)
    assert u2["tackles"] == 12 and u2["red_cards"] == 1
    assert u1["tackles"] == 8 and u1["red_cards"] == 0
