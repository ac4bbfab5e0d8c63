"""Shared pytest fixtures."""

from __future__ import annotations

from typing import Any

import pytest
from django.core.cache import cache

from apps.core.services.narrative import HallRoasts
from apps.matches.schemas import ExtractedMatch

BASE_SIDE: dict[str, Any] = {
    "possession": "50%",
    "shots": 10,
    "shotsOnTarget": 5,
    "fouls": 2,
    "offsides": 1,
    "cornerKicks": 3,
    "freeKicks": 2,
    "passes": 100,
    "successfulPasses": 80,
    "crosses": 4,
    "interceptions": 6,
    "tackles": 8,
    "saves": 3,
    "redCards": 0,
}


def make_extracted(
    score1: int = 3,
    score2: int = 1,
    *,
    team1: dict[str, Any] | None = None,
    team2: dict[str, Any] | None = None,
    team1_name: str = "Arsenal",
    team2_name: str = "Chelsea",
) -> ExtractedMatch:
    """A screenshot's worth of stats, camelCase like the model returns it."""
    return ExtractedMatch.model_validate(
        {
            "team1Name": team1_name,
            "team2Name": team2_name,
            "team1Stats": {**BASE_SIDE, "name": team1_name, "score": score1, **(team1 or {})},
            "team2Stats": {**BASE_SIDE, "name": team2_name, "score": score2, **(team2 or {})},
        },
    )


class RecordingPublisher:
    """Collects committed-match events instead of delivering them."""

    def __init__(self) -> None:
        self.events = []

    async def publish(self, event):
        self.events.append(event)
        return {"event_id": event.event_id, "queues": [], "published": 0, "failed": 0, "duration_s": 0.0}


class FakeNarrator:
    """Deterministic stand-in for the narrative generator."""

    def __init__(self, *, roast: str | None = "Too easy.", fail: bool = False) -> None:
        self.roast = roast
        self.fail = fail
        self.calls: list[str] = []

    async def match_roast(self, *, winner, loser, winner_score, loser_score):
        self.calls.append("match_roast")
        if self.fail:
            raise RuntimeError("narrative backend exploded")
        return self.roast

    async def hall_roasts(self, *, winner, loser, winner_score, loser_score):
        self.calls.append("hall_roasts")
        if self.fail:
            raise RuntimeError("narrative backend exploded")
        return HallRoasts(fame=f"{winner} is unstoppable", shame=f"{loser} should retire")

    async def badge_description(self, *, name, criteria):
        self.calls.append("badge_description")
        return f"{name}: {criteria}"

    async def close(self):
        pass


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def extracted_factory():
    return make_extracted


@pytest.fixture
def recording_publisher():
    return RecordingPublisher()


@pytest.fixture
def fake_narrator():
    return FakeNarrator()


def register(*player_ids: str, **fields: Any) -> list:
    """Create players named after their ids (sync; wrap with sync_to_async in async tests)."""
    from apps.players.models import Player

    return [Player.objects.create(player_id=pid, display_name=pid.upper(), **fields) for pid in player_ids]


def commit_match(
    extracted: ExtractedMatch,
    *,
    player: str,
    opponent: str,
    side: str = "team1",
    outcome: str = "win",
    played_at=None,
):
    """Walk the confirmation workflow and store the match without announcing it."""
    from apps.matches.services.match_commit import MatchCommitService
    from apps.matches.services.workflow import ConfirmationWorkflow

    workflow = ConfirmationWorkflow.from_extracted(player, extracted)
    workflow.select_side(side)
    workflow.select_opponent(opponent)
    workflow.select_outcome(outcome)
    return MatchCommitService().persist(workflow.confirm(played_at=played_at))


def committed_event(match):
    from common.messaging.types import MatchCommittedEvent

    return MatchCommittedEvent(
        match_id=match.pk,
        creator_id=match.created_by_id,
        opponent_id=match.opponent_id,
        winner_id=match.winner_id,
        fingerprint=match.fingerprint,
    )
