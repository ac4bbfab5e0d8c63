# apps/matches/conf.py
# ================================================================================
"""Configuration, constants and enums for the 'matches' app."""

from __future__ import annotations

from typing import Final

from django.db import models

from apps.core.conf import DRAW

# ─── App-wide Constants ────────────────────────────────────────────────────────
DEFAULT_TEAM_NAMES: Final[tuple[str, str]] = ("Team 1", "Team 2")
MAX_COMMENT_LENGTH: Final[int] = 1_000
MAX_ROAST_LENGTH: Final[int] = 2_000
MAX_IMAGE_BYTES: Final[int] = 10 * 1024 * 1024
ALLOWED_IMAGE_TYPES: Final[frozenset[str]] = frozenset(
    {"image/png", "image/jpeg", "image/webp", "image/heic", "image/heif"},
)

# Stats that make up the duplicate fingerprint, in order. Each contributes the
# team1 value then the team2 value.
FINGERPRINT_FIELDS: Final[tuple[str, ...]] = (
    "score",
    "possession",
    "shots",
    "shots_on_target",
    "saves",
    "passes",
    "tackles",
    "fouls",
)
FINGERPRINT_SEPARATOR: Final[str] = "|"

# Only these Match columns may change after the commit.
MUTABLE_MATCH_FIELDS: Final[frozenset[str]] = frozenset({"roast", "updated_at"})

# ─── Cache Timeouts ────────────────────────────────────────────────────────────
TIMEOUTS: Final[dict[str, int]] = {
    "match_list": 30,
    "match_detail": 60,
}


# ─── Django Model Enums ────────────────────────────────────────────────────────
class Side(models.TextChoices):
    """Which half of the screenshot a player's numbers are on."""

    TEAM1 = "team1", "Team 1"
    TEAM2 = "team2", "Team 2"

    @property
    def other(self) -> Side:
        return Side.TEAM2 if self == Side.TEAM1 else Side.TEAM1


class Outcome(models.TextChoices):
    """Result of a match from one participant's point of view."""

    WIN = "win", "Win"
    LOSS = "loss", "Loss"
    DRAW = "draw", "Draw"

    @property
    def inverse(self) -> Outcome:
        if self == Outcome.WIN:
            return Outcome.LOSS
        if self == Outcome.LOSS:
            return Outcome.WIN
        return Outcome.DRAW

    @property
    def result_field(self) -> str:
        """Name of the Player counter this outcome increments."""
        return {Outcome.WIN: "wins", Outcome.LOSS: "losses", Outcome.DRAW: "draws"}[self]


def winner_for(outcome: Outcome, creator_id: str, opponent_id: str) -> str:
    """The `Match.winner_id` value for *outcome* declared by the creator."""
    if outcome == Outcome.WIN:
        return creator_id
    if outcome == Outcome.LOSS:
        return opponent_id
    return DRAW


def outcome_from_scores(own_score: int, other_score: int) -> Outcome:
    if own_score > other_score:
        return Outcome.WIN
    if own_score < other_score:
        return Outcome.LOSS
    return Outcome.DRAW
