# apps/players/conf.py
"""Configuration and constants for the 'players' app."""

from __future__ import annotations

from typing import Final

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

from apps.core.conf import DRAW

# ─── Aggregate stat block ──────────────────────────────────────────────────────
# Result counters, bumped by one per match according to the declared outcome.
RESULT_FIELDS: Final[tuple[str, ...]] = ("wins", "losses", "draws")

# Per-match numbers that are summed into the player's totals. goals_for and
# goals_against come from the side scores, the rest from the player's own side.
SUMMED_SIDE_FIELDS: Final[tuple[str, ...]] = (
    "shots",
    "shots_on_target",
    "passes",
    "successful_passes",
    "tackles",
    "saves",
    "red_cards",
)

AGGREGATE_FIELDS: Final[tuple[str, ...]] = (
    *RESULT_FIELDS,
    "goals_for",
    "goals_against",
    *SUMMED_SIDE_FIELDS,
)

# ─── Cache Timeouts ────────────────────────────────────────────────────────────
TIMEOUTS: Final[dict[str, int]] = {
    "player_list": 30,
    "player_detail": 30,
    "player_journey": 60,
    "player_rivals": 60,
}


class PlayerRegistration(BaseModel):
    """Payload accepted by the signup endpoint."""

    player_id: str = Field(min_length=1, max_length=128)
    display_name: str = Field(min_length=1, max_length=64)
    real_name: str | None = Field(default=None, max_length=128)
    team_name: str | None = Field(default=None, max_length=64)
    avatar_url: HttpUrl | None = None

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    @field_validator("player_id")
    @classmethod
    def _not_reserved(cls, value: str) -> str:
        # Match.winner_id stores DRAW when nobody won
        if value.lower() == DRAW:
            msg = f"{value!r} is a reserved id"
            raise ValueError(msg)
        return value
