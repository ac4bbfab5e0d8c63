# apps/matches/schemas/stats.py
# ================================================================================
"""
Schemas for the numbers read off a post-match screenshot.

The AI service answers in camelCase and is not always careful about types, so
every numeric field is coerced: garbled or missing values become 0 rather than
failing the whole extraction.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from apps.matches.conf import DEFAULT_TEAM_NAMES, Outcome, Side

_NUMBER_RE = re.compile(r"-?\d+(?:[.,]\d+)?")

COUNT_FIELDS: tuple[str, ...] = (
    "score",
    "shots",
    "shots_on_target",
    "fouls",
    "offsides",
    "corner_kicks",
    "free_kicks",
    "passes",
    "successful_passes",
    "crosses",
    "interceptions",
    "tackles",
    "saves",
    "red_cards",
)


def coerce_count(value: Any) -> int:
    """Best-effort non-negative integer from whatever the model produced."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float):
        return max(round(value), 0)
    if isinstance(value, str):
        found = _NUMBER_RE.search(value)
        if found:
            return max(round(float(found.group().replace(",", "."))), 0)
    return 0


class PlayerStatsRow(BaseModel):
    """One side of the screenshot."""

    name: str = ""
    score: int = 0
    possession: str = "0%"
    shots: int = 0
    shots_on_target: int = 0
    fouls: int = 0
    offsides: int = 0
    corner_kicks: int = 0
    free_kicks: int = 0
    passes: int = 0
    successful_passes: int = 0
    crosses: int = 0
    interceptions: int = 0
    tackles: int = 0
    saves: int = 0
    pass_accuracy: float | None = None
    red_cards: int = 0
    user_id: str | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    @field_validator(*COUNT_FIELDS, mode="before")
    @classmethod
    def _coerce_counts(cls, v: Any) -> int:
        return coerce_count(v)

    @field_validator("possession", mode="before")
    @classmethod
    def _coerce_possession(cls, v: Any) -> str:
        # kept verbatim when it is text; it is part of the fingerprint
        if v is None or isinstance(v, bool):
            return "0%"
        if isinstance(v, int | float):
            return f"{v:g}%"
        return str(v).strip() or "0%"

    @field_validator("pass_accuracy", mode="before")
    @classmethod
    def _coerce_accuracy(cls, v: Any) -> float | None:
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, int | float):
            return float(v)
        found = _NUMBER_RE.search(str(v))
        return float(found.group().replace(",", ".")) if found else None

    @field_validator("name", mode="before")
    @classmethod
    def _coerce_name(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()


class ExtractedMatch(BaseModel):
    """Both sides of a screenshot plus the club names shown on it."""

    team1_name: str = DEFAULT_TEAM_NAMES[0]
    team2_name: str = DEFAULT_TEAM_NAMES[1]
    team1_stats: PlayerStatsRow = Field(default_factory=PlayerStatsRow)
    team2_stats: PlayerStatsRow = Field(default_factory=PlayerStatsRow)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    @field_validator("team1_name", "team2_name", mode="before")
    @classmethod
    def _default_names(cls, v: Any, info) -> str:
        text = "" if v is None else str(v).strip()
        if text:
            return text
        return DEFAULT_TEAM_NAMES[0] if info.field_name == "team1_name" else DEFAULT_TEAM_NAMES[1]

    @field_validator("team1_stats", "team2_stats", mode="before")
    @classmethod
    def _default_stats(cls, v: Any) -> Any:
        return {} if v is None else v

    def side(self, side: Side) -> PlayerStatsRow:
        return self.team1_stats if side == Side.TEAM1 else self.team2_stats

    def team_name(self, side: Side) -> str:
        return self.team1_name if side == Side.TEAM1 else self.team2_name


class MatchSubmission(BaseModel):
    """Request body of `POST /api/v1/matches`."""

    extracted: ExtractedMatch
    user_team_side: Side
    opponent_id: str = Field(min_length=1, max_length=128)
    outcome: Outcome
    played_at: datetime | None = None

    model_config = ConfigDict(frozen=True)


class ExtractionRequest(BaseModel):
    """Request body of `POST /api/v1/matches/extract`."""

    image: str = Field(min_length=1, description="data:<mime>;base64,<payload>")
