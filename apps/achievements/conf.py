# apps/achievements/conf.py
# ================================================================================
"""Catalogs, enums and constants for the 'achievements' app."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Final

from django.db import models


class BadgeStat(models.TextChoices):
    """Statistics a badge or milestone can be measured against."""

    WINS = "wins", "Wins"
    LOSSES = "losses", "Losses"
    DRAWS = "draws", "Draws"
    GOALS_FOR = "goals_for", "Goals scored"
    GOALS_AGAINST = "goals_against", "Goals conceded"
    TACKLES = "tackles", "Tackles"
    MATCHES_PLAYED = "matches_played", "Matches played"
    CLEAN_SHEETS = "clean_sheets", "Clean sheets"
    WIN_STREAK = "win_streak", "Current win streak"
    LOSS_STREAK = "loss_streak", "Current loss streak"


# Stats that need the player's match history rather than the aggregate block.
HISTORY_STATS: Final[frozenset[str]] = frozenset(
    {BadgeStat.CLEAN_SHEETS, BadgeStat.WIN_STREAK, BadgeStat.LOSS_STREAK},
)


class HallKind(models.TextChoices):
    FAME = "fame", "Hall of Fame"
    SHAME = "shame", "Hall of Shame"


@dataclass(frozen=True, slots=True)
class BadgeSpec:
    slug: str
    name: str
    criteria: str
    stat: BadgeStat
    value: int
    icon_name: str


@dataclass(frozen=True, slots=True)
class MilestoneSpec:
    slug: str
    title: str
    description: str
    stat: BadgeStat
    target: int


BADGE_CATALOG: Final[tuple[BadgeSpec, ...]] = (
    BadgeSpec("first-victory", "First Victory", "Get your first win", BadgeStat.WINS, 1, "Trophy"),
    BadgeSpec("goal-scorer", "Goal Scorer", "Score 10 goals", BadgeStat.GOALS_FOR, 10, "Zap"),
    BadgeSpec("the-participant", "The Participant", "Play 5 matches", BadgeStat.MATCHES_PLAYED, 5, "Award"),
    BadgeSpec("getting-started", "Getting Started", "Play your first match", BadgeStat.MATCHES_PLAYED, 1, "Footprints"),
    BadgeSpec("tenacious-tackler", "Tenacious Tackler", "Complete 20 tackles", BadgeStat.TACKLES, 20, "Footprints"),
    BadgeSpec("serial-winner", "Serial Winner", "Win 3 matches in a row", BadgeStat.WIN_STREAK, 3, "Flame"),
    BadgeSpec("the-fortress", "The Fortress", "Keep 1 clean sheet", BadgeStat.CLEAN_SHEETS, 1, "Shield"),
    BadgeSpec("first-defeat", "First Defeat", "Lose your first match", BadgeStat.LOSSES, 1, "HeartCrack"),
    BadgeSpec("butter-fingers", "Butter Fingers", "Concede 10 goals", BadgeStat.GOALS_AGAINST, 10, "Bot"),
    BadgeSpec("the-philanthropist", "The Philanthropist", "Lose 5 matches", BadgeStat.LOSSES, 5, "ThumbsDown"),
    BadgeSpec(
        "tough-day-at-the-office",
        "Tough Day at the Office",
        "Lose 3 matches in a row",
        BadgeStat.LOSS_STREAK,
        3,
        "Coffee",
    ),
)

MILESTONE_CATALOG: Final[tuple[MilestoneSpec, ...]] = (
    MilestoneSpec("first-win", "First Win", "Win your very first match.", BadgeStat.WINS, 1),
    MilestoneSpec("10-wins", "10 Wins", "Reach ten victories.", BadgeStat.WINS, 10),
    MilestoneSpec("25-wins", "25 Wins", "Reach twenty-five victories.", BadgeStat.WINS, 25),
    MilestoneSpec("25-goals", "25 Goals", "Score twenty-five goals in total.", BadgeStat.GOALS_FOR, 25),
    MilestoneSpec("100-goals", "100 Goals", "Score a hundred goals in total.", BadgeStat.GOALS_FOR, 100),
    MilestoneSpec("50-tackles", "50 Tackles", "Make fifty tackles in total.", BadgeStat.TACKLES, 50),
    MilestoneSpec("10-matches", "10 Matches", "Play ten matches.", BadgeStat.MATCHES_PLAYED, 10),
)

# At most this many catalog badges are materialised per maintenance run.
BADGE_BATCH_SIZE: Final[int] = 2
# A new milestone is released when the newest one is older than this.
MILESTONE_RELEASE_INTERVAL: Final[timedelta] = timedelta(days=3)

FAME_TITLE: Final = "Glorious Victory"
SHAME_TITLE: Final = "Crushing Defeat"

# ─── Cache Timeouts ────────────────────────────────────────────────────────────
TIMEOUTS: Final[dict[str, int]] = {
    "badge_list": 60,
    "hall_list": 30,
}
