# apps/rankings/conf.py
# ================================================================================
"""Configuration and constants for the rankings app."""

from __future__ import annotations

from typing import Final

from common.time_utils import WINDOW_ALL_TIME, WINDOW_DAY, WINDOW_MONTH, WINDOW_YEAR

# ─── Windows ───────────────────────────────────────────────────────────────────
LEADERBOARD_WINDOWS: Final[dict[str, str]] = {
    "monthly": WINDOW_MONTH,
    "yearly": WINDOW_YEAR,
    "all-time": WINDOW_ALL_TIME,
}
DEFAULT_LEADERBOARD_WINDOW: Final = "all-time"

LOSER_WINDOWS: Final[tuple[str, ...]] = (WINDOW_DAY, WINDOW_MONTH, WINDOW_YEAR)
DEFAULT_LOSER_WINDOW: Final = WINDOW_MONTH

# ─── Best-of categories ────────────────────────────────────────────────────────
# key -> (label, Player attribute or property)
BEST_OF_CATEGORIES: Final[dict[str, tuple[str, str]]] = {
    "most_wins": ("Most Wins", "wins"),
    "most_losses": ("Most Losses", "losses"),
    "most_draws": ("Most Draws", "draws"),
    "most_goals_for": ("Top Scorer", "goals_for"),
    "most_goals_against": ("Leakiest Defence", "goals_against"),
    "best_passer": ("Best Passer", "successful_passes"),
    "best_shooter": ("Best Shooter", "shots_on_target"),
    "most_tackles": ("Tackle Machine", "tackles"),
    "most_saves": ("Busiest Keeper", "saves"),
    "most_red_cards": ("Most Red Cards", "red_cards"),
    "best_pass_accuracy": ("Best Pass Accuracy", "pass_accuracy"),
    "best_shot_accuracy": ("Best Shot Accuracy", "shot_accuracy"),
}

# ─── Cache Timeouts ────────────────────────────────────────────────────────────
TIMEOUTS: Final[dict[str, int]] = {
    "leaderboard": 30,
    "best_of": 60,
    "losers": 60,
}
