# apps/players/models/player.py
# ================================================================================
"""The Player model: a registered participant and their lifetime stat block."""

from __future__ import annotations

from django.db import models
from django.db.models import QuerySet

from apps.core.utils import safe_percent, safe_ratio
from apps.players.conf import AGGREGATE_FIELDS

__all__ = ("Player", "PlayerQuerySet")


class PlayerQuerySet(QuerySet["Player"]):
    """Custom QuerySet for the Player model with chainable filter methods."""

    def with_badges(self) -> PlayerQuerySet:
        return self.prefetch_related("badges")

    def have_played(self) -> PlayerQuerySet:
        """Players with at least one recorded result."""
        return self.filter(models.Q(wins__gt=0) | models.Q(losses__gt=0) | models.Q(draws__gt=0))


class Player(models.Model):
    """
    A participant in the group.

    The aggregate counters below are written only by the match commit service,
    and only with F() increments inside the same transaction that inserts the
    match. Nothing else in the codebase assigns them.
    """

    player_id = models.CharField(max_length=128, primary_key=True, help_text="External auth identifier.")
    display_name = models.CharField(max_length=64, db_index=True)
    real_name = models.CharField(max_length=128, blank=True, null=True)
    team_name = models.CharField(max_length=64, blank=True, null=True, help_text="Usual in-game club.")
    avatar_url = models.URLField(max_length=512, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    # ── aggregate stat block ────────────────────────────────────────────
    wins = models.PositiveIntegerField(default=0)
    losses = models.PositiveIntegerField(default=0)
    draws = models.PositiveIntegerField(default=0)
    goals_for = models.PositiveIntegerField(default=0)
    goals_against = models.PositiveIntegerField(default=0)
    shots = models.PositiveIntegerField(default=0)
    shots_on_target = models.PositiveIntegerField(default=0)
    passes = models.PositiveIntegerField(default=0)
    successful_passes = models.PositiveIntegerField(default=0)
    tackles = models.PositiveIntegerField(default=0)
    saves = models.PositiveIntegerField(default=0)
    red_cards = models.PositiveIntegerField(default=0)

    badges = models.ManyToManyField(
        "achievements.Badge",
        through="achievements.BadgeAward",
        related_name="holders",
        blank=True,
    )

    objects = PlayerQuerySet.as_manager()

    class Meta:
        db_table = "players"
        ordering = ["display_name"]
        verbose_name = "Player"
        verbose_name_plural = "Players"

    def __str__(self) -> str:
        return self.display_name or f"Player {self.player_id}"

    # ── derived, read-only ──────────────────────────────────────────────
    @property
    def matches_played(self) -> int:
        return self.wins + self.losses + self.draws

    @property
    def win_rate(self) -> float:
        """Wins over decided matches; draws do not count either way."""
        return safe_ratio(self.wins, self.wins + self.losses)

    @property
    def pass_accuracy(self) -> float:
        return safe_percent(self.successful_passes, self.passes)

    @property
    def shot_accuracy(self) -> float:
        return safe_percent(self.shots_on_target, self.shots)

    def stat_block(self) -> dict[str, int]:
        return {name: getattr(self, name) for name in AGGREGATE_FIELDS}
