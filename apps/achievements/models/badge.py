# apps/achievements/models/badge.py
# ================================================================================
"""Badges and the record of who earned them."""

from __future__ import annotations

from django.db import models

from apps.achievements.conf import BadgeStat


class Badge(models.Model):
    """
    A catalog badge. Rows are created lazily from `BADGE_CATALOG` and never
    deleted; only the description may be filled in later.
    """

    slug = models.SlugField(max_length=64, primary_key=True)
    name = models.CharField(max_length=64, unique=True)
    description = models.TextField(blank=True, default="")
    criteria = models.CharField(max_length=128, help_text="Human-readable unlock condition.")
    criteria_stat = models.CharField(max_length=32, choices=BadgeStat.choices)
    criteria_value = models.PositiveIntegerField()
    icon_name = models.CharField(max_length=32)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "badges"
        ordering = ["created_at", "slug"]

    def __str__(self) -> str:
        return self.name

    def is_met_by(self, stats: dict[str, int]) -> bool:
        return stats.get(self.criteria_stat, 0) >= self.criteria_value


class BadgeAward(models.Model):
    """Membership of a badge in a player's set; one row per (player, badge)."""

    player = models.ForeignKey("players.Player", on_delete=models.CASCADE, related_name="badge_awards")
    badge = models.ForeignKey(Badge, on_delete=models.CASCADE, related_name="awards")
    match_id = models.BigIntegerField(null=True, blank=True, help_text="Match whose commit triggered the award.")
    awarded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "badge_awards"
        ordering = ["-awarded_at"]
        constraints = [
            models.UniqueConstraint(fields=["player", "badge"], name="badge_award_unique"),
        ]

    def __str__(self) -> str:
        return f"{self.player_id}:{self.badge_id}"
