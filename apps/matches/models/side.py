# apps/matches/models/side.py
# ================================================================================
"""Per-side stat lines of a match: what the screenshot showed for each half."""

from __future__ import annotations

from django.db import models

from apps.matches.conf import Side


class MatchSide(models.Model):
    """One participant's numbers for one match."""

    match = models.ForeignKey("matches.Match", on_delete=models.CASCADE, related_name="sides")
    side = models.CharField(max_length=5, choices=Side.choices)
    player = models.ForeignKey("players.Player", on_delete=models.PROTECT, related_name="match_sides")

    name = models.CharField(max_length=64, blank=True, default="", help_text="Club name shown on screen.")
    score = models.PositiveSmallIntegerField(default=0)
    possession = models.CharField(max_length=16, default="0%")
    shots = models.PositiveSmallIntegerField(default=0)
    shots_on_target = models.PositiveSmallIntegerField(default=0)
    fouls = models.PositiveSmallIntegerField(default=0)
    offsides = models.PositiveSmallIntegerField(default=0)
    corner_kicks = models.PositiveSmallIntegerField(default=0)
    free_kicks = models.PositiveSmallIntegerField(default=0)
    passes = models.PositiveIntegerField(default=0)
    successful_passes = models.PositiveIntegerField(default=0)
    crosses = models.PositiveSmallIntegerField(default=0)
    interceptions = models.PositiveSmallIntegerField(default=0)
    tackles = models.PositiveSmallIntegerField(default=0)
    saves = models.PositiveSmallIntegerField(default=0)
    pass_accuracy = models.FloatField(null=True, blank=True, help_text="As printed on screen, if any.")
    red_cards = models.PositiveSmallIntegerField(default=0)

    class Meta:
        db_table = "match_sides"
        ordering = ["match_id", "side"]
        constraints = [
            models.UniqueConstraint(fields=["match", "side"], name="match_side_unique"),
            models.UniqueConstraint(fields=["match", "player"], name="match_player_unique"),
        ]

    def __str__(self) -> str:
        return f"{self.match_id}:{self.side} ({self.player_id})"
