# apps/matches/models/match.py
# ================================================================================
"""The Match model: one confirmed head-to-head result between two players."""

from __future__ import annotations

from datetime import datetime
from typing import Self

from django.db import models
from django.utils import timezone

from apps.core.conf import DRAW
from apps.matches.conf import MUTABLE_MATCH_FIELDS, Side
from apps.matches.exceptions import ImmutableMatchError


def _check_mutable(fields) -> None:
    illegal = set(fields) - MUTABLE_MATCH_FIELDS
    if illegal:
        msg = f"Committed matches are immutable; refused to update {sorted(illegal)}"
        raise ImmutableMatchError(msg)


class MatchQuerySet(models.QuerySet["Match"]):
    """Custom queryset for the Match model with chainable filter methods."""

    def with_sides(self) -> Self:
        """Eager-loads both sides and participants to prevent N+1 queries."""
        return self.select_related("created_by", "opponent").prefetch_related("sides")

    def involving(self, player_id: str) -> Self:
        return self.filter(models.Q(created_by_id=player_id) | models.Q(opponent_id=player_id))

    def decisive(self) -> Self:
        return self.exclude(winner_id=DRAW)

    def played_between(self, start: datetime | None, end: datetime | None = None) -> Self:
        qs = self
        if start is not None:
            qs = qs.filter(played_at__gte=start)
        if end is not None:
            qs = qs.filter(played_at__lt=end)
        return qs

    def update(self, **kwargs):
        _check_mutable(kwargs)
        return super().update(**kwargs)


class MatchManager(models.Manager.from_queryset(MatchQuerySet)):
    """Exposes the MatchQuerySet methods on the default manager (Match.objects)."""


class Match(models.Model):
    """
    A committed match. Participants, sides, winner and fingerprint never change
    after the insert; only the roast text may be rewritten later.
    """

    created_by = models.ForeignKey(
        "players.Player",
        on_delete=models.PROTECT,
        related_name="created_matches",
        db_comment="Player who uploaded the screenshot.",
    )
    opponent = models.ForeignKey(
        "players.Player",
        on_delete=models.PROTECT,
        related_name="opposed_matches",
    )
    winner_id = models.CharField(
        max_length=128,
        db_index=True,
        db_comment="Player id of the winner, or 'draw'.",
    )
    user_team_side = models.CharField(
        max_length=5,
        choices=Side.choices,
        help_text="Side of the screenshot the uploader played on.",
    )
    team1_name = models.CharField(max_length=64)
    team2_name = models.CharField(max_length=64)
    played_at = models.DateTimeField(default=timezone.now, db_index=True)
    fingerprint = models.CharField(
        max_length=512,
        db_comment="Participant ids plus headline stats; rejects re-uploads.",
    )
    roast = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = MatchManager()

    class Meta:
        db_table = "matches"
        ordering = ["-played_at", "-id"]
        verbose_name = "Match"
        verbose_name_plural = "Matches"
        constraints = [
            models.UniqueConstraint(fields=["fingerprint"], name="match_fingerprint_unique"),
            models.CheckConstraint(
                condition=~models.Q(created_by=models.F("opponent")),
                name="match_distinct_participants",
            ),
        ]

    def __str__(self) -> str:
        return f"Match {self.pk}: {self.team1_name} vs {self.team2_name}"

    def save(self, *args, **kwargs) -> None:
        if not self._state.adding:
            update_fields = kwargs.get("update_fields")
            if update_fields is None:
                msg = "Committed matches can only be saved with explicit update_fields"
                raise ImmutableMatchError(msg)
            _check_mutable(update_fields)
        super().save(*args, **kwargs)

    @property
    def is_draw(self) -> bool:
        return self.winner_id == DRAW

    @property
    def loser_id(self) -> str | None:
        if self.is_draw:
            return None
        return self.opponent_id if self.winner_id == self.created_by_id else self.created_by_id

    @property
    def opponent_side(self) -> Side:
        return Side(self.user_team_side).other

    def side_of(self, player_id: str) -> Side:
        if player_id == self.created_by_id:
            return Side(self.user_team_side)
        if player_id == self.opponent_id:
            return self.opponent_side
        msg = f"Player {player_id!r} did not play match {self.pk}"
        raise ValueError(msg)
