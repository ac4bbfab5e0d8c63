# apps/achievements/models/hall.py
# ================================================================================
"""Hall of Fame / Hall of Shame entries."""

from __future__ import annotations

from typing import Self

from django.db import models

from apps.achievements.conf import HallKind


class HallEntryQuerySet(models.QuerySet["HallEntry"]):
    def fame(self) -> Self:
        return self.filter(kind=HallKind.FAME)

    def shame(self) -> Self:
        return self.filter(kind=HallKind.SHAME)

    def about(self, player_id: str) -> Self:
        return self.filter(subject_id=player_id)


class HallEntry(models.Model):
    """
    One caption per decisive match and kind. Match and players are referenced
    by plain id columns: an entry is a historical note, not a dependent row.
    """

    kind = models.CharField(max_length=5, choices=HallKind.choices, db_index=True)
    title = models.CharField(max_length=64)
    description = models.CharField(max_length=255)
    match_id = models.BigIntegerField(db_index=True)
    subject_id = models.CharField(max_length=128, db_index=True, db_comment="Player the entry is about.")
    opponent_id = models.CharField(max_length=128)
    stat = models.CharField(max_length=64, help_text='e.g. "Won by 2 goals"')
    narrative = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = HallEntryQuerySet.as_manager()

    class Meta:
        db_table = "hall_entries"
        ordering = ["-created_at", "-id"]
        verbose_name_plural = "Hall entries"
        constraints = [
            models.UniqueConstraint(fields=["match_id", "kind"], name="hall_entry_match_kind_unique"),
        ]

    def __str__(self) -> str:
        return f"{self.kind}: {self.description}"
