# apps/achievements/models/milestone.py
"""Released milestones. Progress is computed per player on read."""

from __future__ import annotations

from django.db import models

from apps.achievements.conf import BadgeStat


class Milestone(models.Model):
    slug = models.SlugField(max_length=64, primary_key=True)
    title = models.CharField(max_length=64)
    description = models.CharField(max_length=255, blank=True, default="")
    stat = models.CharField(max_length=32, choices=BadgeStat.choices)
    target = models.PositiveIntegerField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "milestones"
        ordering = ["created_at", "slug"]

    def __str__(self) -> str:
        return self.title
