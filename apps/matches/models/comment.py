# apps/matches/models/comment.py
"""Banter thread under a match. Append-only."""

from __future__ import annotations

from django.db import models

from apps.matches.conf import MAX_COMMENT_LENGTH


class MatchComment(models.Model):
    match = models.ForeignKey("matches.Match", on_delete=models.CASCADE, related_name="comments")
    author = models.ForeignKey("players.Player", on_delete=models.PROTECT, related_name="comments")
    text = models.CharField(max_length=MAX_COMMENT_LENGTH)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "match_comments"
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return f"{self.author_id} on {self.match_id}"
