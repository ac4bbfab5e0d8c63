# apps/achievements/serializers.py
# ================================================================================
"""Read-only serializers for badges, milestones and hall entries."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import Badge, HallEntry


class BadgeSerializer:
    @staticmethod
    def serialize_badge(badge: Badge) -> dict[str, Any]:
        data = {
            "slug": badge.slug,
            "name": badge.name,
            "description": badge.description,
            "criteria": badge.criteria,
            "criteria_stat": badge.criteria_stat,
            "criteria_value": badge.criteria_value,
            "icon_name": badge.icon_name,
        }
        holders = getattr(badge, "holder_count", None)
        if holders is not None:
            data["holder_count"] = holders
        return data

    @classmethod
    def serialize_badges(cls, badges: list[Badge]) -> list[dict[str, Any]]:
        return [cls.serialize_badge(b) for b in badges]


class HallEntrySerializer:
    @staticmethod
    def serialize_entry(entry: HallEntry) -> dict[str, Any]:
        return {
            "id": entry.pk,
            "kind": entry.kind,
            "title": entry.title,
            "description": entry.description,
            "match_id": entry.match_id,
            "subject_id": entry.subject_id,
            "opponent_id": entry.opponent_id,
            "stat": entry.stat,
            "narrative": entry.narrative,
            "created_at": entry.created_at,
        }

    @classmethod
    def serialize_entries(cls, entries: list[HallEntry]) -> list[dict[str, Any]]:
        return [cls.serialize_entry(e) for e in entries]
