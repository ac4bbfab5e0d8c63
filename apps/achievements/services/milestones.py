# apps/achievements/services/milestones.py
"""A player's progress towards each released milestone."""

from __future__ import annotations

from typing import Any

from asgiref.sync import sync_to_async

from apps.achievements.conf import HISTORY_STATS
from apps.achievements.models import Milestone
from apps.achievements.services.badges import player_stats
from apps.core.utils import safe_ratio
from apps.players.models import Player


def milestone_progress(player: Player) -> list[dict[str, Any]]:
    milestones = list(Milestone.objects.all())
    stats = player_stats(player, with_history=any(m.stat in HISTORY_STATS for m in milestones))
    journey = []
    for milestone in milestones:
        current = stats.get(milestone.stat, 0)
        journey.append(
            {
                "slug": milestone.slug,
                "title": milestone.title,
                "description": milestone.description,
                "stat": milestone.stat,
                "target": milestone.target,
                "current": current,
                "progress": round(min(safe_ratio(current, milestone.target), 1.0) * 100, 1),
                "achieved": current >= milestone.target,
            },
        )
    return journey


amilestone_progress = sync_to_async(milestone_progress, thread_sensitive=True)
