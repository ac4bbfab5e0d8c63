# apps/achievements/services/notifications.py
"""
Per-player inbox of "badge unlocked" notices.

Only the player who uploaded a match gets told about their new badges; the
opponent still earns them silently. The inbox lives in the cache, so it is
best effort by nature.
"""

from __future__ import annotations

from typing import Any, Final

import structlog
from django.utils import timezone

from apps.core.conf import CACHE_PREFIXES, NOTIFICATION_MAX_ITEMS, NOTIFICATION_TTL
from common.cache_utils import adelete, aget_json, aset_json, cache_lock

log: Final = structlog.get_logger(__name__).bind(component="NotificationInbox")


class NotificationInbox:
    def __init__(self, *, ttl: int = NOTIFICATION_TTL, max_items: int = NOTIFICATION_MAX_ITEMS) -> None:
        self.ttl = ttl
        self.max_items = max_items

    @staticmethod
    def key(player_id: str) -> str:
        return f"{CACHE_PREFIXES['notifications']}{player_id}"

    async def push(self, player_id: str, items: list[dict[str, Any]]) -> None:
        if not items:
            return
        key = self.key(player_id)
        stamp = timezone.now().isoformat()
        async with cache_lock(key, timeout=5, wait_s=5):
            current = await aget_json(key, default=[]) or []
            current.extend({**item, "created_at": stamp} for item in items)
            await aset_json(key, current[-self.max_items :], ttl=self.ttl)
        log.debug("Notifications queued", player_id=player_id, count=len(items))

    async def drain(self, player_id: str) -> list[dict[str, Any]]:
        """Return and clear everything waiting for *player_id*."""
        key = self.key(player_id)
        async with cache_lock(key, timeout=5, wait_s=5):
            items = await aget_json(key, default=[]) or []
            if items:
                await adelete(key)
        return items

    async def peek(self, player_id: str) -> list[dict[str, Any]]:
        return await aget_json(self.key(player_id), default=[]) or []


def badge_notification(badge) -> dict[str, Any]:
    return {
        "type": "badge_unlocked",
        "badge": badge.slug,
        "name": badge.name,
        "icon_name": badge.icon_name,
        "description": badge.description or badge.criteria,
    }
