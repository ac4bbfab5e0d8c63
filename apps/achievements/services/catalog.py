# apps/achievements/services/catalog.py
# ===============================================================================
"""
Lazy materialisation of the badge and milestone catalogs.

Badges trickle in a couple at a time as matches are played; milestones are
released one at a time on a fixed cadence.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Final

import structlog

from apps.achievements.conf import (
    BADGE_BATCH_SIZE,
    BADGE_CATALOG,
    MILESTONE_CATALOG,
    MILESTONE_RELEASE_INTERVAL,
)
from apps.achievements.models import Badge, Milestone
from common.time_utils import is_older_than

if TYPE_CHECKING:
    from apps.core.services.narrative import NarrativeGenerator

log: Final = structlog.get_logger(__name__).bind(handler="Catalogs")


class BadgeCatalog:
    def __init__(self, narrator: NarrativeGenerator, *, batch_size: int = BADGE_BATCH_SIZE) -> None:
        self._narrator = narrator
        self.batch_size = batch_size

    async def ensure(self) -> list[Badge]:
        """Create up to `batch_size` missing catalog badges. Returns the new rows."""
        existing = {slug async for slug in Badge.objects.values_list("slug", flat=True)}
        missing = [spec for spec in BADGE_CATALOG if spec.slug not in existing][: self.batch_size]

        created: list[Badge] = []
        for spec in missing:
            description = await self._narrator.badge_description(name=spec.name, criteria=spec.criteria)
            badge, was_created = await Badge.objects.aget_or_create(
                slug=spec.slug,
                defaults={
                    "name": spec.name,
                    "description": description,
                    "criteria": spec.criteria,
                    "criteria_stat": spec.stat,
                    "criteria_value": spec.value,
                    "icon_name": spec.icon_name,
                },
            )
            if was_created:
                created.append(badge)

        if created:
            log.info("Badge catalog extended", created=[b.slug for b in created], remaining=len(BADGE_CATALOG) - len(existing) - len(created))
        return created

    async def backfill_descriptions(self, *, limit: int = BADGE_BATCH_SIZE) -> int:
        """Fill empty descriptions; the only change ever made to an existing badge."""
        filled = 0
        async for badge in Badge.objects.filter(description="")[:limit]:
            description = await self._narrator.badge_description(name=badge.name, criteria=badge.criteria)
            filled += await Badge.objects.filter(pk=badge.pk, description="").aupdate(description=description)
        return filled


class MilestoneCatalog:
    def __init__(self, *, interval=MILESTONE_RELEASE_INTERVAL) -> None:
        self.interval = interval

    async def release_next(self, *, force: bool = False, now: datetime | None = None) -> Milestone | None:
        latest = await Milestone.objects.order_by("-created_at").afirst()
        if latest is not None and not force and not is_older_than(latest.created_at, self.interval, now):
            return None

        existing = {slug async for slug in Milestone.objects.values_list("slug", flat=True)}
        spec = next((s for s in MILESTONE_CATALOG if s.slug not in existing), None)
        if spec is None:
            return None

        milestone, created = await Milestone.objects.aget_or_create(
            slug=spec.slug,
            defaults={
                "title": spec.title,
                "description": spec.description,
                "stat": spec.stat,
                "target": spec.target,
            },
        )
        if created:
            log.info("Milestone released", slug=milestone.slug)
            return milestone
        return None
