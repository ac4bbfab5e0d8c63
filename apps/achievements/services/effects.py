# apps/achievements/services/effects.py
# ===============================================================================
"""
Derived effects of a committed match.

Each step is independent: a failure is logged and reported, and the other
steps still run. Broker workers call the individual steps (one channel each)
so that a failed step is retried on its own; `run()` executes all of them in
one go for inline mode and management commands.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Final

import structlog
from structlog.contextvars import bound_contextvars

from apps.achievements.services.badges import BadgeEvaluator
from apps.achievements.services.catalog import BadgeCatalog, MilestoneCatalog
from apps.achievements.services.hall import HallOfFameWriter
from apps.achievements.services.notifications import NotificationInbox, badge_notification
from apps.achievements.services.roast import MatchRoastWriter
from apps.core.services.narrative import NarrativeGenerator

if TYPE_CHECKING:
    from common.messaging.types import MatchCommittedEvent

log: Final = structlog.get_logger(__name__).bind(component="DerivedEffectsEngine")

STEP_BADGES: Final = "badges"
STEP_HALL: Final = "hall"
STEP_ROAST: Final = "roast"
STEP_CATALOGS: Final = "catalogs"


@dataclass(slots=True)
class EffectsReport:
    match_id: int
    succeeded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    results: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class DerivedEffectsEngine:
    """Badges, hall of fame/shame, match roast and catalog upkeep."""

    def __init__(
        self,
        *,
        narrator: NarrativeGenerator | None = None,
        evaluator: BadgeEvaluator | None = None,
        inbox: NotificationInbox | None = None,
    ) -> None:
        self.narrator = narrator or NarrativeGenerator()
        self.evaluator = evaluator or BadgeEvaluator()
        self.inbox = inbox or NotificationInbox()
        self.hall = HallOfFameWriter(self.narrator)
        self.roaster = MatchRoastWriter(self.narrator)
        self.badge_catalog = BadgeCatalog(self.narrator)
        self.milestone_catalog = MilestoneCatalog()

    # ── orchestration ─────────────────────────────────────────────────
    async def run(self, event: MatchCommittedEvent) -> EffectsReport:
        report = EffectsReport(match_id=event.match_id)
        steps: tuple[tuple[str, Callable[[MatchCommittedEvent], Awaitable[Any]]], ...] = (
            (STEP_BADGES, self.evaluate_badges),
            (STEP_HALL, self.record_hall_entries),
            (STEP_ROAST, self.generate_match_roast),
            (STEP_CATALOGS, self.maintain_catalogs),
        )
        with bound_contextvars(match_id=event.match_id, event_id=event.event_id):
            for name, step in steps:
                try:
                    report.results[name] = await step(event)
                except Exception as exc:
                    log.exception("Derived effect failed", step=name)
                    report.failed[name] = f"{type(exc).__name__}: {exc}"
                else:
                    report.succeeded.append(name)

        log.info(
            "Derived effects finished",
            match_id=event.match_id,
            succeeded=report.succeeded,
            failed=sorted(report.failed),
        )
        return report

    # ── individual steps ──────────────────────────────────────────────
    async def evaluate_badges(self, event: MatchCommittedEvent) -> dict[str, list[str]]:
        awarded: dict[str, list[str]] = {}
        for player_id in event.participant_ids:
            badges = await self.evaluator.evaluate(player_id, match_id=event.match_id)
            awarded[player_id] = [badge.slug for badge in badges]
            if badges and player_id == event.active_player_id:
                await self.inbox.push(player_id, [badge_notification(b) for b in badges])
        return awarded

    async def record_hall_entries(self, event: MatchCommittedEvent) -> int:
        entries = await self.hall.record(event.match_id)
        return len(entries)

    async def generate_match_roast(self, event: MatchCommittedEvent) -> bool:
        return await self.roaster.write(event.match_id) is not None

    async def maintain_catalogs(self, event: MatchCommittedEvent | None = None, *, force: bool = False) -> dict[str, Any]:
        badges = await self.badge_catalog.ensure()
        milestone = await self.milestone_catalog.release_next(force=force)
        return {
            "badges_created": [badge.slug for badge in badges],
            "milestone_released": milestone.slug if milestone else None,
        }

    async def close(self) -> None:
        await self.narrator.close()
