# apps/matches/services/events.py
# ===============================================================================
"""
Delivery of `MatchCommittedEvent` to the derived-effects subscribers.

Two transports share one interface:

* `BrokerEffectsPublisher` fans the event out to one Redis channel per effect,
  so every effect is consumed (and retried) independently by `run_workers`.
* `InlineEffectsPublisher` runs the effects engine in-process; used in
  development and tests (`EFFECTS_MODE=inline`).

Publishing is always fire-and-forget from the commit's point of view.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Final, Protocol

import structlog
from django.conf import settings

from infrastructure.queues import EFFECT_QUEUES

if TYPE_CHECKING:
    from common.messaging.types import MatchCommittedEvent, PublishResult

log: Final = structlog.get_logger(__name__).bind(component="EffectsPublisher")

# Strong references so pending tasks are not garbage-collected mid-flight.
_background_tasks: set[asyncio.Task] = set()


class EventPublisher(Protocol):
    async def publish(self, event: MatchCommittedEvent) -> PublishResult: ...


class BrokerEffectsPublisher:
    """Publishes the event once per effect channel through the reliable publisher."""

    def __init__(self, publisher=None) -> None:
        self._publisher = publisher

    def _get_publisher(self):
        if self._publisher is None:
            # imported lazily: the broker module configures Django and opens a client
            from infrastructure.broker import get_publisher

            self._publisher = get_publisher()
        return self._publisher

    async def publish(self, event: MatchCommittedEvent) -> PublishResult:
        result = await self._get_publisher().fan_out(event, EFFECT_QUEUES)
        if result["failed"]:
            log.error("Effect dispatch incomplete", match_id=event.match_id, **result)
        return result


class InlineEffectsPublisher:
    """Runs every effect step in this process, still isolated from one another."""

    def __init__(self, engine=None) -> None:
        self._engine = engine

    def _get_engine(self):
        if self._engine is None:
            from apps.achievements.services.effects import DerivedEffectsEngine

            self._engine = DerivedEffectsEngine()
        return self._engine

    async def publish(self, event: MatchCommittedEvent) -> PublishResult:
        start = time.perf_counter()
        report = await self._get_engine().run(event)
        return {
            "event_id": event.event_id,
            "queues": [],
            "published": len(report.succeeded),
            "failed": len(report.failed),
            "duration_s": round(time.perf_counter() - start, 3),
        }


def get_event_publisher() -> EventPublisher:
    mode = getattr(settings, "EFFECTS_MODE", "broker")
    if mode == "inline":
        return InlineEffectsPublisher()
    if mode == "broker":
        return BrokerEffectsPublisher()
    msg = f"Unknown EFFECTS_MODE: {mode!r}"
    raise ValueError(msg)


# ─────────────────────────────────────────────── fire-and-forget helpers
def _on_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        log.warning("Effects dispatch cancelled", task=task.get_name())
        return
    exc = task.exception()
    if exc is not None:
        log.error("Effects dispatch failed", task=task.get_name(), exc_info=exc)


def dispatch_in_background(publisher: EventPublisher, event: MatchCommittedEvent) -> asyncio.Task:
    """Schedule *event* for delivery without awaiting it."""
    task = asyncio.create_task(publisher.publish(event), name=f"effects:{event.match_id}")
    _background_tasks.add(task)
    task.add_done_callback(_on_done)
    return task


async def wait_for_background_tasks(timeout: float | None = None) -> None:
    """Let pending deliveries finish, e.g. before a management command exits."""
    if _background_tasks:
        await asyncio.wait(set(_background_tasks), timeout=timeout)
