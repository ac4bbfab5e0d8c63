"""
FastStream workers for the derived effects of a committed match. Launch with

    $ python -m infrastructure.worker

or `python manage.py run_workers`.

Each effect listens on its own channel with its own retry budget and circuit
breaker, so a narrative outage delays roasts without holding back badges.
"""

from __future__ import annotations

import asyncio
import os
import signal
import sys
import time
from collections import Counter
from contextlib import suppress
from typing import TYPE_CHECKING, Any, Final, TypeVar

import structlog
from pydantic import BaseModel, ValidationError
from structlog.contextvars import bound_contextvars

from common.messaging.types import CatalogSyncPayload, MatchCommittedEvent
from infrastructure.broker import app, broker, ensure_broker_connected, shutdown_broker
from infrastructure.queues import QUEUES

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from apps.achievements.services.effects import DerivedEffectsEngine

P = TypeVar("P", bound=BaseModel)

log: Final = structlog.get_logger(__name__)

STATS_LOG_INTERVAL_S = int(os.getenv("WORKER_STATS_INTERVAL_S", "30"))
SHUTDOWN_TIMEOUT_S = int(os.getenv("WORKER_SHUTDOWN_TIMEOUT_S", "30"))
STEP_ATTEMPTS = int(os.getenv("EFFECT_STEP_ATTEMPTS", "3"))
STEP_BACKOFF_S = float(os.getenv("EFFECT_STEP_BACKOFF_S", "1.0"))
STEP_TIMEOUT_S = int(os.getenv("EFFECT_STEP_TIMEOUT_S", "60"))
BREAKER_THRESHOLD = int(os.getenv("EFFECT_BREAKER_THRESHOLD", "5"))
BREAKER_COOLDOWN_S = float(os.getenv("EFFECT_BREAKER_COOLDOWN_S", "60"))


class StepOutcomes(Counter):
    """`{"badges:ok": 12, "roast:failed": 1, ...}` for the periodic stats line."""

    def record(self, step: str, ok: bool) -> None:
        self[f"{step}:{'ok' if ok else 'failed'}"] += 1


class BreakerOpenError(RuntimeError):
    pass


class CircuitBreaker:
    """After `threshold` consecutive failures, reject calls until `cooldown_s` has passed."""

    def __init__(self, name: str, threshold: int = BREAKER_THRESHOLD, cooldown_s: float = BREAKER_COOLDOWN_S) -> None:
        self.name = name
        self.threshold = threshold
        self.cooldown_s = cooldown_s
        self.consecutive_failures = 0
        self.opened_at: float | None = None

    def check(self) -> None:
        if self.opened_at is None:
            return
        remaining = self.cooldown_s - (time.monotonic() - self.opened_at)
        if remaining > 0:
            msg = f"{self.name} breaker open, retry in {remaining:.1f}s"
            raise BreakerOpenError(msg)
        # half-open: let one call through
        self.opened_at = None

    def succeeded(self) -> None:
        if self.consecutive_failures >= self.threshold:
            log.info("Circuit breaker closed", step=self.name)
        self.consecutive_failures = 0

    def failed(self) -> None:
        self.consecutive_failures += 1
        if self.consecutive_failures >= self.threshold:
            self.opened_at = time.monotonic()
            log.warning("Circuit breaker opened", step=self.name, failures=self.consecutive_failures)


outcomes = StepOutcomes()
breakers: dict[str, CircuitBreaker] = {}

_engine: DerivedEffectsEngine | None = None


def get_engine() -> DerivedEffectsEngine:
    global _engine
    if _engine is None:
        # models need the app registry, which importing infrastructure.broker sets up
        from apps.achievements.services.effects import DerivedEffectsEngine

        _engine = DerivedEffectsEngine()
    return _engine


def decode(model: type[P], raw: Any) -> P | None:
    """Messages arrive as JSON text or bytes, or already decoded into a dict."""
    try:
        if isinstance(raw, model):
            return raw
        if isinstance(raw, str | bytes):
            return model.model_validate_json(raw)
        return model.model_validate(raw)
    except ValidationError:
        log.exception("Dropping undecodable message", model=model.__name__)
        return None


async def run_step(
    step: str,
    event: MatchCommittedEvent,
    fn: Callable[[MatchCommittedEvent], Awaitable[Any]],
) -> Any:
    """Run one effect with a timeout and exponential backoff; the last failure propagates."""
    breaker = breakers.setdefault(step, CircuitBreaker(step))
    started = time.perf_counter()
    with bound_contextvars(step=step, match_id=event.match_id, event_id=event.event_id):
        for attempt in range(1, STEP_ATTEMPTS + 1):
            try:
                breaker.check()
                async with asyncio.timeout(STEP_TIMEOUT_S):
                    result = await fn(event)
            except Exception as exc:
                if not isinstance(exc, BreakerOpenError):
                    breaker.failed()
                if attempt == STEP_ATTEMPTS:
                    outcomes.record(step, ok=False)
                    log.exception("Effect step gave up", attempts=attempt)
                    raise
                delay = STEP_BACKOFF_S * 2 ** (attempt - 1)
                log.warning("Effect step failed, retrying", attempt=attempt, delay_s=delay)
                await asyncio.sleep(delay)
            else:
                breaker.succeeded()
                outcomes.record(step, ok=True)
                log.info("Effect step done", result=result, dur_s=round(time.perf_counter() - started, 3))
                return result
    return None


@broker.subscriber(QUEUES.EVALUATE_BADGES)
async def evaluate_badges(raw: Any) -> None:
    if event := decode(MatchCommittedEvent, raw):
        await run_step("badges", event, get_engine().evaluate_badges)


@broker.subscriber(QUEUES.RECORD_HALL_ENTRIES)
async def record_hall_entries(raw: Any) -> None:
    if event := decode(MatchCommittedEvent, raw):
        await run_step("hall", event, get_engine().record_hall_entries)


@broker.subscriber(QUEUES.GENERATE_MATCH_ROAST)
async def generate_match_roast(raw: Any) -> None:
    if event := decode(MatchCommittedEvent, raw):
        await run_step("roast", event, get_engine().generate_match_roast)


@broker.subscriber(QUEUES.MAINTAIN_CATALOGS)
async def maintain_catalogs(raw: Any) -> None:
    if event := decode(MatchCommittedEvent, raw):
        await run_step("catalogs", event, get_engine().maintain_catalogs)


@broker.subscriber(QUEUES.SYNC_CATALOGS)
async def sync_catalogs(raw: Any) -> None:
    if payload := decode(CatalogSyncPayload, raw):
        result = await get_engine().maintain_catalogs(force=payload.force)
        log.info("Catalog sync done", force=payload.force, **result)


class WorkerManager:
    def __init__(self) -> None:
        self._stopping = asyncio.Event()
        self._stats_task: asyncio.Task | None = None

    async def start(self) -> None:
        await ensure_broker_connected()
        if sys.platform != "win32":
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, lambda s=sig: asyncio.create_task(self._on_signal(s)))
        self._stats_task = asyncio.create_task(self._log_stats())
        log.info("Effect workers running", channels=[str(q) for q in QUEUES])
        await app.run()

    async def stop(self) -> None:
        if self._stopping.is_set():
            return
        self._stopping.set()
        log.warning("Stopping effect workers")
        try:
            await asyncio.wait_for(app.stop(), timeout=SHUTDOWN_TIMEOUT_S)
        except TimeoutError:
            log.warning("Worker app did not stop in time", timeout_s=SHUTDOWN_TIMEOUT_S)
        if self._stats_task:
            self._stats_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._stats_task
        if _engine is not None:
            await _engine.close()
        await shutdown_broker()
        log.info("Effect workers stopped")

    async def _on_signal(self, sig: signal.Signals) -> None:
        log.warning("OS signal received", sig=sig.name)
        await self.stop()

    async def _log_stats(self) -> None:
        while not self._stopping.is_set():
            await asyncio.sleep(STATS_LOG_INTERVAL_S)
            log.info("Effect worker stats", **dict(outcomes))


async def main() -> None:
    manager = WorkerManager()
    try:
        await manager.start()
    finally:
        await manager.stop()


if __name__ == "__main__":
    asyncio.run(main())
