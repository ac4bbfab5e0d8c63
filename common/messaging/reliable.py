# common/messaging/reliable.py
# ============================================================================

"""
Broker publisher with full-jitter exponential-backoff retries.

Built for FastStream's RedisBroker but works with any object exposing
`await broker.publish(message, channel=…)`.
"""

from __future__ import annotations

import asyncio
import random
import time
from collections.abc import Iterable
from dataclasses import dataclass

import structlog
from pydantic import BaseModel

from common.messaging.types import PublishResult

log = structlog.get_logger(__name__).bind(comp="ReliablePublisher")


# EXCEPTIONS ------------------------------------------------------------------
class BrokerPublishError(RuntimeError):
    """Raised when publishing fails after all retry attempts."""


# CONFIG ----------------------------------------------------------------------
@dataclass(slots=True, frozen=True)
class RetryConfig:
    max_retries: int = 3
    initial_delay_s: float = 0.5
    backoff_factor: float = 2.0
    max_backoff_s: float = 10.0


def _event_id(message: BaseModel) -> str | None:
    return getattr(message, "event_id", None)


# PUBLISHER -------------------------------------------------------------------
class ReliableBrokerPublisher:
    """
    Wrap a broker so that `publish` survives transient outages.

    Example
    -------
        reliable = ReliableBrokerPublisher(RedisBroker())
        await reliable.publish(event, queue=Queue.EVALUATE_BADGES)
        await reliable.fan_out(event, EFFECT_QUEUES)
    """

    def __init__(self, broker, **retry_kw) -> None:  # broker is duck-typed
        self._broker = broker
        self._cfg = RetryConfig(**retry_kw)

    @staticmethod
    def _random_delay(base: float) -> float:
        """Full-jitter sleep: U(0, base)."""
        return random.uniform(0.0, base)

    # ------------------------------------------------------------------ api
    async def publish(self, message: BaseModel, *, queue: str, **broker_kw) -> int:
        """
        Publish *message* to *queue*; returns the number of retries it took.

        Raises `BrokerPublishError` once `max_retries` is exhausted.
        """
        delay = self._cfg.initial_delay_s
        last_exc: Exception | None = None

        for attempt in range(self._cfg.max_retries + 1):
            try:
                await self._broker.publish(message, channel=str(queue), **broker_kw)
                if attempt:
                    log.info("publish succeeded after retries", queue=str(queue), retries=attempt)
                return attempt

            except asyncio.CancelledError:
                log.warning("publish cancelled by caller", queue=str(queue))
                raise

            except Exception as exc:
                last_exc = exc
                if attempt >= self._cfg.max_retries:
                    break

                sleep = self._random_delay(delay)
                log.warning(
                    "publish failed – retry scheduled",
                    queue=str(queue),
                    event_id=_event_id(message),
                    err=str(exc),
                    attempt=attempt + 1,
                    next_delay_s=round(sleep, 2),
                )
                await asyncio.sleep(sleep)
                delay = min(delay * self._cfg.backoff_factor, self._cfg.max_backoff_s)

        log.error(
            "publish failed after max retries",
            queue=str(queue),
            event_id=_event_id(message),
            retries=self._cfg.max_retries,
            exc_info=last_exc,
        )
        msg = f"Failed to publish to '{queue}' after {self._cfg.max_retries} retries."
        raise BrokerPublishError(msg) from last_exc

    async def fan_out(self, message: BaseModel, queues: Iterable[str]) -> PublishResult:
        """
        Publish the same *message* to every queue concurrently. A queue that
        keeps failing is counted, not raised, so the others still get it.
        """
        queues = [str(q) for q in queues]
        start = time.perf_counter()
        results = await asyncio.gather(
            *(self.publish(message, queue=queue) for queue in queues),
            return_exceptions=True,
        )
        failed = [q for q, r in zip(queues, results, strict=True) if isinstance(r, BaseException)]
        return {
            "event_id": _event_id(message) or "",
            "queues": queues,
            "published": len(queues) - len(failed),
            "failed": len(failed),
            "duration_s": round(time.perf_counter() - start, 3),
        }
