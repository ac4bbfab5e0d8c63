"""
`GET /health`: liveness with `?check=basic`, otherwise one probe per
dependency. Probes never raise; each returns a status dict, and a dependency
the deployment does not use reports `disabled` and does not count against
the overall status.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

from asgiref.sync import sync_to_async
from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError, connections
from django.utils import timezone
from starlette.responses import JSONResponse

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from starlette.requests import Request

Probe = dict[str, str | float]

HEALTHY: Probe = {"status": "healthy"}
DISABLED: Probe = {"status": "disabled"}


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def _unhealthy(error: object) -> Probe:
    return {"status": "unhealthy", "error": str(error)}


def _select_one() -> None:
    with connections["default"].cursor() as cur:
        cur.execute("SELECT 1")
        cur.fetchone()


async def check_database() -> Probe:
    started = time.perf_counter()
    try:
        await sync_to_async(_select_one, thread_sensitive=True)()
    except DatabaseError as exc:
        return _unhealthy(exc)
    return {**HEALTHY, "response_time_ms": _elapsed_ms(started)}


async def check_cache() -> Probe:
    key = f"health:probe:{time.monotonic_ns()}"
    try:
        await cache.aset(key, "ok", 10)
        echoed = await cache.aget(key)
        await cache.adelete(key)
    except Exception as exc:  # any backend failure is a probe result
        return _unhealthy(exc)
    return dict(HEALTHY) if echoed == "ok" else _unhealthy("cache round-trip returned a different value")


async def check_broker() -> Probe:
    if settings.EFFECTS_MODE != "broker":
        return dict(DISABLED)
    from infrastructure.broker import broker

    try:
        alive = await broker.ping(timeout=3)
    except Exception as exc:
        return _unhealthy(exc)
    return dict(HEALTHY) if alive else _unhealthy("ping failed")


async def check_genai() -> Probe:
    # narrative falls back to static text, so a missing key only degrades
    config = settings.GENAI_CONFIG
    if not config.API_KEY:
        return dict(DISABLED)
    return {**HEALTHY, "model": config.MODEL}


PROBES: dict[str, Callable[[], Awaitable[Probe]]] = {
    "database": check_database,
    "cache": check_cache,
    "message_broker": check_broker,
    "genai": check_genai,
}


async def health_check(request: Request) -> JSONResponse:
    started = time.perf_counter()
    meta = {
        "timestamp": timezone.now().isoformat(),
        "version": getattr(settings, "APP_VERSION", "unknown"),
        "environment": getattr(settings, "ENVIRONMENT", "unknown"),
    }
    if request.query_params.get("check") == "basic":
        return JSONResponse({"status": "ok", **meta})

    results = await asyncio.gather(*(probe() for probe in PROBES.values()))
    checks = dict(zip(PROBES, results, strict=True))
    healthy = all(r["status"] == "healthy" for r in checks.values() if r["status"] != "disabled")

    return JSONResponse(
        {
            "status": "healthy" if healthy else "unhealthy",
            "checks": checks,
            "response_time_ms": _elapsed_ms(started),
            **meta,
        },
        status_code=200 if healthy else 503,
    )
