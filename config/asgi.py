"""
ASGI entry point: Starlette wraps the Django app, adds the health probe and
the notification stream, and owns the broker lifecycle.
"""

from __future__ import annotations

import asyncio
import os
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from asgiref.sync import sync_to_async
from django.conf import settings
from django.core.asgi import get_asgi_application
from django.db import connections
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import BaseRoute, Mount, Route

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.local")

# get_asgi_application() runs django.setup(), so it must come before any app import
django_app = get_asgi_application()

from apps.core.views import health_check, notification_stream  # noqa: E402
from apps.core.views.health import check_cache, check_database  # noqa: E402
from apps.matches.services.events import wait_for_background_tasks  # noqa: E402

logger = structlog.get_logger(__name__)

WARMUP_TIMEOUT_S = 5.0
SHUTDOWN_TIMEOUT_S = 10.0


def _uses_broker() -> bool:
    return settings.EFFECTS_MODE == "broker"


async def _warm_up() -> None:
    """Touch the database and the cache once; problems are logged, not fatal."""
    checks = {"database": check_database(), "cache": check_cache()}
    try:
        async with asyncio.timeout(WARMUP_TIMEOUT_S):
            results = await asyncio.gather(*checks.values())
    except TimeoutError:
        logger.warning("Warm-up timed out", timeout_s=WARMUP_TIMEOUT_S)
        return
    for name, result in zip(checks, results, strict=True):
        if result["status"] == "healthy":
            logger.info("Warm-up ok", component=name)
        else:
            logger.warning("Warm-up failed", component=name, error=result.get("error"))


@asynccontextmanager
async def lifespan(app: Starlette) -> AsyncIterator[None]:
    logger.info("ASGI application starting", effects_mode=settings.EFFECTS_MODE)
    await _warm_up()
    if _uses_broker():
        # broker start-up failures abort the boot: committed matches would lose their effects
        from infrastructure.broker import ensure_broker_connected

        await ensure_broker_connected()

    yield

    logger.info("ASGI application shutting down")
    try:
        async with asyncio.timeout(SHUTDOWN_TIMEOUT_S):
            await wait_for_background_tasks(timeout=SHUTDOWN_TIMEOUT_S / 2)
            if _uses_broker():
                from infrastructure.broker import shutdown_broker

                await shutdown_broker()
            await sync_to_async(connections.close_all)()
    except TimeoutError:
        logger.warning("Shutdown timed out, forcing exit", timeout_s=SHUTDOWN_TIMEOUT_S)
    logger.info("ASGI application stopped")


def create_middleware() -> list[Middleware]:
    return [
        Middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        ),
    ]


def create_routes() -> list[BaseRoute]:
    return [
        Route("/health", endpoint=health_check, methods=["GET", "HEAD"]),
        Route("/notifications-stream/{player_id}", endpoint=notification_stream, methods=["GET"]),
        Mount("/", app=django_app),
    ]


application = Starlette(
    debug=settings.DEBUG,
    routes=create_routes(),
    middleware=create_middleware(),
    lifespan=lifespan,
)
