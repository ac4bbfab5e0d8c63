# infrastructure/broker.py
# ============================================================================
"""
The FastStream Redis broker behind the derived-effects channels.

Imported by the web process (only when `EFFECTS_MODE=broker`), by the
`run_workers` command and by `python -m infrastructure.worker`. Importing it
configures Django, since worker processes start without `manage.py`.
"""

from __future__ import annotations

import asyncio
import os
from contextlib import asynccontextmanager
from typing import Final
from urllib.parse import urlparse

import django
import structlog
from django.conf import settings
from faststream import FastStream
from faststream.redis import RedisBroker
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from common.messaging.reliable import ReliableBrokerPublisher

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.local")
django.setup()

log: Final = structlog.get_logger(__name__).bind(comp="RedisBroker")

CONNECT_ATTEMPTS: Final[int] = int(os.getenv("REDIS_MAX_RETRIES", "3"))
CONNECT_BACKOFF_S: Final[float] = float(os.getenv("REDIS_RETRY_DELAY", "1.0"))
SOCKET_TIMEOUT_S: Final[int] = int(os.getenv("REDIS_CONNECTION_TIMEOUT", "10"))


class BrokerConnectionError(Exception):
    """The broker stayed unreachable for every connection attempt."""


def redis_url() -> str:
    """`FASTSTREAM_REDIS_URL` from the environment, else from Django settings."""
    url = os.getenv("FASTSTREAM_REDIS_URL") or settings.FASTSTREAM_REDIS_URL
    if not urlparse(url).hostname:
        msg = f"Invalid FASTSTREAM_REDIS_URL: {url!r}"
        raise ValueError(msg)
    return url.rstrip("/")


def _masked(url: str) -> str:
    password = urlparse(url).password
    return url.replace(password, "***") if password else url


REDIS_URL: Final[str] = redis_url()

broker: Final[RedisBroker] = RedisBroker(
    REDIS_URL,
    logger=log,
    socket_connect_timeout=SOCKET_TIMEOUT_S,
    retry_on_timeout=True,
    health_check_interval=30.0,
)
app: Final[FastStream] = FastStream(broker, logger=log)
reliable_publisher: Final[ReliableBrokerPublisher] = ReliableBrokerPublisher(broker)

log.info("Effects broker configured", redis_url=_masked(REDIS_URL))


class _ConnectionState:
    """Connect once per process, even with concurrent callers."""

    def __init__(self) -> None:
        self.connected = False
        self.lock = asyncio.Lock()


_state = _ConnectionState()


async def ensure_broker_connected() -> None:
    async with _state.lock:
        if _state.connected:
            return
        for attempt in range(1, CONNECT_ATTEMPTS + 1):
            try:
                await broker.connect()
            except (RedisConnectionError, RedisTimeoutError) as e:
                log.warning("Broker connection failed", attempt=attempt, of=CONNECT_ATTEMPTS, error=str(e))
                if attempt == CONNECT_ATTEMPTS:
                    msg = f"Redis broker unreachable after {CONNECT_ATTEMPTS} attempts: {e}"
                    raise BrokerConnectionError(msg) from e
                await asyncio.sleep(CONNECT_BACKOFF_S * attempt)
            else:
                _state.connected = True
                log.info("Broker connected", attempt=attempt)
                return


async def shutdown_broker() -> None:
    async with _state.lock:
        if not _state.connected:
            return
        try:
            await broker.close()
        except Exception as e:
            log.exception("Error while closing the broker", error=str(e))
        else:
            log.info("Broker closed")
        finally:
            _state.connected = False


@asynccontextmanager
async def broker_context():
    """Connected broker for the duration of a one-off job (management commands)."""
    await ensure_broker_connected()
    try:
        yield broker
    finally:
        await shutdown_broker()


def get_publisher() -> ReliableBrokerPublisher:
    return reliable_publisher


def is_connected() -> bool:
    return _state.connected


__all__ = [
    "BrokerConnectionError",
    "app",
    "broker",
    "broker_context",
    "ensure_broker_connected",
    "get_publisher",
    "is_connected",
    "reliable_publisher",
    "shutdown_broker",
]
