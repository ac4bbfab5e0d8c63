"""
Async helpers over Django's default cache: orjson-encoded values, a lock
built on `cache.aadd`, and single-flight get-or-set for computed payloads.

Values are stored as orjson bytes so leaderboard and notification payloads
read back identically on locmem and redis backends.
"""

from __future__ import annotations

import asyncio
import hashlib
import inspect
import uuid
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, TypeVar, cast
from urllib.parse import urlencode

import orjson
import structlog
from django.core.cache import cache

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

T = TypeVar("T")

log = structlog.get_logger(__name__).bind(component="CacheUtils")

MAX_KEY_LENGTH = 250


class CacheLockTimeout(TimeoutError):
    """The lock stayed held by someone else for longer than the caller would wait."""


def build_cache_key(prefix: str, **params: Any) -> str:
    """`prefix:sorted-query`; hashed when it would not fit a memcached-sized key."""
    if not params:
        return prefix
    query = urlencode(sorted(params.items()), doseq=True)
    key = f"{prefix}:{query}"
    if len(key) <= MAX_KEY_LENGTH:
        return key
    digest = hashlib.sha1(query.encode(), usedforsecurity=False).hexdigest()
    return f"{prefix[: MAX_KEY_LENGTH - len(digest) - 1]}:{digest}"


@asynccontextmanager
async def cache_lock(
    key: str,
    *,
    timeout: int = 10,
    retry_delay: float = 0.05,
    wait_s: float | None = None,
) -> AsyncIterator[None]:
    """
    Mutual exclusion for read-modify-write sequences on a cache entry.

    `cache.aadd` writes only when the key is absent, which is SET NX on redis.
    `timeout` bounds how long a crashed holder can block others; `wait_s`
    bounds how long this caller waits (`None` waits forever).
    """
    lock_key = f"lock:{key}"
    token = uuid.uuid4().hex
    loop = asyncio.get_running_loop()
    give_up_at = None if wait_s is None else loop.time() + wait_s

    while not await cache.aadd(lock_key, token, timeout=timeout):
        if give_up_at is not None and loop.time() >= give_up_at:
            msg = f"Could not acquire cache lock {lock_key!r} within {wait_s}s"
            raise CacheLockTimeout(msg)
        await asyncio.sleep(retry_delay)
    try:
        yield
    finally:
        # an expired lock may already belong to another holder
        if await cache.aget(lock_key) == token:
            await cache.adelete(lock_key)


async def _produce(producer: Callable[[], T | Awaitable[T]]) -> T:
    result = producer()
    if inspect.isawaitable(result):
        return await result
    return cast("T", result)


async def aget_json(key: str, default: T | None = None) -> T | None:
    raw = await cache.aget(key)
    if raw is None:
        return default
    try:
        return cast("T", orjson.loads(raw))
    except orjson.JSONDecodeError:
        log.warning("Dropping undecodable cache entry", key=key)
        await cache.adelete(key)
        return default


async def aset_json(key: str, value: Any, ttl: int | None = None) -> None:
    await cache.aset(key, orjson.dumps(value), timeout=ttl)


async def adelete(key: str) -> None:
    await cache.adelete(key)


async def aget_or_set(
    key: str,
    producer: Callable[[], T | Awaitable[T]],
    *,
    ttl: int = 300,
    lock_timeout: int = 30,
) -> T:
    """Concurrent misses on the same key run *producer* once; the rest wait and read."""
    missing = object()
    cached = await aget_json(key, default=missing)
    if cached is not missing:
        return cast("T", cached)

    async with cache_lock(key, timeout=lock_timeout):
        cached = await aget_json(key, default=missing)
        if cached is not missing:
            return cast("T", cached)

        value = await _produce(producer)
        try:
            await aset_json(key, value, ttl=ttl)
        except TypeError:
            # payload is still returned, just not cached
            log.exception("Payload is not JSON serialisable", key=key)
        return value
