"""Core configuration and constants shared across the project."""

from __future__ import annotations

from typing import Final

# ─── Constants ──────────────────────────────────────────────────────────────────

DEFAULT_TIMEOUT_S: Final[int] = 30
DEFAULT_CACHE_TTL: Final[int] = 60 * 60 * 24  # 24 hours

# Sentinel stored in Match.winner_id when nobody won.
DRAW: Final[str] = "draw"

# Cache key prefixes
CACHE_PREFIXES: Final[dict[str, str]] = {
    "notifications": "notifications:",
}

# Badge-unlock inbox: notifications expire after a week if nobody reads them.
NOTIFICATION_TTL: Final[int] = 60 * 60 * 24 * 7
NOTIFICATION_MAX_ITEMS: Final[int] = 50

# Server-sent events stream of badge unlocks
STREAM_POLL_INTERVAL_S: Final[float] = 2.0
STREAM_MAX_ITERATIONS: Final[int] = 150
