# common/messaging/types.py
# ================================================================================
"""
Shared data types and Pydantic models for the messaging system.
Using these types keeps publishers and consumers in agreement.
"""

from __future__ import annotations

import time
import uuid
from typing import TypedDict

from pydantic import BaseModel, ConfigDict, Field


# ─────────────────────────── telemetry return type ──────────────────────────
class PublishResult(TypedDict, total=False):
    event_id: str
    queues: list[str]
    published: int
    failed: int
    duration_s: float


class MatchCommittedEvent(BaseModel):
    """Emitted once a match and both aggregate updates are durably stored."""

    event_id: str = Field(default_factory=lambda: uuid.uuid4().hex, description="idempotency/trace id")
    match_id: int = Field(ge=1)
    creator_id: str = Field(..., description="uploader, also the active session's player")
    opponent_id: str
    winner_id: str = Field(..., description="participant id or 'draw'")
    fingerprint: str
    committed_at: float = Field(default_factory=time.time, description="unix epoch")

    model_config = ConfigDict(frozen=True)

    @property
    def participant_ids(self) -> tuple[str, str]:
        return (self.creator_id, self.opponent_id)

    @property
    def active_player_id(self) -> str:
        return self.creator_id


class CatalogSyncPayload(BaseModel):
    """Request to top up the badge and milestone catalogs."""

    force: bool = Field(False, description="ignore the catalog size threshold")
    requested_at: float = Field(default_factory=time.time)
