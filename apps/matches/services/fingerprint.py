# apps/matches/services/fingerprint.py
"""
Duplicate detection key for uploaded matches.

Two uploads of the same match (by either participant) must collide, so the
participant ids are sorted before anything else is appended, and each stat
contributes the lower-sorted participant's value first. Sides that are not
yet stamped with a user id keep their screen order: team1, then team2.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from apps.matches.conf import FINGERPRINT_FIELDS, FINGERPRINT_SEPARATOR

if TYPE_CHECKING:
    from apps.matches.schemas import ExtractedMatch, PlayerStatsRow


def _ordered_sides(extracted: ExtractedMatch, first_id: str) -> tuple[PlayerStatsRow, PlayerStatsRow]:
    if extracted.team2_stats.user_id == first_id:
        return extracted.team2_stats, extracted.team1_stats
    return extracted.team1_stats, extracted.team2_stats


def fingerprint(extracted: ExtractedMatch, player_id: str, opponent_id: str) -> str:
    parts: list[str] = sorted((player_id, opponent_id))
    first, second = _ordered_sides(extracted, parts[0])
    for field in FINGERPRINT_FIELDS:
        parts.append(str(getattr(first, field)))
        parts.append(str(getattr(second, field)))
    return FINGERPRINT_SEPARATOR.join(parts)
