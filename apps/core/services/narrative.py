# apps/core/services/narrative.py
"""
Short banter texts: match roasts, hall of fame/shame captions, badge blurbs.

All of it is decoration. Every method has a static fallback and none of them
raises, so a slow or broken model can never hold up a match commit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

import structlog
from django.conf import settings

from apps.core.services.genai_client import GeminiClient, GenAIError, parse_json_text

log: Final = structlog.get_logger(__name__).bind(component="NarrativeGenerator")

MATCH_ROAST_PROMPT: Final = (
    "Two friends just played a football video game match. {winner} beat {loser} "
    "{winner_score}-{loser_score}. Write one short, playful trash-talk line from "
    "{winner} to {loser}. No hashtags, no emojis, under 40 words."
)
HALL_PROMPT: Final = (
    "Category: {category}. {stat}. Write two short captions for a friends' "
    "leaderboard as JSON with keys \"fameRoast\" (praising {winner}) and "
    "\"shameRoast\" (teasing {loser}). Each under 30 words."
)
BADGE_PROMPT: Final = (
    "Write a one-sentence, witty description for a football video game badge "
    "called \"{name}\", earned when a player manages to: {criteria}. Under 20 words."
)


@dataclass(frozen=True, slots=True)
class HallRoasts:
    fame: str
    shame: str


def fame_fallback(winner: str) -> str:
    return f"{winner} dominated with an impressive victory!"


def shame_fallback(loser: str) -> str:
    return f"{loser} faced a tough defeat this time."


class NarrativeGenerator:
    def __init__(self, client: GeminiClient | None = None) -> None:
        self._client = client or GeminiClient()

    async def _generate(self, prompt: str, *, purpose: str, json_output: bool = False) -> str | None:
        try:
            result = await self._client.generate(
                prompt,
                json_output=json_output,
                max_tokens=settings.GENAI_CONFIG.NARRATIVE_MAX_TOKENS,
            )
        except GenAIError as exc:
            log.info("Narrative unavailable, using fallback", purpose=purpose, reason=str(exc))
            return None
        except Exception:
            log.exception("Narrative generation crashed, using fallback", purpose=purpose)
            return None
        if not result.ok:
            log.info("Narrative unavailable, using fallback", purpose=purpose, status=result.status, err=result.error)
            return None
        return result.text.strip()

    async def match_roast(self, *, winner: str, loser: str, winner_score: int, loser_score: int) -> str | None:
        """A taunt for the match page; None when the model has nothing to say."""
        prompt = MATCH_ROAST_PROMPT.format(
            winner=winner,
            loser=loser,
            winner_score=winner_score,
            loser_score=loser_score,
        )
        return await self._generate(prompt, purpose="match_roast")

    async def hall_roasts(self, *, winner: str, loser: str, winner_score: int, loser_score: int) -> HallRoasts:
        fallback = HallRoasts(fame=fame_fallback(winner), shame=shame_fallback(loser))
        prompt = HALL_PROMPT.format(
            category="General",
            stat=f"Score: {winner} {winner_score} - {loser} {loser_score}",
            winner=winner,
            loser=loser,
        )
        text = await self._generate(prompt, purpose="hall_roasts", json_output=True)
        if text is None:
            return fallback
        try:
            data = parse_json_text(text)
        except GenAIError as exc:
            log.info("Hall captions unparseable, using fallback", err=str(exc))
            return fallback
        if not isinstance(data, dict):
            return fallback
        fame = str(data.get("fameRoast") or "").strip() or fallback.fame
        shame = str(data.get("shameRoast") or "").strip() or fallback.shame
        return HallRoasts(fame=fame, shame=shame)

    async def badge_description(self, *, name: str, criteria: str) -> str:
        text = await self._generate(BADGE_PROMPT.format(name=name, criteria=criteria), purpose="badge_description")
        return text or criteria

    async def close(self) -> None:
        await self._client.close()
