# apps/matches/services/extraction.py
"""AI extraction gateway: screenshot in, two-sided stat record out."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

import structlog
from django.conf import settings
from pydantic import ValidationError

from apps.core.services.genai_client import GeminiClient, GenAIError, parse_json_text
from apps.matches.exceptions import ExtractionError
from apps.matches.schemas import ExtractedMatch

if TYPE_CHECKING:
    from apps.matches.schemas import ImageBlob

log: Final = structlog.get_logger(__name__).bind(component="StatsExtractor")

EXTRACTION_PROMPT: Final = """\
You read post-match statistics screenshots from a football video game.
Return JSON with keys team1Name, team2Name, team1Stats, team2Stats.
team1 is the club shown on the left, team2 the club on the right.
Each stats object has: name, score, possession (text such as "55%"), shots,
shotsOnTarget, fouls, offsides, cornerKicks, freeKicks, passes,
successfulPasses, crosses, interceptions, tackles, saves, passAccuracy,
redCards. Use integers for counts. If a value is unreadable, make your best
guess; use 0 only when the statistic is not shown at all.
"""


class StatsExtractor:
    """Calls the model with the image and validates whatever comes back."""

    def __init__(self, client: GeminiClient | None = None) -> None:
        self._client = client or GeminiClient()

    async def extract(self, image: ImageBlob) -> ExtractedMatch:
        try:
            result = await self._client.generate(
                EXTRACTION_PROMPT,
                inline_data=(image.content_type, image.to_base64()),
                json_output=True,
                temperature=settings.GENAI_CONFIG.EXTRACTION_TEMPERATURE,
            )
        except GenAIError as exc:
            log.error("Extraction client unavailable", err=str(exc))
            raise ExtractionError(reason=str(exc)) from exc

        if not result.ok:
            log.warning("Extraction failed", status=result.status, err=result.error, exec_ms=result.exec_ms)
            raise ExtractionError(reason=result.status.lower())

        try:
            data = parse_json_text(result.text)
            if not isinstance(data, dict):
                raise ExtractionError(reason="unexpected_shape")
            extracted = ExtractedMatch.model_validate(data)
        except (GenAIError, ValidationError) as exc:
            log.warning("Extraction answer unusable", err=str(exc), text=result.text[:200])
            raise ExtractionError(reason="unparseable") from exc

        log.info(
            "Stats extracted",
            team1=extracted.team1_name,
            team2=extracted.team2_name,
            score=f"{extracted.team1_stats.score}-{extracted.team2_stats.score}",
            exec_ms=result.exec_ms,
        )
        return extracted

    async def close(self) -> None:
        await self._client.close()
