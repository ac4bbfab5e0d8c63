import httpx
import orjson
import pytest
from django.conf import settings

from apps.core.services.genai_client import STATUS_ERROR, GeminiClient, GenAIError, parse_json_text
from apps.core.services.narrative import NarrativeGenerator


def _answer(text: str, finish_reason: str = "STOP") -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": finish_reason}]}


def _generator(handler) -> NarrativeGenerator:
    config = settings.GENAI_CONFIG.model_copy(update={"API_KEY": "test-key"})
    return NarrativeGenerator(GeminiClient(config, transport=httpx.MockTransport(handler)))


async def test_fallbacks_without_api_key():
    narrator = NarrativeGenerator(GeminiClient(settings.GENAI_CONFIG))

    roasts = await narrator.hall_roasts(winner="Ana", loser="Ben", winner_score=4, loser_score=0)

    assert roasts.fame == "Ana dominated with an impressive victory!"
    assert roasts.shame == "Ben faced a tough defeat this time."
    assert await narrator.match_roast(winner="Ana", loser="Ben", winner_score=4, loser_score=0) is None
    assert await narrator.badge_description(name="Sniper", criteria="score 5 goals") == "score 5 goals"


async def test_hall_roasts_from_model():
    def handler(request):
        body = orjson.loads(request.content)
        assert "Ana 4 - Ben 0" in body["contents"][0]["parts"][0]["text"]
        return httpx.Response(200, json=_answer('{"fameRoast": "Ana is art.", "shameRoast": ""}'))

    roasts = await _generator(handler).hall_roasts(winner="Ana", loser="Ben", winner_score=4, loser_score=0)

    assert roasts.fame == "Ana is art."
    # blank caption falls back individually
    assert roasts.shame == "Ben faced a tough defeat this time."


async def test_match_roast_from_model():
    narrator = _generator(lambda request: httpx.Response(200, json=_answer("  Back to the tutorial, Ben.  ")))

    assert await narrator.match_roast(winner="Ana", loser="Ben", winner_score=2, loser_score=1) == (
        "Back to the tutorial, Ben."
    )


async def test_transport_failure_uses_fallback():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    narrator = _generator(handler)

    roasts = await narrator.hall_roasts(winner="Ana", loser="Ben", winner_score=1, loser_score=0)
    assert roasts.fame.startswith("Ana dominated")


async def test_client_reports_http_errors_as_results():
    config = settings.GENAI_CONFIG.model_copy(update={"API_KEY": "test-key"})
    client = GeminiClient(config, transport=httpx.MockTransport(lambda r: httpx.Response(429, text="slow down")))

    result = await client.generate("hi")
    await client.close()

    assert result.status == STATUS_ERROR
    assert not result.ok
    assert result.error.startswith("HTTP 429")


def test_parse_json_text_tolerates_fences():
    assert parse_json_text('```json\n{"a": 1}\n```') == {"a": 1}
    assert parse_json_text(' {"a": 2} ') == {"a": 2}
    with pytest.raises(GenAIError):
        parse_json_text("no json here")
