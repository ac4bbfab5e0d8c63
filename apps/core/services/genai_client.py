# apps/core/services/genai_client.py
"""
Async client for the Gemini `generateContent` REST endpoint.

Every call returns a `GenAIResult`; transport problems and non-200 answers are
reported through `status` instead of exceptions, so callers can pick their own
fallback. Only a missing API key raises, because nothing can work without it.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Any, Final

import httpx
import orjson
import structlog
from django.conf import settings

log: Final = structlog.get_logger(__name__).bind(component="GeminiClient")

STATUS_COMPLETED: Final = "COMPLETED"
STATUS_ERROR: Final = "ERROR"
STATUS_TIMEOUT: Final = "TIMEOUT"

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@dataclass(slots=True)
class GenAIResult:
    """Result of one model call."""

    status: str
    text: str
    model: str
    exec_ms: int
    tokens_in: int = 0
    tokens_out: int = 0
    finish_reason: str | None = None
    error: str | None = None
    raw_output: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == STATUS_COMPLETED and bool(self.text.strip())


class GenAIError(Exception):
    """The client cannot be used at all (e.g. no API key) or the answer is unusable."""


def parse_json_text(text: str) -> Any:
    """Decode a JSON answer, tolerating markdown code fences around it."""
    cleaned = _FENCE_RE.sub("", text.strip())
    try:
        return orjson.loads(cleaned)
    except orjson.JSONDecodeError as exc:
        msg = f"Model answer is not valid JSON: {cleaned[:120]!r}"
        raise GenAIError(msg) from exc


class GeminiClient:
    """Thin async wrapper over httpx; one pooled connection per instance."""

    def __init__(self, config=None, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.config = config or settings.GENAI_CONFIG
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.BASE_URL,
                timeout=httpx.Timeout(self.config.TIMEOUT_S),
                headers={"Content-Type": "application/json", "x-goog-api-key": self.config.API_KEY},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def generate(
        self,
        prompt: str,
        *,
        inline_data: tuple[str, str] | None = None,
        json_output: bool = False,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> GenAIResult:
        """
        Ask the model.

        Args:
            prompt: Instruction text.
            inline_data: Optional ``(mime_type, base64_payload)`` attachment.
            json_output: Request a JSON answer.
            temperature: Override the configured narrative temperature.
            max_tokens: Override the configured token cap.
        """
        if not self.config.API_KEY:
            raise GenAIError("GENAI_API_KEY not configured")

        parts: list[dict[str, Any]] = [{"text": prompt}]
        if inline_data is not None:
            mime_type, data = inline_data
            parts.append({"inline_data": {"mime_type": mime_type, "data": data}})

        generation_config: dict[str, Any] = {
            "temperature": self.config.NARRATIVE_TEMPERATURE if temperature is None else temperature,
        }
        if max_tokens is not None:
            generation_config["maxOutputTokens"] = max_tokens
        if json_output:
            generation_config["responseMimeType"] = "application/json"

        payload = {"contents": [{"parts": parts}], "generationConfig": generation_config}
        model = self.config.MODEL
        client = await self._get_client()
        start = time.monotonic()

        def _elapsed() -> int:
            return int((time.monotonic() - start) * 1000)

        try:
            response = await client.post(f"/models/{model}:generateContent", json=payload)
        except httpx.TimeoutException:
            log.warning("Model call timed out", model=model, exec_ms=_elapsed())
            return GenAIResult(status=STATUS_TIMEOUT, text="", model=model, exec_ms=_elapsed(), error="timeout")
        except httpx.HTTPError as exc:
            log.warning("Model call failed", model=model, err=str(exc))
            return GenAIResult(status=STATUS_ERROR, text="", model=model, exec_ms=_elapsed(), error=str(exc))

        if response.status_code != httpx.codes.OK:
            error_text = response.text[:500]
            log.error("Model returned an error", model=model, status=response.status_code, body=error_text)
            return GenAIResult(
                status=STATUS_ERROR,
                text="",
                model=model,
                exec_ms=_elapsed(),
                error=f"HTTP {response.status_code}: {error_text}",
            )

        data = response.json()
        text, finish_reason = self._extract_text_and_reason(data)
        usage = data.get("usageMetadata", {})
        if finish_reason and finish_reason != "STOP":
            log.warning("Model stopped early", model=model, finish_reason=finish_reason, text_len=len(text))

        return GenAIResult(
            status=STATUS_COMPLETED,
            text=text,
            model=data.get("modelVersion", model),
            exec_ms=_elapsed(),
            tokens_in=usage.get("promptTokenCount", 0),
            tokens_out=usage.get("candidatesTokenCount", 0),
            finish_reason=finish_reason,
            raw_output=data,
        )

    @staticmethod
    def _extract_text_and_reason(response: dict[str, Any]) -> tuple[str, str | None]:
        candidates = response.get("candidates") or []
        if not candidates:
            return "", None
        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts)
        return text, candidate.get("finishReason")
