from __future__ import annotations

import base64
import logging
import os
import time

import httpx

from hintify.models import ErrorKind, ProviderResponse
from hintify.policy import fallback_once
from hintify.providers.base import LLMProvider

log = logging.getLogger("hintify.llm")

API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"
FALLBACK_MODEL = "gemini-1.5-flash"
MISSING_KEY = "Gemini API key not set. Please configure in Settings."

# Status codes that mean "this model can't serve the request" rather than a hard failure.
TEXT_FALLBACK_STATUSES = (403, 404)
VISION_FALLBACK_STATUSES = (400, 403, 404)


class EmptyGeminiResponse(Exception):
    pass


def _extract_text(data: dict) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    texts = [p.get("text") for p in parts if p.get("text")]
    return "\n".join(texts).strip()


def _status_in(statuses: tuple[int, ...]):
    def check(exc: BaseException) -> bool:
        return isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code in statuses
    return check


class GeminiProvider(LLMProvider):
    def __init__(
        self,
        model: str = "gemini-2.0-flash",
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.model = model
        self.api_key = api_key or os.environ.get("GEMINI_API_KEY", "")
        self._transport = transport

    async def _call_model(self, model: str, parts: list[dict]) -> str:
        url = f"{API_BASE}/{model}:generateContent"
        t0 = time.monotonic()
        async with httpx.AsyncClient(timeout=120.0, transport=self._transport) as client:
            resp = await client.post(
                url,
                json={"contents": [{"parts": parts}]},
                headers={"Content-Type": "application/json", "X-goog-api-key": self.api_key},
            )
            resp.raise_for_status()
            data = resp.json()
        text = _extract_text(data)
        log.info("── RESPONSE %s (%.1fs) ──\n%s", model, time.monotonic() - t0, text)
        if not text:
            raise EmptyGeminiResponse(model)
        return text

    async def _generate(self, parts: list[dict], statuses: tuple[int, ...], suffix: str) -> ProviderResponse:
        if not self.api_key:
            return ProviderResponse.setup(MISSING_KEY)

        fallback = None
        if self.model != FALLBACK_MODEL:
            async def fallback():
                log.info("Gemini model %s unavailable, retrying with %s", self.model, FALLBACK_MODEL)
                return await self._call_model(FALLBACK_MODEL, parts)

        try:
            text = await fallback_once(
                lambda: self._call_model(self.model, parts),
                fallback,
                _status_in(statuses),
            )
        except EmptyGeminiResponse:
            return ProviderResponse.llm_error(f"Empty response from Gemini{suffix}", ErrorKind.EMPTY_RESPONSE)
        except httpx.TransportError as e:
            return ProviderResponse.llm_error(f"Could not reach Gemini: {e}", ErrorKind.CONNECTION_REFUSED)
        except (httpx.HTTPError, ValueError) as e:
            return ProviderResponse.llm_error(str(e))
        return ProviderResponse.ok(text)

    async def generate(self, prompt: str) -> ProviderResponse:
        log.info("── PROMPT (%s) ──\n%s", self.model, prompt)
        return await self._generate([{"text": prompt}], TEXT_FALLBACK_STATUSES, "")

    async def generate_with_image(self, prompt: str, image: bytes) -> ProviderResponse:
        log.info("── VISION PROMPT (%s, %d bytes) ──\n%s", self.model, len(image), prompt)
        parts = [
            {"inline_data": {"mime_type": "image/png", "data": base64.b64encode(image).decode("ascii")}},
            {"text": prompt},
        ]
        return await self._generate(parts, VISION_FALLBACK_STATUSES, " (vision)")

    async def check_status(self) -> str | None:
        if not self.api_key:
            return "Gemini API key not set"
        return None

    def name(self) -> str:
        return f"gemini/{self.model}"
