from __future__ import annotations

import base64
import logging
import time

import httpx

from hintify.models import ErrorKind, ProviderResponse
from hintify.providers.base import LLMProvider

log = logging.getLogger("hintify.llm")

NOT_RUNNING = "Ollama not running. Please start Ollama first."
NO_VISION = (
    "The selected Ollama model may not support images. Try a vision-capable model "
    "(e.g., granite3.2-vision:2b, llava, llama3.2-vision) or switch provider in Settings."
)


class OllamaProvider(LLMProvider):
    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "granite3.2-vision:2b",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self._transport = transport

    def _client(self, timeout: float = 120.0) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def _post(self, body: dict) -> dict:
        t0 = time.monotonic()
        async with self._client() as client:
            resp = await client.post(f"{self.base_url}/api/generate", json=body)
            resp.raise_for_status()
            data = resp.json()
        log.info(
            "── RESPONSE (%.1fs, %s tokens) ──\n%s",
            time.monotonic() - t0, data.get("eval_count", "?"), data.get("response", ""),
        )
        return data

    async def generate(self, prompt: str) -> ProviderResponse:
        log.info("── PROMPT (%s) ──\n%s", self.model, prompt)
        try:
            data = await self._post({"model": self.model, "prompt": prompt, "stream": False})
        except httpx.ConnectError:
            return ProviderResponse.setup(NOT_RUNNING, ErrorKind.CONNECTION_REFUSED)
        except (httpx.HTTPError, ValueError) as e:
            return ProviderResponse.llm_error(str(e))
        text = data.get("response") or ""
        if not text:
            return ProviderResponse.llm_error("Empty response from Ollama", ErrorKind.EMPTY_RESPONSE)
        return ProviderResponse.ok(text)

    async def generate_with_image(self, prompt: str, image: bytes) -> ProviderResponse:
        log.info("── VISION PROMPT (%s, %d bytes) ──\n%s", self.model, len(image), prompt)
        body = {
            "model": self.model,
            "prompt": prompt,
            "images": [base64.b64encode(image).decode("ascii")],
            "stream": False,
        }
        try:
            data = await self._post(body)
        except httpx.ConnectError:
            return ProviderResponse.setup(NOT_RUNNING, ErrorKind.CONNECTION_REFUSED)
        except httpx.HTTPStatusError as e:
            if e.response.status_code in (400, 404):
                return ProviderResponse.setup(NO_VISION)
            return ProviderResponse.llm_error(str(e))
        except (httpx.HTTPError, ValueError) as e:
            return ProviderResponse.llm_error(str(e))
        text = data.get("response") or ""
        if not text:
            return ProviderResponse.llm_error(
                "Empty response from Ollama (vision)", ErrorKind.EMPTY_RESPONSE,
            )
        return ProviderResponse.ok(text)

    async def check_status(self) -> str | None:
        try:
            async with self._client(timeout=3.0) as client:
                resp = await client.get(f"{self.base_url}/api/tags")
                resp.raise_for_status()
        except httpx.HTTPError as e:
            log.warning("Ollama status check failed: %s", e)
            return "Ollama not running"
        return None

    def name(self) -> str:
        return f"ollama/{self.model}"
