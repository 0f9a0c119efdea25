from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from hintify.models import ProviderResponse


class LLMProvider(ABC):
    """A hint backend. Expected failures come back as sentinel responses, never raised."""

    @abstractmethod
    async def generate(self, prompt: str) -> ProviderResponse:
        ...

    @abstractmethod
    async def generate_with_image(self, prompt: str, image: bytes) -> ProviderResponse:
        ...

    async def check_status(self) -> str | None:
        """Return a setup warning when the backend is unusable, else None."""
        return None

    @abstractmethod
    def name(self) -> str:
        ...


class TTSProvider(ABC):
    @abstractmethod
    async def synthesize(self, text: str, output_path: Path) -> Path:
        ...

    @abstractmethod
    def name(self) -> str:
        ...
