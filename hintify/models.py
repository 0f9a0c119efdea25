from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Provider(str, Enum):
    OLLAMA = "ollama"
    GEMINI = "gemini"


class QuestionType(str, Enum):
    MCQ = "MCQ"
    DESCRIPTIVE = "Descriptive"
    NOT_A_QUESTION = "Not a Question"
    UNKNOWN = "Unknown"  # vision path, no OCR text to classify


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"
    UNKNOWN = "Unknown"


class PromptMode(str, Enum):
    STANDARD = "standard"
    REGENERATION = "regeneration"
    IMAGE_DIRECT = "image_direct"
    STORY = "story"


class ErrorKind(str, Enum):
    NONE = "none"
    CONNECTION_REFUSED = "connection_refused"
    NOT_CONFIGURED = "not_configured"
    PROVIDER_ERROR = "provider_error"
    EMPTY_RESPONSE = "empty_response"


SETUP_PREFIX = "[Setup]"
LLM_ERROR_PREFIX = "[LLM Error]"
OCR_ERROR_PREFIX = "[OCR Error]"
ERROR_PREFIX = "[Error]"


def is_sentinel(text: str | None) -> bool:
    """True when *text* is an error/setup message rather than real hint content."""
    if not text or not text.strip():
        return True
    return text.strip().startswith("[") or "Error" in text


@dataclass(frozen=True)
class ImageInput:
    data: bytes


@dataclass(frozen=True)
class TextInput:
    content: str


CaptureInput = ImageInput | TextInput


@dataclass(frozen=True)
class Classification:
    question_type: QuestionType
    difficulty: Difficulty


@dataclass(frozen=True)
class PromptContext:
    source_text: str | None
    classification: Classification | None
    mode: PromptMode
    previous_hints: str | None = None


@dataclass(frozen=True)
class ProviderResponse:
    raw_text: str
    error_kind: ErrorKind = ErrorKind.NONE

    @property
    def is_error(self) -> bool:
        return is_sentinel(self.raw_text)

    @property
    def is_transport_failure(self) -> bool:
        return self.error_kind == ErrorKind.CONNECTION_REFUSED

    @classmethod
    def ok(cls, text: str) -> ProviderResponse:
        return cls(raw_text=text)

    @classmethod
    def setup(cls, message: str, kind: ErrorKind = ErrorKind.NOT_CONFIGURED) -> ProviderResponse:
        return cls(raw_text=f"{SETUP_PREFIX} {message}", error_kind=kind)

    @classmethod
    def llm_error(cls, message: str, kind: ErrorKind = ErrorKind.PROVIDER_ERROR) -> ProviderResponse:
        return cls(raw_text=f"{LLM_ERROR_PREFIX} {message}", error_kind=kind)


@dataclass(frozen=True)
class Hint:
    label: str
    text: str


@dataclass(frozen=True)
class Encouragement:
    text: str


@dataclass(frozen=True)
class Plain:
    text: str


HintBlock = Hint | Encouragement | Plain


@dataclass(frozen=True)
class QuestionRecord:
    question_text: str
    answer_text: str
    question_type: str  # text | image_ocr | image_direct
    image_data: bytes | None = None
    metadata: dict = field(default_factory=dict)
    processing_time_ms: int | None = None


@dataclass
class SaveResult:
    success: bool
    id: str | None = None
    error: str | None = None


@dataclass
class ProcessingResult:
    status: str  # ok | busy | empty | failed
    record: QuestionRecord | None = None
    response: ProviderResponse | None = None
    blocks: tuple[HintBlock, ...] = ()
    message: str = ""

    @property
    def display_text(self) -> str:
        if self.response is not None:
            return self.response.raw_text
        return self.message
