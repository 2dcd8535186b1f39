"""Abstract base classes for all provider adapters.

Each adapter wraps exactly one (provider, model) pair behind a capability
interface. Adapters raise on failure (`ProviderError` or the SDK/transport
exception); they never return error payloads. Swapping or reordering
providers requires no code changes, only config.yml.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence, Union

from backend.tailor.chain import Candidate
from backend.tailor.errors import ErrorKind, ProviderError
from backend.tailor.models import ChatMessage


class BaseAdapter(ABC):
    """Common construction for every adapter.

    `config` is the candidate's entry from config.yml plus the injected
    `api_key` (and `api_base` where relevant).
    """

    def __init__(self, config: dict) -> None:
        self.config = config
        self.candidate = Candidate(
            provider=config["provider"],
            model=config["model"],
            timeout_s=float(config.get("timeout_s", 30.0)),
        )

    @property
    def model(self) -> str:
        return self.candidate.model

    def _api_key(self) -> str:
        key = self.config.get("api_key", "")
        if not key:
            raise ProviderError(
                f"no credential configured for {self.candidate.provider}",
                ErrorKind.MISSING_CREDENTIAL,
            )
        return key

    def _option(self, name: str, default):
        """Candidate option from config.yml, falling back only when unset (0 is a valid value)."""
        value = self.config.get(name)
        return default if value is None else value

    def _require_text(self, text: str | None) -> str:
        """Reject empty completions so the chain moves on. Text is returned as sent."""
        if not text or not text.strip():
            raise ProviderError(
                f"{self.candidate.identifier} returned an empty response",
                ErrorKind.MALFORMED_RESPONSE,
            )
        return text

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.candidate.identifier})"


class BaseTranscriber(BaseAdapter):
    """Speech-to-text."""

    @abstractmethod
    async def transcribe(self, audio: bytes, mime_type: str | None, hint: str) -> str:
        """Transcribe audio to plain text, biased by a vocabulary hint."""
        ...


class BaseVisionAnalyzer(BaseAdapter):
    """Vision-language understanding over a single image."""

    @abstractmethod
    async def analyze_image(self, image: bytes, mime_type: str, prompt: str) -> str:
        """Describe the garment and its damage as structured prose."""
        ...


class BaseReasoner(BaseAdapter):
    """Text generation with a system persona and a message history."""

    @abstractmethod
    async def generate(self, system: str, messages: Sequence[ChatMessage]) -> str:
        """Generate the next assistant turn. Returns markdown text verbatim."""
        ...


class BaseImageSynthesizer(BaseAdapter):
    """Produce an "after repair" image of the original garment."""

    @abstractmethod
    async def synthesize(self, image: bytes, mime_type: str, issue: str) -> str:
        """Return a data URL or a hosted image URL."""
        ...


def chat_completion_messages(system: str, messages: Sequence[ChatMessage]) -> list[dict]:
    """Build an OpenAI-style message list (shared by Groq and OpenAI-compatible APIs)."""
    out: list[dict] = [{"role": "system", "content": system}] if system else []
    for m in messages:
        out.append({
            "role": "assistant" if m.role in ("ai", "assistant") else "user",
            "content": m.content,
        })
    return out


# Union type for the provider factory registry
BaseProvider = Union[BaseTranscriber, BaseVisionAnalyzer, BaseReasoner, BaseImageSynthesizer]
