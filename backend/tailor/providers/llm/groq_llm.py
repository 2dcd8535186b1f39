"""Groq providers for garment vision analysis and repair-guide reasoning."""

from __future__ import annotations

import base64
import logging
from typing import Sequence

from backend.tailor.models import ChatMessage
from backend.tailor.providers.base import (
    BaseReasoner,
    BaseVisionAnalyzer,
    chat_completion_messages,
)

logger = logging.getLogger(__name__)


class _GroqClientMixin:
    """Lazy AsyncGroq client shared by the Groq adapters."""

    _client = None

    def _get_client(self):
        """Lazy-init Groq client. SDK retries are off: the chain falls through instead."""
        if self._client is None:
            from groq import AsyncGroq
            self._client = AsyncGroq(
                api_key=self._api_key(),
                timeout=self.candidate.timeout_s,
                max_retries=0,
            )
        return self._client


class GroqVisionAnalyzer(_GroqClientMixin, BaseVisionAnalyzer):
    """Groq vision-capable Llama (OpenAI-compatible image parts)."""

    async def analyze_image(self, image: bytes, mime_type: str, prompt: str) -> str:
        client = self._get_client()
        b64 = base64.b64encode(image).decode("utf-8")

        response = await client.chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{b64}"}},
                    ],
                }
            ],
            temperature=self._option("temperature", 0.3),
            max_tokens=self._option("max_tokens", 1024),
        )

        text = response.choices[0].message.content if response.choices else None
        logger.debug(f"[GroqVision] {self.model}: {len(text or '')} chars")
        return self._require_text(text)


class GroqReasoner(_GroqClientMixin, BaseReasoner):
    """Groq text generation (Llama / Mixtral)."""

    async def generate(self, system: str, messages: Sequence[ChatMessage]) -> str:
        client = self._get_client()

        response = await client.chat.completions.create(
            model=self.model,
            messages=chat_completion_messages(system, messages),
            temperature=self._option("temperature", 0.6),
            max_tokens=self._option("max_tokens", 2048),
        )

        text = response.choices[0].message.content if response.choices else None
        logger.debug(f"[GroqReasoner] {self.model}: {len(text or '')} chars")
        return self._require_text(text)
