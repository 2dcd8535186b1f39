"""Google Gemini providers for garment vision analysis and text generation."""

from __future__ import annotations

import logging
from typing import Sequence

from backend.tailor.models import ChatMessage
from backend.tailor.providers.base import BaseReasoner, BaseVisionAnalyzer

logger = logging.getLogger(__name__)


class _GeminiClientMixin:
    """Lazy google-genai client shared by the Gemini adapters."""

    _client = None

    def _get_client(self):
        """Lazy-init Gemini client."""
        if self._client is None:
            from google import genai
            self._client = genai.Client(api_key=self._api_key())
        return self._client

    def _generation_config(self, system: str | None = None, default_temperature: float = 0.3):
        from google.genai import types

        return types.GenerateContentConfig(
            system_instruction=system or None,
            temperature=self._option("temperature", default_temperature),
            max_output_tokens=self._option("max_tokens", 1024),
        )


class GoogleVisionAnalyzer(_GeminiClientMixin, BaseVisionAnalyzer):
    """Gemini multimodal analysis of the garment photo."""

    async def analyze_image(self, image: bytes, mime_type: str, prompt: str) -> str:
        from google.genai import types

        client = self._get_client()
        response = await client.aio.models.generate_content(
            model=self.model,
            contents=[
                types.Part.from_text(text=prompt),
                types.Part.from_bytes(data=image, mime_type=mime_type),
            ],
            config=self._generation_config(),
        )

        logger.debug(f"[GeminiVision] {self.model}: {len(response.text or '')} chars")
        return self._require_text(response.text)


class GoogleReasoner(_GeminiClientMixin, BaseReasoner):
    """Gemini text generation with a system instruction and chat history."""

    async def generate(self, system: str, messages: Sequence[ChatMessage]) -> str:
        from google.genai import types

        contents = [
            types.Content(
                role="model" if m.role in ("ai", "assistant") else "user",
                parts=[types.Part.from_text(text=m.content)],
            )
            for m in messages
        ]

        client = self._get_client()
        response = await client.aio.models.generate_content(
            model=self.model,
            contents=contents,
            config=self._generation_config(system, default_temperature=0.6),
        )

        logger.debug(f"[GeminiReasoner] {self.model}: {len(response.text or '')} chars")
        return self._require_text(response.text)
