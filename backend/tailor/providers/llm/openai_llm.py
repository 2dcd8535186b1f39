"""OpenAI-compatible providers for vision analysis and text generation.

Works against api.openai.com or any OpenAI-compatible server (e.g. a local
vLLM deployment) via the candidate's `api_base`.
"""

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


class _OpenAIClientMixin:
    """Lazy AsyncOpenAI client shared by the OpenAI-compatible adapters."""

    _client = None

    def _get_client(self):
        """Lazy-init OpenAI Async API client."""
        if self._client is None:
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(
                api_key=self._api_key(),
                base_url=self.config.get("api_base") or None,
                timeout=self.candidate.timeout_s,
                max_retries=0,
            )
        return self._client


class OpenAIVisionAnalyzer(_OpenAIClientMixin, BaseVisionAnalyzer):
    """Chat completions with an inline image part."""

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
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:{mime_type};base64,{b64}", "detail": "high"},
                        },
                    ],
                }
            ],
            temperature=self._option("temperature", 0.3),
            max_tokens=self._option("max_tokens", 1024),
        )

        text = response.choices[0].message.content if response.choices else None
        logger.debug(f"[OpenAIVision] {self.model}: {len(text or '')} chars")
        return self._require_text(text)


class OpenAIReasoner(_OpenAIClientMixin, BaseReasoner):
    """Chat completions text generation."""

    async def generate(self, system: str, messages: Sequence[ChatMessage]) -> str:
        client = self._get_client()

        response = await client.chat.completions.create(
            model=self.model,
            messages=chat_completion_messages(system, messages),
            temperature=self._option("temperature", 0.6),
            max_tokens=self._option("max_tokens", 2048),
        )

        text = response.choices[0].message.content if response.choices else None
        return self._require_text(text)
