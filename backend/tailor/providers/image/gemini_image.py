"""Gemini direct image synthesis over the REST API.

API: POST https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent
  - request: one user turn with the original image (inline_data) + edit instruction
  - generationConfig.responseModalities: ["IMAGE", "TEXT"]
  - response: candidates[0].content.parts[*].inlineData {mimeType, data}

REST is used instead of the SDK so the image-generation preview models
can be addressed directly.
"""

from __future__ import annotations

import base64
import logging
import time

import httpx

from backend.tailor.errors import ErrorKind, ProviderError
from backend.tailor.providers.base import BaseImageSynthesizer
from backend.tailor.utils.media import to_data_url

logger = logging.getLogger(__name__)

_GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class GeminiImageSynthesizer(BaseImageSynthesizer):
    """Single-request "same garment, repaired" edit."""

    def __init__(self, config: dict, transport: httpx.AsyncBaseTransport | None = None) -> None:
        super().__init__(config)
        self._transport = transport
        self._prompt = config.get("prompt_template", "{issue}")

    async def synthesize(self, image: bytes, mime_type: str, issue: str) -> str:
        api_key = self._api_key()
        start = time.perf_counter()

        body = {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"inline_data": {"mime_type": mime_type, "data": base64.b64encode(image).decode()}},
                        {"text": self._prompt.replace("{issue}", issue)},
                    ],
                }
            ],
            "generationConfig": {
                "responseModalities": ["IMAGE", "TEXT"],
                "temperature": 1,
                "topP": 0.95,
            },
        }

        async with httpx.AsyncClient(timeout=self.candidate.timeout_s, transport=self._transport) as client:
            response = await client.post(
                _GEMINI_API_URL.format(model=self.model),
                json=body,
                headers={"x-goog-api-key": api_key},
            )

            if response.status_code >= 400:
                logger.warning(
                    f"[GeminiImage] HTTP {response.status_code}: {response.text[:300]}"
                )
            response.raise_for_status()
            data = response.json()

        elapsed_ms = (time.perf_counter() - start) * 1000
        url = self._extract_image(data)
        logger.info(f"[GeminiImage] {self.model}: image returned ({elapsed_ms:.0f}ms)")
        return url

    def _extract_image(self, data: dict) -> str:
        """Return the first image part as a data URL."""
        candidates = data.get("candidates") or []
        parts = (candidates[0].get("content") or {}).get("parts", []) if candidates else []

        for part in parts:
            # REST responses use camelCase; accept snake_case too
            inline = part.get("inlineData") or part.get("inline_data") or {}
            mime = inline.get("mimeType") or inline.get("mime_type") or ""
            if mime.startswith("image/") and inline.get("data"):
                return to_data_url(mime, inline["data"])

        raise ProviderError(
            f"{self.candidate.identifier} returned no image parts",
            ErrorKind.MALFORMED_RESPONSE,
        )
