"""Groq Whisper speech-to-text provider."""

from __future__ import annotations

import logging
import time

from backend.tailor.providers.base import BaseTranscriber
from backend.tailor.utils.media import audio_filename

logger = logging.getLogger(__name__)


class GroqSTT(BaseTranscriber):
    """Whisper on Groq. The vocabulary hint goes in as the Whisper `prompt`."""

    def __init__(self, config: dict) -> None:
        super().__init__(config)
        self._client = None

    def _get_client(self):
        """Lazy-init Groq client."""
        if self._client is None:
            from groq import AsyncGroq
            self._client = AsyncGroq(
                api_key=self._api_key(),
                timeout=self.candidate.timeout_s,
                max_retries=0,
            )
        return self._client

    async def transcribe(self, audio: bytes, mime_type: str | None, hint: str) -> str:
        client = self._get_client()
        filename, mime = audio_filename(audio, mime_type)
        start = time.perf_counter()

        logger.info(f"[GroqSTT] {self.model}: {len(audio)} bytes ({mime})")

        response = await client.audio.transcriptions.create(
            file=(filename, audio),
            model=self.model,
            prompt=hint,
            response_format="json",
        )

        elapsed_ms = (time.perf_counter() - start) * 1000
        transcript = self._require_text(getattr(response, "text", None))
        logger.info(f"[GroqSTT] \"{transcript[:120]}\" ({elapsed_ms:.0f}ms)")
        return transcript
