"""OpenAI-compatible transcription provider (whisper-1, or a self-hosted server)."""

from __future__ import annotations

import logging

from backend.tailor.providers.base import BaseTranscriber
from backend.tailor.utils.media import audio_filename

logger = logging.getLogger(__name__)


class OpenAISTT(BaseTranscriber):
    """`/audio/transcriptions` via the openai SDK."""

    def __init__(self, config: dict) -> None:
        super().__init__(config)
        self._client = None

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

    async def transcribe(self, audio: bytes, mime_type: str | None, hint: str) -> str:
        client = self._get_client()
        filename, _ = audio_filename(audio, mime_type)

        response = await client.audio.transcriptions.create(
            model=self.model,
            file=(filename, audio),
            prompt=hint,
        )

        return self._require_text(getattr(response, "text", None))
