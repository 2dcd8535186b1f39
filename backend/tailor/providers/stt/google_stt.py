"""Gemini audio-understanding transcriber.

Used as a last-resort transcription candidate: Gemini accepts the voice
note inline and is asked for a verbatim transcript.
"""

from __future__ import annotations

import logging

from backend.tailor.providers.base import BaseTranscriber
from backend.tailor.utils.media import audio_filename

logger = logging.getLogger(__name__)

_INSTRUCTION = (
    "Transcribe this voice note verbatim. Return only the transcript text. "
    "The speaker is describing damage to a garment; expect terms such as: {hint}"
)


class GoogleSTT(BaseTranscriber):
    """Speech-to-text through a Gemini multimodal model."""

    def __init__(self, config: dict) -> None:
        super().__init__(config)
        self._client = None

    def _get_client(self):
        """Lazy-init Gemini client."""
        if self._client is None:
            from google import genai
            self._client = genai.Client(api_key=self._api_key())
        return self._client

    async def transcribe(self, audio: bytes, mime_type: str | None, hint: str) -> str:
        from google.genai import types

        client = self._get_client()
        _, mime = audio_filename(audio, mime_type)

        response = await client.aio.models.generate_content(
            model=self.model,
            contents=[
                types.Part.from_text(text=_INSTRUCTION.replace("{hint}", hint)),
                types.Part.from_bytes(data=audio, mime_type=mime),
            ],
            config=types.GenerateContentConfig(temperature=0.0),
        )

        return self._require_text(response.text)
