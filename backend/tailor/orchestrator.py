"""Request entry points: diagnose, generate_preview and chat.

The orchestrator is built once at startup from an explicit `Config` and the
chains created from it, then shared by every request. It validates input
before any provider is called and hides which provider answered.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Sequence

from backend.tailor.chain import describe, run_chain
from backend.tailor.config import Config
from backend.tailor.errors import ValidationError
from backend.tailor.models import ChatMessage, DiagnosisResult, MediaInput, PreviewResult
from backend.tailor.pipeline import DiagnosisPipeline, PreviewPipeline
from backend.tailor.providers.factory import ProviderChains, build_chains

logger = logging.getLogger(__name__)


def _request_id() -> str:
    return uuid.uuid4().hex[:8]


class Orchestrator:
    """Externally callable operations over the provider chains."""

    def __init__(self, config: Config, chains: ProviderChains | None = None) -> None:
        self.config = config
        self.chains = chains or build_chains(config)
        self.diagnosis = DiagnosisPipeline(self.chains, config)
        self.preview = PreviewPipeline(self.chains)
        self._chat_system = config.get_prompt("chat_system_prompt")

        logger.info(f"[Orchestrator] Initialized: {self.describe()}")

    def describe(self) -> dict[str, list[str]]:
        """Candidate identifiers per capability, in priority order."""
        return describe(self.chains.all())

    async def diagnose(self, media: MediaInput) -> DiagnosisResult:
        """Photo (+ optional voice note / text) → diagnosis and repair guide.

        Raises:
            ValidationError: No image bytes; no provider is called.
            ChainExhausted: Vision analysis or reasoning failed on every candidate.
        """
        if not media.image_bytes:
            raise ValidationError("Image is required")

        request_id = _request_id()
        start = time.perf_counter()
        logger.info(
            f"[Orchestrator] [{request_id}] diagnose: image={len(media.image_bytes)}B "
            f"({media.image_mime_type}), audio={len(media.audio_bytes or b'')}B, "
            f"text={'yes' if media.text else 'no'}"
        )

        result = await self.diagnosis.run(media, request_id)

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"[Orchestrator] [{request_id}] diagnose COMPLETE in {elapsed_ms:.0f}ms")
        return result

    async def generate_preview(self, image: bytes, mime_type: str, issue_description: str | None) -> PreviewResult:
        """Best-effort repaired-garment image. Provider failure yields `available=False`.

        Raises:
            ValidationError: No image bytes.
        """
        if not image:
            raise ValidationError("Image is required")

        request_id = _request_id()
        logger.info(f"[Orchestrator] [{request_id}] preview: image={len(image)}B ({mime_type})")
        return await self.preview.run(image, mime_type, issue_description, request_id)

    async def chat(self, messages: Sequence[ChatMessage]) -> str:
        """Follow-up conversation with the tailoring assistant persona.

        Raises:
            ValidationError: Empty history or empty latest message.
            ChainExhausted: No chat candidate answered.
        """
        if not messages or not messages[-1].content.strip():
            raise ValidationError("A message is required")

        result = await run_chain(
            self.chains.chat,
            lambda llm: llm.generate(self._chat_system, list(messages)),
        )
        return result.out
