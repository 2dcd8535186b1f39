"""Diagnosis and preview pipelines.

  Diagnosis: audio → Transcription → Vision Analysis → Reasoning → repair guide
  Preview:   image + vision analysis → Synthesis (direct, then submit/poll)

Stages within a diagnosis are strictly sequential: each stage's text output
is threaded into the next stage's prompt. Neither pipeline holds per-request
state, so one instance serves any number of concurrent requests.
"""

from __future__ import annotations

import logging

from backend.tailor.chain import run_chain
from backend.tailor.config import Config
from backend.tailor.errors import ChainExhausted
from backend.tailor.models import ChatMessage, DiagnosisResult, MediaInput, PreviewResult
from backend.tailor.providers.factory import ProviderChains
from backend.tailor.utils.logging import latency_tracker

logger = logging.getLogger(__name__)

NO_CONTEXT_PLACEHOLDER = "No audio or text context provided."
TRANSCRIPTION_FAILED_PLACEHOLDER = "Audio could not be transcribed; no text context provided."
DEFAULT_ISSUE = "general garment damage, repair and restore to perfect condition"


def render(template: str, **values: str) -> str:
    """Fill `{name}` placeholders without tripping over other braces in the template."""
    for key, value in values.items():
        template = template.replace("{" + key + "}", value)
    return template


class DiagnosisPipeline:
    """Transcription → Vision Analysis → Reasoning."""

    def __init__(self, chains: ProviderChains, config: Config) -> None:
        self.chains = chains
        self._vocabulary = config.get_prompt("transcription_vocabulary")
        self._vision_prompt = config.get_prompt("vision_prompt")
        self._reasoning_system = config.get_prompt("reasoning_system_prompt")
        self._reasoning_user = config.get_prompt("reasoning_user_prompt")

    async def run(self, media: MediaInput, request_id: str = "-") -> DiagnosisResult:
        """Run all three stages.

        Raises:
            ChainExhausted: Vision analysis or reasoning found no working provider.
        """
        with latency_tracker(f"[{request_id}] transcription", logger):
            transcription, context = await self.transcribe(media, request_id)

        with latency_tracker(f"[{request_id}] vision", logger):
            vision_analysis = await self.analyze(media, context)

        with latency_tracker(f"[{request_id}] reasoning", logger):
            repair_guide = await self.reason(vision_analysis)

        return DiagnosisResult(
            transcription=transcription,
            vision_analysis=vision_analysis,
            repair_guide=repair_guide,
        )

    async def transcribe(self, media: MediaInput, request_id: str = "-") -> tuple[str, str]:
        """Return (transcription, prompt context). Never raises on provider failure.

        Without audio the stage is skipped: the user's text stands in for the
        transcript, or a placeholder when there is none. A fully failed chain
        degrades the same way.
        """
        text = media.text
        if not media.has_audio:
            value = media.user_text if text else NO_CONTEXT_PLACEHOLDER
            logger.info(f"[Diagnosis] [{request_id}] no audio; using {'user text' if text else 'placeholder'}")
            return value, value

        try:
            result = await run_chain(
                self.chains.transcription,
                lambda stt: stt.transcribe(media.audio_bytes, media.audio_mime_type, self._vocabulary),
            )
        except ChainExhausted as e:
            logger.warning(
                f"[Diagnosis] [{request_id}] transcription unavailable "
                f"({len(e.attempts)} attempts); continuing on image alone"
            )
            value = media.user_text if text else TRANSCRIPTION_FAILED_PLACEHOLDER
            return value, value

        transcript = result.out
        context = f"{transcript}\n\nAdditional notes from the user: {text}" if text else transcript
        return transcript, context

    async def analyze(self, media: MediaInput, context: str) -> str:
        prompt = render(self._vision_prompt, context=context)
        result = await run_chain(
            self.chains.vision,
            lambda vlm: vlm.analyze_image(media.image_bytes, media.image_mime_type, prompt),
        )
        return result.out

    async def reason(self, vision_analysis: str) -> str:
        user = render(self._reasoning_user, analysis=vision_analysis)
        result = await run_chain(
            self.chains.reasoning,
            lambda llm: llm.generate(self._reasoning_system, [ChatMessage(role="user", content=user)]),
        )
        return result.out


class PreviewPipeline:
    """Best-effort "after repair" image. Exhaustion means no preview, not an error."""

    def __init__(self, chains: ProviderChains) -> None:
        self.chains = chains

    async def run(self, image: bytes, mime_type: str, issue: str | None, request_id: str = "-") -> PreviewResult:
        issue = (issue or "").strip() or DEFAULT_ISSUE

        try:
            with latency_tracker(f"[{request_id}] synthesis", logger):
                result = await run_chain(
                    self.chains.synthesis,
                    lambda synth: synth.synthesize(image, mime_type, issue),
                )
        except ChainExhausted as e:
            logger.info(
                f"[Preview] [{request_id}] no preview available "
                f"({len(e.attempts)} attempts failed)"
            )
            return PreviewResult.unavailable()

        return PreviewResult(available=True, image_data_or_url=result.out)
