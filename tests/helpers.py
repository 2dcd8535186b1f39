"""Scripted stub adapters and chain builders for tests.

Stubs are deterministic and never touch the network. Each one plays back a
fixed outcome: a string is returned, an exception instance is raised.
"""

from __future__ import annotations

import asyncio
from typing import Sequence

from backend.tailor.chain import Capability, CandidateChain
from backend.tailor.config import Config
from backend.tailor.models import ChatMessage
from backend.tailor.orchestrator import Orchestrator
from backend.tailor.providers.base import (
    BaseImageSynthesizer,
    BaseReasoner,
    BaseTranscriber,
    BaseVisionAnalyzer,
)
from backend.tailor.providers.factory import ProviderChains


async def _play(outcome, delay: float = 0.0):
    if delay:
        await asyncio.sleep(delay)
    if isinstance(outcome, BaseException):
        raise outcome
    return outcome


def _stub_config(provider: str, timeout_s: float) -> dict:
    return {"provider": provider, "model": "stub", "timeout_s": timeout_s}


class StubTranscriber(BaseTranscriber):
    def __init__(self, provider: str, outcome, delay: float = 0.0, timeout_s: float = 1.0) -> None:
        super().__init__(_stub_config(provider, timeout_s))
        self.outcome, self.delay, self.calls = outcome, delay, []

    async def transcribe(self, audio: bytes, mime_type: str | None, hint: str) -> str:
        self.calls.append((audio, mime_type, hint))
        return await _play(self.outcome, self.delay)


class StubVisionAnalyzer(BaseVisionAnalyzer):
    def __init__(self, provider: str, outcome, delay: float = 0.0, timeout_s: float = 1.0) -> None:
        super().__init__(_stub_config(provider, timeout_s))
        self.outcome, self.delay, self.calls = outcome, delay, []

    async def analyze_image(self, image: bytes, mime_type: str, prompt: str) -> str:
        self.calls.append((image, mime_type, prompt))
        return await _play(self.outcome, self.delay)


class StubReasoner(BaseReasoner):
    def __init__(self, provider: str, outcome, delay: float = 0.0, timeout_s: float = 1.0) -> None:
        super().__init__(_stub_config(provider, timeout_s))
        self.outcome, self.delay, self.calls = outcome, delay, []

    async def generate(self, system: str, messages: Sequence[ChatMessage]) -> str:
        self.calls.append((system, list(messages)))
        return await _play(self.outcome, self.delay)


class StubSynthesizer(BaseImageSynthesizer):
    def __init__(self, provider: str, outcome, delay: float = 0.0, timeout_s: float = 1.0) -> None:
        super().__init__(_stub_config(provider, timeout_s))
        self.outcome, self.delay, self.calls = outcome, delay, []

    async def synthesize(self, image: bytes, mime_type: str, issue: str) -> str:
        self.calls.append((image, mime_type, issue))
        return await _play(self.outcome, self.delay)


def make_chains(
    transcription: Sequence[BaseTranscriber] | None = None,
    vision: Sequence[BaseVisionAnalyzer] | None = None,
    reasoning: Sequence[BaseReasoner] | None = None,
    chat: Sequence[BaseReasoner] | None = None,
    synthesis: Sequence[BaseImageSynthesizer] | None = None,
) -> ProviderChains:
    """ProviderChains where any chain not given gets one succeeding stub."""
    if transcription is None:
        transcription = [StubTranscriber("stt", "there is a tear near the hem")]
    if vision is None:
        vision = [StubVisionAnalyzer("vlm", "Garment: skirt. Issue: torn hem. Severity: Minor.")]
    if reasoning is None:
        reasoning = [StubReasoner("llm", "## Repair guide\n1. Pin the hem.")]
    if chat is None:
        chat = [StubReasoner("chat", "Use a slip stitch.")]
    if synthesis is None:
        synthesis = [StubSynthesizer("img", "data:image/png;base64,aW1n")]

    return ProviderChains(
        transcription=CandidateChain(Capability.TRANSCRIPTION, tuple(transcription)),
        vision=CandidateChain(Capability.VISION, tuple(vision)),
        reasoning=CandidateChain(Capability.REASONING, tuple(reasoning)),
        chat=CandidateChain(Capability.CHAT, tuple(chat)),
        synthesis=CandidateChain(Capability.SYNTHESIS, tuple(synthesis)),
    )


def make_orchestrator(**chains) -> Orchestrator:
    return Orchestrator(Config(), chains=make_chains(**chains))
