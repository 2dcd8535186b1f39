"""Provider factory — builds one candidate chain per capability from config.

Uses a registry dict to avoid if/elif chains. Adding a new provider =
1. Create the class implementing the capability ABC
2. Add one entry to _PROVIDERS
3. Reference it from a chain in config.yml
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Type

from backend.tailor.chain import Capability, CandidateChain
from backend.tailor.providers.base import (
    BaseImageSynthesizer,
    BaseProvider,
    BaseReasoner,
    BaseTranscriber,
    BaseVisionAnalyzer,
)
from backend.tailor.providers.image.gemini_image import GeminiImageSynthesizer
from backend.tailor.providers.image.replicate_image import ReplicateImageSynthesizer
from backend.tailor.providers.llm.google_llm import GoogleReasoner, GoogleVisionAnalyzer
from backend.tailor.providers.llm.groq_llm import GroqReasoner, GroqVisionAnalyzer
from backend.tailor.providers.llm.openai_llm import OpenAIReasoner, OpenAIVisionAnalyzer
from backend.tailor.providers.stt.google_stt import GoogleSTT
from backend.tailor.providers.stt.groq_stt import GroqSTT
from backend.tailor.providers.stt.openai_stt import OpenAISTT

if TYPE_CHECKING:
    from backend.tailor.config import CandidateConfig, Config


_REASONERS: dict[str, Type[BaseProvider]] = {
    "google": GoogleReasoner,
    "groq": GroqReasoner,
    "openai": OpenAIReasoner,
}


class ProviderFactory:
    """Registry of adapter classes per capability."""

    _PROVIDERS: dict[Capability, dict[str, Type[BaseProvider]]] = {
        Capability.TRANSCRIPTION: {"groq": GroqSTT, "openai": OpenAISTT, "google": GoogleSTT},
        Capability.VISION: {"google": GoogleVisionAnalyzer, "groq": GroqVisionAnalyzer, "openai": OpenAIVisionAnalyzer},
        Capability.REASONING: _REASONERS,
        Capability.CHAT: _REASONERS,
        Capability.SYNTHESIS: {"gemini_image": GeminiImageSynthesizer, "replicate": ReplicateImageSynthesizer},
    }

    # provider name → Credentials field
    _CREDENTIALS: dict[str, str] = {
        "groq": "groq_api_key",
        "google": "google_api_key",
        "gemini_image": "google_api_key",
        "openai": "openai_api_key",
        "replicate": "replicate_api_token",
    }


@dataclass(frozen=True)
class ProviderChains:
    """All candidate chains, built once at startup and only read afterwards."""
    transcription: CandidateChain[BaseTranscriber]
    vision: CandidateChain[BaseVisionAnalyzer]
    reasoning: CandidateChain[BaseReasoner]
    chat: CandidateChain[BaseReasoner]
    synthesis: CandidateChain[BaseImageSynthesizer]

    def all(self) -> tuple[CandidateChain, ...]:
        return (self.transcription, self.vision, self.reasoning, self.chat, self.synthesis)


def _adapter_config(capability: Capability, entry: CandidateConfig, config: Config) -> dict:
    """Candidate options plus injected credential, prompts and polling settings."""
    config_dict = entry.model_dump()
    creds = config.credentials

    field = ProviderFactory._CREDENTIALS.get(entry.provider, "")
    config_dict["api_key"] = getattr(creds, field, "") if field else ""

    if entry.provider == "openai":
        config_dict["api_base"] = config_dict.get("api_base") or creds.openai_api_base
        # Self-hosted OpenAI-compatible servers usually take any key
        if not config_dict["api_key"] and config_dict["api_base"]:
            config_dict["api_key"] = "EMPTY"

    if capability is Capability.SYNTHESIS:
        if entry.provider == "replicate":
            config_dict["prompt_template"] = config.get_prompt("preview_diffusion_prompt")
            config_dict["negative_prompt"] = config.get_prompt("preview_negative_prompt")
            config_dict["poll_interval_s"] = config.polling.interval_s
            config_dict["max_polls"] = config.polling.max_polls
        else:
            config_dict["prompt_template"] = config.get_prompt("preview_edit_prompt")

    return config_dict


def create_provider(capability: Capability, entry: CandidateConfig, config: Config) -> BaseProvider:
    """Create one adapter for a chain entry.

    Raises:
        ValueError: If the provider name is unknown for this capability.
    """
    registry = ProviderFactory._PROVIDERS[capability]
    cls = registry.get(entry.provider)
    if cls is None:
        raise ValueError(
            f"Unknown {capability.value} provider: {entry.provider}. "
            f"Available: {list(registry.keys())}"
        )
    return cls(_adapter_config(capability, entry, config))


def build_chain(capability: Capability, config: Config) -> CandidateChain:
    """Build the ordered adapter chain for one capability."""
    entries = getattr(config.chains, capability.value)
    return CandidateChain(
        capability=capability,
        adapters=tuple(create_provider(capability, e, config) for e in entries),
    )


def build_chains(config: Config) -> ProviderChains:
    """Create every capability chain in one call."""
    return ProviderChains(
        transcription=build_chain(Capability.TRANSCRIPTION, config),
        vision=build_chain(Capability.VISION, config),
        reasoning=build_chain(Capability.REASONING, config),
        chat=build_chain(Capability.CHAT, config),
        synthesis=build_chain(Capability.SYNTHESIS, config),
    )
