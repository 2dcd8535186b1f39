"""Request and result types passed between the API layer and the pipelines."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MediaInput:
    """One diagnosis request: a photo plus optional voice note and text."""
    image_bytes: bytes
    image_mime_type: str = "image/jpeg"
    audio_bytes: bytes | None = None
    audio_mime_type: str | None = None
    user_text: str | None = None

    @property
    def has_audio(self) -> bool:
        return bool(self.audio_bytes)

    @property
    def text(self) -> str:
        return (self.user_text or "").strip()


@dataclass(frozen=True)
class DiagnosisResult:
    """Output of one `diagnose` call. Never mutated after construction."""
    transcription: str
    vision_analysis: str
    repair_guide: str

    def to_dict(self) -> dict:
        # Key names match the browser client
        return {
            "transcription": self.transcription,
            "visionAnalysis": self.vision_analysis,
            "analysis": self.repair_guide,
        }


@dataclass(frozen=True)
class PreviewResult:
    """Best-effort "after repair" image. `available=False` is a normal outcome."""
    available: bool
    image_data_or_url: str | None = None

    @classmethod
    def unavailable(cls) -> PreviewResult:
        return cls(available=False)


@dataclass(frozen=True)
class ChatMessage:
    """One turn of a follow-up conversation."""
    role: str  # "user" | "ai"
    content: str
