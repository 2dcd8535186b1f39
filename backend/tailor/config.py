"""YAML configuration loader with validation and prompt templates."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field


# ── Path Constants ──
_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"
_DEFAULT_CONFIG = _CONFIG_DIR / "config.yml"


# ── Built-in prompt defaults (overridden by the prompts YAML) ──

DEFAULT_PROMPTS: dict[str, str] = {
    "transcription_vocabulary": "Tailoring, sewing, dress, hem, seam, tear, fabric, stitch, zipper, button, lining, darning, patch, fray.",
    "vision_prompt": (
        "You are an expert tailor and seamstress.\n\n"
        "The user said:\n\"{context}\"\n\n"
        "Examine the garment in the image and report:\n"
        "1. Garment type\n"
        "2. Issue identified\n"
        "3. Severity (Minor / Moderate / Major)\n"
        "4. Location on the garment\n"
        "5. Short technical notes only\n"
        "Keep it structured."
    ),
    "reasoning_system_prompt": "You are a master tailor and patient repair instructor giving step-by-step repair instructions.",
    "reasoning_user_prompt": (
        "Based on this garment analysis:\n\n{analysis}\n\n"
        "Provide, in clean markdown:\n"
        "- Issue summary\n"
        "- Tools and materials required\n"
        "- Numbered step-by-step repair instructions\n"
        "- Beginner tips\n"
        "- Common mistakes to avoid\n"
        "- How to check the repair is sound\n"
        "- A short note of encouragement"
    ),
    "chat_system_prompt": (
        "You are Tailor AI, a friendly, expert virtual tailor and sewing assistant. "
        "You help with garment repairs and alterations, fabric selection and care, "
        "sewing techniques and tools, and pattern reading. Always be encouraging, "
        "clear and practical. Use markdown formatting for structured responses."
    ),
    "preview_edit_prompt": (
        "You are an expert fashion illustrator and photo editor.\n\n"
        "The garment in this image has the following issue: \"{issue}\"\n\n"
        "Generate a photorealistic image of the EXACT SAME garment after it has been "
        "perfectly and professionally repaired:\n"
        "- Fix the specific issue described above\n"
        "- Keep the garment's style, color, fabric texture, and shape identical\n"
        "- Keep the same background and lighting\n"
        "- The result should look naturally repaired, not digitally manipulated"
    ),
    "preview_diffusion_prompt": (
        "professional tailoring repair, fixed garment, {issue}, photorealistic, "
        "high quality fashion photography, clean stitching, perfect finish"
    ),
    "preview_negative_prompt": "damaged, torn, wrinkled, dirty, unprofessional, low quality, blurry",
}


# ── Pydantic Models ──

class CandidateConfig(BaseModel):
    """One (provider, model) entry in a candidate chain."""

    provider: str
    model: str
    timeout_s: float = 30.0
    temperature: float | None = None
    max_tokens: int | None = None

    model_config = {"extra": "allow"}  # Provider-specific options pass through


class ChainsConfig(BaseModel):
    transcription: list[CandidateConfig] = Field(default_factory=lambda: [
        CandidateConfig(provider="groq", model="whisper-large-v3", timeout_s=30),
        CandidateConfig(provider="groq", model="whisper-large-v3-turbo", timeout_s=30),
    ])
    vision: list[CandidateConfig] = Field(default_factory=lambda: [
        CandidateConfig(provider="google", model="gemini-2.5-flash", timeout_s=45),
        CandidateConfig(provider="google", model="gemini-1.5-flash", timeout_s=45),
    ])
    reasoning: list[CandidateConfig] = Field(default_factory=lambda: [
        CandidateConfig(provider="groq", model="llama-3.3-70b-versatile", timeout_s=45, temperature=0.6),
        CandidateConfig(provider="google", model="gemini-2.5-flash", timeout_s=45, temperature=0.6),
    ])
    chat: list[CandidateConfig] = Field(default_factory=lambda: [
        CandidateConfig(provider="google", model="gemini-2.5-flash", timeout_s=30, temperature=0.7),
        CandidateConfig(provider="groq", model="llama-3.3-70b-versatile", timeout_s=30, temperature=0.7),
    ])
    synthesis: list[CandidateConfig] = Field(default_factory=lambda: [
        CandidateConfig(provider="gemini_image", model="gemini-2.0-flash-preview-image-generation", timeout_s=60),
        CandidateConfig(
            provider="replicate",
            model="stability-ai/sdxl:39ed52f2146964a8895ccf3916c95c17d2b10b1a7b97a4e49be37d3b6a5ec2d0",
            timeout_s=45,
        ),
    ])


class PollingConfig(BaseModel):
    """Submit/poll synthesis ceiling: `max_polls` checks, `interval_s` apart."""

    interval_s: float = 2.0
    max_polls: int = 15


class Credentials(BaseModel):
    groq_api_key: str = ""
    google_api_key: str = ""
    openai_api_key: str = ""
    openai_api_base: str = ""
    replicate_api_token: str = ""

    @classmethod
    def from_env(cls) -> Credentials:
        return cls(
            groq_api_key=os.getenv("GROQ_API_KEY", ""),
            google_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY", ""),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            openai_api_base=os.getenv("OPENAI_API_BASE", ""),
            replicate_api_token=os.getenv("REPLICATE_API_TOKEN", ""),
        )


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class AppConfig(BaseModel):
    name: str = "Tailor Assist"
    debug: bool = False


class Config(BaseModel):
    """Root configuration model. Built once at startup and only read afterwards."""

    app: AppConfig = Field(default_factory=AppConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    chains: ChainsConfig = Field(default_factory=ChainsConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    prompts_file: str = "prompts.yml"
    credentials: Credentials = Field(default_factory=Credentials)
    prompts: dict[str, str] = Field(default_factory=dict)

    def get_prompt(self, name: str) -> str:
        """Return a prompt template (prompts YAML first, then built-in default)."""
        return self.prompts.get(name) or DEFAULT_PROMPTS.get(name, "")

    def public_dump(self) -> dict:
        """Configuration as JSON, without credentials."""
        return self.model_dump(exclude={"credentials"})


# ── Config Loader ──

def load_prompts(path: Path) -> dict[str, str]:
    """Load prompt templates from YAML. Missing file -> empty mapping."""
    if not path.exists():
        return {}
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    return {str(k): str(v) for k, v in raw.items() if v}


def load_config(path: Path | str | None = None) -> Config:
    """Load configuration from a YAML file.

    Environment variable overrides:
      - TAILOR_CONFIG_PATH: path to config YAML
      - GROQ_API_KEY, GEMINI_API_KEY / GOOGLE_API_KEY, OPENAI_API_KEY,
        OPENAI_API_BASE, REPLICATE_API_TOKEN: provider credentials
    """
    if path is None:
        path = Path(os.getenv("TAILOR_CONFIG_PATH", str(_DEFAULT_CONFIG)))
    else:
        path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    raw.pop("credentials", None)  # Secrets only come from the environment
    config = Config(**raw)
    config.credentials = Credentials.from_env()
    config.prompts = load_prompts(path.parent / config.prompts_file)
    return config
