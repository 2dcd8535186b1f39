"""Config loading and provider chain construction."""

from pathlib import Path

import pytest
import yaml

from backend.tailor.chain import Capability
from backend.tailor.config import DEFAULT_PROMPTS, CandidateConfig, Config, load_config
from backend.tailor.providers.factory import build_chain, build_chains, create_provider
from backend.tailor.providers.image.gemini_image import GeminiImageSynthesizer
from backend.tailor.providers.image.replicate_image import ReplicateImageSynthesizer
from backend.tailor.providers.llm.google_llm import GoogleVisionAnalyzer
from backend.tailor.providers.llm.groq_llm import GroqReasoner
from backend.tailor.providers.llm.openai_llm import OpenAIReasoner
from backend.tailor.providers.stt.groq_stt import GroqSTT

REPO_CONFIG = Path(__file__).resolve().parent.parent / "backend" / "config" / "config.yml"

_CREDENTIAL_VARS = (
    "GROQ_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY",
    "OPENAI_API_KEY", "OPENAI_API_BASE", "REPLICATE_API_TOKEN",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in _CREDENTIAL_VARS:
        monkeypatch.delenv(var, raising=False)


def _write(tmp_path: Path, raw: dict, prompts: dict | None = None) -> Path:
    path = tmp_path / "config.yml"
    path.write_text(yaml.safe_dump(raw))
    if prompts is not None:
        (tmp_path / "prompts.yml").write_text(yaml.safe_dump(prompts))
    return path


def test_repo_config_loads_and_builds_every_chain(monkeypatch):
    monkeypatch.setenv("GROQ_API_KEY", "gsk-test")
    config = load_config(REPO_CONFIG)

    chains = build_chains(config)

    assert isinstance(chains.transcription.adapters[0], GroqSTT)
    assert isinstance(chains.vision.adapters[0], GoogleVisionAnalyzer)
    assert isinstance(chains.reasoning.adapters[0], GroqReasoner)
    assert isinstance(chains.synthesis.adapters[0], GeminiImageSynthesizer)
    assert isinstance(chains.synthesis.adapters[1], ReplicateImageSynthesizer)
    assert chains.reasoning.adapters[0].config["api_key"] == "gsk-test"
    assert config.polling.max_polls == 15 and config.polling.interval_s == 2.0
    assert "{context}" in config.get_prompt("vision_prompt")


def test_credentials_come_from_env_not_yaml(tmp_path, monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "from-env")
    path = _write(tmp_path, {"credentials": {"google_api_key": "from-yaml"}})

    config = load_config(path)

    assert config.credentials.google_api_key == "from-env"
    assert "credentials" not in config.public_dump()


def test_missing_config_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yml")


def test_config_path_from_env(tmp_path, monkeypatch):
    path = _write(tmp_path, {"app": {"name": "Test Tailor"}})
    monkeypatch.setenv("TAILOR_CONFIG_PATH", str(path))

    assert load_config().app.name == "Test Tailor"


def test_prompts_file_overrides_defaults(tmp_path):
    path = _write(tmp_path, {}, prompts={"chat_system_prompt": "You are a cobbler."})

    config = load_config(path)

    assert config.get_prompt("chat_system_prompt") == "You are a cobbler."
    assert config.get_prompt("vision_prompt") == DEFAULT_PROMPTS["vision_prompt"]


def test_chain_order_follows_config(tmp_path):
    path = _write(tmp_path, {"chains": {"reasoning": [
        {"provider": "google", "model": "gemini-2.5-flash"},
        {"provider": "groq", "model": "llama-3.3-70b-versatile", "timeout_s": 12},
    ]}})

    chain = build_chain(Capability.REASONING, load_config(path))

    assert [c.identifier for c in chain.candidates] == ["google/gemini-2.5-flash", "groq/llama-3.3-70b-versatile"]
    assert chain.candidates[1].timeout_s == 12


def test_polling_settings_reach_replicate_adapter(tmp_path):
    path = _write(tmp_path, {"polling": {"interval_s": 1.0, "max_polls": 5}})
    config = load_config(path)

    synth = create_provider(
        Capability.SYNTHESIS,
        CandidateConfig(provider="replicate", model="owner/model:v1"),
        config,
    )

    assert synth.config["poll_interval_s"] == 1.0
    assert synth.config["max_polls"] == 5
    assert "{issue}" in synth.config["prompt_template"]


def test_openai_compatible_server_gets_placeholder_key():
    config = Config()
    entry = CandidateConfig(provider="openai", model="Qwen/Qwen2.5-VL-7B-Instruct", api_base="http://localhost:8001/v1")

    llm = create_provider(Capability.REASONING, entry, config)

    assert isinstance(llm, OpenAIReasoner)
    assert llm.config["api_base"] == "http://localhost:8001/v1"
    assert llm.config["api_key"] == "EMPTY"


def test_unknown_provider_rejected():
    with pytest.raises(ValueError, match="Unknown vision provider"):
        create_provider(Capability.VISION, CandidateConfig(provider="replicate", model="x"), Config())


def test_builtin_replicate_default_is_pinned_to_a_version():
    chain = build_chain(Capability.SYNTHESIS, Config())
    replicate = chain.adapters[1]
    repo_model = yaml.safe_load(REPO_CONFIG.read_text())["chains"]["synthesis"][1]["model"]

    assert isinstance(replicate, ReplicateImageSynthesizer)
    assert replicate.model == repo_model
    assert replicate._version == "39ed52f2146964a8895ccf3916c95c17d2b10b1a7b97a4e49be37d3b6a5ec2d0"
