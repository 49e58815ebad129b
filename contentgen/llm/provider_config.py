"""Provider/runtime configuration for the generation adapters.

Architectural role:
    Centralizes provider selection, model names, per-modality timeouts and
    credential lookup for the text (`contentgen.llm`), image (`contentgen.image`)
    and audio (`contentgen.audio`) adapters.

Configuration flow:
    - `load_provider_config()` is the only function that reads the process
      environment (after `load_dotenv()`).
    - The resulting `ProviderConfig` is passed explicitly into the
      orchestrator and the HTTP app factory, so tests can build one directly.

Determinism:
    Deterministic for a fixed process environment and key files. Key files are
    read once, when the config is loaded.

Failure behavior:
    Missing key material is represented as `None`. Adapters treat a missing key
    as an unavailable provider and the modality falls back; it is never a
    configuration error.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv


# OpenAI-compatible and provider-specific text endpoint map.
TEXT_PROVIDERS = {

    "local": {
        "url": "http://127.0.0.1:8080/v1/chat/completions",
        "key_file": None
    },

    "groq": {
        "url": "https://api.groq.com/openai/v1/chat/completions",
        "key_file": "config/groq.key"
    },

    "openai": {
        "url": "https://api.openai.com/v1/chat/completions",
        "key_file": "config/openai.key"
    },

    "together": {
        "url": "https://api.together.xyz/v1/chat/completions",
        "key_file": "config/together.key"
    },

    "openrouter": {
        "url": "https://openrouter.ai/api/v1/chat/completions",
        "key_file": "config/openrouter.key"
    },

    "mistral": {
        "url": "https://api.mistral.ai/v1/chat/completions",
        "key_file": "config/mistral.key"
    },

    "anthropic": {
        "url": "https://api.anthropic.com/v1/messages",
        "key_file": "config/anthropic.key"
    },

    "gemini": {
        "url": (
            "https://generativelanguage.googleapis.com/v1beta/models/"
            "{model}:generateContent"
        ),
        "key_file": "config/gemini.key"
    },

}

IMAGE_PROVIDERS = {

    "local": {
        "url": "http://127.0.0.1:7860/sdapi/v1/txt2img",
        "key_file": None
    },

    "openai": {
        "url": "https://api.openai.com/v1/images/generations",
        "key_file": "config/openai.key"
    },

    "stability": {
        "url": (
            "https://api.stability.ai/v1/generation/"
            "stable-diffusion-xl-1024-v1-0/text-to-image"
        ),
        "key_file": "config/stability.key"
    },

}

AUDIO_PROVIDERS = {

    "elevenlabs": {
        "url": "https://api.elevenlabs.io/v1/text-to-speech/{voice_id}",
        "key_file": "config/elevenlabs.key"
    },

    "openai": {
        "url": "https://api.openai.com/v1/audio/speech",
        "key_file": "config/openai.key"
    },

}

DEFAULT_TEXT_MODELS = {
    "local": "qwen2.5:3b",
    "groq": "llama3-8b-8192",
    "openai": "gpt-4o-mini",
    "together": "meta-llama/Llama-3-8b-chat-hf",
    "openrouter": "meta-llama/llama-3-8b-instruct",
    "mistral": "mistral-small-latest",
    "anthropic": "claude-3-haiku-20240307",
    "gemini": "gemini-1.5-flash",
}

DEFAULT_AUDIO_MODELS = {
    "elevenlabs": "eleven_monolingual_v1",
    "openai": "tts-1",
}


def load_key(path):
    """Load API key from environment override or key file.

    Resolution order:
        1. Environment variable inferred from file stem (for example
           `config/openai.key` -> `OPENAI_API_KEY`).
        2. Raw file contents at `path`.

    Args:
        path: Configured key file path or `None`.

    Returns:
        Key string or `None` when not available.

    Edge cases:
        - `None` path returns `None`.
        - Missing file or blank contents return `None`.
    """
    if not path:
        return None
    key_name = os.path.splitext(os.path.basename(path))[0].upper() + "_API_KEY"
    env_value = os.getenv(key_name, "").strip()
    if env_value:
        return env_value
    if not os.path.exists(path):
        return None
    with open(path, "r") as f:
        return f.read().strip() or None


def provider_key(providers: dict, name: str):
    """Resolve the credential for provider `name` in a provider map.

    Returns:
        `(required, key)`: whether the provider needs a key at all, and the
        resolved key (or `None`). Unknown providers report `(True, None)`.
    """
    settings = providers.get(name)
    if settings is None:
        return True, None
    key_file = settings.get("key_file")
    if key_file is None:
        return False, None
    return True, load_key(key_file)


@dataclass(frozen=True)
class ProviderConfig:
    """Runtime configuration for all three generation adapters.

    `api_keys` maps provider name to resolved key. Providers whose map entry has
    no key file (`local`) never need one.
    """

    text_provider: str = "groq"
    text_model: str | None = None
    text_max_tokens: int = 300
    default_temperature: float = 0.7

    image_provider: str = "openai"
    image_model: str = "dall-e-3"
    image_size: str = "1024x1024"
    image_quality: str = "standard"

    audio_provider: str = "elevenlabs"
    audio_model: str | None = None

    text_timeout_seconds: float = 15.0
    image_timeout_seconds: float = 60.0
    audio_timeout_seconds: float = 45.0

    api_keys: dict[str, str] = field(default_factory=dict)

    cors_origins: tuple[str, ...] = ("*",)
    port: int = 3001
    debug: bool = False

    def resolved_text_model(self) -> str:
        return self.text_model or DEFAULT_TEXT_MODELS.get(self.text_provider, "")

    def resolved_audio_model(self) -> str:
        return self.audio_model or DEFAULT_AUDIO_MODELS.get(self.audio_provider, "")

    def key_for(self, provider: str) -> str | None:
        return self.api_keys.get(provider)

    def is_available(self, providers: dict, provider: str) -> bool:
        """Return whether `provider` is known and has the credentials it needs."""
        settings = providers.get(provider)
        if settings is None:
            return False
        if settings.get("key_file") is None:
            return True
        return bool(self.key_for(provider))

    def availability(self) -> dict[str, bool]:
        """Per-modality credential availability, as reported by `/health`."""
        return {
            "text": self.is_available(TEXT_PROVIDERS, self.text_provider),
            "image": self.is_available(IMAGE_PROVIDERS, self.image_provider),
            "audio": self.is_available(AUDIO_PROVIDERS, self.audio_provider),
        }


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def load_provider_config() -> ProviderConfig:
    """Build a `ProviderConfig` from `.env` and the process environment.

    Relevant environment variables:
        - `TEXT_PROVIDER`, `TEXT_MODEL`
        - `IMAGE_PROVIDER`, `IMAGE_MODEL`, `IMAGE_SIZE`, `IMAGE_QUALITY`
        - `AUDIO_PROVIDER`, `AUDIO_MODEL`
        - `TEXT_TIMEOUT_SECONDS`, `IMAGE_TIMEOUT_SECONDS`, `AUDIO_TIMEOUT_SECONDS`
        - `CORS_ORIGINS` (comma separated), `PORT`, `DEBUG`
        - `<PROVIDER>_API_KEY` for each provider (or `config/<provider>.key`)

    Returns:
        Frozen configuration object.
    """
    load_dotenv()

    text_provider = os.getenv("TEXT_PROVIDER", "groq").strip().lower()
    image_provider = os.getenv("IMAGE_PROVIDER", "openai").strip().lower()
    audio_provider = os.getenv("AUDIO_PROVIDER", "elevenlabs").strip().lower()

    api_keys: dict[str, str] = {}
    for providers in (TEXT_PROVIDERS, IMAGE_PROVIDERS, AUDIO_PROVIDERS):
        for name in providers:
            if name in api_keys:
                continue
            _, key = provider_key(providers, name)
            if key:
                api_keys[name] = key

    origins = tuple(
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "*").split(",")
        if origin.strip()
    )

    return ProviderConfig(
        text_provider=text_provider,
        text_model=os.getenv("TEXT_MODEL") or None,
        image_provider=image_provider,
        image_model=os.getenv("IMAGE_MODEL", "dall-e-3"),
        image_size=os.getenv("IMAGE_SIZE", "1024x1024"),
        image_quality=os.getenv("IMAGE_QUALITY", "standard"),
        audio_provider=audio_provider,
        audio_model=os.getenv("AUDIO_MODEL") or None,
        text_timeout_seconds=_float_env("TEXT_TIMEOUT_SECONDS", 15.0),
        image_timeout_seconds=_float_env("IMAGE_TIMEOUT_SECONDS", 60.0),
        audio_timeout_seconds=_float_env("AUDIO_TIMEOUT_SECONDS", 45.0),
        api_keys=api_keys,
        cors_origins=origins or ("*",),
        port=int(os.getenv("PORT", "3001")),
        debug=os.getenv("DEBUG") == "true",
    )
