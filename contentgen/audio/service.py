"""Audio adapter: tone-aware narration of the caption.

Role in pipeline:
    - Receives the narration text (resolved caption or placeholder caption)
      and the tone profile from the orchestrator.
    - Picks the provider voice from the tone profile unless the request names
      one explicitly.
    - Issues one synthesis request through `audio.client` under `guarded_call`.
"""

from __future__ import annotations

import httpx

from contentgen.core.adapter import guarded_call, require_credentials
from contentgen.core.cancellation import CancellationToken
from contentgen.core.errors import AdapterFailure
from contentgen.core.outcomes import AdapterOutcome, AudioResult, Modality, Success
from contentgen.audio import client
from contentgen.llm.provider_config import AUDIO_PROVIDERS, ProviderConfig
from contentgen.prompting.prompt_builder import narration_preview, subject_or_default
from contentgen.prompting.tone_policy import TONE_PROFILES, VOICE_NAMES, ToneProfile


WORDS_PER_MINUTE = 150


def estimate_duration(text: str) -> int:
    """Rough narration length in whole seconds (150 wpm, at least 1s)."""
    words = len((text or "").split())
    return max(1, round(words / WORDS_PER_MINUTE * 60))


def provider_voice(provider: str, profile: ToneProfile, voice: str | None = None):
    """Provider voice for a request.

    `voice` may be a named voice (`cheerful`, `professional`, `confident`),
    which maps to that tone's voice for `provider`, or a provider voice id,
    which is used as is. Without one, the profile's own voice is used.
    """
    if isinstance(voice, str) and voice.strip():
        named = VOICE_NAMES.get(voice.strip().lower())
        if named is None:
            return voice.strip()
        profile = TONE_PROFILES[named]
    return profile.voice_ids.get(provider)


class AudioAdapter:
    """TTS provider adapter (`ProviderAdapter` for `Modality.AUDIO`)."""

    modality = Modality.AUDIO

    def __init__(
        self,
        config: ProviderConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.transport = transport

    def build_options(self, profile: ToneProfile, voice: str | None = None) -> dict:
        provider = self.config.audio_provider
        return {
            "voice": provider_voice(provider, profile, voice),
            "model": self.config.resolved_audio_model(),
            "rate": profile.voice_settings.rate,
        }

    async def generate(
        self,
        prompt: str,
        profile: ToneProfile,
        timeout_seconds: float,
        token: CancellationToken | None = None,
        voice: str | None = None,
        **_options,
    ) -> AdapterOutcome:
        """Narrate `prompt` (the narration text, not the product description)."""
        provider = self.config.audio_provider
        text = subject_or_default(prompt)

        try:
            api_key = require_credentials(self.config, AUDIO_PROVIDERS, provider)
            audio_url = await guarded_call(
                client.send_speech_request(
                    provider,
                    text,
                    self.build_options(profile, voice),
                    api_key,
                    timeout_seconds,
                    transport=self.transport,
                ),
                timeout_seconds,
                token,
                provider,
            )
        except AdapterFailure as failure:
            return failure.outcome

        return Success(AudioResult(
            audio_handle=audio_url,
            duration_seconds=estimate_duration(text),
            format=client.AUDIO_FORMAT,
            voice_settings=profile.voice_settings,
            description=f'{profile.narration_label}: "{narration_preview(text)}"',
        ))
