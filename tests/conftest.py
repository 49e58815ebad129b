"""Pytest configuration and fixtures."""

import asyncio
import sys
from pathlib import Path

import httpx
import pytest

# Add project root to sys.path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from contentgen.core.outcomes import (  # noqa: E402
    AudioResult,
    ImageResult,
    Modality,
    Success,
    TextResult,
)
from contentgen.llm.provider_config import ProviderConfig  # noqa: E402
from contentgen.prompting.tone_policy import VoiceSettings  # noqa: E402


TEST_KEYS = {
    "groq": "groq-test-key",
    "openai": "openai-test-key",
    "elevenlabs": "elevenlabs-test-key",
    "stability": "stability-test-key",
    "anthropic": "anthropic-test-key",
    "gemini": "gemini-test-key",
}


@pytest.fixture
def config():
    """Default providers with every credential present."""
    return ProviderConfig(api_keys=dict(TEST_KEYS))


@pytest.fixture
def keyless_config():
    """Default providers with no credentials at all."""
    return ProviderConfig(api_keys={})


def mock_transport(handler, calls=None):
    """Wrap `handler` in an `httpx.MockTransport`, recording each request."""

    async def _handle(request):
        if calls is not None:
            calls.append(request)
        response = handler(request)
        if asyncio.iscoroutine(response):
            response = await response
        return response

    return httpx.MockTransport(_handle)


class FakeAdapter:
    """Stand-in adapter returning a fixed outcome after an optional delay."""

    def __init__(self, modality, outcome=None, delay=0.0, error=None):
        self.modality = modality
        self.outcome = outcome
        self.delay = delay
        self.error = error
        self.calls = []
        self.cancelled = False

    async def generate(self, prompt, profile, timeout_seconds, token=None, **options):
        self.calls.append({
            "prompt": prompt,
            "tone": profile.name,
            "timeout": timeout_seconds,
            "options": options,
        })
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error is not None:
            raise self.error
        return self.outcome


def text_success(headline="Hydration, upgraded", caption="Sip smarter all day."):
    return Success(TextResult(headline=headline, caption=caption))


def image_success(url="https://images.example.com/bottle.png"):
    return Success(ImageResult(
        image_url=url,
        revised_prompt="A high-quality photo of a bottle",
        generated_by="DALL-E 3",
    ))


def audio_success(handle="data:audio/mpeg;base64,SUQz"):
    return Success(AudioResult(
        audio_handle=handle,
        duration_seconds=3,
        format="mp3",
        voice_settings=VoiceSettings(pitch=1.3, rate=1.2),
        description='🎵 Cheerful TTS: "Sip smarter all day."',
    ))


@pytest.fixture
def fake_adapters():
    """One succeeding fake adapter per modality."""
    return {
        Modality.TEXT: FakeAdapter(Modality.TEXT, text_success()),
        Modality.IMAGE: FakeAdapter(Modality.IMAGE, image_success()),
        Modality.AUDIO: FakeAdapter(Modality.AUDIO, audio_success()),
    }
