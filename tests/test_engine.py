"""
Tests for the orchestrator.

Verifies:
- All three modalities settle, each as a generation or a flagged fallback
- Updates arrive in completion order; a slow modality holds back nobody
- Narration uses the placeholder caption and never waits for text
- Regenerate rewrites exactly one modality
- Closing the update stream cancels calls still in flight
"""

import asyncio
import json
from dataclasses import replace

import httpx
import pytest

from contentgen.core.cancellation import CancellationToken
from contentgen.core.engine import Orchestrator
from contentgen.core.outcomes import (
    WEB_SPEECH_MARKER,
    GenerationRequest,
    GenerationResult,
    Modality,
    ProviderUnavailable,
    Timeout,
)
from contentgen.prompting.tone_policy import resolve

from conftest import image_success, mock_transport, text_success


async def collect(updates):
    return [update async for update in updates]


class TestGenerate:

    @pytest.mark.asyncio
    async def test_all_modalities_succeed(self, config, fake_adapters):
        orchestrator = Orchestrator(config, adapters=fake_adapters)

        result = await orchestrator.generate(GenerationRequest("Smart water bottle", "playful"))

        assert result.complete
        assert result.headline == "Hydration, upgraded"
        assert result.image_url == "https://images.example.com/bottle.png"
        assert result.audio_handle.startswith("data:audio/mpeg")
        assert result.used_fallback == {"text": False, "image": False, "audio": False}

    @pytest.mark.asyncio
    async def test_text_unreachable_falls_back(self, config, fake_adapters):
        fake_adapters[Modality.TEXT].outcome = ProviderUnavailable("GROQ REQUEST FAILED")
        orchestrator = Orchestrator(config, adapters=fake_adapters)

        result = await orchestrator.generate(GenerationRequest("Smart water bottle", "playful"))

        profile = resolve("playful")
        assert result.headline == profile.fallback_headline.format(prompt="Smart water bottle")
        assert result.caption == profile.fallback_caption.format(prompt="Smart water bottle")
        assert result.used_fallback == {"text": True, "image": False, "audio": False}
        assert result.image_url == "https://images.example.com/bottle.png"

    @pytest.mark.asyncio
    async def test_narration_uses_placeholder_caption(self, config, fake_adapters):
        orchestrator = Orchestrator(config, adapters=fake_adapters)

        await orchestrator.generate(GenerationRequest("Smart water bottle", "playful"))

        audio_call = fake_adapters[Modality.AUDIO].calls[0]
        assert audio_call["prompt"] == "Experience Smart water bottle with our playful approach."

    @pytest.mark.asyncio
    async def test_unknown_tone_behaves_like_playful(self, config, fake_adapters):
        fake_adapters[Modality.TEXT].outcome = Timeout(15.0)
        orchestrator = Orchestrator(config, adapters=fake_adapters)

        result = await orchestrator.generate(GenerationRequest("Lamp", "sarcastic"))
        expected = await Orchestrator(config, adapters=fake_adapters).generate(
            GenerationRequest("Lamp", "playful")
        )

        assert {call["tone"] for call in fake_adapters[Modality.IMAGE].calls} == {"playful"}
        assert result.headline == expected.headline
        assert result.to_dict() == expected.to_dict()

    @pytest.mark.asyncio
    async def test_per_modality_timeouts(self, config, fake_adapters):
        orchestrator = Orchestrator(config, adapters=fake_adapters)

        await orchestrator.generate(GenerationRequest("Lamp", "bold"))

        assert fake_adapters[Modality.TEXT].calls[0]["timeout"] == 15.0
        assert fake_adapters[Modality.IMAGE].calls[0]["timeout"] == 60.0
        assert fake_adapters[Modality.AUDIO].calls[0]["timeout"] == 45.0

    @pytest.mark.asyncio
    async def test_adapter_exception_becomes_fallback(self, config, fake_adapters):
        fake_adapters[Modality.IMAGE].error = RuntimeError("boom")
        orchestrator = Orchestrator(config, adapters=fake_adapters)

        result = await orchestrator.generate(GenerationRequest("Lamp", "serious"))

        assert result.image_url == resolve("serious").fallback_image_url
        assert result.used_fallback["image"] is True
        assert result.used_fallback["text"] is False

    @pytest.mark.asyncio
    async def test_cancelled_token_settles_everything_with_fallbacks(self, config):
        calls = []
        orchestrator = Orchestrator(config, transport=mock_transport(lambda r: httpx.Response(200), calls))
        token = CancellationToken()
        token.cancel()

        result = await orchestrator.generate(GenerationRequest("Lamp", "bold"), token)

        assert result.complete
        assert all(result.used_fallback.values())
        assert result.audio_handle == WEB_SPEECH_MARKER
        assert calls == []

    @pytest.mark.asyncio
    async def test_no_credentials_is_all_fallback(self, keyless_config):
        orchestrator = Orchestrator(keyless_config)

        result = await orchestrator.generate(GenerationRequest("Smart water bottle", "serious"))

        assert result.headline == "Professional Smart water bottle Solution"
        assert result.image_generated_by == "Fallback"
        assert result.audio_handle == WEB_SPEECH_MARKER
        assert result.voice_settings == resolve("serious").voice_settings


class TestOrchestrateStream:

    @pytest.mark.asyncio
    async def test_slow_modality_arrives_last(self, config, fake_adapters):
        fake_adapters[Modality.IMAGE].delay = 0.3
        orchestrator = Orchestrator(config, adapters=fake_adapters)

        updates = await collect(orchestrator.orchestrate(GenerationRequest("Lamp", "bold")))

        assert [u.modality for u in updates][-1] is Modality.IMAGE
        assert {u.modality for u in updates[:2]} == {Modality.TEXT, Modality.AUDIO}

    @pytest.mark.asyncio
    async def test_audio_does_not_wait_for_text(self, config, fake_adapters):
        fake_adapters[Modality.TEXT].delay = 0.3
        orchestrator = Orchestrator(config, adapters=fake_adapters)

        updates = orchestrator.orchestrate(GenerationRequest("Lamp", "bold"))
        first_two = [await updates.__anext__(), await updates.__anext__()]
        await updates.aclose()

        assert {u.modality for u in first_two} == {Modality.IMAGE, Modality.AUDIO}
        assert first_two[-1].generation.headline is None

    @pytest.mark.asyncio
    async def test_updates_share_one_result(self, config, fake_adapters):
        generation = GenerationResult()
        orchestrator = Orchestrator(config, adapters=fake_adapters)

        updates = await collect(
            orchestrator.orchestrate(GenerationRequest("Lamp", "bold"), generation=generation)
        )

        assert len(updates) == 3
        assert all(u.generation is generation for u in updates)
        assert generation.complete

    @pytest.mark.asyncio
    async def test_closing_stream_cancels_pending_calls(self, config, fake_adapters):
        fake_adapters[Modality.IMAGE].delay = 5
        orchestrator = Orchestrator(config, adapters=fake_adapters)

        updates = orchestrator.orchestrate(GenerationRequest("Lamp", "bold"))
        received = []
        async for update in updates:
            received.append(update.modality)
            if len(received) == 2:
                break
        await updates.aclose()

        assert Modality.IMAGE not in received
        assert fake_adapters[Modality.IMAGE].cancelled

    @pytest.mark.asyncio
    async def test_event_shape(self, config, fake_adapters):
        fake_adapters[Modality.TEXT].outcome = ProviderUnavailable("x")
        orchestrator = Orchestrator(config, adapters=fake_adapters)

        updates = await collect(orchestrator.orchestrate(GenerationRequest("Lamp", "bold")))
        text_event = next(u for u in updates if u.modality is Modality.TEXT).to_event()

        assert text_event["modality"] == "text"
        assert text_event["outcome"] == "provider_unavailable"
        assert text_event["fallback"] is True
        assert json.dumps(text_event)

    @pytest.mark.asyncio
    async def test_audio_event_reports_web_speech(self, config, fake_adapters):
        orchestrator = Orchestrator(config, adapters=fake_adapters)

        updates = await collect(orchestrator.orchestrate(GenerationRequest("Lamp", "bold")))
        assert next(u for u in updates if u.modality is Modality.AUDIO).to_event()["webSpeech"] is False

        fake_adapters[Modality.AUDIO].outcome = ProviderUnavailable("x")
        updates = await collect(orchestrator.orchestrate(GenerationRequest("Lamp", "bold")))
        event = next(u for u in updates if u.modality is Modality.AUDIO).to_event()
        assert event["webSpeech"] is True
        assert event["fallback"] is True
        assert "webSpeech" not in next(u for u in updates if u.modality is Modality.TEXT).to_event()


class TestRegenerate:

    @pytest.mark.asyncio
    async def test_image_regenerate_changes_only_image(self, config, fake_adapters):
        orchestrator = Orchestrator(config, adapters=fake_adapters)
        request = GenerationRequest("Smart water bottle", "playful")
        generation = await orchestrator.generate(request)
        before = generation.copy()

        fake_adapters[Modality.IMAGE].outcome = image_success("https://images.example.com/v2.png")
        update = await orchestrator.regenerate(generation, request, Modality.IMAGE)

        assert update.modality is Modality.IMAGE
        assert generation.image_url == "https://images.example.com/v2.png"
        assert generation.headline == before.headline
        assert generation.caption == before.caption
        assert generation.audio_handle == before.audio_handle
        assert len(fake_adapters[Modality.TEXT].calls) == 1
        assert len(fake_adapters[Modality.AUDIO].calls) == 1

    @pytest.mark.asyncio
    async def test_audio_regenerate_narrates_current_caption(self, config, fake_adapters):
        orchestrator = Orchestrator(config, adapters=fake_adapters)
        request = GenerationRequest("Smart water bottle", "playful")
        generation = await orchestrator.generate(request)

        await orchestrator.regenerate(generation, request, "audio")

        assert fake_adapters[Modality.AUDIO].calls[-1]["prompt"] == "Sip smarter all day."

    @pytest.mark.asyncio
    async def test_text_regenerate_can_recover_from_fallback(self, config, fake_adapters):
        fake_adapters[Modality.TEXT].outcome = Timeout(15.0)
        orchestrator = Orchestrator(config, adapters=fake_adapters)
        request = GenerationRequest("Lamp", "bold")
        generation = await orchestrator.generate(request)
        assert generation.used_fallback["text"] is True

        fake_adapters[Modality.TEXT].outcome = text_success("New headline", "New caption")
        await orchestrator.regenerate(generation, request, Modality.TEXT)

        assert generation.headline == "New headline"
        assert generation.used_fallback["text"] is False


class TestEndToEndTimeout:

    @pytest.mark.asyncio
    async def test_slow_text_provider_falls_back_on_budget(self, config):
        async def handler(request):
            if request.url.host == "api.groq.com":
                await asyncio.sleep(2)
            if request.url.host == "api.openai.com":
                return httpx.Response(200, json={"data": [{"url": "https://cdn.example.com/x.png"}]})
            return httpx.Response(200, content=b"ID3", headers={"content-type": "audio/mpeg"})

        orchestrator = Orchestrator(
            replace(config, text_timeout_seconds=0.05),
            transport=mock_transport(handler),
        )

        updates = await collect(orchestrator.orchestrate(GenerationRequest("Lamp", "playful")))
        outcomes = {u.modality: u.outcome for u in updates}

        assert outcomes == {
            Modality.TEXT: "timeout",
            Modality.IMAGE: "success",
            Modality.AUDIO: "success",
        }
        assert updates[-1].generation.headline == "🎉 Amazing Lamp Just Dropped!"
