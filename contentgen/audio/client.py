"""Text-to-speech provider HTTP client.

Processing flow:
    1. Resolve the provider endpoint (ElevenLabs URLs embed the voice id).
    2. Submit one POST with the narration text and voice parameters.
    3. Return the audio bytes as a `data:audio/mpeg;base64,` URL.

Error handling strategy:
    - Non-2xx responses raise `httpx.HTTPStatusError`.
    - An empty body or a non-audio content type raises `ResponseFormatError`
      (providers report some errors as 200 JSON).
"""

from __future__ import annotations

import base64

import httpx

from contentgen.core.errors import ResponseFormatError
from contentgen.llm.provider_config import AUDIO_PROVIDERS


AUDIO_FORMAT = "mp3"
AUDIO_MIME_TYPE = "audio/mpeg"


def build_speech_request(provider: str, text: str, options: dict, api_key: str | None):
    """Return `(url, headers, body)` for one synthesis request.

    Args:
        provider: Key into `AUDIO_PROVIDERS`.
        text: Narration text.
        options: `voice`, `model`, `rate`.
        api_key: Resolved credential.
    """
    provider_config = AUDIO_PROVIDERS.get(provider)
    if not provider_config:
        raise ValueError(f"Unknown audio provider: {provider}")

    if provider == "elevenlabs":
        url = provider_config["url"].format(voice_id=options.get("voice", ""))
        headers = {
            "xi-api-key": api_key or "",
            "Content-Type": "application/json",
            "Accept": AUDIO_MIME_TYPE,
        }
        body = {
            "text": text,
            "model_id": options.get("model"),
            "voice_settings": {
                "stability": 0.5,
                "similarity_boost": 0.5,
                "style": 0.5,
                "use_speaker_boost": True,
            },
        }
        return url, headers, body

    headers = {
        "Authorization": f"Bearer {api_key or ''}",
        "Content-Type": "application/json",
    }
    body = {
        "model": options.get("model"),
        "voice": options.get("voice"),
        "input": text,
        "response_format": AUDIO_FORMAT,
        "speed": options.get("rate", 1.0),
    }
    return provider_config["url"], headers, body


async def send_speech_request(
    provider: str,
    text: str,
    options: dict,
    api_key: str | None,
    timeout_seconds: float,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """Synthesize `text` and return it as an audio data URL."""
    url, headers, body = build_speech_request(provider, text, options, api_key)

    async with httpx.AsyncClient(timeout=timeout_seconds, transport=transport) as client:
        response = await client.post(url, headers=headers, json=body)

    response.raise_for_status()

    content_type = response.headers.get("content-type", "")
    if content_type and not content_type.startswith(("audio/", "application/octet-stream")):
        raise ResponseFormatError(f"unexpected content type {content_type}")
    if not response.content:
        raise ResponseFormatError("empty audio body")

    encoded = base64.b64encode(response.content).decode("ascii")
    return f"data:{AUDIO_MIME_TYPE};base64,{encoded}"
