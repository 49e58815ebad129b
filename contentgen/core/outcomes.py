"""Adapter outcome and normalized result contracts for `contentgen.core.engine`.

Architectural role:
    Defines the typed values that flow between the provider adapters, the
    fallback resolver and the orchestrator.

Control-flow interaction:
    - Adapters return exactly one `AdapterOutcome` per call.
    - `Success` carries a normalized result and bypasses the fallback resolver.
    - Every other outcome is handed to `core.fallback.resolve`, which returns a
      normalized result flagged with `used_fallback=True`.
    - The orchestrator applies normalized results to a `GenerationResult`.

Determinism:
    The data classes are purely structural and state-free, except
    `GenerationResult`, which is mutated only by the orchestrator invocation
    that owns it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Union

from contentgen.prompting.tone_policy import VoiceSettings


WEB_SPEECH_MARKER = "web-speech-ready"


class Modality(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"


# =========================================================
# Normalized results
# =========================================================

@dataclass(frozen=True)
class TextResult:
    headline: str
    caption: str
    used_fallback: bool = False

    def to_response(self) -> dict:
        body = {"headline": self.headline, "caption": self.caption}
        if self.used_fallback:
            body["fallback"] = True
        return body


@dataclass(frozen=True)
class ImageResult:
    """Hero image reference.

    Attributes:
        image_url: `http(s)` URL or `data:image/...;base64,` URL.
        revised_prompt: Prompt as rewritten by the provider, when reported.
        generated_by: Provider label, `Fallback` for substitutes.
    """

    image_url: str
    revised_prompt: str | None = None
    generated_by: str = ""
    used_fallback: bool = False

    def to_response(self) -> dict:
        body = {"imageURL": self.image_url, "generatedBy": self.generated_by}
        if self.revised_prompt:
            body["revisedPrompt"] = self.revised_prompt
        if self.used_fallback:
            body["fallback"] = True
        return body


@dataclass(frozen=True)
class AudioResult:
    """Narration reference.

    `audio_handle` is a provider URL, a `data:audio/...;base64,` URL, or
    `WEB_SPEECH_MARKER` when the client should synthesize speech itself using
    `voice_settings`.
    """

    audio_handle: str
    duration_seconds: int
    format: str
    voice_settings: VoiceSettings
    description: str = ""
    used_fallback: bool = False

    @property
    def uses_web_speech(self) -> bool:
        return self.audio_handle == WEB_SPEECH_MARKER

    def to_response(self) -> dict:
        body = {
            "audioURL": self.audio_handle,
            "duration": self.duration_seconds,
            "format": self.format,
            "audioDescription": self.description,
            "voiceSettings": self.voice_settings.to_dict(),
        }
        if self.used_fallback:
            body["fallback"] = True
        return body


ModalityResult = Union[TextResult, ImageResult, AudioResult]


# =========================================================
# Adapter outcomes
# =========================================================

@dataclass(frozen=True)
class Success:
    payload: ModalityResult

    def describe(self) -> str:
        return "success"


@dataclass(frozen=True)
class ProviderUnavailable:
    """Missing/invalid credentials, transport failure, or non-2xx response."""

    reason: str

    def describe(self) -> str:
        return f"provider unavailable: {self.reason}"


@dataclass(frozen=True)
class Timeout:
    """Per-call budget exceeded, or the call was cancelled through its token."""

    budget_seconds: float
    cancelled: bool = False

    def describe(self) -> str:
        if self.cancelled:
            return "cancelled"
        return f"timed out after {self.budget_seconds:g}s"


@dataclass(frozen=True)
class MalformedResponse:
    """2xx response whose payload is unparseable or incomplete."""

    reason: str

    def describe(self) -> str:
        return f"malformed response: {self.reason}"


AdapterOutcome = Union[Success, ProviderUnavailable, Timeout, MalformedResponse]


def outcome_kind(outcome: AdapterOutcome) -> str:
    return {
        Success: "success",
        ProviderUnavailable: "provider_unavailable",
        Timeout: "timeout",
        MalformedResponse: "malformed_response",
    }[type(outcome)]


# =========================================================
# Orchestrator-facing request/result
# =========================================================

@dataclass(frozen=True)
class GenerationRequest:
    """One user submission. `tone` is kept as given; resolution is total."""

    prompt: str
    tone: str = "playful"


@dataclass
class GenerationResult:
    """Aggregated result owned by one orchestrator invocation.

    Each modality's fields stay `None` until that modality settles; a settled
    field always holds either a real generation or a fallback substitute.
    """

    headline: str | None = None
    caption: str | None = None
    image_url: str | None = None
    revised_prompt: str | None = None
    image_generated_by: str | None = None
    audio_handle: str | None = None
    audio_duration_seconds: int | None = None
    audio_format: str | None = None
    audio_description: str | None = None
    voice_settings: VoiceSettings | None = None
    used_fallback: dict = field(default_factory=dict)

    def apply(self, modality: Modality, result: ModalityResult) -> None:
        """Write one modality's fields; the other modalities are untouched."""
        if modality is Modality.TEXT:
            self.headline = result.headline
            self.caption = result.caption
        elif modality is Modality.IMAGE:
            self.image_url = result.image_url
            self.revised_prompt = result.revised_prompt
            self.image_generated_by = result.generated_by
        else:
            self.audio_handle = result.audio_handle
            self.audio_duration_seconds = result.duration_seconds
            self.audio_format = result.format
            self.audio_description = result.description
            self.voice_settings = result.voice_settings
        self.used_fallback[modality.value] = result.used_fallback

    def is_settled(self, modality: Modality) -> bool:
        return modality.value in self.used_fallback

    @property
    def complete(self) -> bool:
        return all(self.is_settled(m) for m in Modality)

    def copy(self) -> "GenerationResult":
        return replace(self, used_fallback=dict(self.used_fallback))

    def to_dict(self) -> dict:
        return {
            "headline": self.headline,
            "caption": self.caption,
            "imageURL": self.image_url,
            "revisedPrompt": self.revised_prompt,
            "generatedBy": self.image_generated_by,
            "audioURL": self.audio_handle,
            "duration": self.audio_duration_seconds,
            "format": self.audio_format,
            "audioDescription": self.audio_description,
            "voiceSettings": self.voice_settings.to_dict() if self.voice_settings else None,
            "usedFallback": dict(self.used_fallback),
        }


@dataclass(frozen=True)
class ModalityUpdate:
    """Pushed to the orchestrator caller each time one modality settles."""

    modality: Modality
    result: ModalityResult
    outcome: str
    generation: GenerationResult

    def to_event(self) -> dict:
        body = {"modality": self.modality.value, "outcome": self.outcome}
        body.update(self.result.to_response())
        if isinstance(self.result, AudioResult):
            body["webSpeech"] = self.result.uses_web_speech
        body["fallback"] = self.result.used_fallback
        return body
