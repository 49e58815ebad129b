"""Fallback resolver: turns any adapter outcome into a usable result.

Role in pipeline:
    The orchestrator hands every non-`Success` adapter outcome to `resolve`.
    This is the only place where a provider failure becomes user-visible
    content, always flagged with `used_fallback=True`.

Guarantees:
    - Total: returns a normalized result for every modality and outcome.
    - Deterministic: identical inputs produce identical outputs (plain string
      templates, no randomness, no clock).
    - No network access.
    - The failure cause is logged, never written into the result.
"""

import logging

from contentgen.audio.service import estimate_duration
from contentgen.core.outcomes import (
    WEB_SPEECH_MARKER,
    AdapterOutcome,
    AudioResult,
    ImageResult,
    Modality,
    ModalityResult,
    Success,
    TextResult,
)
from contentgen.prompting.prompt_builder import narration_preview, subject_or_default
from contentgen.prompting.tone_policy import ToneProfile


logger = logging.getLogger(__name__)

FALLBACK_GENERATOR = "Fallback"
WEB_SPEECH_FORMAT = "web-speech"


def fallback_text(prompt: str, profile: ToneProfile) -> TextResult:
    subject = subject_or_default(prompt)
    return TextResult(
        headline=profile.fallback_headline.format(prompt=subject),
        caption=profile.fallback_caption.format(prompt=subject),
        used_fallback=True,
    )


def fallback_image(profile: ToneProfile) -> ImageResult:
    return ImageResult(
        image_url=profile.fallback_image_url,
        revised_prompt=None,
        generated_by=FALLBACK_GENERATOR,
        used_fallback=True,
    )


def fallback_audio(text: str, profile: ToneProfile) -> AudioResult:
    """Web speech marker plus everything the client needs to narrate `text`."""
    narration = subject_or_default(text)
    return AudioResult(
        audio_handle=WEB_SPEECH_MARKER,
        duration_seconds=estimate_duration(narration),
        format=WEB_SPEECH_FORMAT,
        voice_settings=profile.voice_settings,
        description=f'{profile.narration_label}: "{narration_preview(narration)}"',
        used_fallback=True,
    )


def resolve(
    modality: Modality,
    outcome: AdapterOutcome,
    original_prompt: str,
    profile: ToneProfile,
) -> ModalityResult:
    """Return the adapter payload on success, otherwise a tone-keyed substitute.

    Args:
        modality: Which adapter produced `outcome`.
        outcome: Adapter outcome.
        original_prompt: The user's prompt (for audio: the narration text).
        profile: Resolved tone profile.

    Returns:
        Normalized result for `modality`.
    """
    if isinstance(outcome, Success):
        return outcome.payload

    logger.warning(
        "%s generation fell back (%s, tone=%s)",
        modality.value,
        outcome.describe(),
        profile.name,
    )

    if modality is Modality.TEXT:
        return fallback_text(original_prompt, profile)
    if modality is Modality.IMAGE:
        return fallback_image(profile)
    return fallback_audio(original_prompt, profile)
