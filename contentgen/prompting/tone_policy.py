"""Tone policy: the static tone -> style table shared by every modality.

Design constraints:
    - `resolve` is total. Any input (unknown strings, `None`, wrong case) maps
      to a profile; unrecognized tones get the playful profile.
    - Profiles are immutable and process-wide. Nothing in this module performs
      I/O or mutates state.

Consumers:
    - `prompting.prompt_builder`: system prompt and image prompt fragments.
    - `llm`/`image`/`audio` adapters: image style, provider voice ids, voice rate.
    - `core.fallback`: fallback templates, placeholder image, narration label.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Tone(str, Enum):
    PLAYFUL = "playful"
    SERIOUS = "serious"
    BOLD = "bold"


DEFAULT_TONE = Tone.PLAYFUL

# Named voices accepted by the audio endpoint, mapped to the tone that owns them.
VOICE_NAMES = {
    "cheerful": Tone.PLAYFUL,
    "professional": Tone.SERIOUS,
    "confident": Tone.BOLD,
}


@dataclass(frozen=True)
class VoiceSettings:
    """Speech synthesis parameters (browser `SpeechSynthesisUtterance` scale)."""

    pitch: float
    rate: float
    volume: float = 1.0

    def to_dict(self) -> dict:
        return {"pitch": self.pitch, "rate": self.rate, "volume": self.volume}


@dataclass(frozen=True)
class TextStyleDirectives:
    system_prompt: str
    style: str


@dataclass(frozen=True)
class ToneProfile:
    """Everything a tone changes, across text, image and audio generation.

    Attributes:
        tone: The tone this profile belongs to.
        text_style_directives: System prompt fragment and short style phrase
            used by the text adapter.
        image_style_modifiers: Comma separated style keywords appended to the
            image prompt.
        voice_settings: Pitch/rate/volume for narration.
        image_style: DALL-E style parameter (`vivid` or `natural`).
        voice_ids: Provider name -> voice identifier for hosted TTS.
        narration_label: Prefix of the fallback narration description.
        fallback_headline: Template with a `{prompt}` placeholder.
        fallback_caption: Template with a `{prompt}` placeholder.
        fallback_image_url: Placeholder hero image for this tone.
    """

    tone: Tone
    text_style_directives: TextStyleDirectives
    image_style_modifiers: str
    voice_settings: VoiceSettings
    image_style: str
    voice_ids: dict
    narration_label: str
    fallback_headline: str
    fallback_caption: str
    fallback_image_url: str

    @property
    def name(self) -> str:
        return self.tone.value


# =========================================================
# PROFILE TABLE
# =========================================================

_JSON_CONTRACT = (
    "Your task: Create marketing content for the given product/idea. "
    "You must respond with EXACTLY this JSON format:\n"
    "{\n"
    '  "headline": "A catchy headline (10-15 words max)",\n'
    '  "caption": "An engaging caption (2-3 sentences, 30-50 words)"\n'
    "}\n"
)

TONE_PROFILES = {

    Tone.PLAYFUL: ToneProfile(
        tone=Tone.PLAYFUL,
        text_style_directives=TextStyleDirectives(
            system_prompt=(
                "You are a creative, fun-loving marketing expert who writes in an "
                "engaging, playful style. Use emojis, casual language, and exciting "
                "energy. Make everything sound fun and approachable."
            ),
            style="playful, energetic, and fun with emojis",
        ),
        image_style_modifiers="colorful, fun, cartoon, whimsical, high contrast",
        voice_settings=VoiceSettings(pitch=1.3, rate=1.2, volume=1.0),
        image_style="vivid",
        voice_ids={
            "elevenlabs": "pNInz6obpgDQGcFmaJgB",
            "openai": "nova",
        },
        narration_label="🎵 Cheerful TTS",
        fallback_headline="🎉 Amazing {prompt} Just Dropped!",
        fallback_caption=(
            "Get ready for the most fun {prompt} experience ever! 🚀 "
            "This is going to change everything!"
        ),
        fallback_image_url=(
            "https://images.unsplash.com/photo-1513475382585-d06e58bcb0e0"
            "?auto=format&fit=crop&w=800&q=80"
        ),
    ),

    Tone.SERIOUS: ToneProfile(
        tone=Tone.SERIOUS,
        text_style_directives=TextStyleDirectives(
            system_prompt=(
                "You are a professional marketing strategist who writes "
                "authoritative, trustworthy content. Focus on credibility, benefits, "
                "and professional language. Be confident but not overly casual."
            ),
            style="professional, authoritative, and credible",
        ),
        image_style_modifiers="professional, clean, modern, corporate, muted colors",
        voice_settings=VoiceSettings(pitch=0.8, rate=0.9, volume=1.0),
        image_style="natural",
        voice_ids={
            "elevenlabs": "21m00Tcm4TlvDq8ikWAM",
            "openai": "onyx",
        },
        narration_label="🎙️ Professional narration",
        fallback_headline="Professional {prompt} Solution",
        fallback_caption=(
            "Discover the reliable, industry-leading {prompt} that delivers "
            "proven results for your business."
        ),
        fallback_image_url=(
            "https://images.unsplash.com/photo-1486312338219-ce68d2c6f44d"
            "?auto=format&fit=crop&w=800&q=80"
        ),
    ),

    Tone.BOLD: ToneProfile(
        tone=Tone.BOLD,
        text_style_directives=TextStyleDirectives(
            system_prompt=(
                "You are a bold, confident marketing expert who writes powerful, "
                "action-oriented content. Use strong language, make confident "
                "claims, and create urgency. Be impactful and direct."
            ),
            style="bold, confident, and action-oriented",
        ),
        image_style_modifiers="dramatic, intense, bold lighting, powerful and futuristic",
        voice_settings=VoiceSettings(pitch=1.0, rate=1.1, volume=1.0),
        image_style="natural",
        voice_ids={
            "elevenlabs": "AZnzlk1XvdvUeBnXmlld",
            "openai": "echo",
        },
        narration_label="⚡ Dynamic voiceover",
        fallback_headline="Revolutionary {prompt} Changes Everything",
        fallback_caption=(
            "The most powerful {prompt} solution available. "
            "Don't settle for less, demand excellence."
        ),
        fallback_image_url=(
            "https://images.unsplash.com/photo-1518709268805-4e9042af2176"
            "?auto=format&fit=crop&w=800&q=80"
        ),
    ),

}


def json_contract() -> str:
    """Output-format instruction appended to every text system prompt."""
    return _JSON_CONTRACT


def parse_tone(tone) -> Tone:
    """Map any value to a `Tone`, defaulting to playful."""
    if isinstance(tone, Tone):
        return tone
    if isinstance(tone, str):
        try:
            return Tone(tone.strip().lower())
        except ValueError:
            pass
    return DEFAULT_TONE


def resolve(tone) -> ToneProfile:
    """Return the profile for `tone`, or the playful profile if unrecognized."""
    return TONE_PROFILES[parse_tone(tone)]
