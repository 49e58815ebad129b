"""Prompt assembly helpers used by the generation adapters.

This module is intentionally narrow: it only builds provider-facing prompt
material from the raw user prompt and a resolved `ToneProfile`. Tone resolution,
provider selection, timeouts and response parsing happen outside this module.

Design constraints:
    - Deterministic construction for identical inputs.
    - Fixed ordering of prompt components per modality.
    - No hidden side effects (no I/O, no global state mutation).

Prompt safety model:
    - User text is interpolated as a raw string into chat messages.
    - The image prompt is reduced to letters, digits and whitespace before
      interpolation, because image providers reject many symbols.
"""

import re

from contentgen.prompting.tone_policy import ToneProfile, json_contract


GENERIC_SUBJECT = "this product"
IMAGE_PROMPT_MAX_CHARS = 100

_IMAGE_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9\s]")


def subject_or_default(prompt) -> str:
    """Return the stripped prompt, or a generic noun when it is empty."""
    if not isinstance(prompt, str):
        return GENERIC_SUBJECT
    stripped = prompt.strip()
    return stripped or GENERIC_SUBJECT


# =========================================================
# TEXT MESSAGES
# =========================================================
# Chat-completions message list for headline/caption generation.
# Prompt component order:
#   1) Tone system prompt (`text_style_directives.system_prompt`)
#   2) JSON output contract
#   3) Style reminder (`text_style_directives.style`)
#   4) User turn with the raw product description

def build_text_messages(prompt: str, profile: ToneProfile) -> list:
    """Build the system/user message pair for the text provider.

    Args:
        prompt: Raw product description.
        profile: Resolved tone profile.

    Returns:
        OpenAI-style message list (`role`/`content` dicts).

    Edge cases:
        An empty prompt is replaced with a generic subject so the provider
        never receives a dangling "Create marketing content for:" line.
    """
    directives = profile.text_style_directives

    system_content = (
        f"{directives.system_prompt}\n\n"
        + json_contract()
        + f"\nMake the content {directives.style}. "
        "Do not include any other text outside the JSON."
    )

    return [
        {"role": "system", "content": system_content},
        {
            "role": "user",
            "content": f"Create marketing content for: {subject_or_default(prompt)}",
        },
    ]


# =========================================================
# IMAGE PROMPT
# =========================================================

def clean_image_subject(prompt: str) -> str:
    """Truncate to 100 characters and drop everything but letters/digits/space."""
    subject = subject_or_default(prompt)[:IMAGE_PROMPT_MAX_CHARS]
    cleaned = _IMAGE_UNSAFE_CHARS.sub("", subject).strip()
    return cleaned or GENERIC_SUBJECT


def build_image_prompt(prompt: str, profile: ToneProfile) -> str:
    """Build the product-photo prompt sent to image providers."""
    return (
        f"A high-quality photo of {clean_image_subject(prompt)}, "
        f"in a {profile.name} style ({profile.image_style_modifiers}), "
        "4K product display."
    )


# =========================================================
# NARRATION
# =========================================================

def build_placeholder_caption(prompt: str, profile: ToneProfile) -> str:
    """Caption used for narration when no generated caption exists yet."""
    return f"Experience {subject_or_default(prompt)} with our {profile.name} approach."


def build_narration_text(prompt: str, profile: ToneProfile, caption=None) -> str:
    """Pick the narration input: the resolved caption, else the placeholder.

    Narration never waits for text generation; callers pass `caption` only when
    a caption has already been delivered.
    """
    if isinstance(caption, str) and caption.strip():
        return caption.strip()
    return build_placeholder_caption(prompt, profile)


def narration_preview(text: str, limit: int = 50) -> str:
    """First `limit` characters of `text`, with an ellipsis when truncated."""
    text = text or ""
    if len(text) > limit:
        return text[:limit] + "..."
    return text
