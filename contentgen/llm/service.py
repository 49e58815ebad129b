"""Text adapter: tone-aware headline/caption generation.

Architectural role:
    Bridges prompt construction (`contentgen.prompting`) and transport
    (`contentgen.llm.client`), and turns the provider's raw text into a
    `TextResult` or a typed failure outcome.

Model call flow:
    prompt + tone profile -> chat messages -> payload -> one
    `client.send_chat_request(...)` under `guarded_call` -> headline/caption
    parsing -> `AdapterOutcome`.

Parsing strategy (first match wins):
    1. Strict JSON parse of the whole output.
    2. The first `{...}` substring parsed as JSON.
    3. Line-based matching on the literal tokens `headline` and `caption`.
    Fields recovered by pass 2 are kept when pass 3 fills the remainder. If no
    complete pair emerges the adapter reports `MalformedResponse`; it never
    invents content (that is the fallback resolver's job).

Determinism:
    Payload construction and parsing are deterministic for fixed inputs.
    Generated output remains non-deterministic because inference runs remotely.
"""

from __future__ import annotations

import json
import logging
import re

import httpx

from contentgen.core.adapter import guarded_call, require_credentials
from contentgen.core.cancellation import CancellationToken
from contentgen.core.errors import AdapterFailure
from contentgen.core.outcomes import (
    AdapterOutcome,
    MalformedResponse,
    Modality,
    Success,
    TextResult,
)
from contentgen.llm import client
from contentgen.llm.provider_config import TEXT_PROVIDERS, ProviderConfig
from contentgen.prompting.prompt_builder import build_text_messages
from contentgen.prompting.tone_policy import ToneProfile


logger = logging.getLogger(__name__)

# Providers that accept OpenAI's `response_format` JSON mode.
JSON_MODE_PROVIDERS = {"groq", "openai", "together", "openrouter", "mistral"}

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_FIELD_LINE = {
    "headline": re.compile(r"^.*?\bheadline\b[\"'*]*\s*[:=\-]?\s*", re.IGNORECASE),
    "caption": re.compile(r"^.*?\bcaption\b[\"'*]*\s*[:=\-]?\s*", re.IGNORECASE),
}
# Leftovers of a JSON line, e.g. `"}` or `null}` after an empty field.
_JSON_RESIDUE = re.compile(r"^(null)?[\s{}\[\]\"',:*]*$", re.IGNORECASE)


# ============================================================
# Output parsing
# ============================================================

def _clean_field(value) -> str:
    if not isinstance(value, str):
        return ""
    cleaned = value.strip().rstrip(",").strip(" \t\"'*")
    if _JSON_RESIDUE.match(cleaned):
        return ""
    return cleaned


def _fields_from_json(text: str) -> dict:
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return {}
    if not isinstance(parsed, dict):
        return {}
    return {
        name: _clean_field(parsed.get(name))
        for name in ("headline", "caption")
        if _clean_field(parsed.get(name))
    }


def _fields_from_lines(text: str) -> dict:
    found = {}
    for line in text.splitlines():
        if not line.strip() or line.lstrip().startswith(("{", "[")):
            continue
        for name, pattern in _FIELD_LINE.items():
            if name in found or name not in line.lower():
                continue
            value = _clean_field(pattern.sub("", line, count=1))
            if value:
                found[name] = value
    return found


def parse_headline_caption(raw_text: str) -> tuple[str, str] | None:
    """Extract a `(headline, caption)` pair from model output.

    Args:
        raw_text: Assistant text as returned by the provider.

    Returns:
        The pair, or `None` when no complete pair can be recovered.
    """
    if not isinstance(raw_text, str) or not raw_text.strip():
        return None

    fields = _fields_from_json(raw_text.strip())
    if len(fields) == 2:
        return fields["headline"], fields["caption"]

    match = _JSON_OBJECT.search(raw_text)
    if match:
        fields = {**_fields_from_json(match.group(0)), **fields}
        if len(fields) == 2:
            return fields["headline"], fields["caption"]

    fields = {**_fields_from_lines(raw_text), **fields}
    if len(fields) == 2:
        return fields["headline"], fields["caption"]

    return None


# ============================================================
# Adapter
# ============================================================

class TextAdapter:
    """Text provider adapter (`ProviderAdapter` for `Modality.TEXT`)."""

    modality = Modality.TEXT

    def __init__(
        self,
        config: ProviderConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.transport = transport

    def build_payload(self, prompt: str, profile: ToneProfile, temperature=None) -> dict:
        """Assemble the OpenAI-style payload for one headline/caption request."""
        provider = self.config.text_provider
        payload = {
            "model": self.config.resolved_text_model(),
            "messages": build_text_messages(prompt, profile),
            "temperature": (
                self.config.default_temperature if temperature is None else temperature
            ),
            "max_tokens": self.config.text_max_tokens,
        }
        if provider in JSON_MODE_PROVIDERS:
            payload["response_format"] = {"type": "json_object"}
        return payload

    async def generate(
        self,
        prompt: str,
        profile: ToneProfile,
        timeout_seconds: float,
        token: CancellationToken | None = None,
        temperature: float | None = None,
        **_options,
    ) -> AdapterOutcome:
        """Generate a headline/caption pair.

        Returns:
            `Success(TextResult)` or the failure outcome; never raises for
            provider problems.
        """
        provider = self.config.text_provider
        try:
            api_key = require_credentials(self.config, TEXT_PROVIDERS, provider)
            raw_text = await guarded_call(
                client.send_chat_request(
                    self.build_payload(prompt, profile, temperature),
                    provider,
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

        pair = parse_headline_caption(raw_text)
        if pair is None:
            logger.debug("Unparseable %s output: %r", provider, raw_text[:200])
            return MalformedResponse("no headline/caption pair in model output")

        headline, caption = pair
        return Success(TextResult(headline=headline, caption=caption))
