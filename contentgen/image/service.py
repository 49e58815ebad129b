"""Image adapter: tone-aware hero image generation.

Role in pipeline:
    - Receives the raw prompt and resolved tone profile from the orchestrator.
    - Builds the product-photo prompt and provider options.
    - Issues one request through `image.client` under `guarded_call`.
    - Returns `Success(ImageResult)` or a failure outcome.

Validation:
    A returned image reference must be an `http(s)` URL or a
    `data:image/...` URL; anything else is a `MalformedResponse`.
"""

from __future__ import annotations

import httpx

from contentgen.core.adapter import guarded_call, require_credentials
from contentgen.core.cancellation import CancellationToken
from contentgen.core.errors import AdapterFailure
from contentgen.core.outcomes import (
    AdapterOutcome,
    ImageResult,
    MalformedResponse,
    Modality,
    Success,
)
from contentgen.image import client
from contentgen.llm.provider_config import IMAGE_PROVIDERS, ProviderConfig
from contentgen.prompting.prompt_builder import build_image_prompt
from contentgen.prompting.tone_policy import ToneProfile


def is_image_reference(value) -> bool:
    """True for `http(s)://...` and `data:image/...` strings."""
    if not isinstance(value, str):
        return False
    return value.startswith(("http://", "https://", "data:image/"))


class ImageAdapter:
    """Image provider adapter (`ProviderAdapter` for `Modality.IMAGE`)."""

    modality = Modality.IMAGE

    def __init__(
        self,
        config: ProviderConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.transport = transport

    def build_options(self, profile: ToneProfile) -> dict:
        return {
            "model": self.config.image_model,
            "size": self.config.image_size,
            "quality": self.config.image_quality,
            "style": profile.image_style,
        }

    async def generate(
        self,
        prompt: str,
        profile: ToneProfile,
        timeout_seconds: float,
        token: CancellationToken | None = None,
        **_options,
    ) -> AdapterOutcome:
        provider = self.config.image_provider
        image_prompt = build_image_prompt(prompt, profile)

        try:
            api_key = require_credentials(self.config, IMAGE_PROVIDERS, provider)
            image_url, revised_prompt = await guarded_call(
                client.send_image_request(
                    provider,
                    image_prompt,
                    self.build_options(profile),
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

        if not is_image_reference(image_url):
            return MalformedResponse("image reference is not a URL")

        return Success(ImageResult(
            image_url=image_url,
            revised_prompt=revised_prompt or image_prompt,
            generated_by=client.PROVIDER_LABELS.get(provider, provider),
        ))
