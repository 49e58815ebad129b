"""Core request orchestration for tone-aware multimodal content generation.

Architectural role:
    Provides the execution pipeline used by API/CLI layers to turn one
    `GenerationRequest` into a headline, caption, hero image and narration.

Control-flow model:
    1. Resolve the tone profile (total; unknown tones become playful).
    2. Start the text, image and audio adapter calls concurrently.
    3. As each call settles, pass non-`Success` outcomes to the fallback
       resolver, write the modality's fields into the invocation's
       `GenerationResult`, and push a `ModalityUpdate` to the caller.
    4. Single-modality regenerate re-runs exactly one adapter and rewrites only
       that modality's fields.

Cross-modality rule:
    Narration uses the caption already present in the result (regenerate) and
    otherwise a placeholder caption templated from the raw prompt. Audio never
    waits for text.

Concurrency:
    One event loop. Each adapter call owns its timeout; a slow or failing
    modality never holds back the others. Closing the update stream early
    cancels the calls that are still running.

Error handling strategy:
    Provider failures are already outcomes. An adapter that raises anyway is
    logged and treated as an unavailable provider, so every settled field is
    either a generation or a fallback substitute.
"""

import asyncio
import logging
import time
from typing import Any, AsyncIterator

from contentgen.audio.service import AudioAdapter
from contentgen.core import fallback
from contentgen.core.adapter import ProviderAdapter
from contentgen.core.cancellation import CancellationToken
from contentgen.core.outcomes import (
    GenerationRequest,
    GenerationResult,
    Modality,
    ModalityUpdate,
    ProviderUnavailable,
    Success,
    outcome_kind,
)
from contentgen.image.service import ImageAdapter
from contentgen.llm.provider_config import ProviderConfig
from contentgen.llm.service import TextAdapter
from contentgen.prompting.prompt_builder import build_narration_text
from contentgen.prompting.tone_policy import ToneProfile, resolve


logger = logging.getLogger(__name__)


def build_default_adapters(config: ProviderConfig, transport=None) -> dict:
    """Instantiate the three provider adapters for `config`."""
    return {
        Modality.TEXT: TextAdapter(config, transport=transport),
        Modality.IMAGE: ImageAdapter(config, transport=transport),
        Modality.AUDIO: AudioAdapter(config, transport=transport),
    }


class Orchestrator:
    """Fans one request out to the modality adapters and merges the results.

    Args:
        config: Provider configuration (timeouts, providers, credentials).
        adapters: Optional `Modality -> ProviderAdapter` overrides; missing
            modalities get the default adapter for `config`.
        transport: Optional httpx transport shared by the default adapters.
    """

    def __init__(
        self,
        config: ProviderConfig,
        adapters: dict | None = None,
        transport=None,
    ) -> None:
        self.config = config
        self.adapters: dict = build_default_adapters(config, transport)
        if adapters:
            self.adapters.update(adapters)

    def timeout_for(self, modality: Modality) -> float:
        return {
            Modality.TEXT: self.config.text_timeout_seconds,
            Modality.IMAGE: self.config.image_timeout_seconds,
            Modality.AUDIO: self.config.audio_timeout_seconds,
        }[modality]

    async def _settle(
        self,
        modality: Modality,
        adapter_input: str,
        profile: ToneProfile,
        token: CancellationToken | None,
        options: dict,
    ):
        """Run one adapter and resolve its outcome. Never raises (except cancel)."""
        adapter: ProviderAdapter = self.adapters[modality]
        started = time.perf_counter()

        try:
            outcome = await adapter.generate(
                adapter_input,
                profile,
                self.timeout_for(modality),
                token=token,
                **options,
            )
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("%s adapter raised unexpectedly", modality.value)
            outcome = ProviderUnavailable("adapter error")

        if isinstance(outcome, Success):
            result = outcome.payload
        else:
            result = fallback.resolve(modality, outcome, adapter_input, profile)

        logger.info(
            "%s settled: %s in %.2fs (tone=%s)",
            modality.value,
            outcome_kind(outcome),
            time.perf_counter() - started,
            profile.name,
        )
        return result, outcome_kind(outcome)

    async def orchestrate(
        self,
        request: GenerationRequest,
        token: CancellationToken | None = None,
        generation: GenerationResult | None = None,
        **options: Any,
    ) -> AsyncIterator[ModalityUpdate]:
        """Generate all three modalities, yielding each as soon as it settles.

        Args:
            request: Prompt and tone.
            token: Optional cancellation token shared by the three calls.
            generation: Result record to fill; a fresh one by default. If it
                already holds a caption, narration uses that caption.
            **options: Per-modality extras (`temperature`, `voice`).

        Yields:
            One `ModalityUpdate` per modality, in completion order. Every update
            references the same `GenerationResult`.
        """
        profile = resolve(request.tone)
        if generation is None:
            generation = GenerationResult()

        inputs = {
            Modality.TEXT: request.prompt,
            Modality.IMAGE: request.prompt,
            Modality.AUDIO: build_narration_text(request.prompt, profile, generation.caption),
        }

        tasks = {
            asyncio.ensure_future(
                self._settle(modality, inputs[modality], profile, token, options)
            ): modality
            for modality in Modality
        }

        try:
            pending = set(tasks)
            while pending:
                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_COMPLETED
                )
                for task in sorted(done, key=lambda t: list(Modality).index(tasks[t])):
                    modality = tasks[task]
                    result, kind = task.result()
                    generation.apply(modality, result)
                    yield ModalityUpdate(modality, result, kind, generation)
        finally:
            unfinished = [task for task in tasks if not task.done()]
            for task in unfinished:
                task.cancel()
            if unfinished:
                await asyncio.gather(*unfinished, return_exceptions=True)

    async def generate(
        self,
        request: GenerationRequest,
        token: CancellationToken | None = None,
        **options: Any,
    ) -> GenerationResult:
        """Run `orchestrate` to completion and return the filled result."""
        generation = GenerationResult()
        async for _update in self.orchestrate(request, token, generation, **options):
            pass
        return generation

    async def regenerate(
        self,
        generation: GenerationResult,
        request: GenerationRequest,
        modality: Modality,
        token: CancellationToken | None = None,
        **options: Any,
    ) -> ModalityUpdate:
        """Re-run one modality and overwrite only its fields in `generation`."""
        modality = Modality(modality)
        profile = resolve(request.tone)

        if modality is Modality.AUDIO:
            adapter_input = build_narration_text(request.prompt, profile, generation.caption)
        else:
            adapter_input = request.prompt

        result, kind = await self._settle(modality, adapter_input, profile, token, options)
        generation.apply(modality, result)
        return ModalityUpdate(modality, result, kind, generation)

    async def resolve_modality(
        self,
        modality: Modality,
        request: GenerationRequest,
        token: CancellationToken | None = None,
        **options: Any,
    ) -> ModalityUpdate:
        """One adapter call plus its fallback path, for single-modality endpoints.

        For audio, `request.prompt` is the narration text itself.
        """
        modality = Modality(modality)
        profile = resolve(request.tone)
        result, kind = await self._settle(modality, request.prompt, profile, token, options)
        generation = GenerationResult()
        generation.apply(modality, result)
        return ModalityUpdate(modality, result, kind, generation)
