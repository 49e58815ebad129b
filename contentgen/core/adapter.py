"""Provider adapter contract and the shared single-call guard.

Architectural role:
    Every modality adapter (`llm.service.TextAdapter`,
    `image.service.ImageAdapter`, `audio.service.AudioAdapter`) satisfies
    `ProviderAdapter`. `guarded_call` is the one place where transport
    exceptions are mapped to the outcome taxonomy:

    - credentials missing / unknown provider -> `ProviderUnavailable`
    - `httpx.TimeoutException`, budget expiry -> `Timeout`
    - token cancellation                      -> `Timeout(cancelled=True)`
    - `httpx.HTTPStatusError`, `httpx.RequestError` -> `ProviderUnavailable`
    - `ResponseFormatError`, undecodable JSON -> `MalformedResponse`

Retry behavior:
    None. Each adapter invocation issues exactly one outbound call.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Protocol

import httpx

from contentgen.core.cancellation import (
    CallCancelled,
    CallTimedOut,
    CancellationToken,
    run_cancellable,
)
from contentgen.core.errors import AdapterFailure, ResponseFormatError
from contentgen.core.outcomes import (
    AdapterOutcome,
    MalformedResponse,
    Modality,
    ProviderUnavailable,
    Timeout,
)
from contentgen.llm.provider_config import ProviderConfig
from contentgen.prompting.tone_policy import ToneProfile


logger = logging.getLogger(__name__)


class ProviderAdapter(Protocol):
    """Normalized request -> one provider call -> `AdapterOutcome`."""

    modality: Modality

    async def generate(
        self,
        prompt: str,
        profile: ToneProfile,
        timeout_seconds: float,
        token: CancellationToken | None = None,
        **options: Any,
    ) -> AdapterOutcome:
        ...


def require_credentials(
    config: ProviderConfig,
    providers: dict,
    provider: str,
) -> str | None:
    """Return the key for `provider` (or `None` if it needs none).

    Raises:
        AdapterFailure: Unknown provider, or a key is needed but missing.
    """
    settings = providers.get(provider)
    if settings is None:
        raise AdapterFailure(ProviderUnavailable(f"unknown provider '{provider}'"))
    if settings.get("key_file") is None:
        return None
    key = config.key_for(provider)
    if not key:
        raise AdapterFailure(ProviderUnavailable(f"{provider} credentials not configured"))
    return key


async def guarded_call(
    call: Awaitable[Any],
    timeout_seconds: float,
    token: CancellationToken | None,
    provider: str,
) -> Any:
    """Run one provider call under timeout/token and map its failures.

    Returns:
        The transport's return value.

    Raises:
        AdapterFailure: With the outcome describing why the call failed.
    """
    label = str(provider or "provider").upper()
    try:
        return await run_cancellable(call, timeout_seconds, token)

    except CallTimedOut:
        raise AdapterFailure(Timeout(timeout_seconds)) from None

    except CallCancelled:
        raise AdapterFailure(Timeout(timeout_seconds, cancelled=True)) from None

    except httpx.TimeoutException:
        raise AdapterFailure(Timeout(timeout_seconds)) from None

    except httpx.HTTPStatusError as err:
        status_code = err.response.status_code if err.response is not None else None
        logger.debug("%s HTTP ERROR (%s)", label, status_code)
        raise AdapterFailure(ProviderUnavailable(f"{label} HTTP ERROR ({status_code})")) from None

    except httpx.RequestError as err:
        logger.debug("%s REQUEST FAILED: %s", label, type(err).__name__)
        raise AdapterFailure(ProviderUnavailable(f"{label} REQUEST FAILED")) from None

    except (ResponseFormatError, json.JSONDecodeError) as err:
        raise AdapterFailure(MalformedResponse(str(err) or "unexpected payload")) from None
