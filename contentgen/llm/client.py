"""Provider-specific transport client for text-generation requests.

Architectural role:
    Executes one HTTP request against the configured chat model provider and
    returns the raw assistant text. Headline/caption parsing happens in
    `contentgen.llm.service`.

Model invocation flow:
    `service.TextAdapter.generate` -> `send_chat_request(...)` -> provider branch
    (OpenAI-compatible / Anthropic / Gemini) -> raw assistant text.

Retry behavior:
    No retry loop is implemented. The caller wraps the coroutine in
    `core.adapter.guarded_call`, which owns the timeout and cancellation.

Failure handling model:
    - Non-2xx responses raise `httpx.HTTPStatusError`.
    - Transport problems raise `httpx.RequestError` subclasses.
    - 2xx bodies without the expected envelope raise `ResponseFormatError`.
"""

from __future__ import annotations

import httpx

from contentgen.core.errors import ResponseFormatError
from contentgen.llm.provider_config import TEXT_PROVIDERS


ANTHROPIC_VERSION = "2023-06-01"


async def _post_json(
    url: str,
    headers: dict,
    body: dict,
    timeout_seconds: float,
    transport: httpx.AsyncBaseTransport | None,
) -> dict:
    async with httpx.AsyncClient(timeout=timeout_seconds, transport=transport) as client:
        response = await client.post(url, headers=headers, json=body)
    response.raise_for_status()
    data = response.json()
    if not isinstance(data, dict):
        raise ResponseFormatError("response body is not a JSON object")
    return data


def _openai_compatible_text(data: dict) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        raise ResponseFormatError("missing choices[0].message.content") from None
    if not isinstance(content, str):
        raise ResponseFormatError("message content is not text")
    return content.strip()


def _anthropic_payload(payload: dict) -> dict:
    """Remap OpenAI-style messages to the Anthropic messages API."""
    system_prompt = None
    anthropic_messages = []

    for msg in payload.get("messages", []):
        if not isinstance(msg, dict):
            continue

        role = msg.get("role")
        content = msg.get("content", "")

        if role == "system":
            if isinstance(content, str) and content.strip():
                system_prompt = content.strip()
        elif role in ["user", "assistant"]:
            anthropic_messages.append({
                "role": role,
                "content": content,
            })

    anthropic_payload = {
        "model": payload.get("model"),
        "max_tokens": payload.get("max_tokens", 1024),
        "messages": anthropic_messages,
    }

    if system_prompt:
        anthropic_payload["system"] = system_prompt

    if "temperature" in payload:
        anthropic_payload["temperature"] = payload["temperature"]

    return anthropic_payload


def _gemini_payload(payload: dict) -> dict:
    """Remap OpenAI-style messages to Gemini `contents`/`generationConfig`."""
    gemini_contents = []

    for msg in payload.get("messages", []):
        if not isinstance(msg, dict):
            continue

        role = msg.get("role")
        content = msg.get("content", "")

        if not content:
            continue

        if role == "assistant":
            gemini_role = "model"
        elif role in ["user", "system"]:
            gemini_role = "user"
        else:
            continue

        gemini_contents.append({
            "role": gemini_role,
            "parts": [{"text": str(content)}],
        })

    gemini_payload = {
        "contents": gemini_contents,
    }

    generation_config = {"responseMimeType": "application/json"}
    if "temperature" in payload:
        generation_config["temperature"] = payload["temperature"]
    if "max_tokens" in payload:
        generation_config["maxOutputTokens"] = payload["max_tokens"]
    gemini_payload["generationConfig"] = generation_config

    return gemini_payload


async def send_chat_request(
    payload: dict,
    provider: str,
    api_key: str | None,
    timeout_seconds: float,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """Send one chat request to `provider` and return the assistant text.

    Args:
        payload: OpenAI-style payload (`model`, `messages`, `temperature`,
            `max_tokens`, optional `response_format`).
        provider: Key into `TEXT_PROVIDERS`.
        api_key: Resolved credential, `None` for keyless providers.
        timeout_seconds: httpx timeout; the adapter enforces the same budget.
        transport: Optional httpx transport (tests use `httpx.MockTransport`).

    Returns:
        Stripped assistant text.

    Provider handling:
        - OpenAI-compatible providers: payload forwarded unchanged.
        - Anthropic: message remap + optional `system`.
        - Gemini: message remap to `contents` and `generationConfig` mapping.

    Raises:
        ValueError: Unknown provider.
        httpx.HTTPStatusError / httpx.RequestError: transport-level failures.
        ResponseFormatError: 2xx body without assistant text.
    """
    config = TEXT_PROVIDERS.get(provider)
    if config is None:
        raise ValueError(f"Unknown text provider: {provider}")

    if provider == "anthropic":
        headers = {
            "x-api-key": api_key or "",
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }
        data = await _post_json(
            config["url"], headers, _anthropic_payload(payload), timeout_seconds, transport
        )
        try:
            return data["content"][0]["text"].strip()
        except (KeyError, IndexError, TypeError, AttributeError):
            raise ResponseFormatError("missing content[0].text") from None

    if provider == "gemini":
        headers = {
            "x-goog-api-key": api_key or "",
            "Content-Type": "application/json",
        }
        url = config["url"].format(model=payload.get("model"))
        data = await _post_json(url, headers, _gemini_payload(payload), timeout_seconds, transport)
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"].strip()
        except (KeyError, IndexError, TypeError, AttributeError):
            raise ResponseFormatError("missing candidates[0].content.parts[0].text") from None

    headers = {
        "Content-Type": "application/json"
    }
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"

    data = await _post_json(config["url"], headers, payload, timeout_seconds, transport)
    return _openai_compatible_text(data)
