"""Image-provider HTTP client.

Processing flow:
    1. Build the provider-specific JSON body from the image prompt and options.
    2. Submit one POST to the configured endpoint.
    3. Return a normalized `(image_url, revised_prompt)` pair.

Base64 handling:
    Providers that answer with base64 image bytes (Stability, local
    Automatic1111, OpenAI `b64_json`) are returned as `data:image/png;base64,`
    URLs. Nothing is decoded or written to disk.

Error handling strategy:
    - Non-2xx responses raise `httpx.HTTPStatusError`.
    - 2xx bodies without an image reference raise `ResponseFormatError`.

Determinism:
    - Request assembly is deterministic for fixed inputs/configuration.
    - Final output remains provider/network dependent.
"""

from __future__ import annotations

import httpx

from contentgen.core.errors import ResponseFormatError
from contentgen.llm.provider_config import IMAGE_PROVIDERS


PROVIDER_LABELS = {
    "openai": "DALL-E 3",
    "stability": "Stable Diffusion XL",
    "local": "Stable Diffusion (local)",
}


def _first_item(container, key):
    """First element of the list at `container[key]`, or `None`."""
    items = container.get(key)
    if items is None:
        return None
    if not isinstance(items, list):
        raise ResponseFormatError(f"'{key}' is not a list")
    return items[0] if items else None


def _data_url(b64_payload) -> str:
    if not isinstance(b64_payload, str) or not b64_payload.strip():
        raise ResponseFormatError("empty base64 image payload")
    return f"data:image/png;base64,{b64_payload.strip()}"


def build_image_body(provider: str, prompt: str, options: dict) -> dict:
    """Provider JSON body for one image.

    Args:
        provider: Key into `IMAGE_PROVIDERS`.
        prompt: Final image prompt.
        options: `model`, `size` (`WxH`), `quality`, `style`.
    """
    size = options.get("size", "1024x1024")
    try:
        width, height = (int(part) for part in size.lower().split("x", 1))
    except ValueError:
        width, height = 1024, 1024

    if provider == "openai":
        return {
            "model": options.get("model", "dall-e-3"),
            "prompt": prompt,
            "n": 1,
            "size": size,
            "quality": options.get("quality", "standard"),
            "style": options.get("style", "natural"),
            "response_format": "url",
        }

    if provider == "stability":
        return {
            "text_prompts": [{"text": prompt, "weight": 1}],
            "cfg_scale": 7,
            "width": width,
            "height": height,
            "samples": 1,
            "steps": 30,
        }

    return {
        "prompt": prompt,
        "steps": 25,
        "width": width,
        "height": height,
    }


def parse_image_response(provider: str, data) -> tuple[str, str | None]:
    """Extract `(image_url, revised_prompt)` from a provider JSON body."""
    if not isinstance(data, dict):
        raise ResponseFormatError("response body is not a JSON object")

    if provider == "openai":
        first = _first_item(data, "data")
        first = first if isinstance(first, dict) else {}
        revised_prompt = first.get("revised_prompt")
        if first.get("url"):
            return first["url"], revised_prompt
        if first.get("b64_json"):
            return _data_url(first["b64_json"]), revised_prompt
        raise ResponseFormatError("missing data[0].url")

    if provider == "stability":
        first = _first_item(data, "artifacts")
        first = first if isinstance(first, dict) else {}
        return _data_url(first.get("base64")), None

    return _data_url(_first_item(data, "images")), None


async def send_image_request(
    provider: str,
    prompt: str,
    options: dict,
    api_key: str | None,
    timeout_seconds: float,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[str, str | None]:
    """Send an image-generation request to `provider`.

    Returns:
        `(image_url, revised_prompt)`; `revised_prompt` is `None` unless the
        provider reports one.

    Error handling:
        - Unknown provider -> `ValueError`
        - Non-2xx HTTP response -> `httpx.HTTPStatusError`
        - Missing image reference -> `ResponseFormatError`
    """
    provider_config = IMAGE_PROVIDERS.get(provider)
    if not provider_config:
        raise ValueError(f"Unknown image provider: {provider}")

    headers = {"Content-Type": "application/json"}
    if provider == "stability":
        headers["Accept"] = "application/json"
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"

    async with httpx.AsyncClient(timeout=timeout_seconds, transport=transport) as client:
        response = await client.post(
            provider_config["url"],
            json=build_image_body(provider, prompt, options),
            headers=headers,
        )

    response.raise_for_status()
    return parse_image_response(provider, response.json())
