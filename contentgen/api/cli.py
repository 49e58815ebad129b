"""
Command line adapter for contentgen.

Architectural role:
- Runs the orchestrator in-process (`generate`) or against a running HTTP API
  (`generate --server URL`), printing each modality as soon as it settles.
- Starts the HTTP API under uvicorn (`serve`).

Request lifecycle (`generate`):
1. Build a `GenerationRequest` from the positional prompt and `--tone`.
2. Print one line per modality update in completion order.
3. With `--regenerate MODALITY`, re-run that single modality and report which
   result fields changed.

Input validation behavior:
- A blank prompt is rejected by argparse (`parser.error`).
- `--tone` is free text; unknown tones behave like `playful`.

Error handling strategy:
- Provider failures never abort the command; fallbacks are marked in output.
- In `--server` mode, HTTP errors from the API are reported and exit code 1
  is returned.

Response formatting:
- Human-readable lines by default, one JSON object per line with `--json`.
"""

import argparse
import asyncio
import json
import logging
import sys

import requests

from contentgen.core.engine import Orchestrator
from contentgen.core.outcomes import GenerationRequest, Modality
from contentgen.llm.provider_config import load_provider_config
from contentgen.prompting.prompt_builder import build_narration_text
from contentgen.prompting.tone_policy import resolve


logger = logging.getLogger(__name__)

REMOTE_TIMEOUT_SECONDS = 120

REMOTE_ENDPOINTS = {
    Modality.TEXT: "/api/generate-text",
    Modality.IMAGE: "/api/generate-image",
    Modality.AUDIO: "/api/generate-audio",
}

# Result keys owned by each modality in `GenerationResult.to_dict()`.
MODALITY_FIELDS = {
    Modality.TEXT: ("headline", "caption"),
    Modality.IMAGE: ("imageURL", "revisedPrompt", "generatedBy"),
    Modality.AUDIO: ("audioURL", "duration", "format", "audioDescription", "voiceSettings"),
}


# =========================================================
# OUTPUT
# =========================================================

def _shorten(value, limit=80):
    text = str(value)
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def format_event(event: dict) -> str:
    """Render one modality event as a single human-readable line."""
    modality = event.get("modality", "?")
    marker = " (fallback)" if event.get("fallback") else ""

    if modality == "text":
        detail = f"{event.get('headline')} | {event.get('caption')}"
    elif modality == "image":
        detail = _shorten(event.get("imageURL"))
    elif modality == "audio":
        handle = "browser speech" if event.get("webSpeech") else _shorten(event.get("audioURL"), 40)
        detail = f"{handle} ({event.get('duration')}s)"
    else:
        detail = json.dumps(event)

    return f"[{modality}]{marker} {detail}"


def emit(event: dict, as_json: bool) -> None:
    if as_json:
        print(json.dumps(event), flush=True)
    else:
        print(format_event(event), flush=True)


def changed_fields(before: dict, after: dict) -> list:
    """Keys whose values differ between two result snapshots."""
    return sorted(key for key in after if before.get(key) != after.get(key))


# =========================================================
# IN-PROCESS MODE
# =========================================================

async def run_local(
    prompt: str,
    tone: str,
    regenerate=None,
    as_json: bool = False,
    orchestrator: Orchestrator | None = None,
) -> int:
    """Generate in-process; optionally regenerate one modality afterwards."""
    orchestrator = orchestrator or Orchestrator(load_provider_config())
    request = GenerationRequest(prompt=prompt, tone=tone)

    generation = None
    async for update in orchestrator.orchestrate(request):
        generation = update.generation
        emit(update.to_event(), as_json)

    if regenerate:
        before = generation.to_dict()
        update = await orchestrator.regenerate(generation, request, Modality(regenerate))
        emit(update.to_event(), as_json)
        changed = changed_fields(before, generation.to_dict())
        if not as_json:
            print(f"changed: {', '.join(changed) if changed else 'nothing'}")

    return 0


# =========================================================
# REMOTE MODE (running HTTP API)
# =========================================================

def _stream_remote(server: str, prompt: str, tone: str):
    """Yield decoded SSE events from `POST /api/generate`."""
    with requests.post(
        f"{server}/api/generate",
        json={"prompt": prompt, "tone": tone},
        stream=True,
        timeout=REMOTE_TIMEOUT_SECONDS,
    ) as response:

        response.raise_for_status()
        response.encoding = "utf-8"

        for line in response.iter_lines(decode_unicode=True):

            if not line:
                continue

            if line.startswith("data: "):
                line = line[6:]

            if line.strip() == "[DONE]":
                break

            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                continue


def _regenerate_remote(server: str, modality: Modality, prompt: str, tone: str, result: dict):
    if modality is Modality.AUDIO:
        body = {"text": build_narration_text(prompt, resolve(tone), result.get("caption")), "tone": tone}
    else:
        body = {"prompt": prompt, "tone": tone}

    response = requests.post(
        f"{server}{REMOTE_ENDPOINTS[modality]}",
        json=body,
        timeout=REMOTE_TIMEOUT_SECONDS,
    )
    response.raise_for_status()
    return response.json()


def run_remote(server: str, prompt: str, tone: str, regenerate=None, as_json: bool = False) -> int:
    """Generate through a running API; optionally regenerate one modality."""
    server = server.rstrip("/")
    result = {}

    try:
        for event in _stream_remote(server, prompt, tone):
            if event.get("done"):
                result = event.get("result", {})
                continue
            emit(event, as_json)

        if regenerate:
            modality = Modality(regenerate)
            event = _regenerate_remote(server, modality, prompt, tone, result)
            event["modality"] = modality.value
            emit(event, as_json)

            before = {key: result.get(key) for key in MODALITY_FIELDS[modality]}
            after = {key: event.get(key) for key in MODALITY_FIELDS[modality]}
            changed = changed_fields(before, after)
            if not as_json:
                print(f"changed: {', '.join(changed) if changed else 'nothing'}")

    except requests.exceptions.RequestException as err:
        logger.debug("Remote request failed: %s", err)
        status_code = getattr(getattr(err, "response", None), "status_code", None)
        print(f"API request failed{f' ({status_code})' if status_code else ''}", file=sys.stderr)
        return 1

    return 0


# =========================================================
# ENTRYPOINT
# =========================================================

def serve(host: str, port: int) -> int:
    import uvicorn

    uvicorn.run("contentgen.api.http_api:create_app", factory=True, host=host, port=port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="contentgen",
        description="Tone-aware headline, caption, image and narration generation",
    )
    parser.add_argument("--log-level", default="WARNING")
    subcommands = parser.add_subparsers(dest="command", required=True)

    generate = subcommands.add_parser("generate", help="Generate content for a prompt")
    generate.add_argument("prompt", help="Product or idea description")
    generate.add_argument("--tone", default="playful", help="playful | serious | bold")
    generate.add_argument(
        "--regenerate",
        choices=[m.value for m in Modality],
        default=None,
        help="Regenerate one modality after the full run",
    )
    generate.add_argument("--json", action="store_true", help="One JSON object per line")
    generate.add_argument("--server", default=None, help="Base URL of a running API")

    serve_cmd = subcommands.add_parser("serve", help="Run the HTTP API")
    serve_cmd.add_argument("--host", default="127.0.0.1")
    serve_cmd.add_argument("--port", type=int, default=None)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "serve":
        port = args.port or load_provider_config().port
        return serve(args.host, port)

    if not args.prompt.strip():
        parser.error("prompt must not be empty")

    if args.server:
        return run_remote(args.server, args.prompt, args.tone, args.regenerate, args.json)

    return asyncio.run(run_local(args.prompt, args.tone, args.regenerate, args.json))


if __name__ == "__main__":
    sys.exit(main())
