"""
HTTP API adapter for the contentgen orchestrator.

Architectural role:
- Expose the generation endpoints consumed by the web front end.
- Enforce adapter-level input validation (pydantic request schemas).
- Delegate generation work to `contentgen.core.engine.Orchestrator`.
- Normalize orchestrator output to the response contracts (JSON or SSE).

Endpoint responsibilities:
- `POST /api/generate-text`: headline + caption for one prompt/tone.
- `POST /api/generate-image`: hero image for one prompt/tone.
- `POST /api/generate-audio`: narration for one text/tone.
- `POST /api/generate`: all three modalities, streamed as SSE frames in
  completion order.
- `GET /health`: liveness plus per-modality credential availability.

Input validation behavior:
- Unparseable JSON body -> HTTP 400.
- Missing/blank `prompt` (or `text` for audio) -> HTTP 400.
- Non-numeric `temperature` -> HTTP 400.
- Wrong HTTP method -> HTTP 405 (FastAPI routing).

Error handling strategy:
- Provider failures never surface as errors: the orchestrator falls back and
  the response carries `fallback: true` with HTTP 200.
- Streaming cancels/disconnects are handled inside the SSE generator.

Side effects:
- Emits request debug logs only when `DEBUG == "true"`.
- Loads environment variables through `load_provider_config()` when no
  config is injected.
"""

import asyncio
import json
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ValidationError, field_validator
from starlette.exceptions import HTTPException as StarletteHTTPException

from contentgen.core.cancellation import CancellationToken
from contentgen.core.engine import Orchestrator
from contentgen.core.outcomes import GenerationRequest, GenerationResult, Modality
from contentgen.llm.provider_config import ProviderConfig, load_provider_config


logger = logging.getLogger(__name__)


# ============================================================
# Request Schemas
# ============================================================

def _require_text(value):
    if not isinstance(value, str) or not value.strip():
        raise ValueError("must be a non-empty string")
    return value.strip()


class TextGenerationBody(BaseModel):
    prompt: str
    tone: str = "playful"
    temperature: float | None = None

    @field_validator("prompt", mode="before")
    @classmethod
    def _prompt_required(cls, value):
        return _require_text(value)

    @field_validator("tone", mode="before")
    @classmethod
    def _tone_as_text(cls, value):
        return value if isinstance(value, str) else "playful"


class ImageGenerationBody(BaseModel):
    prompt: str
    tone: str = "playful"

    @field_validator("prompt", mode="before")
    @classmethod
    def _prompt_required(cls, value):
        return _require_text(value)

    @field_validator("tone", mode="before")
    @classmethod
    def _tone_as_text(cls, value):
        return value if isinstance(value, str) else "playful"


class AudioGenerationBody(BaseModel):
    text: str
    tone: str = "playful"
    voice: str | None = None

    @field_validator("text", mode="before")
    @classmethod
    def _text_required(cls, value):
        return _require_text(value)

    @field_validator("tone", mode="before")
    @classmethod
    def _tone_as_text(cls, value):
        return value if isinstance(value, str) else "playful"


def _error(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _first_error_message(err: ValidationError) -> str:
    first = err.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "body"
    if first.get("type") == "missing":
        return f"No {location} provided"
    return f"Invalid {location}"


async def _parse_body(request: Request, schema):
    """Parse and validate the JSON body; returns `(model, None)` or `(None, 400)`."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None, _error("Invalid JSON body")

    if not isinstance(body, dict):
        return None, _error("Request body must be a JSON object")

    try:
        return schema.model_validate(body), None
    except ValidationError as err:
        return None, _error(_first_error_message(err))


# ============================================================
# App Factory
# ============================================================

def create_app(
    config: ProviderConfig | None = None,
    orchestrator: Orchestrator | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Provider configuration; loaded from the environment if omitted.
        orchestrator: Pre-built orchestrator (tests inject fakes here).

    Returns:
        Configured `FastAPI` instance with CORS and all routes registered.
    """
    config = config or load_provider_config()
    orchestrator = orchestrator or Orchestrator(config)
    debug = config.debug

    app = FastAPI(title="contentgen", description="Tone-aware multimodal content generation")
    app.state.config = config
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        # Routing errors (404, 405) use the same body as validation errors.
        response = _error(str(exc.detail), exc.status_code)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    # ============================================================
    # Health
    # ============================================================

    @app.get("/health")
    async def health():
        return {
            "status": "OK",
            "providers": config.availability(),
        }

    # ============================================================
    # Single-modality endpoints (also used for "regenerate")
    # ============================================================

    @app.post("/api/generate-text")
    async def generate_text(request: Request):
        body, error = await _parse_body(request, TextGenerationBody)
        if error is not None:
            return error

        if debug:
            logger.debug("generate-text prompt=%r tone=%r", body.prompt, body.tone)

        update = await orchestrator.resolve_modality(
            Modality.TEXT,
            GenerationRequest(prompt=body.prompt, tone=body.tone),
            temperature=body.temperature,
        )
        return update.result.to_response()

    @app.post("/api/generate-image")
    async def generate_image(request: Request):
        body, error = await _parse_body(request, ImageGenerationBody)
        if error is not None:
            return error

        if debug:
            logger.debug("generate-image prompt=%r tone=%r", body.prompt, body.tone)

        update = await orchestrator.resolve_modality(
            Modality.IMAGE,
            GenerationRequest(prompt=body.prompt, tone=body.tone),
        )
        return update.result.to_response()

    @app.post("/api/generate-audio")
    async def generate_audio(request: Request):
        body, error = await _parse_body(request, AudioGenerationBody)
        if error is not None:
            return error

        if debug:
            logger.debug("generate-audio text=%r tone=%r", body.text[:50], body.tone)

        update = await orchestrator.resolve_modality(
            Modality.AUDIO,
            GenerationRequest(prompt=body.text, tone=body.tone),
            voice=body.voice,
        )
        return update.result.to_response()

    # ============================================================
    # Full generation (SSE)
    # ============================================================

    @app.post("/api/generate")
    async def generate_all(request: Request):
        """
        Stream all three modalities as Server-Sent Events.

        Response formatting:
        - One `data:` frame per settled modality (`modality`, `outcome`,
          modality fields, `fallback`).
        - One `data:` frame `{"done": true, "result": {...}}` with the merged
          result.
        - Final sentinel frame `[DONE]`.

        Side effects:
        - Checks client connection state and cancels outstanding provider
          calls on disconnect.
        """
        body, error = await _parse_body(request, TextGenerationBody)
        if error is not None:
            return error

        generation_request = GenerationRequest(prompt=body.prompt, tone=body.tone)
        token = CancellationToken()

        async def event_generator():
            generation = GenerationResult()
            updates = orchestrator.orchestrate(
                generation_request,
                token,
                generation,
                temperature=body.temperature,
            )
            try:
                async for update in updates:
                    if await request.is_disconnected():
                        if debug:
                            logger.debug("Client disconnected during stream.")
                        token.cancel()
                        return
                    yield f"data: {json.dumps(update.to_event())}\n\n"

                final = {"done": True, "result": generation.to_dict()}
                yield f"data: {json.dumps(final)}\n\n"
                yield "data: [DONE]\n\n"
            except (asyncio.CancelledError, BrokenPipeError, ConnectionResetError):
                token.cancel()
                if debug:
                    logger.debug("Streaming cancelled by client.")
                raise
            finally:
                await updates.aclose()

        return StreamingResponse(event_generator(), media_type="text/event-stream")

    return app
