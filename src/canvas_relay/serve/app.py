"""FastAPI relay between the canvas widgets and a completion backend.

Endpoints:
- GET  /api/health
- GET  /api/tags
- POST /api/update-credential  { "credential": "..." }   (alias: /api/update-key { "apiKey": "..." })
- POST /api/generate           { "model", "prompt", "stream", "options": { "temperature" } }
- POST /api/analyze            { "model", "canvas": { section: text }, "temperature" }
- OPTIONS *                    CORS preflight
"""
from __future__ import annotations
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from fastapi import Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from canvas_relay import __version__
from canvas_relay.analysis.canvas import build_analysis_prompt
from canvas_relay.analysis.parser import parse_analysis
from canvas_relay.backends.base import Backend, clamp_temperature, truncate_prompt
from canvas_relay.backends.ollama import OllamaBackend
from canvas_relay.backends.openai_chat import OpenAIChatBackend
from canvas_relay.common.config import RelayConfig, RelaySettings
from canvas_relay.common.errors import (
    BadRequest,
    RelayError,
    UpstreamMalformedResponse,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from canvas_relay.common.schema import (
    AnalysisOut,
    AnalyzeRequest,
    AnalyzeResponse,
    CredentialUpdate,
    GenerateOptions,
    GenerateRequest,
    GenerateResponse,
    HealthOut,
    ModelList,
)

LOGGER = logging.getLogger("canvas_relay.serve.app")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}
ANALYSIS_TEMPERATURE = 0.1

BACKENDS: dict[str, type[Backend]] = {
    OpenAIChatBackend.name: OpenAIChatBackend,
    OllamaBackend.name: OllamaBackend,
}

def build_backend(settings: RelaySettings) -> Backend:
    cls = BACKENDS[settings.backend]
    return cls(settings.base_url, max_tokens=settings.max_tokens)

def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if any(e.get("type") == "json_invalid" for e in errors):
        return "Invalid JSON in request body."
    if any("prompt" in e.get("loc", ()) for e in errors):
        return "Invalid or missing prompt in request."
    if any("canvas" in e.get("loc", ()) for e in errors):
        return "Invalid or missing canvas in request."
    first = errors[0] if errors else {}
    return f"Invalid request: {first.get('msg', 'malformed body')}"


def create_app(config: RelayConfig | None = None, transport: httpx.AsyncBaseTransport | None = None) -> FastAPI:
    """
    Build the relay application.

    Args:
        config: Relay configuration; loaded from the environment when omitted.
        transport: Optional httpx transport for outbound calls (tests pass a MockTransport).
    """
    if config is None:
        config = RelayConfig.from_env()
    backend = build_backend(config.settings)

    app = FastAPI(title="Canvas Relay", version=__version__)
    app.state.config = config
    app.state.backend = backend

    def _client() -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=config.settings.timeout, transport=transport)

    async def _bounded(coro):
        # httpx timeouts apply per connect/read/write; this caps the whole exchange.
        return await asyncio.wait_for(coro, config.settings.timeout)

    @app.middleware("http")
    async def _cors(request: Request, call_next):
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            try:
                response = await call_next(request)
            except Exception as e:
                LOGGER.exception("Unhandled relay error on %s", request.url.path)
                response = JSONResponse({"error": f"Proxy Error: {e}"}, status_code=500)
        response.headers.update(CORS_HEADERS)
        return response

    @app.exception_handler(RelayError)
    async def _relay_error(request: Request, exc: RelayError) -> JSONResponse:
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _bad_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = _validation_message(exc)
        LOGGER.warning("Rejected %s: %s", request.url.path, message)
        return JSONResponse({"error": message}, status_code=400)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = "Endpoint not found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse({"error": message}, status_code=exc.status_code)

    async def _complete(req: GenerateRequest) -> GenerateResponse:
        settings = config.settings
        prompt = truncate_prompt(req.prompt, settings.max_prompt_chars)
        if prompt != req.prompt:
            LOGGER.info("Prompt truncated from %d to %d characters", len(req.prompt), settings.max_prompt_chars)

        credential = config.credential
        backend.validate_credential(credential)
        model = backend.map_model(req.model)
        if model != req.model:
            LOGGER.info("Model %r not served by %s backend; using %s", req.model, backend.name, model)
        temperature = clamp_temperature(req.options.temperature, settings.default_temperature)
        outbound = backend.build_request(req.model_copy(update={"prompt": prompt}), model, temperature, credential)

        LOGGER.info("Forwarding to %s backend, model=%s prompt_chars=%d", backend.name, model, len(prompt))
        try:
            async with _client() as client:
                r = await _bounded(client.post(outbound.url, headers=outbound.headers, json=outbound.json))
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            LOGGER.error("Backend request timed out after %ss", settings.timeout)
            raise UpstreamTimeout() from e
        except httpx.TransportError as e:
            LOGGER.error("Backend request failed: %s", e)
            raise UpstreamUnavailable() from e

        if not r.is_success:
            err = backend.error_from_response(r)
            LOGGER.error("Backend returned %s (%s): %s", r.status_code, err.kind, err.message)
            raise err

        try:
            data = r.json()
        except ValueError as e:
            LOGGER.error("Backend returned non-JSON body: %s", e)
            raise UpstreamMalformedResponse() from e
        result = backend.parse_response(data)
        LOGGER.info("Backend response received (%d characters)", len(result.response))
        return result

    @app.get("/api/health", response_model=HealthOut)
    def health() -> HealthOut:
        return HealthOut(
            status="ok",
            timestamp=datetime.now(timezone.utc).isoformat(),
            hasCredential=config.has_credential,
            backend=backend.name,
        )

    @app.get("/api/tags", response_model=ModelList)
    async def tags() -> ModelList:
        try:
            async with _client() as client:
                return await _bounded(backend.list_models(client))
        except (asyncio.TimeoutError, httpx.HTTPError) as e:
            LOGGER.error("Model discovery failed: %s", e)
            raise UpstreamUnavailable("Failed to fetch models from backend", status_code=500) from e

    @app.post("/api/update-credential")
    @app.post("/api/update-key")
    def update_credential(body: Any = Body(...)) -> dict[str, bool]:
        if not isinstance(body, dict):
            raise BadRequest("Request body must be a JSON object.")
        try:
            update = CredentialUpdate.from_body(body)
        except ValidationError as e:
            raise BadRequest("Missing credential in request body.") from e
        config.update_credential(update.credential)
        return {"success": True}

    @app.post("/api/generate", response_model=GenerateResponse)
    async def generate(body: GenerateRequest) -> GenerateResponse:
        return await _complete(body)

    @app.post("/api/analyze", response_model=AnalyzeResponse)
    async def analyze(body: AnalyzeRequest) -> AnalyzeResponse:
        temperature = ANALYSIS_TEMPERATURE if body.temperature is None else body.temperature
        req = GenerateRequest(
            model=body.model,
            prompt=build_analysis_prompt(body.canvas),
            options=GenerateOptions(temperature=temperature),
        )
        result = await _complete(req)
        parsed = parse_analysis(result.response)
        return AnalyzeResponse(
            response=result.response,
            done=True,
            analysis=AnalysisOut(
                scores=parsed.scores,
                sectionRecommendations=parsed.section_recommendations,
                overallRecommendations=parsed.overall_recommendations,
            ),
        )

    return app
