"""Studiogen — FastAPI Application.

This module is the single entry point for the web service.  It defines the
FastAPI ``app`` instance, all REST API routes, and the ``main()`` CLI
function that launches the uvicorn server.

Architecture
------------
- **Generation** is delegated to
  :class:`~studiogen.core.service.GenerationService`, which runs admission,
  validation, compilation and the upstream call and never raises.
- **Admission control** is a process-local
  :class:`~studiogen.core.rate_limiter.FixedWindowRateLimiter`.
- **The upstream provider** is reached through
  :class:`~studiogen.core.upstream.FalImageGateway` over a shared
  ``httpx.AsyncClient``.
- **History** is appended to a single ``history.json`` file after each
  successful generation.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
OPTIONS   ``/api/generate-image``       CORS preflight
OPTIONS   ``/api/prompt/compile``       CORS preflight
POST      ``/api/generate-image``       Generate or refine an image
POST      ``/api/prompt/compile``       Preview the compiled payload
GET       ``/api/config``               Option catalogs and defaults
GET       ``/api/history``              Recent generations
GET       ``/api/history/{id}``         Single history record
GET       ``/health``                   Liveness
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    studiogen

Direct invocation::

    python -m studiogen.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from studiogen import __version__
from studiogen.api.models import (
    ErrorResponse,
    GenerateImageResponse,
    HistoryEntry,
    HistoryListResponse,
)
from studiogen.core.config import StudiogenConfig, config
from studiogen.core.errors import UNEXPECTED_MESSAGE, StudiogenError
from studiogen.core.history_store import DEFAULT_LIMIT, HistoryStore
from studiogen.core.options import DEFAULT_PROMPT_STATE, option_catalog
from studiogen.core.prompt_compiler import DEFAULT_GUIDANCE_SCALE
from studiogen.core.rate_limiter import FixedWindowRateLimiter, client_identity
from studiogen.core.schemas import MAX_GUIDANCE_SCALE, MIN_GUIDANCE_SCALE, GenerationMode
from studiogen.core.service import GenerationFailure, GenerationService
from studiogen.core.upstream import FalImageGateway

logging.basicConfig(
    level=config.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Sent on every generation-path response, success or failure.  Preflights
# are answered by the OPTIONS route below, not by middleware.
CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def build_service(
    settings: StudiogenConfig,
    client: httpx.AsyncClient | None = None,
) -> GenerationService:
    """Wire a :class:`GenerationService` from configuration.

    Args:
        settings: Configuration supplying the credential, endpoint, timeout
            and rate-limit parameters.
        client: Shared HTTP client for the upstream gateway.

    Returns:
        A ready-to-use service.
    """
    api_key = settings.fal_key.get_secret_value() if settings.fal_key is not None else None
    gateway = FalImageGateway(
        api_key,
        settings.upstream_url,
        timeout=settings.upstream_timeout,
        client=client,
    )
    rate_limiter = FixedWindowRateLimiter(
        settings.rate_limit_capacity,
        settings.rate_limit_window_seconds,
        max_entries=settings.rate_limit_max_entries,
    )
    return GenerationService(
        gateway,
        rate_limiter,
        retry_after_seconds=settings.retry_after_seconds,
    )


# ---------------------------------------------------------------------------
# Application lifecycle: HTTP client and service setup and teardown.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    On startup:
        Opens the shared upstream HTTP client and stores the generation
        service and history store on ``app.state``.  A missing credential
        is logged but does not stop startup.

    On shutdown:
        Closes the HTTP client.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    # --- Startup -----------------------------------------------------------
    client = httpx.AsyncClient(timeout=config.upstream_timeout)
    app.state.generation_service = build_service(config, client)
    app.state.history_store = HistoryStore(config.history_path) if config.history_enabled else None

    if not config.is_credential_configured:
        logger.error("Upstream credential not configured; generation requests will fail.")
    logger.info("Generation service initialised.")

    yield  # Application runs here.

    # --- Shutdown ----------------------------------------------------------
    await client.aclose()
    logger.info("Upstream HTTP client closed on shutdown.")


# ---------------------------------------------------------------------------
# FastAPI application instance.
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Studiogen",
    description="Structured-prompt image generation proxy.",
    version=__version__,
    lifespan=lifespan,
)


def _failure_response(failure: GenerationFailure) -> JSONResponse:
    return JSONResponse(
        status_code=failure.status_code,
        content=failure.to_response(),
        headers={**CORS_HEADERS, **failure.headers},
    )


def _record_history(request: Request, record: dict) -> None:
    """Append a generation record; a storage failure does not fail the call."""
    store: HistoryStore | None = request.app.state.history_store
    if store is None:
        return
    try:
        store.record(record)
    except OSError:
        logger.exception("Failed to persist history record %s.", record.get("id"))


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.options("/api/generate-image")
@app.options("/api/prompt/compile")
async def preflight() -> Response:
    """Answer a CORS preflight with an empty body and the CORS headers."""
    return Response(status_code=200, headers=CORS_HEADERS)


@app.post(
    "/api/generate-image",
    response_model=GenerateImageResponse,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def generate_image(request: Request) -> JSONResponse:
    """Generate an image from a prompt state, or refine an existing one.

    The body is read raw and handed to the generation service, which owns
    validation.  Passing ``referenceImageUrl`` (usually with the previous
    ``seed``) refines that image instead of starting from scratch.

    Returns:
        ``200 {"imageUrl", "seed"}`` on success, otherwise ``{"error"}``
        with status 400, 429, 500 or 503.
    """
    try:
        identity = client_identity(request.headers)
        body = await request.body()

        service: GenerationService = request.app.state.generation_service
        result = await service.generate(body, identity)

        if isinstance(result, GenerationFailure):
            return _failure_response(result)

        _record_history(request, result.history_record())
        return JSONResponse(content=result.to_response(), headers=CORS_HEADERS)
    except Exception:
        logger.exception("Unhandled error in generate-image route")
        return JSONResponse(
            status_code=500,
            content={"error": UNEXPECTED_MESSAGE},
            headers=CORS_HEADERS,
        )


@app.post("/api/prompt/compile")
async def compile_prompt(request: Request) -> JSONResponse:
    """Preview the payload that would be sent upstream.

    The body has the same shape as a generation request.  No admission is
    recorded and the provider is not called.  When no seed is given the
    preview shows a freshly drawn one.

    Returns:
        ``{"payload": {...}, "mode": ...}`` or ``400 {"error"}``.
    """
    service: GenerationService = request.app.state.generation_service
    body = await request.body()
    try:
        upstream_request = service.compile_preview(body)
    except StudiogenError as exc:
        return _failure_response(GenerationFailure.from_error(exc))

    mode = (
        GenerationMode.REFINE_EXISTING if upstream_request.image_url else GenerationMode.FROM_SCRATCH
    )
    return JSONResponse(
        content={"payload": upstream_request.to_payload(), "mode": mode.value},
        headers=CORS_HEADERS,
    )


@app.get("/api/config")
async def get_config() -> dict:
    """Return the option catalogs and defaults for the prompt form.

    Returns:
        Dictionary with ``version``, ``options``, ``default_prompt_state``
        and ``guidance_scale`` (``min``, ``max``, ``default``).
    """
    return {
        "version": __version__,
        "options": option_catalog(),
        "default_prompt_state": DEFAULT_PROMPT_STATE,
        "guidance_scale": {
            "min": MIN_GUIDANCE_SCALE,
            "max": MAX_GUIDANCE_SCALE,
            "default": DEFAULT_GUIDANCE_SCALE,
        },
    }


@app.get("/api/history", response_model=HistoryListResponse)
async def get_history(request: Request, limit: int = DEFAULT_LIMIT) -> dict:
    """Return the most recent generations, newest first.

    Args:
        limit: Maximum number of records (1–100).

    Raises:
        HTTPException: 400 for an out-of-range limit.
    """
    if limit < 1 or limit > 100:
        raise HTTPException(status_code=400, detail="limit must be between 1 and 100")

    store: HistoryStore | None = request.app.state.history_store
    if store is None:
        return {"images": []}
    return {"images": store.recent(limit)}


@app.get("/api/history/{entry_id}", response_model=HistoryEntry)
async def get_history_entry(request: Request, entry_id: str) -> dict:
    """Return one full history record.

    Raises:
        HTTPException: 404 if the record does not exist.
    """
    store: HistoryStore | None = request.app.state.history_store
    entry = store.get(entry_id) if store is not None else None
    if not entry:
        raise HTTPException(status_code=404, detail="History entry not found")
    return entry


@app.get("/health")
async def health_check(request: Request) -> dict:
    """Liveness probe; also reports whether the credential is configured."""
    service: GenerationService = request.app.state.generation_service
    return {"status": "ok", "upstream_configured": service.gateway.configured}


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~studiogen.core.config.config`
    (``STUDIOGEN_SERVER_HOST`` and ``STUDIOGEN_SERVER_PORT``).  Defaults to
    ``0.0.0.0:8000``.

    This function is registered as the ``studiogen`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    uvicorn.run(
        "studiogen.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
