"""Article relay: FastAPI server between the web client and the model API.

Holds the model credential server-side and exposes a single operation
endpoint.  Article generation is relayed as a line-delimited event stream
(``data: <json>`` lines separated by blank lines).

Endpoints
---------
- ``GET  /health``        health check
- ``POST /api/generate``  ``{"operation": "disambiguate" | "streamArticle", "query": ...}``
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from relay.config import config
from relay.models import (
    ErrorResponse,
    GenerateRequest,
    HealthResponse,
    Source,
    StreamEvent,
)
from relay.sources import dedupe_sources
from relay.writer import disambiguate, get_client, stream_article

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
for _name in ("httpx", "openai"):
    logging.getLogger(_name).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# FastAPI lifespan: build the model client on startup
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the model client on startup so credential problems surface early."""
    logger.info("[RELAY] Server starting up...")
    get_client()
    logger.info("[RELAY] Model client ready.")

    yield

    logger.info("[RELAY] Server shutting down...")


app = FastAPI(
    title="Wiki Explorer Relay",
    description="Streams model-written encyclopedia articles as server-sent events",
    version="0.1.0",
    lifespan=lifespan,
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("[RELAY] Rejected request body: %s", exc.errors())
    return _error(400, "Invalid request body")


# ---------------------------------------------------------------------------
# API Endpoints
# ---------------------------------------------------------------------------

@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        models={
            "article": config.article_model,
            "disambiguation": config.disambiguation_model,
        },
    )


@app.post("/api/generate")
async def generate(request: GenerateRequest):
    """Dispatch a disambiguation check or an article stream."""
    query = (request.query or "").strip()
    if not query:
        return _error(400, "Query is required")

    logger.info("[RELAY] %s: %s", request.operation, query[:100])

    if request.operation == "disambiguate":
        try:
            choices = await disambiguate(query)
        except Exception as e:
            logger.error("[RELAY] Disambiguation failed: %s", e, exc_info=True)
            return _error(500, "An internal server error occurred.")
        return [choice.model_dump() for choice in choices]

    if request.operation == "streamArticle":
        return _create_streaming_response(query)

    return _error(400, "Invalid operation")


def _sse(event: StreamEvent) -> str:
    """Encode one event as a ``data:`` line followed by a blank line."""
    return f"data: {event.model_dump_json()}\n\n"


async def _article_events(query: str) -> AsyncIterator[str]:
    """Relay article deltas as content events, then one deduplicated sources event."""
    all_sources: list[Source] = []

    try:
        async for delta in stream_article(query):
            if delta.text:
                yield _sse(StreamEvent(type="content", payload=delta.text))
            all_sources.extend(delta.sources)

        if all_sources:
            unique = dedupe_sources(all_sources)
            logger.info("[RELAY] '%s' finished with %d source(s)", query[:80], len(unique))
            yield _sse(StreamEvent(type="sources", payload=unique))

    except Exception as e:
        logger.error("[RELAY] Streaming error: %s", e, exc_info=True)
        yield _sse(StreamEvent(type="error", payload=str(e) or "Unknown stream error"))


def _create_streaming_response(query: str) -> StreamingResponse:
    """Create a streaming SSE response."""
    return StreamingResponse(
        _article_events(query),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    """Launch the relay server."""
    port = int(os.environ.get("PORT", "8088"))

    logger.info("[RELAY] Starting server on port %d", port)
    logger.info("[RELAY] Health:   http://localhost:%d/health", port)
    logger.info("[RELAY] Generate: http://localhost:%d/api/generate", port)

    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")


if __name__ == "__main__":
    main()
