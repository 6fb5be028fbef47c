"""Relay client: disambiguation check and article event stream.

Both operations POST ``{"operation": ..., "query": ...}`` to the relay's
``/api/generate`` endpoint.  Disambiguation is best-effort and never
raises; the article stream raises on every failure so the caller can
show it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

import httpx

from app.config import config
from app.models import DisambiguationChoice, StreamEvent
from app.sse import EventStreamParser

logger = logging.getLogger(__name__)

GENERATE_PATH = "/api/generate"
MAX_CHOICES = 5


class RelayError(Exception):
    """The article stream could not be opened."""


class StreamEventError(Exception):
    """The relay reported a failure through an ``error`` event."""


class StreamReadError(Exception):
    """The connection failed while the article was being read."""


def create_relay_client() -> httpx.AsyncClient:
    """Create an async HTTP client bound to the relay.

    Only connecting is time-limited; an article may keep streaming for as
    long as the model keeps writing.
    """
    endpoint = config.relay_endpoint.rstrip("/")
    client = httpx.AsyncClient(
        base_url=endpoint,
        timeout=httpx.Timeout(None, connect=config.relay_connect_timeout),
    )
    logger.info("Relay client → %s", endpoint)
    return client


def _error_message(response: httpx.Response, default: str) -> str:
    """Pull ``{"error": ...}`` out of a failed relay response."""
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict) and isinstance(body.get("error"), str) and body["error"]:
        return body["error"]
    return default


async def get_disambiguation(client: httpx.AsyncClient, query: str) -> list[DisambiguationChoice]:
    """Return the candidate meanings of *query* (at most five).

    Any failure is logged and reported as ``[]`` so the search can carry
    on as if the query were unambiguous.
    """
    try:
        response = await client.post(
            GENERATE_PATH,
            json={"operation": "disambiguate", "query": query},
        )
        if response.is_error:
            raise RelayError(_error_message(response, "Failed to get disambiguation choices."))

        body = response.json()
        if not isinstance(body, list):
            logger.warning("Unexpected disambiguation body: %r", body)
            return []

        return [DisambiguationChoice.from_dict(item) for item in body[:MAX_CHOICES]]

    except Exception as e:
        logger.error("Disambiguation failed, proceeding as if unambiguous: %s", e)
        return []


async def fetch_article_stream(
    client: httpx.AsyncClient,
    query: str,
    abort: asyncio.Event | None = None,
) -> AsyncIterator[StreamEvent]:
    """Stream article events for *query*.

    Yields ``content`` and ``sources`` events in arrival order.  Setting
    *abort* ends the generator quietly before the next event is yielded.

    Raises
    ------
    RelayError
        The relay was unreachable or answered with an error status.
    StreamEventError
        The relay sent an ``error`` event.
    StreamReadError
        The connection broke while reading.
    """
    request = client.build_request(
        "POST",
        GENERATE_PATH,
        json={"operation": "streamArticle", "query": query},
    )
    try:
        response = await client.send(request, stream=True)
    except httpx.HTTPError as e:
        logger.error("Could not reach the relay: %s", e)
        raise RelayError(f"Could not reach the article service: {e}") from e

    try:
        if response.is_error:
            await response.aread()
            raise RelayError(_error_message(response, "Failed to fetch article stream."))

        parser = EventStreamParser()
        try:
            async for chunk in response.aiter_bytes():
                for event in parser.feed(chunk):
                    if abort is not None and abort.is_set():
                        logger.info("Article stream for '%s' aborted", query[:80])
                        return
                    if event.type == "error":
                        raise StreamEventError(event.payload)
                    yield event
        except httpx.HTTPError as e:
            logger.error("Error reading from article stream: %s", e)
            raise StreamReadError(f"Error communicating with the server: {e}") from e

        parser.close()
    finally:
        await response.aclose()
