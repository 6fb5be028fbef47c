"""Tests for the relay client, against an in-process ``httpx.MockTransport``."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from app.config import config
from app.models import DisambiguationChoice, Source, StreamEvent
from app.relay_client import (
    RelayError,
    StreamEventError,
    StreamReadError,
    create_relay_client,
    fetch_article_stream,
    get_disambiguation,
)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://relay.test")


def _chunks(*parts: bytes, error: Exception | None = None):
    async def _gen():
        for part in parts:
            yield part
        if error is not None:
            raise error

    return _gen()


def _sse(event: dict) -> bytes:
    return f"data: {json.dumps(event)}\n\n".encode("utf-8")


async def _collect(client, query="q", abort=None) -> list[StreamEvent]:
    return [event async for event in fetch_article_stream(client, query, abort=abort)]


# ---------------------------------------------------------------------------
# Client factory
# ---------------------------------------------------------------------------


class TestCreateRelayClient:

    @pytest.mark.asyncio
    async def test_bound_to_relay(self) -> None:
        client = create_relay_client()
        try:
            assert client.base_url.host == httpx.URL(config.relay_endpoint).host
            assert client.timeout.read is None
            assert client.timeout.connect is not None
        finally:
            await client.aclose()


# ---------------------------------------------------------------------------
# Disambiguation
# ---------------------------------------------------------------------------


class TestGetDisambiguation:

    @pytest.mark.asyncio
    async def test_sends_operation_and_returns_choices(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=[
                {"topic": "Jaguar (animal)", "description": "Big cat"},
                {"topic": "Jaguar (car brand)", "description": "Carmaker"},
            ])

        async with _client(handler) as client:
            choices = await get_disambiguation(client, "Jaguar")

        assert seen == {"path": "/api/generate", "body": {"operation": "disambiguate", "query": "Jaguar"}}
        assert choices == [
            DisambiguationChoice("Jaguar (animal)", "Big cat"),
            DisambiguationChoice("Jaguar (car brand)", "Carmaker"),
        ]

    @pytest.mark.asyncio
    async def test_single_choice_is_returned_as_is(self) -> None:
        def handler(request):
            return httpx.Response(200, json=[{"topic": "Only", "description": "d"}])

        async with _client(handler) as client:
            assert len(await get_disambiguation(client, "x")) == 1

    @pytest.mark.asyncio
    async def test_capped_at_five(self) -> None:
        def handler(request):
            return httpx.Response(200, json=[{"topic": f"T{i}", "description": ""} for i in range(7)])

        async with _client(handler) as client:
            assert len(await get_disambiguation(client, "x")) == 5

    @pytest.mark.asyncio
    async def test_error_status_is_empty(self) -> None:
        def handler(request):
            return httpx.Response(500, json={"error": "An internal server error occurred."})

        async with _client(handler) as client:
            assert await get_disambiguation(client, "x") == []

    @pytest.mark.asyncio
    async def test_transport_failure_is_empty(self) -> None:
        def handler(request):
            raise httpx.ConnectError("refused")

        async with _client(handler) as client:
            assert await get_disambiguation(client, "x") == []

    @pytest.mark.asyncio
    async def test_invalid_body_is_empty(self) -> None:
        def handler(request):
            return httpx.Response(200, content=b"<html>")

        async with _client(handler) as client:
            assert await get_disambiguation(client, "x") == []

    @pytest.mark.asyncio
    async def test_object_body_is_empty(self) -> None:
        def handler(request):
            return httpx.Response(200, json={"choices": []})

        async with _client(handler) as client:
            assert await get_disambiguation(client, "x") == []


# ---------------------------------------------------------------------------
# Article stream
# ---------------------------------------------------------------------------


class TestFetchArticleStream:

    @pytest.mark.asyncio
    async def test_events_in_order(self) -> None:
        def handler(request):
            assert json.loads(request.content) == {"operation": "streamArticle", "query": "q"}
            return httpx.Response(200, content=_chunks(
                _sse({"type": "content", "payload": "Hello "}),
                _sse({"type": "content", "payload": "world"}),
                _sse({"type": "sources", "payload": [{"uri": "https://a.example", "title": "A"}]}),
            ))

        async with _client(handler) as client:
            events = await _collect(client)

        assert events == [
            StreamEvent("content", "Hello "),
            StreamEvent("content", "world"),
            StreamEvent("sources", [Source("https://a.example", "A")]),
        ]

    @pytest.mark.asyncio
    async def test_event_split_across_reads(self) -> None:
        def handler(request):
            return httpx.Response(200, content=_chunks(
                b'data: {"typ',
                b'e":"content","payload":"x"}\n\n',
            ))

        async with _client(handler) as client:
            assert await _collect(client) == [StreamEvent("content", "x")]

    @pytest.mark.asyncio
    async def test_malformed_line_does_not_stop_stream(self) -> None:
        def handler(request):
            return httpx.Response(200, content=_chunks(
                b"data: {oops\n\n",
                _sse({"type": "content", "payload": "still here"}),
            ))

        async with _client(handler) as client:
            assert await _collect(client) == [StreamEvent("content", "still here")]

    @pytest.mark.asyncio
    async def test_error_status_raises_relay_error(self) -> None:
        def handler(request):
            return httpx.Response(400, json={"error": "Query is required"})

        async with _client(handler) as client:
            with pytest.raises(RelayError, match="Query is required"):
                await _collect(client)

    @pytest.mark.asyncio
    async def test_error_status_without_body(self) -> None:
        def handler(request):
            return httpx.Response(502, content=b"Bad Gateway")

        async with _client(handler) as client:
            with pytest.raises(RelayError, match="Failed to fetch article stream."):
                await _collect(client)

    @pytest.mark.asyncio
    async def test_unreachable_relay(self) -> None:
        def handler(request):
            raise httpx.ConnectError("refused")

        async with _client(handler) as client:
            with pytest.raises(RelayError):
                await _collect(client)

    @pytest.mark.asyncio
    async def test_error_event_raises(self) -> None:
        def handler(request):
            return httpx.Response(200, content=_chunks(
                _sse({"type": "content", "payload": "partial"}),
                _sse({"type": "error", "payload": "quota exceeded"}),
                _sse({"type": "content", "payload": "never seen"}),
            ))

        seen: list[StreamEvent] = []
        async with _client(handler) as client:
            with pytest.raises(StreamEventError, match="quota exceeded"):
                async for event in fetch_article_stream(client, "q"):
                    seen.append(event)

        assert seen == [StreamEvent("content", "partial")]

    @pytest.mark.asyncio
    async def test_read_failure_is_wrapped(self) -> None:
        cause = httpx.ReadError("connection reset")

        def handler(request):
            return httpx.Response(200, content=_chunks(
                _sse({"type": "content", "payload": "partial"}),
                error=cause,
            ))

        async with _client(handler) as client:
            with pytest.raises(StreamReadError, match="connection reset") as exc:
                await _collect(client)

        assert exc.value.__cause__ is cause

    @pytest.mark.asyncio
    async def test_abort_stops_quietly(self) -> None:
        abort = asyncio.Event()

        def handler(request):
            return httpx.Response(200, content=_chunks(
                _sse({"type": "content", "payload": "one"}),
                _sse({"type": "content", "payload": "two"}),
            ))

        seen: list[StreamEvent] = []
        async with _client(handler) as client:
            async for event in fetch_article_stream(client, "q", abort=abort):
                seen.append(event)
                abort.set()

        assert seen == [StreamEvent("content", "one")]
