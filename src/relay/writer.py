"""Article writer: the relay's calls to the hosted language model.

Two operations:

- ``disambiguate`` asks for the distinct common meanings of a query as a
  structured-output list of ``{topic, description}`` pairs.
- ``stream_article`` streams an encyclopedia-style article with the
  ``web_search`` tool enabled, yielding text deltas and the url citations
  the model attaches to them.

The ``AsyncOpenAI`` client is built lazily from ``relay.config`` and
reused read-only for the life of the process.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

from openai import AsyncOpenAI

from relay.config import config
from relay.models import (
    MAX_DISAMBIGUATION_CHOICES,
    DisambiguationChoice,
    DisambiguationResult,
    Source,
)
from relay.sources import coerce_source

logger = logging.getLogger(__name__)

_DISAMBIGUATION_PROMPT = """\
The user searched an encyclopedia for "{query}". This term may be ambiguous.
If it has several common and clearly distinct meanings, list at most \
{limit} of them. For each meaning give a "topic" (a more specific search \
term) and a "description" (one short sentence). Write both in {language}.
If the term is not ambiguous, or has one main and obvious meaning, return \
an empty list.
"""

_ARTICLE_PROMPT = """\
You are a comprehensive, multilingual encyclopedia. Write a detailed and \
accurate article in {language} about the following topic: "{query}".

Rules:
1. Structure the article like an encyclopedia entry: a short lead \
   paragraph followed by sections on the main aspects of the topic.
2. Wrap key terms and concepts the reader may want to explore next in \
   double square brackets, for example: [[Photosynthesis]]. Keep each \
   marker on a single line.
3. Use the web search tool and base the article on reliable sources.
4. Do NOT include a Sources section at the end. The reader sees the \
   citations separately.
"""


class UpstreamError(Exception):
    """The model service reported a failure mid-generation."""


@dataclass
class ArticleDelta:
    """One increment of a streamed article: new text, new citations, or both."""

    text: str = ""
    sources: list[Source] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Client singleton
# ---------------------------------------------------------------------------

_client: AsyncOpenAI | None = None


def get_client() -> AsyncOpenAI:
    """Lazy singleton for the model API client."""
    global _client
    if _client is None:
        _client = AsyncOpenAI(
            api_key=config.openai_api_key,
            base_url=config.openai_base_url or None,
        )
        logger.info(
            "Model client created (article_model=%s, disambiguation_model=%s)",
            config.article_model,
            config.disambiguation_model,
        )
    return _client


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

async def disambiguate(query: str) -> list[DisambiguationChoice]:
    """Return up to five distinct meanings of *query*, or ``[]`` if it is unambiguous."""
    prompt = _DISAMBIGUATION_PROMPT.format(
        query=query,
        limit=MAX_DISAMBIGUATION_CHOICES,
        language=config.article_language,
    )
    response = await get_client().responses.parse(
        model=config.disambiguation_model,
        input=prompt,
        text_format=DisambiguationResult,
    )

    result = response.output_parsed
    if result is None:
        logger.warning("Disambiguation for '%s' returned no parsable output", query[:80])
        return []

    choices = result.choices[:MAX_DISAMBIGUATION_CHOICES]
    logger.info("Disambiguation for '%s' → %d choice(s)", query[:80], len(choices))
    return choices


def _upstream_error_message(event: Any) -> str:
    """Extract a readable message from an ``error`` or ``response.failed`` event."""
    message = getattr(event, "message", None)
    if not message:
        response = getattr(event, "response", None)
        error = getattr(response, "error", None)
        message = getattr(error, "message", None)
    return message or "The model service failed to generate the article."


async def stream_article(query: str) -> AsyncIterator[ArticleDelta]:
    """Stream an article about *query* as text and citation deltas."""
    prompt = _ARTICLE_PROMPT.format(query=query, language=config.article_language)
    stream = await get_client().responses.create(
        model=config.article_model,
        input=prompt,
        tools=[{"type": "web_search"}],
        stream=True,
    )

    # The upstream response is closed however iteration ends
    async with stream:
        async for event in stream:
            event_type = getattr(event, "type", None)

            if event_type == "response.output_text.delta":
                delta = getattr(event, "delta", "")
                if delta:
                    yield ArticleDelta(text=delta)

            elif event_type == "response.output_text.annotation.added":
                source = coerce_source(getattr(event, "annotation", None))
                if source:
                    yield ArticleDelta(sources=[source])

            elif event_type in ("error", "response.failed"):
                raise UpstreamError(_upstream_error_message(event))
