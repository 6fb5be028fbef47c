"""Search flow: disambiguation, then a streamed article.

The flow is UI-agnostic; it drives a ``SearchSession`` and reports every
visible change to an ``ArticleView``.  The Chainlit view lives in
``app.main``.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from app.models import Article, DisambiguationChoice
from app.relay_client import fetch_article_stream, get_disambiguation
from app.session import InputValidationError, SearchSession

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."


class ArticleView(Protocol):
    async def show_choices(self, query: str, choices: list[DisambiguationChoice]) -> None: ...

    async def clear_choices(self) -> None: ...

    async def show_article(self, article: Article) -> None: ...

    async def show_error(self, message: str) -> None: ...


async def search(
    session: SearchSession,
    client: httpx.AsyncClient,
    view: ArticleView,
    query: str,
) -> None:
    """Handle a search the user typed."""
    try:
        session.begin_search(query)
    except InputValidationError as e:
        await view.show_error(str(e))
        return

    choices = await get_disambiguation(client, query)
    if session.resolve_choices(choices):
        logger.info("'%s' is ambiguous: %d choices", query[:80], len(choices))
        await view.show_choices(query, session.choices)
        return

    await open_topic(session, client, view, query)


async def open_topic(
    session: SearchSession,
    client: httpx.AsyncClient,
    view: ArticleView,
    topic: str,
) -> None:
    """Stream the article for *topic* (a chosen meaning, a concept link or a plain query)."""
    run_id = session.begin_stream(topic)
    abort = session.abort
    await view.clear_choices()
    await view.show_article(session.article)

    try:
        async for event in fetch_article_stream(client, topic, abort=abort):
            if session.apply_event(run_id, event):
                await view.show_article(session.article)
    except Exception as e:
        message = str(e) or UNKNOWN_ERROR_MESSAGE
        logger.error("Article stream for '%s' failed: %s", topic[:80], message)
        if session.fail(run_id, message):
            await view.show_error(message)
        return

    session.finish(run_id)
