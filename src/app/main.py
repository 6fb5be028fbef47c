"""Wiki Explorer: Chainlit entry point.

A thin Chainlit client over the relay service.  The user types a topic,
picks a meaning if the topic is ambiguous, and watches the article being
written.  Concept markers in the article become action buttons that open
an article of their own.
"""

from __future__ import annotations

import logging

import chainlit as cl
import httpx

from app import flow
from app.models import Article, DisambiguationChoice
from app.relay_client import create_relay_client
from app.render import concept_topics, render_article
from app.session import SearchSession

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
for _name in ("httpx", "watchfiles"):
    logging.getLogger(_name).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

SELECT_TOPIC_ACTION = "select_topic"
OPEN_CONCEPT_ACTION = "open_concept"


# ---------------------------------------------------------------------------
# Chainlit view
# ---------------------------------------------------------------------------

class ChainlitArticleView:
    """Shows choices, articles and errors as Chainlit messages.

    Each article gets its own message, re-rendered on every update.  The
    concept buttons are only rebuilt when the set of concepts changes.
    """

    def __init__(self) -> None:
        self._article: Article | None = None
        self._article_msg: cl.Message | None = None
        self._topics: list[str] = []
        self._choices_msg: cl.Message | None = None

    async def show_choices(self, query: str, choices: list[DisambiguationChoice]) -> None:
        lines = [f'"{query}" can mean several things. Which one are you looking for?', ""]
        lines += [f"- **{c.topic}**: {c.description}" for c in choices]
        actions = [
            cl.Action(
                name=SELECT_TOPIC_ACTION,
                payload={"topic": c.topic},
                label=c.topic,
                tooltip=c.description,
            )
            for c in choices
        ]
        self._choices_msg = cl.Message(content="\n".join(lines), actions=actions)
        await self._choices_msg.send()

    async def clear_choices(self) -> None:
        if self._choices_msg is not None:
            await self._choices_msg.remove_actions()
            self._choices_msg = None

    async def show_article(self, article: Article) -> None:
        content = render_article(article)

        if article is not self._article or self._article_msg is None:
            self._article = article
            self._topics = []
            self._article_msg = cl.Message(content=content)
            await self._article_msg.send()
            return

        self._article_msg.content = content
        topics = concept_topics(article.content)
        if topics != self._topics:
            self._topics = topics
            self._article_msg.actions = [
                cl.Action(name=OPEN_CONCEPT_ACTION, payload={"topic": topic}, label=topic)
                for topic in topics
            ]
        await self._article_msg.update()

    async def show_error(self, message: str) -> None:
        self._article = None
        self._article_msg = None
        await cl.ErrorMessage(content=message).send()


def _state() -> tuple[SearchSession, httpx.AsyncClient, ChainlitArticleView]:
    return (
        cl.user_session.get("search"),  # type: ignore[return-value]
        cl.user_session.get("client"),
        cl.user_session.get("view"),
    )


# ---------------------------------------------------------------------------
# Chainlit lifecycle hooks
# ---------------------------------------------------------------------------

@cl.set_starters
async def set_starters() -> list[cl.Starter]:
    """Suggested topics on the welcome screen."""
    return [
        cl.Starter(label="Mount Everest", message="Mount Everest"),
        cl.Starter(label="Jaguar", message="Jaguar"),
        cl.Starter(label="Photosynthesis", message="Photosynthesis"),
    ]


@cl.on_chat_start
async def on_chat_start() -> None:
    """Initialise the per-session relay client and search state."""
    cl.user_session.set("client", create_relay_client())
    cl.user_session.set("search", SearchSession())
    cl.user_session.set("view", ChainlitArticleView())
    logger.info("New session started")


@cl.on_message
async def on_message(message: cl.Message) -> None:
    """Treat every message as a new search."""
    session, client, view = _state()
    await flow.search(session, client, view, message.content)


@cl.action_callback(SELECT_TOPIC_ACTION)
async def on_select_topic(action: cl.Action) -> None:
    """The user picked one meaning of an ambiguous query."""
    session, client, view = _state()
    await flow.open_topic(session, client, view, action.payload["topic"])


@cl.action_callback(OPEN_CONCEPT_ACTION)
async def on_open_concept(action: cl.Action) -> None:
    """The user followed a concept link inside an article."""
    session, client, view = _state()
    await flow.open_topic(session, client, view, action.payload["topic"])


@cl.on_stop
async def on_stop() -> None:
    """Abort the article being streamed when the user presses stop."""
    session: SearchSession | None = cl.user_session.get("search")
    if session is not None:
        session.cancel()


@cl.on_chat_end
async def on_chat_end() -> None:
    client: httpx.AsyncClient | None = cl.user_session.get("client")
    if client is not None:
        await client.aclose()
