"""Per-user search state.

A search moves through::

    IDLE → DISAMBIGUATING → (CHOICE_PENDING | STREAMING) → IDLE

Every entry into ``STREAMING`` starts a new *run*.  A new search or a new
run aborts the current run and retires its id, and events or outcomes
tagged with a retired run id are ignored, so a superseded stream can
never write into a newer search.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from app.models import Article, DisambiguationChoice, StreamEvent

logger = logging.getLogger(__name__)

BLANK_QUERY_MESSAGE = "Please enter a topic to search."


class InputValidationError(ValueError):
    """The user submitted a blank query."""


class Phase(str, Enum):
    IDLE = "idle"
    DISAMBIGUATING = "disambiguating"
    CHOICE_PENDING = "choice-pending"
    STREAMING = "streaming"


@dataclass
class SearchSession:
    phase: Phase = Phase.IDLE
    original_query: str = ""
    article: Article | None = None
    choices: list[DisambiguationChoice] = field(default_factory=list)
    error: str | None = None
    run_id: int = 0
    abort: asyncio.Event | None = None
    _sources_seen: bool = field(default=False, init=False, repr=False)

    @property
    def is_busy(self) -> bool:
        return self.phase in (Phase.DISAMBIGUATING, Phase.STREAMING)

    def begin_search(self, query: str) -> None:
        """Start a user-initiated search; a blank query is rejected before any network call."""
        if not query.strip():
            self.error = BLANK_QUERY_MESSAGE
            raise InputValidationError(BLANK_QUERY_MESSAGE)

        self._supersede()
        self.phase = Phase.DISAMBIGUATING
        self.original_query = query
        self.article = None
        self.choices = []
        self.error = None

    def resolve_choices(self, choices: list[DisambiguationChoice]) -> bool:
        """Record the disambiguation result; True when the user has to pick a meaning."""
        if len(choices) > 1:
            self.choices = list(choices)
            self.phase = Phase.CHOICE_PENDING
            return True
        return False

    def begin_stream(self, topic: str) -> int:
        """Reset the article for *topic* and return the new run id."""
        self._supersede()
        self.abort = asyncio.Event()
        self.phase = Phase.STREAMING
        self.article = Article(title=topic, content="", sources=[])
        self.choices = []
        self.error = None
        self._sources_seen = False
        logger.info("Run %d: streaming '%s'", self.run_id, topic[:80])
        return self.run_id

    def apply_event(self, run_id: int, event: StreamEvent) -> bool:
        """Fold one stream event into the article; False when it was ignored."""
        if run_id != self.run_id or self.article is None:
            logger.debug("Dropping %s event from stale run %d", event.type, run_id)
            return False

        if event.type == "content":
            self.article.content += event.payload
            return True

        if event.type == "sources":
            if self._sources_seen:
                logger.warning("Run %d: ignoring extra sources event", run_id)
                return False
            self._sources_seen = True
            self.article.sources = list(event.payload)
            return True

        return False

    def fail(self, run_id: int, message: str) -> bool:
        if run_id != self.run_id:
            return False
        self.article = None
        self.error = message
        self.phase = Phase.IDLE
        return True

    def finish(self, run_id: int) -> bool:
        if run_id != self.run_id:
            return False
        self.phase = Phase.IDLE
        return True

    def _supersede(self) -> None:
        """Abort the current run and move to a fresh run id."""
        self.cancel()
        self.run_id += 1
        self.abort = None

    def cancel(self) -> None:
        """Abort the in-flight stream, if any."""
        if self.abort is not None and not self.abort.is_set():
            logger.info("Run %d: aborted", self.run_id)
            self.abort.set()
