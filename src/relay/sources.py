"""Grounding citations: coerce raw upstream records into ``Source`` objects.

Citation records come from the model SDK either as plain dicts or as
attribute objects, and their fields are not guaranteed to be present.
Every record passes through ``coerce_source`` before the relay trusts it.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from relay.models import Source

logger = logging.getLogger(__name__)

UNKNOWN_SOURCE_TITLE = "Unknown source"


def _field(raw: Any, name: str) -> Any:
    if isinstance(raw, dict):
        return raw.get(name)
    return getattr(raw, name, None)


def coerce_source(raw: Any) -> Source | None:
    """Turn one raw citation record into a ``Source``.

    Records without a usable uri are discarded (``None``).  A missing
    title falls back to ``UNKNOWN_SOURCE_TITLE``.
    """
    if raw is None:
        return None

    uri = _field(raw, "url") or _field(raw, "uri")
    if not isinstance(uri, str) or not uri.strip():
        logger.debug("Discarding citation without uri: %r", raw)
        return None

    title = _field(raw, "title")
    if not isinstance(title, str) or not title.strip():
        title = UNKNOWN_SOURCE_TITLE

    return Source(uri=uri.strip(), title=title.strip())


def dedupe_sources(sources: Iterable[Source]) -> list[Source]:
    """Collapse sources sharing a uri.

    Order follows the first occurrence of each uri; the title kept is the
    one from its last occurrence.
    """
    unique: dict[str, Source] = {}
    for source in sources:
        unique[source.uri] = source
    return list(unique.values())
