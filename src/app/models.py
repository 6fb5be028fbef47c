"""Shared data models for the web app."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

EVENT_TYPES = ("content", "sources", "error")


@dataclass
class Source:
    """A citation shown under an article."""

    uri: str
    title: str

    @classmethod
    def from_dict(cls, data: Any) -> Source | None:
        """Build a ``Source`` from decoded JSON; ``None`` when there is no uri."""
        if not isinstance(data, dict):
            return None
        uri = data.get("uri")
        if not isinstance(uri, str) or not uri:
            return None
        title = data.get("title")
        return cls(uri=uri, title=title if isinstance(title, str) else "")


@dataclass
class Article:
    """The article being displayed.  ``content`` only grows while streaming."""

    title: str
    content: str = ""
    sources: list[Source] = field(default_factory=list)


@dataclass
class DisambiguationChoice:
    """One possible meaning of an ambiguous query."""

    topic: str
    description: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> DisambiguationChoice:
        if not isinstance(data, dict):
            raise ValueError(f"Expected an object, got {type(data).__name__}")
        topic = data.get("topic")
        if not isinstance(topic, str) or not topic.strip():
            raise ValueError("Disambiguation choice is missing a topic")
        description = data.get("description")
        return cls(topic=topic, description=description if isinstance(description, str) else "")


@dataclass
class StreamEvent:
    """One event from the article stream.

    ``payload`` is a ``str`` for ``content`` and ``error`` events and a
    ``list[Source]`` for ``sources`` events.
    """

    type: str
    payload: Any

    @classmethod
    def from_dict(cls, data: Any) -> StreamEvent:
        """Validate a decoded event object.

        Raises
        ------
        ValueError
            If the event type is unknown or the payload has the wrong shape.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Expected an object, got {type(data).__name__}")

        event_type = data.get("type")
        payload = data.get("payload")

        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {event_type!r}")

        if event_type == "sources":
            if not isinstance(payload, list):
                raise ValueError("Sources payload must be a list")
            sources = [s for s in (Source.from_dict(item) for item in payload) if s is not None]
            return cls(type=event_type, payload=sources)

        if not isinstance(payload, str):
            raise ValueError(f"{event_type} payload must be a string")
        return cls(type=event_type, payload=payload)
