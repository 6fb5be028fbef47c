"""Incremental parser for the relay's event stream.

The relay writes one ``data: <json>`` line per event followed by a blank
line.  Network chunks do not respect line boundaries, so the parser keeps
the trailing partial line in a carry-over buffer and only parses lines
that have been terminated by ``\\n``.
"""

from __future__ import annotations

import codecs
import json
import logging

from app.models import StreamEvent

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "


class EventStreamParser:
    """Turn arbitrary byte chunks into ``StreamEvent`` objects."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received after the last complete line."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[StreamEvent]:
        """Consume one chunk and return the events completed by it."""
        self._buffer += self._decoder.decode(chunk)

        lines = self._buffer.split("\n")
        self._buffer = lines.pop()

        events: list[StreamEvent] = []
        for line in lines:
            event = self._parse_line(line.rstrip("\r"))
            if event is not None:
                events.append(event)
        return events

    def close(self) -> str:
        """Flush the decoder and return whatever never became a complete line."""
        self._buffer += self._decoder.decode(b"", final=True)
        remainder, self._buffer = self._buffer, ""
        if remainder.strip():
            logger.warning("Stream ended with an incomplete line: %s", remainder[:200])
        return remainder

    @staticmethod
    def _parse_line(line: str) -> StreamEvent | None:
        if not line.startswith(DATA_PREFIX):
            return None

        raw = line[len(DATA_PREFIX):]
        try:
            return StreamEvent.from_dict(json.loads(raw))
        except (json.JSONDecodeError, ValueError) as e:
            logger.error("Failed to parse stream event (%s): %s", e, raw[:200])
            return None
