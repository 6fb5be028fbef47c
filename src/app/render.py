"""Link-aware rendering of article text.

Generated articles mark follow-up concepts as ``[[concept]]``.  Each line
is scanned on its own, so a marker that a streaming chunk boundary has
split across lines (or that has not fully arrived yet) stays literal
text until the next re-render sees it complete.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

from app.models import Article

# Non-greedy; ``.`` never crosses a newline
_CONCEPT_RE = re.compile(r"\[\[(.*?)\]\]")


@dataclass(frozen=True)
class TextSegment:
    text: str


@dataclass(frozen=True)
class LinkSegment:
    """A concept marker; selecting it starts a search for ``topic``."""

    topic: str


Segment = Union[TextSegment, LinkSegment]


def render_line(line: str) -> list[Segment]:
    """Split one line into literal text and concept links.

    Markers with a blank topic are kept as literal text.
    """
    segments: list[Segment] = []
    pos = 0
    for m in _CONCEPT_RE.finditer(line):
        topic = m.group(1)
        if not topic.strip():
            continue
        if m.start() > pos:
            segments.append(TextSegment(line[pos:m.start()]))
        segments.append(LinkSegment(topic))
        pos = m.end()
    if pos < len(line):
        segments.append(TextSegment(line[pos:]))
    return segments


def render_content(content: str) -> list[list[Segment]]:
    """Render accumulated article text as one block of segments per line."""
    if not content:
        return []
    return [render_line(line) for line in content.split("\n")]


def concept_topics(content: str) -> list[str]:
    """Distinct concept topics in the order they first appear."""
    seen: dict[str, None] = {}
    for block in render_content(content):
        for seg in block:
            if isinstance(seg, LinkSegment):
                seen.setdefault(seg.topic, None)
    return list(seen)


def to_markdown(blocks: list[list[Segment]]) -> str:
    """Render segment blocks as Markdown; concept links become bold topic names."""
    lines = []
    for block in blocks:
        parts = []
        for seg in block:
            if isinstance(seg, LinkSegment):
                parts.append(f"**{seg.topic}**")
            else:
                parts.append(seg.text)
        lines.append("".join(parts))
    return "\n".join(lines)


def render_sources(article: Article) -> str:
    """Markdown list of the article's sources, titled by name or uri."""
    return "\n".join(
        f"- [{source.title or source.uri}]({source.uri})" for source in article.sources
    )


def render_article(article: Article, placeholder: str = "*Writing article...*") -> str:
    """Full Markdown view of an article: title, body and sources."""
    parts = [f"# {article.title}", ""]
    if article.content:
        parts.append(to_markdown(render_content(article.content)))
    else:
        parts.append(placeholder)
    if article.sources:
        parts += ["", "## Sources", render_sources(article)]
    return "\n".join(parts)
