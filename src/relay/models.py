"""Wire models shared by the relay endpoints and the upstream writer."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

MAX_DISAMBIGUATION_CHOICES = 5


class Source(BaseModel):
    """A grounding citation attached to a generated article."""

    uri: str
    title: str


class DisambiguationChoice(BaseModel):
    topic: str = Field(description="A more specific search term for one meaning of the query.")
    description: str = Field(description="A short description of this meaning.")


class DisambiguationResult(BaseModel):
    """Structured-output envelope requested from the model.

    The model API needs an object at the schema root, so the list is
    wrapped here and unwrapped again before it reaches the client.
    """

    choices: list[DisambiguationChoice]


class StreamEvent(BaseModel):
    """One event on the article stream."""

    type: Literal["content", "sources", "error"]
    payload: str | list[Source]


class GenerateRequest(BaseModel):
    """Request body for POST /api/generate."""

    operation: str | None = None
    query: str | None = None


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str
    models: dict[str, str]
