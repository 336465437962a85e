"""Pydantic request/response schemas for the vectorqa HTTP API.

Request fields the caller may omit are optional here and filled in by the
route from the loaded configuration.  Required inputs (``url``,
``question``, ``collection`` on delete) are optional too, so that their
absence reaches the route and is reported as a 400 ``ValidationError``
rather than FastAPI's default 422.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class AddSourceRequest(BaseModel):
    """Index a web page, sitemap, PDF or document into a collection."""

    url: str | None = Field(default=None, description="Locator to ingest.")
    collection: str | None = Field(default=None, description="Defaults to the configured collection.")
    chunk_size: int | None = Field(default=None, gt=0)
    chunk_overlap: int | None = Field(default=None, ge=0)
    filter: str | None = Field(default=None, description="Sitemap: keep only URLs containing this text.")
    limit: int | None = Field(default=None, gt=0, description="Sitemap: ingest at most this many URLs.")


class QuestionRequest(BaseModel):
    """Ask a question against an indexed collection."""

    question: str | None = None
    collection: str | None = None
    k: int | None = Field(default=None, gt=0, le=50)
    model: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, gt=0)
    streaming: bool = False


class LiveQuestionRequest(BaseModel):
    """Ask a question against the current content of one web page."""

    url: str | None = None
    question: str | None = None
    model: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, gt=0)


class DeleteCollectionRequest(BaseModel):
    collection: str | None = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class AddSourceResponse(BaseModel):
    """``added`` for a single document, ``started`` for a sitemap fan-out."""

    response: str
    collection: str


class AnswerResponse(BaseModel):
    response: str
    sources: list[str] = Field(default_factory=list)


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """Application health check response."""

    success: bool
    message: str


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
