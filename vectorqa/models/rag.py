"""Data models for the ingestion and question-answering pipeline.

Pydantic v2 models describing what flows between the pipeline stages:

    locator ──classify──▶ SourceKind
            ──fetch────▶ RawUnit[]          (strategy output, loader fields intact)
            ──split────▶ DocumentChunk[]    (size-bounded, ordered)
            ──sanitize─▶ DocumentChunk[]    (scalar metadata only)
            ──upsert───▶ IngestionResult

    QueryContext ──retrieve──▶ RetrievedChunk[] ──synthesize──▶ Answer

All models are frozen; a stage produces new instances rather than mutating
its input.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

MetadataValue = Union[str, int, float, bool]


class SourceKind(str, Enum):
    """The fixed set of source types the ingestion pipeline understands."""

    WEB_PAGE = "web_page"
    SITEMAP = "sitemap"
    PDF = "pdf"
    GENERIC_DOCUMENT = "generic_document"


class RawUnit(BaseModel):
    """One extracted content unit produced by a fetch/parse strategy.

    ``metadata`` may still hold loader-internal values (nested dicts,
    positional locators, category tags); the owning strategy strips them
    before indexing.
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Extracted text content.")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Loader metadata.")


class DocumentChunk(BaseModel):
    """A size-bounded slice of a RawUnit, the unit that gets embedded and stored."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(min_length=1, description="The chunk's textual content.")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Inherited unit metadata plus chunk-local fields (chunk_index).",
    )

    @property
    def source(self) -> str | None:
        value = self.metadata.get("source")
        return str(value) if value is not None else None


class RetrievedChunk(BaseModel):
    """A chunk returned by a similarity query, with its score."""

    model_config = ConfigDict(frozen=True)

    chunk: DocumentChunk
    similarity_score: float = Field(
        ge=0.0,
        le=1.0,
        description="Cosine similarity mapped to [0, 1]; higher is closer.",
    )


class IndexHandle(BaseModel):
    """Proof that a collection existed when it was resolved.

    Handles are built per request and never cached; a collection deleted
    concurrently makes later calls through the handle fail at the backend.
    """

    model_config = ConfigDict(frozen=True)

    collection_id: str


# ---------------------------------------------------------------------------
# Question answering
# ---------------------------------------------------------------------------


class ModelParameters(BaseModel):
    """Completion parameters forwarded to the language model."""

    model_config = ConfigDict(frozen=True)

    model: str = Field(default="gpt-3.5-turbo", min_length=1)
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    max_tokens: int = Field(default=10000, gt=0)
    streaming: bool = False


class QueryContext(BaseModel):
    """Everything needed to answer one question against one collection."""

    model_config = ConfigDict(frozen=True)

    question: str = Field(min_length=1)
    collection_id: str
    k: int = Field(default=3, gt=0, description="Number of chunks to retrieve.")
    parameters: ModelParameters = Field(default_factory=ModelParameters)


class Answer(BaseModel):
    """A synthesized answer and the unique sources it was grounded on."""

    model_config = ConfigDict(frozen=True)

    answer: str
    sources: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


class IngestionStage(str, Enum):
    """States of the per-request ingestion state machine."""

    CLASSIFY = "classify"
    FETCH = "fetch"
    SPLIT = "split"
    SANITIZE_METADATA = "sanitize_metadata"
    UPSERT = "upsert"
    DONE = "done"
    EMPTY = "empty"
    FAILED = "failed"


class IngestionStatus(str, Enum):
    """Outcome reported to the caller of an ingestion request."""

    ADDED = "added"
    STARTED = "started"
    NOT_FOUND = "not_found"


class IngestionRequest(BaseModel):
    """A single ingestion job: one locator into one collection."""

    model_config = ConfigDict(frozen=True)

    locator: str = Field(min_length=1)
    collection_id: str = Field(min_length=1)
    chunk_size: int = Field(default=2000, gt=0)
    chunk_overlap: int = Field(default=250, ge=0)
    filter: str | None = Field(default=None, description="Sitemap substring filter.")
    limit: int | None = Field(default=None, gt=0, description="Sitemap locator cap.")


class IngestionResult(BaseModel):
    """Result of one ingestion request."""

    model_config = ConfigDict(frozen=True)

    status: IngestionStatus
    collection_id: str
    locator: str
    source_kind: SourceKind
    stage: IngestionStage
    chunks_indexed: int = Field(default=0, ge=0)
    dispatched: int = Field(default=0, ge=0, description="Sitemap locators handed to fan-out.")
