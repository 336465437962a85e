"""Pydantic data models shared across the ingestion and QA layers."""

from vectorqa.models.rag import (
    Answer,
    DocumentChunk,
    IndexHandle,
    IngestionRequest,
    IngestionResult,
    IngestionStage,
    IngestionStatus,
    ModelParameters,
    QueryContext,
    RawUnit,
    RetrievedChunk,
    SourceKind,
)

__all__ = [
    "Answer",
    "DocumentChunk",
    "IndexHandle",
    "IngestionRequest",
    "IngestionResult",
    "IngestionStage",
    "IngestionStatus",
    "ModelParameters",
    "QueryContext",
    "RawUnit",
    "RetrievedChunk",
    "SourceKind",
]
