"""Unit tests for the pipeline data models in vectorqa.models.rag."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from vectorqa.models.rag import (
    Answer,
    DocumentChunk,
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


class TestDocumentChunk:
    def test_source_property(self) -> None:
        assert DocumentChunk(text="t", metadata={"source": "https://e.com"}).source == "https://e.com"
        assert DocumentChunk(text="t").source is None

    def test_empty_text_rejected(self) -> None:
        with pytest.raises(ValidationError):
            DocumentChunk(text="")

    def test_frozen(self) -> None:
        chunk = DocumentChunk(text="t")
        with pytest.raises(ValidationError):
            chunk.text = "changed"


class TestRetrievedChunk:
    @pytest.mark.parametrize("score", [-0.1, 1.1])
    def test_score_bounds(self, score: float) -> None:
        with pytest.raises(ValidationError):
            RetrievedChunk(chunk=DocumentChunk(text="t"), similarity_score=score)


class TestQueryModels:
    def test_parameter_defaults(self) -> None:
        params = ModelParameters()
        assert (params.model, params.temperature, params.max_tokens, params.streaming) == (
            "gpt-3.5-turbo",
            0.0,
            10000,
            False,
        )

    @pytest.mark.parametrize("fields", [{"temperature": 2.5}, {"max_tokens": 0}, {"model": ""}])
    def test_parameter_validation(self, fields: dict) -> None:
        with pytest.raises(ValidationError):
            ModelParameters(**fields)

    def test_query_context(self) -> None:
        query = QueryContext(question="why?", collection_id="docs")
        assert query.k == 3
        with pytest.raises(ValidationError):
            QueryContext(question="", collection_id="docs")
        with pytest.raises(ValidationError):
            QueryContext(question="why?", collection_id="docs", k=0)

    def test_answer_defaults(self) -> None:
        assert Answer(answer="42").sources == []


class TestIngestionModels:
    def test_request_defaults(self) -> None:
        request = IngestionRequest(locator="https://e.com", collection_id="docs")
        assert (request.chunk_size, request.chunk_overlap) == (2000, 250)
        assert request.filter is None and request.limit is None

    def test_request_rejects_bad_limit(self) -> None:
        with pytest.raises(ValidationError):
            IngestionRequest(locator="https://e.com", collection_id="docs", limit=0)

    def test_result_serializes_enums_as_values(self) -> None:
        result = IngestionResult(
            status=IngestionStatus.STARTED,
            collection_id="docs",
            locator="https://e.com/sitemap.xml",
            source_kind=SourceKind.SITEMAP,
            stage=IngestionStage.DONE,
            dispatched=12,
        )
        dumped = result.model_dump(mode="json")
        assert dumped["status"] == "started"
        assert dumped["source_kind"] == "sitemap"
        assert dumped["chunks_indexed"] == 0

    def test_raw_unit_keeps_arbitrary_metadata(self) -> None:
        unit = RawUnit(text="t", metadata={"coordinates": {"x": 1}, "languages": ["eng"]})
        assert unit.metadata["coordinates"] == {"x": 1}
