"""Orchestrator for one ingestion request.

Each request walks a fixed sequence of stages:

    CLASSIFY → FETCH → SPLIT → SANITIZE_METADATA → UPSERT → DONE

with two early exits:

* ``EMPTY``  -- the source produced no chunks; nothing is written and the
  caller gets a ``NOT_FOUND`` result.
* ``FAILED`` -- any stage raised; the error is logged with the stage name
  (``failed_at``) and re-raised unchanged.

Sitemaps leave the sequence after FETCH: the listed locators are handed
to the :class:`IngestionDispatcher` and the request returns ``STARTED``
without waiting for them.

UPSERT embeds the whole chunk batch and writes it with a single vector
store call.  A backend that fails half-way through is not rolled back
here.
"""

from __future__ import annotations

import time

import structlog

from vectorqa.interfaces.embedding_provider import IEmbeddingProvider
from vectorqa.interfaces.vector_store_provider import IVectorStoreProvider
from vectorqa.models.rag import (
    DocumentChunk,
    IngestionRequest,
    IngestionResult,
    IngestionStage,
    IngestionStatus,
    SourceKind,
)
from vectorqa.services.ingestion.classifier import classify
from vectorqa.services.ingestion.dispatcher import IngestionDispatcher
from vectorqa.services.ingestion.source_processors import (
    DocumentProcessor,
    PDFProcessor,
    SitemapProcessor,
    SourceProcessor,
    WebPageProcessor,
)
from vectorqa.services.ingestion.splitter import RecursiveTextSplitter
from vectorqa.utils.errors import PipelineError

logger = structlog.get_logger(logger_name=__name__)


class IngestionService:
    """Runs the classify → fetch → split → sanitize → upsert pipeline.

    All collaborators are injected, so tests can swap in fakes for the
    network-facing pieces.
    """

    def __init__(
        self,
        web_page: WebPageProcessor,
        sitemap: SitemapProcessor,
        pdf: PDFProcessor,
        document: DocumentProcessor,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        dispatcher: IngestionDispatcher,
    ) -> None:
        self._web_page = web_page
        self._sitemap = sitemap
        self._pdf = pdf
        self._document = document
        self._embedding = embedding_provider
        self._store = vector_store
        self._dispatcher = dispatcher

    @property
    def dispatcher(self) -> IngestionDispatcher:
        return self._dispatcher

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ingest(self, request: IngestionRequest) -> IngestionResult:
        """Ingest one locator into one collection.

        Raises
        ------
        ValidationError
            Bad chunk parameters, or a file URL without a file name.
        FetchError, ParseError
            The source could not be retrieved or decoded.
        IndexUnavailableError
            The vector store rejected the write.
        """
        stage = IngestionStage.CLASSIFY
        kind = classify(request.locator)
        log = logger.bind(
            locator=request.locator,
            collection=request.collection_id,
            kind=kind.value,
        )
        start = time.monotonic()

        try:
            splitter = RecursiveTextSplitter(request.chunk_size, request.chunk_overlap)

            processor: SourceProcessor
            match kind:
                case SourceKind.SITEMAP:
                    stage = IngestionStage.FETCH
                    locators = await self._sitemap.list_locators(
                        request.locator,
                        substring=request.filter,
                        limit=request.limit,
                    )
                    if not locators:
                        log.info("ingestion_empty", stage=IngestionStage.EMPTY.value)
                        return self._result(request, kind, IngestionStatus.NOT_FOUND, IngestionStage.EMPTY)

                    dispatched = self._dispatcher.dispatch(
                        (self._child_request(request, locator) for locator in locators),
                        self.ingest,
                    )
                    log.info("ingestion_started", dispatched=dispatched)
                    return self._result(
                        request,
                        kind,
                        IngestionStatus.STARTED,
                        IngestionStage.DONE,
                        dispatched=dispatched,
                    )
                case SourceKind.WEB_PAGE:
                    processor = self._web_page
                case SourceKind.PDF:
                    processor = self._pdf
                case SourceKind.GENERIC_DOCUMENT:
                    processor = self._document
                case _:
                    raise PipelineError(f"No processor for source kind {kind!r}")

            stage = IngestionStage.FETCH
            async with processor.load(request.locator) as units:
                stage = IngestionStage.SPLIT
                chunks = splitter.split(units)
                if not chunks:
                    log.info("ingestion_empty", stage=IngestionStage.EMPTY.value, units=len(units))
                    return self._result(request, kind, IngestionStatus.NOT_FOUND, IngestionStage.EMPTY)

                stage = IngestionStage.SANITIZE_METADATA
                chunks = [
                    DocumentChunk(text=c.text, metadata=processor.sanitize_metadata(c.metadata))
                    for c in chunks
                ]

                stage = IngestionStage.UPSERT
                written = await self._upsert(request.collection_id, chunks)
        except Exception as exc:
            log.error(
                "ingestion_failed",
                stage=IngestionStage.FAILED.value,
                failed_at=stage.value,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise

        log.info(
            "ingestion_complete",
            units=len(units),
            chunks=written,
            elapsed_s=round(time.monotonic() - start, 2),
        )
        return self._result(
            request,
            kind,
            IngestionStatus.ADDED,
            IngestionStage.DONE,
            chunks_indexed=written,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _upsert(self, collection_id: str, chunks: list[DocumentChunk]) -> int:
        embeddings = await self._embedding.embed([c.text for c in chunks])
        return await self._store.upsert(collection_id, chunks, embeddings)

    @staticmethod
    def _child_request(parent: IngestionRequest, locator: str) -> IngestionRequest:
        # A nested sitemap keeps the caller's filter and limit.
        nested = classify(locator) is SourceKind.SITEMAP
        return IngestionRequest(
            locator=locator,
            collection_id=parent.collection_id,
            chunk_size=parent.chunk_size,
            chunk_overlap=parent.chunk_overlap,
            filter=parent.filter if nested else None,
            limit=parent.limit if nested else None,
        )

    @staticmethod
    def _result(
        request: IngestionRequest,
        kind: SourceKind,
        status: IngestionStatus,
        stage: IngestionStage,
        chunks_indexed: int = 0,
        dispatched: int = 0,
    ) -> IngestionResult:
        return IngestionResult(
            status=status,
            collection_id=request.collection_id,
            locator=request.locator,
            source_kind=kind,
            stage=stage,
            chunks_indexed=chunks_indexed,
            dispatched=dispatched,
        )
