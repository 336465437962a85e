"""ChromaDB vector store provider adapter.

Wraps a ChromaDB client to implement :class:`IVectorStoreProvider`.  Each
vectorqa collection maps to one Chroma collection using cosine distance.
The client is a local ``PersistentClient`` by default, or an
``HttpClient`` when a Chroma server host is configured.

Embeddings are always computed by the injected
:class:`~vectorqa.interfaces.embedding_provider.IEmbeddingProvider` and
passed in explicitly; Chroma's built-in embedding function is never used.
"""

from __future__ import annotations

import hashlib
import os
from typing import Any

# ChromaDB reports anonymous telemetry through PostHog.  Some ChromaDB and
# PostHog version pairs raise on every capture() call, so telemetry is
# switched off at the env var, the SDK, and the client Settings.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import posthog

posthog.disabled = True

import chromadb
import structlog

from vectorqa.interfaces.vector_store_provider import IVectorStoreProvider
from vectorqa.models.rag import DocumentChunk, RetrievedChunk
from vectorqa.utils.errors import IndexUnavailableError

logger = structlog.get_logger(logger_name=__name__)


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """Embedding function placeholder that stops ChromaDB loading its ONNX model.

    vectorqa always passes pre-computed embeddings, so this is never called.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "vectorqa uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        return "noop_precomputed"


def _chunk_id(collection_id: str, chunk: DocumentChunk) -> str:
    """Stable id so re-ingesting the same source replaces rather than duplicates."""
    key = "|".join(
        [
            collection_id,
            str(chunk.metadata.get("source", "")),
            str(chunk.metadata.get("page", "")),
            str(chunk.metadata.get("chunk_index", "")),
            chunk.text,
        ]
    )
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by ChromaDB.

    Parameters
    ----------
    persist_directory:
        On-disk location for the local persistent client.
    host:
        Chroma server hostname.  When non-empty, an ``HttpClient`` is used
        and *persist_directory* is ignored.
    port:
        Chroma server port.
    client:
        Pre-built Chroma client (tests pass an ``EphemeralClient``).
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        host: str = "",
        port: int = 8000,
        client: Any | None = None,
    ) -> None:
        settings = chromadb.config.Settings(anonymized_telemetry=False)
        if client is not None:
            self._client = client
        elif host:
            self._client = chromadb.HttpClient(host=host, port=port, settings=settings)
        else:
            self._client = chromadb.PersistentClient(path=persist_directory, settings=settings)
        self._target = f"{host}:{port}" if host else persist_directory

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def collection_exists(self, collection_id: str) -> bool:
        return collection_id in await self.list_collections()

    async def list_collections(self) -> list[str]:
        try:
            collections = self._client.list_collections()
        except Exception as exc:
            raise IndexUnavailableError(
                message=f"ChromaDB list_collections failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        # Chroma >= 0.6 returns names; older releases return Collection objects.
        return [c if isinstance(c, str) else c.name for c in collections]

    async def upsert(
        self,
        collection_id: str,
        chunks: list[DocumentChunk],
        embeddings: list[list[float]],
    ) -> int:
        """Upsert pre-embedded chunks into *collection_id*, creating it on first use."""
        if len(chunks) != len(embeddings):
            raise ValueError(
                f"chunks and embeddings length mismatch: {len(chunks)} != {len(embeddings)}"
            )
        if not chunks:
            return 0

        # Chroma rejects duplicate ids within one call; identical chunks collapse.
        records: dict[str, tuple[DocumentChunk, list[float]]] = {}
        for chunk, embedding in zip(chunks, embeddings):
            records.setdefault(_chunk_id(collection_id, chunk), (chunk, embedding))

        try:
            collection = self._get_or_create(collection_id)
            collection.upsert(
                ids=list(records),
                embeddings=[embedding for _, embedding in records.values()],
                documents=[chunk.text for chunk, _ in records.values()],
                metadatas=[dict(chunk.metadata) or None for chunk, _ in records.values()],
            )
        except Exception as exc:
            raise IndexUnavailableError(
                message=f"ChromaDB upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_upsert", collection=collection_id, count=len(records))
        return len(records)

    async def query(
        self,
        collection_id: str,
        query_embedding: list[float],
        top_k: int = 3,
    ) -> list[RetrievedChunk]:
        """Return up to *top_k* nearest chunks, best first.

        Chroma reports cosine *distance* in ``[0, 2]``; it is converted to a
        similarity clamped to ``[0, 1]``.
        """
        try:
            collection = self._client.get_collection(
                name=collection_id,
                embedding_function=_NoopEmbeddingFunction(),
            )
            count = collection.count()
            if count == 0:
                return []
            results = collection.query(
                query_embeddings=[query_embedding],
                n_results=min(top_k, count),
                include=["documents", "metadatas", "distances"],
            )
        except Exception as exc:
            raise IndexUnavailableError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not results["documents"] or not results["documents"][0]:
            return []

        documents = results["documents"][0]
        metadatas = results["metadatas"][0] if results["metadatas"] else [{}] * len(documents)
        distances = results["distances"][0] if results["distances"] else [0.0] * len(documents)

        retrieved = [
            RetrievedChunk(
                chunk=DocumentChunk(text=text, metadata=dict(meta or {})),
                similarity_score=max(0.0, min(1.0, 1.0 - distance)),
            )
            for text, meta, distance in zip(documents, metadatas, distances, strict=True)
            if text
        ]
        retrieved.sort(key=lambda rc: rc.similarity_score, reverse=True)

        logger.info(
            "chromadb_query",
            collection=collection_id,
            requested=top_k,
            results_count=len(retrieved),
            top_score=retrieved[0].similarity_score if retrieved else 0.0,
        )
        return retrieved

    async def delete_collection(self, collection_id: str) -> None:
        try:
            self._client.delete_collection(name=collection_id)
        except Exception as exc:
            raise IndexUnavailableError(
                message=f"ChromaDB delete_collection failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("chromadb_delete_collection", collection=collection_id)

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the ChromaDB client answers a heartbeat."""
        try:
            self._client.heartbeat()
            return True
        except Exception:
            logger.warning("chromadb_unavailable", target=self._target)
            return False

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_or_create(self, collection_id: str) -> Any:
        # Collections created by another tool may carry a persisted
        # embedding function; opening them with a different one raises
        # ValueError, so retry without specifying it.
        try:
            return self._client.get_or_create_collection(
                name=collection_id,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            return self._client.get_or_create_collection(
                name=collection_id,
                metadata={"hnsw:space": "cosine"},
            )
