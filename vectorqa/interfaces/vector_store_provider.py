"""Abstract base class for vector-store service providers.

Defines the contract for collection lifecycle, bulk upsert and similarity
queries.  The pipeline treats the index as an opaque capability: it never
assumes exclusive access and never locks a collection.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from vectorqa.models.rag import DocumentChunk, RetrievedChunk


# Concrete implementation: ChromaDBProvider (vectorqa/providers/vector_store/)
class IVectorStoreProvider(ABC):
    """Contract for vector-store services used by ingestion and QA.

    All methods are async so network-backed stores never block the event
    loop.  Backend failures must be raised as
    :class:`~vectorqa.utils.errors.IndexUnavailableError`.
    """

    @abstractmethod
    async def collection_exists(self, collection_id: str) -> bool:
        """Return ``True`` if *collection_id* exists in the index."""

    @abstractmethod
    async def list_collections(self) -> list[str]:
        """Return the names of all collections in the index."""

    @abstractmethod
    async def upsert(
        self,
        collection_id: str,
        chunks: list[DocumentChunk],
        embeddings: list[list[float]],
    ) -> int:
        """Insert or replace pre-embedded chunks, creating the collection if needed.

        Parameters
        ----------
        collection_id:
            Target collection.
        chunks:
            The chunks to store, in source order.
        embeddings:
            Embedding vectors corresponding positionally to *chunks*.

        Returns
        -------
        int
            The number of chunks written.

        Raises
        ------
        ValueError
            If ``len(chunks) != len(embeddings)``.
        vectorqa.utils.errors.IndexUnavailableError
            If the store operation fails.
        """

    @abstractmethod
    async def query(
        self,
        collection_id: str,
        query_embedding: list[float],
        top_k: int = 3,
    ) -> list[RetrievedChunk]:
        """Return up to *top_k* chunks ranked by similarity (descending)."""

    @abstractmethod
    async def delete_collection(self, collection_id: str) -> None:
        """Drop *collection_id* and every chunk in it."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable name for this provider (e.g. ``"chromadb"``)."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the backing store is reachable."""
