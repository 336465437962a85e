"""Abstract base class for text-embedding service providers.

The same provider embeds chunk texts at upsert time and questions at query
time, so both sides of a similarity search share one vector space.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: OpenAIEmbeddingProvider (vectorqa/providers/embedding/)
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.  Implementations handle
            batching internally if the underlying API has a per-call limit.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.

        Raises
        ------
        vectorqa.utils.errors.EmbeddingError
            If the embedding API call fails.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable name for this provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (e.g. has an API key)."""
