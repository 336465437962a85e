"""Embedding provider implementations."""

from vectorqa.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider"]
