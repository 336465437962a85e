"""Vector store provider implementations.

ChromaDB is the only implementation: a local persistent store by default,
or a Chroma server when CHROMADB_HOST is set.
"""

from vectorqa.providers.vector_store.chromadb_provider import ChromaDBProvider

__all__ = ["ChromaDBProvider"]
