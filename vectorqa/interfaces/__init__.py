"""Public interface definitions for all external service providers.

Every external capability is accessed through an abstract base class from
this package.  Concrete adapters live in ``vectorqa/providers/`` and are
constructed once in ``vectorqa/main.py`` (``_build_all``), then injected
into the services.  Tests substitute in-memory fakes.

CONCRETE PROVIDER MAP:
    Interface              →  Concrete implementations (in vectorqa/providers/)
    ─────────────────────────────────────────────────────────────────────
    IVectorStoreProvider   →  ChromaDBProvider
    IEmbeddingProvider     →  OpenAIEmbeddingProvider
    ILLMProvider           →  OpenAILLMProvider
    ICacheProvider         →  MemoryCacheProvider, RedisCacheProvider
    IDocumentExtractor     →  UnstructuredExtractor
"""

from vectorqa.interfaces.cache_provider import ICacheProvider
from vectorqa.interfaces.document_extractor import IDocumentExtractor
from vectorqa.interfaces.embedding_provider import IEmbeddingProvider
from vectorqa.interfaces.llm_provider import ILLMProvider
from vectorqa.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "ICacheProvider",
    "IDocumentExtractor",
    "IEmbeddingProvider",
    "ILLMProvider",
    "IVectorStoreProvider",
]
