"""Shared pytest fixtures for vectorqa tests."""

from __future__ import annotations

import hashlib
import struct
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from vectorqa.interfaces.embedding_provider import IEmbeddingProvider
from vectorqa.interfaces.llm_provider import ILLMProvider
from vectorqa.interfaces.vector_store_provider import IVectorStoreProvider
from vectorqa.models.rag import DocumentChunk, RetrievedChunk


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).resolve().parent.parent


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Minimal resolved configuration, as ``load_config`` would return it."""
    return {
        "ingestion": {
            "chunk_size": 2000,
            "chunk_overlap": 250,
            "url_chunk_size": 500,
            "url_chunk_overlap": 100,
        },
        "qa": {"k": 3, "temperature": 0.0, "max_tokens": 10000},
        "live": {"k": 4, "chunk_size": 2000, "chunk_overlap": 200, "temperature": 0.0, "max_tokens": 1000},
    }


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------

Handler = Callable[[httpx.Request], httpx.Response]


def make_http_client(routes: dict[str, Any]) -> httpx.AsyncClient:
    """Build an ``httpx.AsyncClient`` answering from *routes*.

    Keys are full URLs.  Values are either an ``httpx.Response`` or a
    callable taking the request.  Unknown URLs get a 404.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        target = routes.get(str(request.url))
        if target is None:
            return httpx.Response(404, text="not found")
        if callable(target):
            return target(request)
        return target

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def html_page(body: str, title: str = "Test Page") -> httpx.Response:
    html = f"<html><head><title>{title}</title></head><body>{body}</body></html>"
    return httpx.Response(200, text=html, headers={"content-type": "text/html; charset=utf-8"})


def xml_response(xml: str) -> httpx.Response:
    return httpx.Response(200, content=xml.encode("utf-8"), headers={"content-type": "application/xml"})


def urlset(*locs: str) -> str:
    entries = "".join(f"<url><loc>{loc}</loc></url>" for loc in locs)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</urlset>'
    )


def sitemap_index(*locs: str) -> str:
    entries = "".join(f"<sitemap><loc>{loc}</loc></sitemap>" for loc in locs)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</sitemapindex>'
    )


# ---------------------------------------------------------------------------
# Mock provider fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_llm_provider() -> ILLMProvider:
    """Mock ILLMProvider returning a fixed answer.

    Override with ``mock_llm_provider.complete.return_value = "..."``.
    """
    mock = MagicMock(spec=ILLMProvider)
    mock.get_provider_name.return_value = "mock-llm"
    mock.is_available.return_value = True
    mock.complete = AsyncMock(return_value="The answer is 42.")
    return mock


_EMBEDDING_DIM = 64


def _hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Generate a deterministic unit vector by hashing *text*."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    raw = digest
    while len(raw) < dim * 4:
        raw += hashlib.sha256(raw).digest()
    raw = raw[: dim * 4]
    values = [v if v == v and abs(v) < 1e30 else 0.0 for v in struct.unpack(f"<{dim}f", raw)]
    magnitude = max(sum(v * v for v in values) ** 0.5, 1e-10)
    return [v / magnitude for v in values]


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider for tests."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [_hash_to_vector(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        return _hash_to_vector(text)

    def get_dimension(self) -> int:
        return _EMBEDDING_DIM

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


class MockVectorStore(IVectorStoreProvider):
    """In-memory vector store keyed by collection id.

    Upserting creates the collection.  Queries rank by dot product of the
    hash-based vectors, mapped to [0, 1].
    """

    def __init__(self) -> None:
        self.collections: dict[str, list[tuple[DocumentChunk, list[float]]]] = {}
        self.upsert_calls = 0

    async def collection_exists(self, collection_id: str) -> bool:
        return collection_id in self.collections

    async def list_collections(self) -> list[str]:
        return list(self.collections)

    async def upsert(
        self,
        collection_id: str,
        chunks: list[DocumentChunk],
        embeddings: list[list[float]],
    ) -> int:
        if len(chunks) != len(embeddings):
            raise ValueError("chunks and embeddings length mismatch")
        self.upsert_calls += 1
        self.collections.setdefault(collection_id, []).extend(zip(chunks, embeddings))
        return len(chunks)

    async def query(
        self,
        collection_id: str,
        query_embedding: list[float],
        top_k: int = 3,
    ) -> list[RetrievedChunk]:
        scored = []
        for chunk, vec in self.collections.get(collection_id, []):
            dot = sum(a * b for a, b in zip(query_embedding, vec))
            scored.append((max(0.0, min(1.0, (dot + 1.0) / 2.0)), chunk))
        scored.sort(key=lambda item: item[0], reverse=True)
        return [RetrievedChunk(chunk=chunk, similarity_score=sim) for sim, chunk in scored[:top_k]]

    async def delete_collection(self, collection_id: str) -> None:
        self.collections.pop(collection_id, None)

    def get_provider_name(self) -> str:
        return "mock-vector-store"

    def is_available(self) -> bool:
        return True


@pytest.fixture
def mock_embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def mock_vector_store() -> MockVectorStore:
    return MockVectorStore()


@pytest.fixture
def sample_page_text() -> str:
    """Multi-paragraph prose long enough to need several chunks."""
    paragraphs = [
        (
            "Vector databases store embeddings alongside the text they were "
            "computed from. A query embeds the question and returns the "
            "nearest stored passages."
        ),
        (
            "Chunking matters. Chunks that are too large dilute the signal of "
            "any single idea, while chunks that are too small lose the context "
            "that makes a passage meaningful."
        ),
        (
            "Overlap between neighbouring chunks keeps sentences that straddle "
            "a boundary retrievable from either side."
        ),
    ]
    return "\n\n".join(paragraphs * 4)
