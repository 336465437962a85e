"""Retrieval-augmented question answering over an indexed collection.

The flow for a stored collection:

  1. RESOLVE    -- the collection must exist; a missing one raises
                   :class:`NotFoundError` unchanged so the API can 404.
  2. RETRIEVE   -- embed the question and pull the top-``k`` chunks.
  3. PROMPT     -- chunks go inside a ``<context>`` block, the question
                   follows it, and the system message restricts the model
                   to that context.
  4. COMPLETE   -- the completion is memoised under a hash of
                   (model, prompts, temperature, max_tokens).  The cache is
                   best-effort: a cache failure is logged and counts as a
                   miss.
  5. SOURCES    -- the unique ``source`` values of the retrieved chunks.

Every other failure becomes :class:`SynthesisError`.  Nothing is retried.

``answer_live`` skips the index altogether: it fetches one page, splits
it, ranks the chunks against the question in memory and runs the same
prompt and cache.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, AsyncIterator, Sequence

import numpy as np
import structlog

from vectorqa.interfaces.cache_provider import ICacheProvider
from vectorqa.interfaces.embedding_provider import IEmbeddingProvider
from vectorqa.interfaces.llm_provider import ILLMProvider
from vectorqa.interfaces.vector_store_provider import IVectorStoreProvider
from vectorqa.models.rag import Answer, ModelParameters, QueryContext, RetrievedChunk
from vectorqa.services.ingestion.collection_manager import CollectionManager
from vectorqa.services.ingestion.source_processors.web_page import WebPageProcessor
from vectorqa.services.ingestion.splitter import RecursiveTextSplitter
from vectorqa.utils.errors import CacheError, NotFoundError, SynthesisError

logger = structlog.get_logger(logger_name=__name__)

SYSTEM_PROMPT = "Answer the following question based only on the provided context:"


def build_user_prompt(context: Sequence[str], question: str) -> str:
    """Wrap the retrieved passages and the question into the user message."""
    joined = "\n\n".join(context)
    return f"<context>\n{joined}\n</context>\n\nQuestion: {question}"


def completion_cache_key(
    model: str,
    system_prompt: str,
    user_prompt: str,
    temperature: float,
    max_tokens: int,
) -> str:
    """SHA-256 of the canonical JSON form of a completion request."""
    payload = json.dumps(
        {
            "model": model,
            "system": system_prompt,
            "user": user_prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
        },
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return "qa:" + hashlib.sha256(payload.encode("utf-8")).hexdigest()


def rank_by_similarity(query: Sequence[float], vectors: Sequence[Sequence[float]], k: int) -> list[int]:
    """Indices of the *k* vectors closest to *query* by cosine similarity.

    Zero vectors score 0.  Ties keep their original order.
    """
    if not vectors or k <= 0:
        return []
    matrix = np.asarray(vectors, dtype=np.float64)
    target = np.asarray(query, dtype=np.float64)

    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(target)
    dots = matrix @ target
    scores = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)
    order = np.argsort(-scores, kind="stable")[:k]
    return [int(i) for i in order]


def unique_sources(chunks: Sequence[RetrievedChunk]) -> list[str]:
    seen: list[str] = []
    for item in chunks:
        source = item.chunk.source
        if source is not None and source not in seen:
            seen.append(source)
    return seen


class QAService:
    """Answers questions from a vector collection or a live web page.

    Parameters
    ----------
    llm:
        Completion provider.
    embedding_provider:
        Embeds questions (and live-page chunks).
    vector_store:
        Index queried for stored collections.
    collections:
        Resolves collection ids before any retrieval.
    web_page:
        Fetch strategy used by :meth:`answer_live`.
    cache:
        Optional completion cache.
    cache_ttl:
        Seconds a cached completion stays valid; ``None`` uses the cache
        provider's default.
    """

    def __init__(
        self,
        llm: ILLMProvider,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        collections: CollectionManager,
        web_page: WebPageProcessor,
        cache: ICacheProvider | None = None,
        cache_ttl: int | None = None,
        live_chunk_size: int = 2000,
        live_chunk_overlap: int = 200,
    ) -> None:
        self._llm = llm
        self._embedding = embedding_provider
        self._store = vector_store
        self._collections = collections
        self._web_page = web_page
        self._cache = cache
        self._cache_ttl = cache_ttl
        self._live_splitter = RecursiveTextSplitter(live_chunk_size, live_chunk_overlap)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def answer(self, query: QueryContext) -> Answer:
        """Answer *query* from its collection.

        Raises
        ------
        NotFoundError
            If the collection does not exist.
        SynthesisError
            For any retrieval, completion or index failure.
        """
        try:
            retrieved = await self._retrieve(query)
            prompt = build_user_prompt([r.chunk.text for r in retrieved], query.question)
            text = await self._complete(prompt, query.parameters)
        except NotFoundError:
            raise
        except Exception as exc:
            self._log_failure("qa_failed", exc, collection=query.collection_id)
            raise SynthesisError(message=f"Could not answer question: {exc}") from exc

        sources = unique_sources(retrieved)
        logger.info(
            "qa_answered",
            collection=query.collection_id,
            question=query.question[:80],
            chunks=len(retrieved),
            sources=len(sources),
        )
        return Answer(answer=text, sources=sources)

    async def stream_answer(self, query: QueryContext) -> tuple[list[str], AsyncIterator[str]]:
        """Retrieve eagerly, then return the sources and a delta stream.

        Resolution and retrieval errors are raised here, before any text is
        produced.  Streamed completions bypass the cache.
        """
        try:
            retrieved = await self._retrieve(query)
        except NotFoundError:
            raise
        except Exception as exc:
            self._log_failure("qa_stream_failed", exc, collection=query.collection_id)
            raise SynthesisError(message=f"Could not answer question: {exc}") from exc

        prompt = build_user_prompt([r.chunk.text for r in retrieved], query.question)
        return unique_sources(retrieved), self._stream(prompt, query.parameters)

    async def answer_live(
        self,
        url: str,
        question: str,
        parameters: ModelParameters,
        k: int = 4,
    ) -> Answer:
        """Answer *question* from the current content of *url*.

        Raises
        ------
        NotFoundError
            If the page yields no text.
        SynthesisError
            For fetch, embedding or completion failures.
        """
        try:
            units = await self._web_page.fetch(url)
            chunks = self._live_splitter.split(units)
            if not chunks:
                raise NotFoundError(f"No data found for {url}")

            texts = [c.text for c in chunks]
            vectors = await self._embedding.embed(texts)
            query_vector = await self._embedding.embed_single(question)
            best = rank_by_similarity(query_vector, vectors, k)

            prompt = build_user_prompt([texts[i] for i in best], question)
            text = await self._complete(prompt, parameters)
        except NotFoundError:
            raise
        except Exception as exc:
            self._log_failure("qa_live_failed", exc, url=url)
            raise SynthesisError(message=f"Could not answer question from {url}: {exc}") from exc

        logger.info("qa_live_answered", url=url, chunks=len(chunks), used=len(best))
        return Answer(answer=text, sources=[url])

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _retrieve(self, query: QueryContext) -> list[RetrievedChunk]:
        handle = await self._collections.resolve(query.collection_id)
        query_vector = await self._embedding.embed_single(query.question)
        return await self._store.query(handle.collection_id, query_vector, top_k=query.k)

    async def _complete(self, user_prompt: str, parameters: ModelParameters) -> str:
        key = completion_cache_key(
            parameters.model,
            SYSTEM_PROMPT,
            user_prompt,
            parameters.temperature,
            parameters.max_tokens,
        )
        cached = await self._cache_get(key)
        if isinstance(cached, str):
            logger.debug("qa_cache_hit", key=key[:16])
            return cached

        text = await self._llm.complete(
            SYSTEM_PROMPT,
            user_prompt,
            model=parameters.model,
            temperature=parameters.temperature,
            max_tokens=parameters.max_tokens,
        )
        await self._cache_set(key, text)
        return text

    async def _stream(self, user_prompt: str, parameters: ModelParameters) -> AsyncIterator[str]:
        try:
            async for delta in self._llm.stream_complete(
                SYSTEM_PROMPT,
                user_prompt,
                model=parameters.model,
                temperature=parameters.temperature,
                max_tokens=parameters.max_tokens,
            ):
                yield delta
        except Exception as exc:
            self._log_failure("qa_stream_failed", exc)
            raise SynthesisError(message=f"Streaming completion failed: {exc}") from exc

    async def _cache_get(self, key: str) -> Any | None:
        if self._cache is None:
            return None
        try:
            return await self._cache.get(key)
        except CacheError as exc:
            logger.warning("qa_cache_read_failed", error=str(exc))
            return None

    async def _cache_set(self, key: str, value: str) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.set(key, value, self._cache_ttl)
        except CacheError as exc:
            logger.warning("qa_cache_write_failed", error=str(exc))

    @staticmethod
    def _log_failure(event: str, exc: Exception, **context: Any) -> None:
        logger.error(event, error_type=type(exc).__name__, error=str(exc), **context)
