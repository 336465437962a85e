"""Unit tests for QAService -- retrieval, prompting, caching and error mapping."""

from __future__ import annotations

from typing import AsyncIterator
from unittest.mock import AsyncMock, MagicMock

import pytest

from tests.conftest import MockEmbeddingProvider, MockVectorStore, _hash_to_vector, html_page, make_http_client
from vectorqa.interfaces.cache_provider import ICacheProvider
from vectorqa.models.rag import DocumentChunk, ModelParameters, QueryContext
from vectorqa.providers.cache.memory_cache import MemoryCacheProvider
from vectorqa.services.ingestion.collection_manager import CollectionManager
from vectorqa.services.ingestion.source_processors.web_page import WebPageProcessor
from vectorqa.services.qa_service import (
    SYSTEM_PROMPT,
    QAService,
    build_user_prompt,
    completion_cache_key,
    rank_by_similarity,
)
from vectorqa.utils.errors import CacheError, IndexUnavailableError, LLMError, NotFoundError, SynthesisError


# ======================================================================
# Shared helpers
# ======================================================================


def _store_with(*chunks: tuple[str, str]) -> MockVectorStore:
    store = MockVectorStore()
    store.collections["docs"] = [
        (DocumentChunk(text=text, metadata={"source": source}), _hash_to_vector(text))
        for text, source in chunks
    ]
    return store


def _service(llm, store: MockVectorStore, cache: ICacheProvider | None = None, http_routes=None) -> QAService:
    return QAService(
        llm=llm,
        embedding_provider=MockEmbeddingProvider(),
        vector_store=store,
        collections=CollectionManager(store),
        web_page=WebPageProcessor(make_http_client(http_routes or {})),
        cache=cache,
    )


def _query(**overrides) -> QueryContext:
    fields = {"question": "What do vector databases store?", "collection_id": "docs", "k": 3}
    fields.update(overrides)
    return QueryContext(**fields)


# ======================================================================
# Pure helpers
# ======================================================================


class TestPromptAndKeys:
    def test_user_prompt_layout(self) -> None:
        prompt = build_user_prompt(["first", "second"], "Why?")
        assert prompt == "<context>\nfirst\n\nsecond\n</context>\n\nQuestion: Why?"

    def test_cache_key_depends_on_every_parameter(self) -> None:
        base = completion_cache_key("m", "s", "u", 0.0, 100)
        assert base.startswith("qa:")
        assert base == completion_cache_key("m", "s", "u", 0.0, 100)
        assert base != completion_cache_key("m2", "s", "u", 0.0, 100)
        assert base != completion_cache_key("m", "s", "u", 0.5, 100)
        assert base != completion_cache_key("m", "s", "u", 0.0, 101)
        assert base != completion_cache_key("m", "s", "u2", 0.0, 100)

    def test_rank_by_similarity(self) -> None:
        vectors = [[0.0, 1.0], [1.0, 0.0], [0.7, 0.7], [0.0, 0.0]]
        assert rank_by_similarity([1.0, 0.0], vectors, 2) == [1, 2]
        assert rank_by_similarity([1.0, 0.0], vectors, 10)[-1] in (0, 3)
        assert rank_by_similarity([1.0, 0.0], [], 3) == []

    def test_rank_ties_keep_order(self) -> None:
        assert rank_by_similarity([1.0], [[2.0], [1.0], [3.0]], 3) == [0, 1, 2]


# ======================================================================
# answer
# ======================================================================


class TestAnswer:
    @pytest.mark.asyncio
    async def test_answer_with_unique_sources(self, mock_llm_provider) -> None:
        store = _store_with(
            ("Vectors are stored with text.", "https://e.com/a"),
            ("Embeddings are numbers.", "https://e.com/a"),
            ("Chunking matters.", "https://e.com/b"),
        )
        service = _service(mock_llm_provider, store)

        answer = await service.answer(_query())

        assert answer.answer == "The answer is 42."
        assert sorted(answer.sources) == ["https://e.com/a", "https://e.com/b"]
        system, user = mock_llm_provider.complete.call_args.args
        assert system == SYSTEM_PROMPT
        assert user.startswith("<context>\n")
        assert user.endswith("Question: What do vector databases store?")

    @pytest.mark.asyncio
    async def test_k_limits_context(self, mock_llm_provider) -> None:
        store = _store_with(*[(f"passage {i}", f"https://e.com/{i}") for i in range(6)])
        answer = await _service(mock_llm_provider, store).answer(_query(k=2))
        assert len(answer.sources) == 2

    @pytest.mark.asyncio
    async def test_parameters_are_forwarded(self, mock_llm_provider) -> None:
        store = _store_with(("text", "s"))
        params = ModelParameters(model="gpt-4o-mini", temperature=0.3, max_tokens=64)
        await _service(mock_llm_provider, store).answer(_query(parameters=params))

        kwargs = mock_llm_provider.complete.call_args.kwargs
        assert kwargs == {"model": "gpt-4o-mini", "temperature": 0.3, "max_tokens": 64}

    @pytest.mark.asyncio
    async def test_missing_collection_passes_through(self, mock_llm_provider) -> None:
        with pytest.raises(NotFoundError, match="nope does not exist"):
            await _service(mock_llm_provider, MockVectorStore()).answer(_query(collection_id="nope"))
        mock_llm_provider.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_llm_failure_becomes_synthesis_error(self, mock_llm_provider) -> None:
        mock_llm_provider.complete.side_effect = LLMError("rate limited", provider_name="openai")
        with pytest.raises(SynthesisError) as exc_info:
            await _service(mock_llm_provider, _store_with(("t", "s"))).answer(_query())
        assert isinstance(exc_info.value.__cause__, LLMError)

    @pytest.mark.asyncio
    async def test_index_failure_becomes_synthesis_error(self, mock_llm_provider) -> None:
        store = _store_with(("t", "s"))
        store.query = AsyncMock(side_effect=IndexUnavailableError("down"))
        with pytest.raises(SynthesisError):
            await _service(mock_llm_provider, store).answer(_query())


# ======================================================================
# Completion cache
# ======================================================================


class TestCompletionCache:
    @pytest.mark.asyncio
    async def test_second_identical_question_hits_cache(self, mock_llm_provider) -> None:
        service = _service(mock_llm_provider, _store_with(("t", "s")), cache=MemoryCacheProvider())

        first = await service.answer(_query())
        second = await service.answer(_query())

        assert first.answer == second.answer
        assert mock_llm_provider.complete.await_count == 1

    @pytest.mark.asyncio
    async def test_different_temperature_misses(self, mock_llm_provider) -> None:
        service = _service(mock_llm_provider, _store_with(("t", "s")), cache=MemoryCacheProvider())

        await service.answer(_query())
        await service.answer(_query(parameters=ModelParameters(temperature=0.9)))

        assert mock_llm_provider.complete.await_count == 2

    @pytest.mark.asyncio
    async def test_cache_failure_is_a_miss(self, mock_llm_provider) -> None:
        cache = MagicMock(spec=ICacheProvider)
        cache.get = AsyncMock(side_effect=CacheError("down", provider_name="redis"))
        cache.set = AsyncMock(side_effect=CacheError("down", provider_name="redis"))

        answer = await _service(mock_llm_provider, _store_with(("t", "s")), cache=cache).answer(_query())

        assert answer.answer == "The answer is 42."
        cache.set.assert_awaited_once()


# ======================================================================
# stream_answer
# ======================================================================


class TestStreamAnswer:
    @pytest.mark.asyncio
    async def test_sources_first_then_deltas(self, mock_llm_provider) -> None:
        async def deltas(*args, **kwargs) -> AsyncIterator[str]:
            for piece in ("The ", "answer."):
                yield piece

        mock_llm_provider.stream_complete = deltas
        service = _service(mock_llm_provider, _store_with(("t", "https://e.com/a")))

        sources, stream = await service.stream_answer(_query())

        assert sources == ["https://e.com/a"]
        assert [d async for d in stream] == ["The ", "answer."]

    @pytest.mark.asyncio
    async def test_missing_collection_raises_before_streaming(self, mock_llm_provider) -> None:
        with pytest.raises(NotFoundError):
            await _service(mock_llm_provider, MockVectorStore()).stream_answer(_query())

    @pytest.mark.asyncio
    async def test_mid_stream_failure_becomes_synthesis_error(self, mock_llm_provider) -> None:
        async def broken(*args, **kwargs) -> AsyncIterator[str]:
            yield "partial"
            raise LLMError("connection reset")

        mock_llm_provider.stream_complete = broken
        _, stream = await _service(mock_llm_provider, _store_with(("t", "s"))).stream_answer(_query())

        received: list[str] = []
        with pytest.raises(SynthesisError):
            async for delta in stream:
                received.append(delta)
        assert received == ["partial"]


# ======================================================================
# answer_live
# ======================================================================


class TestAnswerLive:
    _URL = "https://example.com/article"

    @pytest.mark.asyncio
    async def test_answers_from_page(self, mock_llm_provider, sample_page_text: str) -> None:
        body = "".join(f"<p>{p}</p>" for p in sample_page_text.split("\n\n"))
        service = _service(mock_llm_provider, MockVectorStore(), http_routes={self._URL: html_page(body)})

        answer = await service.answer_live(self._URL, "Why does overlap matter?", ModelParameters(), k=2)

        assert answer.sources == [self._URL]
        user_prompt = mock_llm_provider.complete.call_args.args[1]
        assert "Question: Why does overlap matter?" in user_prompt

    @pytest.mark.asyncio
    async def test_empty_page_is_not_found(self, mock_llm_provider) -> None:
        service = _service(mock_llm_provider, MockVectorStore(), http_routes={self._URL: html_page("")})
        with pytest.raises(NotFoundError, match="No data found"):
            await service.answer_live(self._URL, "q", ModelParameters())

    @pytest.mark.asyncio
    async def test_fetch_failure_becomes_synthesis_error(self, mock_llm_provider) -> None:
        with pytest.raises(SynthesisError):
            await _service(mock_llm_provider, MockVectorStore()).answer_live(self._URL, "q", ModelParameters())
