"""FastAPI routes for ingestion, question answering and collection admin.

Service dependencies are resolved from ``app.state`` (populated by
``main._build_all``) through ``Annotated[..., Depends(...)]`` aliases.
Optional request fields fall back to the loaded YAML configuration in
``app.state.config``.

# Endpoint                         Method  Description
# ──────────────────────────────────────────────────────────────────────
# /api/v1/vector/add               POST    Ingest a URL / sitemap / file
# /api/v1/vector/question          POST    Answer from a collection
# /api/v1/vector/live              POST    Answer from one live web page
# /api/v1/vector/collection        DELETE  Drop a collection
# /api/v1/cache/clear              POST    Empty the completion cache
"""

from __future__ import annotations

import json
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from vectorqa.api.schemas import (
    AddSourceRequest,
    AddSourceResponse,
    AnswerResponse,
    DeleteCollectionRequest,
    ErrorResponse,
    LiveQuestionRequest,
    MessageResponse,
    QuestionRequest,
)
from vectorqa.config.settings import Settings
from vectorqa.interfaces.cache_provider import ICacheProvider
from vectorqa.models.rag import IngestionRequest, IngestionStatus, ModelParameters, QueryContext
from vectorqa.services.ingestion.collection_manager import CollectionManager
from vectorqa.services.ingestion.ingestion_service import IngestionService
from vectorqa.services.qa_service import QAService
from vectorqa.utils.errors import NotFoundError, ValidationError
from vectorqa.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_CLIENT_ERRORS: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _get_config(request: Request) -> dict[str, Any]:
    return request.app.state.config


def _get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion_service


def _get_qa_service(request: Request) -> QAService:
    return request.app.state.qa_service


def _get_collection_manager(request: Request) -> CollectionManager:
    return request.app.state.collection_manager


def _get_cache(request: Request) -> ICacheProvider:
    return request.app.state.cache


SettingsDep = Annotated[Settings, Depends(_get_settings)]
ConfigDep = Annotated[dict[str, Any], Depends(_get_config)]
IngestionDep = Annotated[IngestionService, Depends(_get_ingestion_service)]
QADep = Annotated[QAService, Depends(_get_qa_service)]
CollectionsDep = Annotated[CollectionManager, Depends(_get_collection_manager)]
CacheDep = Annotated[ICacheProvider, Depends(_get_cache)]


def _require(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"No {field} provided")
    return value.strip()


def _pick(value: Any, default: Any) -> Any:
    return default if value is None else value


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


@router.post(
    "/vector/add",
    response_model=AddSourceResponse,
    responses=_CLIENT_ERRORS,
    summary="Index a web page, sitemap, PDF or document",
)
async def add_source(
    body: AddSourceRequest,
    ingestion: IngestionDep,
    collections: CollectionsDep,
    settings: SettingsDep,
    config: ConfigDep,
) -> AddSourceResponse:
    """Ingest ``url`` into ``collection``.

    Sitemaps return ``started`` as soon as their pages are dispatched; the
    pages are indexed in the background.
    """
    url = _require(body.url, "url")
    collection_id = collections.sanitize(body.collection or settings.default_collection)
    defaults = config["ingestion"]

    chunk_size = _pick(body.chunk_size, defaults["chunk_size"])
    chunk_overlap = _pick(body.chunk_overlap, defaults["chunk_overlap"])
    result = await ingestion.ingest(
        IngestionRequest(
            locator=url,
            collection_id=collection_id,
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            filter=body.filter,
            limit=body.limit,
        )
    )

    if result.status is IngestionStatus.NOT_FOUND:
        raise NotFoundError(f"No data found for {url}")
    return AddSourceResponse(response=result.status.value, collection=collection_id)


# ---------------------------------------------------------------------------
# Question answering
# ---------------------------------------------------------------------------


@router.post(
    "/vector/question",
    response_model=AnswerResponse,
    responses=_CLIENT_ERRORS,
    summary="Answer a question from an indexed collection",
)
async def ask_question(
    body: QuestionRequest,
    qa: QADep,
    collections: CollectionsDep,
    settings: SettingsDep,
    config: ConfigDep,
) -> Any:
    """Answer ``question`` from ``collection``.

    With ``streaming`` set, the answer is sent as ``text/plain`` chunks and
    the sources travel in the ``X-Sources`` header as a JSON list.
    """
    question = _require(body.question, "question")
    collection_id = collections.sanitize(body.collection or settings.default_collection)
    defaults = config["qa"]

    query = QueryContext(
        question=question,
        collection_id=collection_id,
        k=_pick(body.k, defaults["k"]),
        parameters=ModelParameters(
            model=body.model or settings.openai_text_model,
            temperature=_pick(body.temperature, defaults["temperature"]),
            max_tokens=_pick(body.max_tokens, defaults["max_tokens"]),
            streaming=body.streaming,
        ),
    )

    if query.parameters.streaming:
        sources, deltas = await qa.stream_answer(query)
        return StreamingResponse(
            deltas,
            media_type="text/plain; charset=utf-8",
            headers={"X-Sources": json.dumps(sources), "Cache-Control": "no-cache"},
        )

    answer = await qa.answer(query)
    return AnswerResponse(response=answer.answer, sources=answer.sources)


@router.post(
    "/vector/live",
    response_model=AnswerResponse,
    responses=_CLIENT_ERRORS,
    summary="Answer a question from the current content of a web page",
)
async def ask_live(
    body: LiveQuestionRequest,
    qa: QADep,
    settings: SettingsDep,
    config: ConfigDep,
) -> AnswerResponse:
    url = _require(body.url, "url")
    question = _require(body.question, "question")
    defaults = config["live"]

    answer = await qa.answer_live(
        url,
        question,
        ModelParameters(
            model=body.model or settings.openai_text_model,
            temperature=_pick(body.temperature, defaults["temperature"]),
            max_tokens=_pick(body.max_tokens, defaults["max_tokens"]),
        ),
        k=defaults["k"],
    )
    return AnswerResponse(response=answer.answer, sources=answer.sources)


# ---------------------------------------------------------------------------
# Administration
# ---------------------------------------------------------------------------


@router.delete(
    "/vector/collection",
    response_model=MessageResponse,
    responses=_CLIENT_ERRORS,
    summary="Delete a collection",
)
async def delete_collection(body: DeleteCollectionRequest, collections: CollectionsDep) -> MessageResponse:
    collection_id = collections.sanitize(_require(body.collection, "collection"))
    await collections.delete(collection_id)
    return MessageResponse(message=f"{collection_id} has been deleted")


@router.post(
    "/cache/clear",
    response_model=MessageResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Empty the completion cache",
)
async def clear_cache(cache: CacheDep) -> MessageResponse:
    await cache.clear()
    _logger.info("cache_cleared")
    return MessageResponse(message="Cache cleared")
