"""vectorqa FastAPI application entry point.

Wires providers, services and routes together.  Configuration comes from
``.env`` / environment variables (:class:`Settings`) and
``config/config.yaml`` (:func:`load_config`).  Every shared client (HTTP,
OpenAI, Chroma, cache) is built once at startup and injected.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from vectorqa.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
    request_validation_handler,
)
from vectorqa.api.routes import router as api_router
from vectorqa.api.schemas import HealthResponse
from vectorqa.config.loader import load_config
from vectorqa.config.settings import Settings
from vectorqa.interfaces.cache_provider import ICacheProvider
from vectorqa.providers.cache.memory_cache import MemoryCacheProvider
from vectorqa.providers.cache.redis_cache import RedisCacheProvider
from vectorqa.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from vectorqa.providers.extraction.unstructured_provider import UnstructuredExtractor
from vectorqa.providers.llm.openai_provider import OpenAILLMProvider
from vectorqa.providers.vector_store.chromadb_provider import ChromaDBProvider
from vectorqa.services.ingestion.collection_manager import CollectionManager
from vectorqa.services.ingestion.dispatcher import IngestionDispatcher
from vectorqa.services.ingestion.ingestion_service import IngestionService
from vectorqa.services.ingestion.source_processors import (
    DocumentProcessor,
    PDFProcessor,
    SitemapProcessor,
    WebPageProcessor,
)
from vectorqa.services.qa_service import QAService
from vectorqa.utils.logging import configure_logging, get_logger

APP_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_cache(app_settings: Settings) -> ICacheProvider:
    """Redis when ``REDIS_URL`` is set, otherwise an in-process TTL cache."""
    if app_settings.redis_url:
        return RedisCacheProvider(
            redis_url=app_settings.redis_url,
            default_ttl=app_settings.cache_ttl_seconds,
        )
    return MemoryCacheProvider(
        max_size=app_settings.cache_max_entries,
        ttl=app_settings.cache_ttl_seconds,
    )


# ---------------------------------------------------------------------------
# Full DI assembly for the FastAPI application
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings, app_config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    app_config = app_config or config

    # -- Shared resources --
    http_client = httpx.AsyncClient(
        timeout=app_settings.http_timeout_seconds,
        headers={"User-Agent": app_settings.user_agent},
    )

    # -- External services --
    llm = OpenAILLMProvider(settings=app_settings)
    embedding_provider = OpenAIEmbeddingProvider(settings=app_settings)
    vector_store = ChromaDBProvider(
        persist_directory=app_settings.chromadb_persist_dir,
        host=app_settings.chromadb_host,
        port=app_settings.chromadb_port,
    )
    cache = _build_cache(app_settings)
    extractor = UnstructuredExtractor(
        http_client=http_client,
        base_url=app_settings.unstructured_url,
        api_key=app_settings.unstructured_api_key,
    )

    # -- Fetch/parse strategies --
    web_page = WebPageProcessor(http_client=http_client)
    sitemap = SitemapProcessor(
        http_client=http_client,
        fetch_concurrency=app_settings.sitemap_fetch_concurrency,
        fetch_delay=app_settings.sitemap_fetch_delay,
    )
    pdf = PDFProcessor(http_client=http_client, download_dir=app_settings.docs_directory)
    document = DocumentProcessor(
        http_client=http_client,
        extractor=extractor,
        download_dir=app_settings.docs_directory,
    )

    # -- Services --
    collection_manager = CollectionManager(vector_store=vector_store)
    dispatcher = IngestionDispatcher(max_concurrency=app_settings.ingest_concurrency)
    ingestion_service = IngestionService(
        web_page=web_page,
        sitemap=sitemap,
        pdf=pdf,
        document=document,
        embedding_provider=embedding_provider,
        vector_store=vector_store,
        dispatcher=dispatcher,
    )
    live = app_config["live"]
    qa_service = QAService(
        llm=llm,
        embedding_provider=embedding_provider,
        vector_store=vector_store,
        collections=collection_manager,
        web_page=web_page,
        cache=cache,
        cache_ttl=app_settings.cache_ttl_seconds,
        live_chunk_size=live["chunk_size"],
        live_chunk_overlap=live["chunk_overlap"],
    )

    return {
        "settings": app_settings,
        "config": app_config,
        "http_client": http_client,
        "llm": llm,
        "embedding_provider": embedding_provider,
        "vector_store": vector_store,
        "cache": cache,
        "collection_manager": collection_manager,
        "dispatcher": dispatcher,
        "ingestion_service": ingestion_service,
        "qa_service": qa_service,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = _build_all(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    _logger.info(
        "app_startup",
        version=APP_VERSION,
        environment=settings.app_env,
        vector_store=components["vector_store"].get_provider_name(),
        cache=type(components["cache"]).__name__,
        llm_available=components["llm"].is_available(),
    )

    yield

    # -- Shutdown: let background ingestion finish, then close clients --
    dispatcher: IngestionDispatcher = components["dispatcher"]
    await dispatcher.drain()

    cache = components["cache"]
    if isinstance(cache, RedisCacheProvider):
        await cache.close()

    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="vectorqa API",
        version=APP_VERSION,
        description=(
            "Index web pages, sitemaps, PDFs and office documents into vector "
            "collections, then answer questions grounded in what was indexed."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=settings.get_cors_origins())
    application.add_exception_handler(RequestValidationError, request_validation_handler)

    # -- API routes --
    application.include_router(api_router)

    @application.get("/api/health", response_model=HealthResponse, summary="Health check")
    async def health() -> HealthResponse:
        return HealthResponse(success=True, message="Server is healthy")

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "vectorqa.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
