"""Command-line access to the vectorqa index.

Usage::

    python -m vectorqa.cli add https://example.com/docs/page --collection docs
    python -m vectorqa.cli add https://example.com/sitemap.xml --filter /blog/ --limit 20
    python -m vectorqa.cli ask "How do I configure retries?" --collection docs
    python -m vectorqa.cli delete docs
    python -m vectorqa.cli collections

``add`` uses smaller chunks than the HTTP API (500/100 by default, see
``ingestion.url_chunk_size`` in ``config/config.yaml``).  A sitemap is
fanned out in the background as usual, but the command waits for every
page before it exits.

Each command builds only the clients it needs.  Heavy imports (openai,
chromadb, PyMuPDF) are deferred into the builder functions.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

import httpx

from vectorqa.config.loader import load_config
from vectorqa.config.settings import Settings
from vectorqa.utils.errors import VectorQAError
from vectorqa.utils.logging import configure_logging


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def _http_client(app_settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=app_settings.http_timeout_seconds,
        headers={"User-Agent": app_settings.user_agent},
    )


def _build_vector_store(app_settings: Settings):  # noqa: ANN202
    from vectorqa.providers.vector_store.chromadb_provider import ChromaDBProvider

    return ChromaDBProvider(
        persist_directory=app_settings.chromadb_persist_dir,
        host=app_settings.chromadb_host,
        port=app_settings.chromadb_port,
    )


def _build_ingestion_service(app_settings: Settings, http_client: httpx.AsyncClient, vector_store):  # noqa: ANN001, ANN202
    """Wire the ingestion pipeline the same way the web app does."""
    from vectorqa.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
    from vectorqa.providers.extraction.unstructured_provider import UnstructuredExtractor
    from vectorqa.services.ingestion.dispatcher import IngestionDispatcher
    from vectorqa.services.ingestion.ingestion_service import IngestionService
    from vectorqa.services.ingestion.source_processors import (
        DocumentProcessor,
        PDFProcessor,
        SitemapProcessor,
        WebPageProcessor,
    )

    extractor = UnstructuredExtractor(
        http_client=http_client,
        base_url=app_settings.unstructured_url,
        api_key=app_settings.unstructured_api_key,
    )
    return IngestionService(
        web_page=WebPageProcessor(http_client=http_client),
        sitemap=SitemapProcessor(
            http_client=http_client,
            fetch_concurrency=app_settings.sitemap_fetch_concurrency,
            fetch_delay=app_settings.sitemap_fetch_delay,
        ),
        pdf=PDFProcessor(http_client=http_client, download_dir=app_settings.docs_directory),
        document=DocumentProcessor(
            http_client=http_client,
            extractor=extractor,
            download_dir=app_settings.docs_directory,
        ),
        embedding_provider=OpenAIEmbeddingProvider(settings=app_settings),
        vector_store=vector_store,
        dispatcher=IngestionDispatcher(max_concurrency=app_settings.ingest_concurrency),
    )


def _build_qa_service(app_settings: Settings, http_client: httpx.AsyncClient, vector_store, collections):  # noqa: ANN001, ANN202
    from vectorqa.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
    from vectorqa.providers.llm.openai_provider import OpenAILLMProvider
    from vectorqa.services.ingestion.source_processors import WebPageProcessor
    from vectorqa.services.qa_service import QAService

    # A one-shot process gains nothing from an in-memory cache; Redis is shared.
    cache = None
    if app_settings.redis_url:
        from vectorqa.providers.cache.redis_cache import RedisCacheProvider

        cache = RedisCacheProvider(redis_url=app_settings.redis_url, default_ttl=app_settings.cache_ttl_seconds)

    return QAService(
        llm=OpenAILLMProvider(settings=app_settings),
        embedding_provider=OpenAIEmbeddingProvider(settings=app_settings),
        vector_store=vector_store,
        collections=collections,
        web_page=WebPageProcessor(http_client=http_client),
        cache=cache,
        cache_ttl=app_settings.cache_ttl_seconds,
    )


def _require_openai(app_settings: Settings) -> bool:
    if app_settings.openai_api_key:
        return True
    print("Error: OPENAI_API_KEY is not set; embeddings and answers need it.", file=sys.stderr)
    return False


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_add(args: argparse.Namespace, app_settings: Settings, app_config: dict) -> int:
    """Ingest one URL, waiting for any sitemap fan-out to finish."""
    from vectorqa.models.rag import IngestionRequest, IngestionStatus
    from vectorqa.services.ingestion.collection_manager import CollectionManager

    defaults = app_config["ingestion"]
    collection_id = CollectionManager.sanitize(args.collection or app_settings.default_collection)
    request = IngestionRequest(
        locator=args.url,
        collection_id=collection_id,
        chunk_size=args.chunk_size if args.chunk_size is not None else defaults["url_chunk_size"],
        chunk_overlap=args.chunk_overlap if args.chunk_overlap is not None else defaults["url_chunk_overlap"],
        filter=args.filter,
        limit=args.limit,
    )

    print(f"Ingesting {args.url} into '{collection_id}'")
    async with _http_client(app_settings) as http_client:
        service = _build_ingestion_service(app_settings, http_client, _build_vector_store(app_settings))
        result = await service.ingest(request)

        if result.status is IngestionStatus.NOT_FOUND:
            print(f"No data found for {args.url}")
            return 1

        if result.status is IngestionStatus.STARTED:
            print(f"  Sitemap pages dispatched: {result.dispatched}")
            await service.dispatcher.drain()
            stats = service.dispatcher.stats
            print(f"  Pages indexed:            {stats.succeeded}")
            print(f"  Pages failed:             {stats.failed}")
            return 0 if stats.failed == 0 else 2

    print(f"  Kind:           {result.source_kind.value}")
    print(f"  Chunks indexed: {result.chunks_indexed}")
    return 0


async def _handle_ask(args: argparse.Namespace, app_settings: Settings, app_config: dict) -> int:
    from vectorqa.models.rag import ModelParameters, QueryContext
    from vectorqa.services.ingestion.collection_manager import CollectionManager

    defaults = app_config["qa"]
    vector_store = _build_vector_store(app_settings)
    collections = CollectionManager(vector_store=vector_store)
    query = QueryContext(
        question=args.question,
        collection_id=collections.sanitize(args.collection or app_settings.default_collection),
        k=args.k if args.k is not None else defaults["k"],
        parameters=ModelParameters(
            model=args.model or app_settings.openai_text_model,
            temperature=defaults["temperature"],
            max_tokens=defaults["max_tokens"],
        ),
    )

    async with _http_client(app_settings) as http_client:
        qa = _build_qa_service(app_settings, http_client, vector_store, collections)
        answer = await qa.answer(query)

    print(answer.answer)
    if answer.sources:
        print("\nSources:")
        for source in answer.sources:
            print(f"  - {source}")
    return 0


async def _handle_delete(args: argparse.Namespace, app_settings: Settings) -> int:
    from vectorqa.services.ingestion.collection_manager import CollectionManager

    collections = CollectionManager(vector_store=_build_vector_store(app_settings))
    collection_id = collections.sanitize(args.collection)
    await collections.delete(collection_id)
    print(f"{collection_id} has been deleted")
    return 0


async def _handle_collections(app_settings: Settings) -> int:
    from vectorqa.services.ingestion.collection_manager import CollectionManager

    names = await CollectionManager(vector_store=_build_vector_store(app_settings)).list_all()
    if not names:
        print("No collections.")
        return 0
    for name in names:
        print(name)
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m vectorqa.cli",
        description="Index sources into vector collections and ask questions about them.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # -- add --
    add_parser = subparsers.add_parser("add", help="Ingest a web page, sitemap, PDF or document")
    add_parser.add_argument("url", help="Locator to ingest")
    add_parser.add_argument("--collection", help="Target collection (default: DEFAULT_COLLECTION)")
    add_parser.add_argument("--chunk-size", type=int, dest="chunk_size", help="Chunk size in characters (default: 500)")
    add_parser.add_argument(
        "--chunk-overlap", type=int, dest="chunk_overlap", help="Overlap between chunks (default: 100)"
    )
    add_parser.add_argument("--filter", help="Sitemap: only URLs containing this text")
    add_parser.add_argument("--limit", type=int, help="Sitemap: ingest at most this many URLs")

    # -- ask --
    ask_parser = subparsers.add_parser("ask", help="Answer a question from a collection")
    ask_parser.add_argument("question", help="Question text")
    ask_parser.add_argument("--collection", help="Collection to search")
    ask_parser.add_argument("--k", type=int, help="Chunks to retrieve (default: 3)")
    ask_parser.add_argument("--model", help="Completion model")

    # -- delete --
    delete_parser = subparsers.add_parser("delete", help="Delete a collection")
    delete_parser.add_argument("collection", help="Collection name")

    # -- collections --
    subparsers.add_parser("collections", help="List collections")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """Parse the subcommand, run its handler and exit with its status."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    configure_logging(log_level=app_settings.log_level)

    if args.command in ("add", "ask") and not _require_openai(app_settings):
        sys.exit(1)

    app_config = load_config(settings=app_settings)

    try:
        if args.command == "add":
            exit_code = asyncio.run(_handle_add(args, app_settings, app_config))
        elif args.command == "ask":
            exit_code = asyncio.run(_handle_ask(args, app_settings, app_config))
        elif args.command == "delete":
            exit_code = asyncio.run(_handle_delete(args, app_settings))
        elif args.command == "collections":
            exit_code = asyncio.run(_handle_collections(app_settings))
        else:
            parser.print_help()
            exit_code = 1
    except VectorQAError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
