"""Generic document processor -- download, then delegate to an extraction service.

Covers everything the classifier labels GENERIC_DOCUMENT (Word, Excel,
PowerPoint, e-mail, images, Markdown, e-books, ...).  The file is held in a
scoped temporary directory while the extraction service reads it and the
pipeline indexes the result, then removed.

The extraction service reports the original file name in ``filename`` and
the element type in ``category``.  Sanitization promotes ``filename`` to
``source`` and drops ``filename``, ``category`` and ``loc``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import httpx
import structlog

from vectorqa.interfaces.document_extractor import IDocumentExtractor
from vectorqa.models.rag import RawUnit, SourceKind
from vectorqa.services.ingestion.source_processors.base import SourceProcessor
from vectorqa.utils.downloads import downloaded_file, url_filename
from vectorqa.utils.errors import ValidationError

logger = structlog.get_logger(logger_name=__name__)


class DocumentProcessor(SourceProcessor):
    """Downloads an office/text/image document and extracts it remotely."""

    kind = SourceKind.GENERIC_DOCUMENT
    internal_fields = frozenset({"filename", "category", "loc"})

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        extractor: IDocumentExtractor,
        download_dir: str | Path = "docs",
    ) -> None:
        self._http = http_client
        self._extractor = extractor
        self._download_dir = Path(download_dir)

    @asynccontextmanager
    async def load(self, locator: str) -> AsyncIterator[list[RawUnit]]:
        filename = url_filename(locator)
        if filename is None:
            raise ValidationError("The provided URL is not a file URL.")

        async with downloaded_file(self._http, locator, filename, self._download_dir) as path:
            units = await self._extractor.extract(path)
            logger.info(
                "document_extracted",
                url=locator,
                extractor=self._extractor.get_provider_name(),
                units=len(units),
            )
            yield units

    def _rewrite_metadata(self, metadata: dict[str, Any]) -> dict[str, Any]:
        if metadata.get("filename"):
            metadata["source"] = metadata["filename"]
        return metadata
