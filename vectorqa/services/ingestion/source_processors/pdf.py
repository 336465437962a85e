"""PDF processor -- download, parse page by page with PyMuPDF, clean up.

The PDF is streamed to a private temporary directory and stays there only
while the caller's ``async with processor.load(url)`` block runs; it is
removed on every exit path.  Each page with extractable text becomes one
:class:`RawUnit`.

Loader metadata per page::

    {"source": "<local path>", "page": 3,
     "loc": {"pageNumber": 3},
     "pdf": {"totalPages": 12, "info": {...document info...}}}

Sanitization rewrites ``source`` to the bare file name and drops ``pdf``
and ``loc``; the local path means nothing once the file is gone.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path, PurePath
from typing import Any, AsyncIterator

import fitz  # PyMuPDF
import httpx
import structlog

from vectorqa.models.rag import RawUnit, SourceKind
from vectorqa.services.ingestion.source_processors.base import SourceProcessor
from vectorqa.utils.downloads import downloaded_file, url_filename
from vectorqa.utils.errors import ParseError, ValidationError

logger = structlog.get_logger(logger_name=__name__)


class PDFProcessor(SourceProcessor):
    """Downloads a PDF and yields one unit per page."""

    kind = SourceKind.PDF
    internal_fields = frozenset({"pdf", "loc"})

    def __init__(self, http_client: httpx.AsyncClient, download_dir: str | Path = "docs") -> None:
        self._http = http_client
        self._download_dir = Path(download_dir)

    @asynccontextmanager
    async def load(self, locator: str) -> AsyncIterator[list[RawUnit]]:
        filename = url_filename(locator)
        if filename is None:
            raise ValidationError("The provided URL is not a PDF file.")

        async with downloaded_file(self._http, locator, filename, self._download_dir) as path:
            units = await asyncio.to_thread(self._extract_pages, path)
            logger.info("pdf_parsed", url=locator, pages=len(units))
            yield units

    def _rewrite_metadata(self, metadata: dict[str, Any]) -> dict[str, Any]:
        if "source" in metadata:
            metadata["source"] = PurePath(str(metadata["source"])).name
        return metadata

    @staticmethod
    def _extract_pages(path: Path) -> list[RawUnit]:
        try:
            doc = fitz.open(path)
        except Exception as exc:
            raise ParseError(message=f"Could not open PDF {path.name}: {exc}") from exc

        units: list[RawUnit] = []
        try:
            total = len(doc)
            info = {k: v for k, v in (doc.metadata or {}).items() if v}
            for index in range(total):
                text = doc[index].get_text("text").strip()
                if not text:
                    continue
                page_number = index + 1
                units.append(
                    RawUnit(
                        text=text,
                        metadata={
                            "source": str(path),
                            "page": page_number,
                            "loc": {"pageNumber": page_number},
                            "pdf": {"totalPages": total, "info": info},
                        },
                    )
                )
        finally:
            doc.close()

        if not units:
            logger.warning("pdf_no_text_extracted", file=path.name)
        return units
