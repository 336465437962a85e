"""Web page processor -- one HTTP GET, readable text out.

Main-content extraction uses trafilatura, which drops navigation, ads and
boilerplate.  Pages trafilatura cannot make sense of (very short pages,
unusual markup) fall back to BeautifulSoup with the page chrome removed
(``footer``, ``head``, ``style``, ``script``, ``link``).

There is no retry: a transient network failure surfaces as
:class:`FetchError` to whoever asked for the ingestion.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
import structlog
import trafilatura
from bs4 import BeautifulSoup

from vectorqa.models.rag import RawUnit, SourceKind
from vectorqa.services.ingestion.source_processors.base import SourceProcessor
from vectorqa.utils.errors import FetchError, ParseError

logger = structlog.get_logger(logger_name=__name__)

_STRIPPED_SELECTORS = ["footer", "head", "style", "script", "link"]

# Content types that are never HTML or text.
_BINARY_PREFIXES = ("image/", "audio/", "video/", "application/pdf", "application/zip")


class WebPageProcessor(SourceProcessor):
    """Fetches a single page and extracts its text."""

    kind = SourceKind.WEB_PAGE

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._http = http_client

    @asynccontextmanager
    async def load(self, locator: str) -> AsyncIterator[list[RawUnit]]:
        yield await self.fetch(locator)

    async def fetch(self, url: str) -> list[RawUnit]:
        """Fetch *url* and return zero or one :class:`RawUnit`."""
        try:
            response = await self._http.get(url, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise FetchError(message=f"Failed to fetch {url}: {exc}") from exc

        content_type = response.headers.get("content-type", "").lower()
        if content_type.startswith(_BINARY_PREFIXES):
            raise ParseError(message=f"{url} returned non-text content ({content_type})")

        html = response.text
        text, title = self._extract(html)
        if not text:
            logger.warning("web_page_empty", url=url)
            return []

        metadata: dict[str, str] = {"source": str(response.url)}
        if title:
            metadata["title"] = title

        logger.info("web_page_fetched", url=url, chars=len(text))
        return [RawUnit(text=text, metadata=metadata)]

    @staticmethod
    def _extract(html: str) -> tuple[str, str | None]:
        soup = BeautifulSoup(html, "html.parser")
        title_tag = soup.find("title")
        title = title_tag.get_text(strip=True) if title_tag else None

        text = trafilatura.extract(html, include_comments=False, include_tables=True)
        if text and text.strip():
            return text.strip(), title

        for tag in soup(_STRIPPED_SELECTORS):
            tag.decompose()
        lines = (line.strip() for line in soup.get_text(separator="\n").splitlines())
        return "\n".join(line for line in lines if line), title
