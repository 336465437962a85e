"""Sitemap processor -- expands a sitemap into the locators it lists.

Handles both sitemap flavours:

* ``<urlset>`` -- the ``<loc>`` of every ``<url>`` is returned.
* ``<sitemapindex>`` -- each child sitemap is fetched and expanded in
  turn.  Children are fetched in batches of ``fetch_concurrency`` with
  ``fetch_delay`` seconds between batches so one origin is never hit with
  a burst of requests.

The processor does not ingest anything itself; the ingestion service
classifies each returned locator and hands it to the fan-out dispatcher.
"""

from __future__ import annotations

import asyncio

import httpx
import structlog
from bs4 import BeautifulSoup

from vectorqa.models.rag import SourceKind
from vectorqa.utils.concurrency import paced_batches
from vectorqa.utils.errors import FetchError, ParseError

logger = structlog.get_logger(logger_name=__name__)


class SitemapProcessor:
    """Fetches sitemaps and returns filtered, truncated locator lists.

    Parameters
    ----------
    http_client:
        Shared httpx client.
    fetch_concurrency:
        Child sitemaps fetched per batch.
    fetch_delay:
        Seconds to wait between batches.
    max_depth:
        How many levels of nested sitemap indexes to follow.
    """

    kind = SourceKind.SITEMAP

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        fetch_concurrency: int = 5,
        fetch_delay: float = 4.0,
        max_depth: int = 3,
    ) -> None:
        self._http = http_client
        self._fetch_concurrency = max(1, fetch_concurrency)
        self._fetch_delay = fetch_delay
        self._max_depth = max_depth

    async def list_locators(
        self,
        url: str,
        substring: str | None = None,
        limit: int | None = None,
    ) -> list[str]:
        """Return the locators listed by the sitemap at *url*.

        Locators containing *substring* are kept (all when ``None`` or
        empty), in document order, and the list is cut to *limit* entries.
        Duplicates are dropped.
        """
        locators = list(dict.fromkeys(await self._collect(url, depth=0)))
        total = len(locators)
        if substring:
            locators = [loc for loc in locators if substring in loc]
        if limit is not None:
            locators = locators[:limit]

        logger.info(
            "sitemap_expanded",
            url=url,
            listed=total,
            selected=len(locators),
            filter=substring,
            limit=limit,
        )
        return locators

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _collect(self, url: str, depth: int) -> list[str]:
        soup = await self._fetch_xml(url)

        if soup.find("urlset") is not None:
            return self._locs(soup, "url")

        if soup.find("sitemapindex") is None:
            raise ParseError(message=f"{url} is not a sitemap (no <urlset> or <sitemapindex>)")

        children = self._locs(soup, "sitemap")
        if depth >= self._max_depth:
            logger.warning("sitemap_index_too_deep", url=url, depth=depth, skipped=len(children))
            return []

        collected: list[str] = []
        async for batch in paced_batches(children, self._fetch_concurrency, self._fetch_delay):
            outcomes = await asyncio.gather(
                *(self._collect(child, depth + 1) for child in batch),
                return_exceptions=True,
            )
            for child, outcome in zip(batch, outcomes):
                if isinstance(outcome, Exception):
                    logger.warning("sitemap_child_failed", parent=url, child=child, error=str(outcome))
                elif isinstance(outcome, BaseException):
                    raise outcome
                else:
                    collected.extend(outcome)
        return collected

    async def _fetch_xml(self, url: str) -> BeautifulSoup:
        try:
            response = await self._http.get(url, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise FetchError(message=f"Failed to fetch sitemap {url}: {exc}") from exc
        return BeautifulSoup(response.content, "xml")

    @staticmethod
    def _locs(soup: BeautifulSoup, entry: str) -> list[str]:
        # Only the <loc> directly under each entry; image:loc and video:loc are nested deeper.
        locs: list[str] = []
        for tag in soup.find_all(entry):
            loc = tag.find("loc", recursive=False)
            if loc is not None:
                text = loc.get_text().strip().replace("\r\n", " ")
                if text:
                    locs.append(text)
        return locs
