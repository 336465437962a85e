"""Scoped temporary downloads for file-based sources.

``downloaded_file`` streams a URL into a private temporary directory and
yields the local path.  The directory and everything in it are removed
when the ``async with`` block exits, whether it exits normally or by an
exception, so no downloaded file outlives one ingestion attempt.
"""

from __future__ import annotations

import asyncio
import shutil
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path, PurePosixPath
from typing import AsyncIterator
from urllib.parse import unquote, urlparse

import httpx
import structlog

from vectorqa.utils.errors import FetchError

logger = structlog.get_logger(logger_name=__name__)


def url_filename(url: str) -> str | None:
    """Return the last path segment of *url* if it has a file extension, else ``None``.

    >>> url_filename("https://example.com/files/Report%202024.pdf?dl=1")
    'Report 2024.pdf'
    >>> url_filename("https://example.com/files/") is None
    True
    """
    name = PurePosixPath(unquote(urlparse(url).path)).name
    if not name or not PurePosixPath(name).suffix:
        return None
    return name


@asynccontextmanager
async def downloaded_file(
    http_client: httpx.AsyncClient,
    url: str,
    filename: str,
    directory: str | Path,
) -> AsyncIterator[Path]:
    """Download *url* to ``<directory>/<tmp>/<filename>`` and yield the path.

    Raises
    ------
    FetchError
        If the request fails or the server answers with an error status.
    """
    base = Path(directory)
    await asyncio.to_thread(base.mkdir, parents=True, exist_ok=True)
    scratch = Path(await asyncio.to_thread(tempfile.mkdtemp, prefix="dl-", dir=base))
    target = scratch / filename

    try:
        try:
            async with http_client.stream("GET", url, follow_redirects=True) as response:
                response.raise_for_status()
                handle = await asyncio.to_thread(open, target, "wb")
                try:
                    async for block in response.aiter_bytes():
                        await asyncio.to_thread(handle.write, block)
                finally:
                    await asyncio.to_thread(handle.close)
        except httpx.HTTPError as exc:
            raise FetchError(message=f"Failed to download {url}: {exc}") from exc

        size = (await asyncio.to_thread(target.stat)).st_size
        logger.info("download_complete", url=url, path=str(target), bytes=size)
        yield target
    finally:
        await asyncio.to_thread(shutil.rmtree, scratch, ignore_errors=True)
        logger.debug("download_removed", path=str(target))
