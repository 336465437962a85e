"""Unstructured API document-extraction adapter.

Posts a local file to the Unstructured ``/general/v0/general`` endpoint
and converts each returned element into a :class:`RawUnit`.  An element
looks like::

    {"type": "NarrativeText", "element_id": "...", "text": "...",
     "metadata": {"filename": "report.docx", "filetype": "...",
                  "page_number": 1, "languages": ["eng"]}}

The element ``type`` is kept as ``category`` in the unit metadata,
alongside the element's own metadata.  The generic-document strategy
strips both before indexing.
"""

from __future__ import annotations

import asyncio
import mimetypes
from pathlib import Path

import httpx
import structlog

from vectorqa.interfaces.document_extractor import IDocumentExtractor
from vectorqa.models.rag import RawUnit
from vectorqa.utils.errors import FetchError, ParseError

logger = structlog.get_logger(logger_name=__name__)

_ENDPOINT = "/general/v0/general"


class UnstructuredExtractor(IDocumentExtractor):
    """Document extractor backed by an Unstructured API server."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        api_key: str = "",
    ) -> None:
        self._http = http_client
        self._url = base_url.rstrip("/") + _ENDPOINT
        self._api_key = api_key

    async def extract(self, file_path: Path) -> list[RawUnit]:
        content = await asyncio.to_thread(file_path.read_bytes)
        content_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"

        headers = {"accept": "application/json"}
        if self._api_key:
            headers["unstructured-api-key"] = self._api_key

        try:
            response = await self._http.post(
                self._url,
                files={"files": (file_path.name, content, content_type)},
                headers=headers,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise FetchError(
                message=f"Unstructured extraction failed for {file_path.name}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        try:
            elements = response.json()
        except ValueError as exc:
            raise ParseError(
                message=f"Unstructured returned invalid JSON for {file_path.name}",
                provider_name=self.get_provider_name(),
            ) from exc
        if not isinstance(elements, list):
            raise ParseError(
                message=f"Unexpected Unstructured response shape for {file_path.name}",
                provider_name=self.get_provider_name(),
            )

        units = [
            RawUnit(
                text=element["text"],
                metadata={
                    **(element.get("metadata") or {}),
                    "category": element.get("type", "Uncategorized"),
                },
            )
            for element in elements
            if isinstance(element, dict) and (element.get("text") or "").strip()
        ]
        logger.info(
            "unstructured_extracted",
            file=file_path.name,
            elements=len(elements),
            units=len(units),
        )
        return units

    def get_provider_name(self) -> str:
        return "unstructured"
