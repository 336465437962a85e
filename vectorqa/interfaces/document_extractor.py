"""Abstract base class for external document-extraction services.

Office documents, e-mails, images and other formats the pipeline cannot
parse itself are handed to an extraction service that returns structured
text elements.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from vectorqa.models.rag import RawUnit


# Concrete implementation: UnstructuredExtractor (vectorqa/providers/extraction/)
class IDocumentExtractor(ABC):
    """Contract for services that turn a local file into text units."""

    @abstractmethod
    async def extract(self, file_path: Path) -> list[RawUnit]:
        """Extract text elements from the file at *file_path*.

        Each returned unit carries the service's element metadata,
        including a ``filename`` field and a ``category`` tag.

        Raises
        ------
        vectorqa.utils.errors.FetchError
            If the service is unreachable or answers with an error status.
        vectorqa.utils.errors.ParseError
            If the response body cannot be decoded.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable name for this extractor."""
