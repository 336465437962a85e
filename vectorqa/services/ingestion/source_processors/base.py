"""Shared base for per-source-kind fetch/parse strategies.

A processor does two jobs:

* ``load(locator)`` -- an async context manager yielding the
  :class:`RawUnit` list for one locator.  Processors that download a file
  keep it on disk until the block exits, so the file outlives the whole
  split/sanitize/upsert sequence and is removed right after.
* ``sanitize_metadata(metadata)`` -- rewrite and strip the fields the
  processor's loader introduced, leaving scalar values only.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any, ClassVar, Mapping

import structlog

from vectorqa.models.rag import MetadataValue, RawUnit, SourceKind

logger = structlog.get_logger(logger_name=__name__)

_SCALARS = (str, int, float, bool)


class SourceProcessor(ABC):
    """Base class for fetch/parse strategies."""

    kind: ClassVar[SourceKind]
    # Loader-only metadata keys removed before indexing.
    internal_fields: ClassVar[frozenset[str]] = frozenset({"loc"})

    @abstractmethod
    def load(self, locator: str) -> AbstractAsyncContextManager[list[RawUnit]]:
        """Fetch and parse *locator*, yielding its units for the block's duration.

        Raises
        ------
        FetchError
            Transport failure or error status while retrieving the source.
        ParseError
            The content could not be decoded into text.
        """

    def sanitize_metadata(self, metadata: Mapping[str, Any]) -> dict[str, MetadataValue]:
        rewritten = self._rewrite_metadata(dict(metadata))
        cleaned: dict[str, MetadataValue] = {}
        for key, value in rewritten.items():
            if key in self.internal_fields:
                continue
            if isinstance(value, _SCALARS):
                cleaned[key] = value
            elif value is not None:
                logger.debug("metadata_field_dropped", field=key, kind=self.kind.value)
        return cleaned

    def _rewrite_metadata(self, metadata: dict[str, Any]) -> dict[str, Any]:
        """Hook for processor-specific field rewrites; identity by default."""
        return metadata
