"""Document-extraction service adapters."""

from vectorqa.providers.extraction.unstructured_provider import UnstructuredExtractor

__all__ = ["UnstructuredExtractor"]
