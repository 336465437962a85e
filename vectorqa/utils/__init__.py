"""Utility modules for vectorqa.

- **errors** -- exception hierarchy rooted at VectorQAError.
- **concurrency** -- paced batching for crawlers.
- **downloads** -- scoped temporary downloads for file-based sources.
- **logging** -- structlog setup: console output in development, JSON in
  production.
"""

from vectorqa.utils.concurrency import paced_batches
from vectorqa.utils.downloads import downloaded_file, url_filename
from vectorqa.utils.errors import (
    CacheError,
    ConfigurationError,
    EmbeddingError,
    FetchError,
    IndexUnavailableError,
    LLMError,
    NotFoundError,
    ParseError,
    PipelineError,
    SynthesisError,
    ValidationError,
    VectorQAError,
)
from vectorqa.utils.logging import configure_logging, get_logger

__all__ = [
    "CacheError",
    "ConfigurationError",
    "EmbeddingError",
    "FetchError",
    "IndexUnavailableError",
    "LLMError",
    "NotFoundError",
    "ParseError",
    "PipelineError",
    "SynthesisError",
    "ValidationError",
    "VectorQAError",
    "configure_logging",
    "downloaded_file",
    "get_logger",
    "paced_batches",
    "url_filename",
]
