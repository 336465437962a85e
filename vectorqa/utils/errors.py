"""Custom exception hierarchy for vectorqa.

All application exceptions inherit from :class:`VectorQAError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "chromadb", "unstructured") caused the
failure.

The hierarchy is organized by pipeline concern:

    VectorQAError  (base -- catch-all for any vectorqa error)
    +-- FetchError               (network/transport failure retrieving a source)
    |   +-- EmbeddingError       (embedding provider call failed)
    +-- ParseError               (content could not be decoded into text)
    +-- NotFoundError            (collection or source-derived content absent)
    +-- IndexUnavailableError    (vector index capability failure)
    +-- CacheError               (response cache backend failure)
    +-- SynthesisError          (retrieval or completion failure while answering)
    +-- ValidationError          (missing or invalid request fields)
    +-- LLMError                 (any LLM API call failure)
    +-- PipelineError            (invalid stage transition / unknown source kind)
    +-- ConfigurationError       (startup / missing config)

The API layer maps :class:`NotFoundError` and :class:`ValidationError` to
specific client responses; everything else collapses into one opaque
"Error processing the request" body while the cause is logged.
"""


class VectorQAError(Exception):
    """Base exception for all vectorqa errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Ingestion errors
# ---------------------------------------------------------------------------

class FetchError(VectorQAError):
    """Raised when a source cannot be retrieved (DNS, timeout, HTTP status)."""

    def __init__(
        self,
        message: str = "Failed to fetch source",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingError(FetchError):
    """Raised when the embedding provider fails to vectorise text."""

    def __init__(
        self,
        message: str = "Embedding request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ParseError(VectorQAError):
    """Raised when fetched content cannot be decoded into text."""

    def __init__(
        self,
        message: str = "Failed to parse source content",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Index / collection errors
# ---------------------------------------------------------------------------

class NotFoundError(VectorQAError):
    """Raised when a collection does not exist or a source yielded no content.

    This is the only failure class surfaced to API callers with its own
    message; it is a low-severity, expected outcome.
    """

    def __init__(
        self,
        message: str = "Not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class IndexUnavailableError(VectorQAError):
    """Raised when the vector index backend fails or is unreachable."""

    def __init__(
        self,
        message: str = "Vector index is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class CacheError(VectorQAError):
    """Raised when the response cache backend fails.

    Question answering treats this as a cache miss; only an explicit
    cache-clear request reports it to the caller.
    """

    def __init__(
        self,
        message: str = "Response cache is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Question answering errors
# ---------------------------------------------------------------------------

class SynthesisError(VectorQAError):
    """Raised when retrieval or completion fails while answering a question."""

    def __init__(
        self,
        message: str = "Failed to synthesize an answer",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(VectorQAError):
    """Raised when an LLM API call fails or returns an empty response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Request / orchestration / configuration errors
# ---------------------------------------------------------------------------

class ValidationError(VectorQAError):
    """Raised when a request is missing required fields or has invalid values."""

    def __init__(
        self,
        message: str = "Invalid request",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PipelineError(VectorQAError):
    """Raised when the ingestion state machine reaches an impossible state."""

    def __init__(
        self,
        message: str = "Pipeline orchestration failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(VectorQAError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
