"""API middleware -- CORS, request logging, and error mapping.

Starlette runs middleware last-added-first, so with the order used in
``main.create_app``::

    Client → CORS → RequestLogging → ErrorHandling → route

``RequestLoggingMiddleware`` therefore sees the status code chosen by
``ErrorHandlingMiddleware``.

Error mapping::

    ValidationError          → 400 {error: <message>, detail: "ValidationError"}
    NotFoundError            → 404 {error: <message>, detail: "NotFoundError"}
    anything else            → 500 {error: "Error processing the request"}

Request bodies FastAPI itself rejects (wrong types, out-of-range numbers)
are reported the same way as ``ValidationError``.
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from vectorqa.api.schemas import ErrorResponse
from vectorqa.utils.errors import NotFoundError, ValidationError, VectorQAError
from vectorqa.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

GENERIC_ERROR_MESSAGE = "Error processing the request"


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware; ``["*"]`` when no origins are given."""
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Sources"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


def error_response(exc: Exception) -> JSONResponse:
    """Build the JSON response for *exc* according to the mapping above."""
    if isinstance(exc, ValidationError):
        status_code, body = 400, ErrorResponse(error=exc.message, detail=type(exc).__name__)
    elif isinstance(exc, NotFoundError):
        status_code, body = 404, ErrorResponse(error=exc.message, detail=type(exc).__name__)
    else:
        status_code, body = 500, ErrorResponse(error=GENERIC_ERROR_MESSAGE)
    return JSONResponse(status_code=status_code, content=body.model_dump())


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Convert exceptions raised by routes into structured JSON errors.

    Client errors are logged at info level.  Everything else is logged with
    its traceback, and the client only sees the generic message.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except (ValidationError, NotFoundError) as exc:
            _logger.info(
                "client_error",
                error_type=type(exc).__name__,
                message=exc.message,
                path=str(request.url.path),
            )
            return error_response(exc)
        except VectorQAError as exc:
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
                cause=repr(exc.__cause__) if exc.__cause__ else None,
            )
            return error_response(exc)
        except Exception as exc:
            _logger.exception("unhandled_error", path=str(request.url.path))
            return error_response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as 400 instead of FastAPI's 422."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{field}: {first.get('msg', 'invalid value')}" if field else str(first.get("msg", "Invalid request"))
    _logger.info("request_validation_failed", path=str(request.url.path), errors=len(errors))
    return error_response(ValidationError(message))
