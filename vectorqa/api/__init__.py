"""vectorqa API layer -- routes, schemas and middleware."""

from vectorqa.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
    request_validation_handler,
)
from vectorqa.api.routes import router
from vectorqa.api.schemas import (
    AddSourceRequest,
    AddSourceResponse,
    AnswerResponse,
    DeleteCollectionRequest,
    ErrorResponse,
    HealthResponse,
    LiveQuestionRequest,
    MessageResponse,
    QuestionRequest,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "request_validation_handler",
    "router",
    "AddSourceRequest",
    "AddSourceResponse",
    "AnswerResponse",
    "DeleteCollectionRequest",
    "ErrorResponse",
    "HealthResponse",
    "LiveQuestionRequest",
    "MessageResponse",
    "QuestionRequest",
]
