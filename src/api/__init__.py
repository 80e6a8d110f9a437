"""Discovery API layer: routes, schemas, and middleware."""

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router
from src.api.schemas import (
    ErrorResponse,
    FilterConfigResponse,
    HealthResponse,
    ResourceQueryRequest,
    RevalidateRequest,
    RevalidateResponse,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "ErrorResponse",
    "FilterConfigResponse",
    "HealthResponse",
    "ResourceQueryRequest",
    "RevalidateRequest",
    "RevalidateResponse",
]
