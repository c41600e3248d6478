"""Error taxonomy shared by the modeling services and the HTTP layer.

Services raise these exceptions without touching HTTP concerns; ``register_exception_handlers``
renders them as ``{"message": ..., "details": ...}`` payloads with the matching status code.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ModelingError(Exception):
    """Base class for errors raised by the modeling services."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(ModelingError):
    """Raised when input is malformed or misses required fields."""


class NotFoundError(ModelingError):
    """Raised when a referenced domain, area, system, model or object does not exist.

    Missing path-level ids are a 404; ids taken from a request body are a 400.
    """

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str, details: Optional[Any] = None, *, from_body: bool = False) -> None:
        super().__init__(message, details)
        if from_body:
            self.status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(ModelingError):
    """Raised when a write would duplicate a unique key."""

    status_code = status.HTTP_409_CONFLICT


class MissingProjectionTarget(ModelingError):
    """Raised when an attribute cascade cannot find the matching sibling-layer object."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class CycleOrMissingRoot(ModelingError):
    """Raised when a model's parent chain is cyclic or points at a missing model."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class FamilyIntegrityError(ModelingError):
    """Raised when more than one model in a family claims the same layer."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class CanonicalResolutionError(ModelingError):
    """Raised when a relationship endpoint cannot be resolved to a projection of the model."""


def _error_body(message: str, details: Optional[Any] = None) -> dict[str, Any]:
    return {"message": message, "details": details}


async def modeling_error_handler(request: Request, exc: ModelingError) -> JSONResponse:
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s on %s: %s details=%s", type(exc).__name__, request.url.path, exc.message, exc.details)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.details))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg"),
            "type": error.get("type"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("Request validation failed", details),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ModelingError, modeling_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
