"""
Exception handlers

Every failure leaves the API as a ResponseEnvelope with success=False.
Domain exceptions are resolved to an HTTP status by walking the exception
MRO, so subclasses inherit their parent's mapping.
"""

from __future__ import annotations

from typing import Any, NamedTuple

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from carefinder.api.response_middleware import build_meta
from carefinder.core.exceptions import (
    CareFinderException,
    DimensionMismatchError,
    EmbeddingGeneratorUnavailableError,
    InvalidDimensionError,
    InvalidQueryError,
    UnknownEntityError,
)
from carefinder.core.logging import get_logger, metrics_counter
from carefinder.schemas.response import ResponseEnvelope, ResponseError

logger = get_logger(__name__)


class ErrorMapping(NamedTuple):
    status_code: int
    hint: str | None = None


EXCEPTION_RESPONSE_MAP: dict[type[Exception], ErrorMapping] = {
    UnknownEntityError: ErrorMapping(
        status.HTTP_404_NOT_FOUND,
        "Load the collection containing this entity before sending events for it.",
    ),
    InvalidQueryError: ErrorMapping(status.HTTP_400_BAD_REQUEST),
    DimensionMismatchError: ErrorMapping(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Delta vectors may not be longer than the collection's base vectors.",
    ),
    InvalidDimensionError: ErrorMapping(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "All base embeddings in a collection must have the same length.",
    ),
    EmbeddingGeneratorUnavailableError: ErrorMapping(status.HTTP_503_SERVICE_UNAVAILABLE),
}
DEFAULT_ERROR_CODE = "INTERNAL.UNEXPECTED"
VALIDATION_ERROR_CODE = "ValidationError"


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CareFinderException, _carefinder_exception_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_error_handler)
    app.add_exception_handler(HTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)


def resolve_mapping(exc: Exception) -> ErrorMapping | None:
    for exc_type in type(exc).__mro__:
        if exc_type in EXCEPTION_RESPONSE_MAP:
            return EXCEPTION_RESPONSE_MAP[exc_type]
    return None


def _error_response(request: Request, status_code: int, error: ResponseError) -> JSONResponse:
    envelope = ResponseEnvelope[None](
        success=False,
        data=None,
        error=error,
        meta=build_meta(request),
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(envelope, by_alias=True))


def _validation_summary(errors: list[dict[str, Any]]) -> str:
    parts: list[str] = []
    for error in errors:
        location = ".".join(str(item) for item in error.get("loc", ()))
        message = error.get("msg", "Validation error")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Validation error"


async def _carefinder_exception_handler(request: Request, exc: CareFinderException) -> JSONResponse:
    mapping = resolve_mapping(exc)
    if mapping is None:
        return await _unhandled_exception_handler(request, exc)

    details = {"entity_id": exc.entity_id} if isinstance(exc, UnknownEntityError) else None
    metrics_counter("api_errors", code=exc.code)
    logger.warning(
        "request_failed",
        path=request.url.path,
        status_code=mapping.status_code,
        code=exc.code,
        error=exc.message,
    )
    return _error_response(
        request,
        mapping.status_code,
        ResponseError(code=exc.code, message=exc.message, details=details, hint=mapping.hint),
    )


async def _request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # Drop `input`/`ctx`: they may hold raw payloads or exception objects
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        ResponseError(
            code=VALIDATION_ERROR_CODE,
            message=_validation_summary(errors),
            details={"errors": errors},
        ),
    )


async def _http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict):
        message = str(detail.get("message", detail))
        details = detail
    else:
        message, details = str(detail), None
    return _error_response(
        request,
        exc.status_code,
        ResponseError(code=f"HTTP.{exc.status_code}", message=message, details=details),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ResponseError(code=DEFAULT_ERROR_CODE, message="Unexpected server error."),
    )
