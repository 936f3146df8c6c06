from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from userapi.models.schemas import ErrorResponse
from userapi.services.user_store import EmailConflict, UserNotFound, UserStoreError, ValidationFailed

logger = logging.getLogger(__name__)


class InternalError(Exception):
    """Unexpected failure inside a handler; surfaced as a generic 500."""

    def __init__(self, error: str) -> None:
        super().__init__(error)
        self.error = error


def _error_response(status_code: int, error: str, **fields) -> JSONResponse:
    body = ErrorResponse(error=error, **fields)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


@contextmanager
def internal_errors(error: str) -> Iterator[None]:
    """Let store errors through; log anything else and re-raise it as ``InternalError(error)``."""
    try:
        yield
    except UserStoreError:
        raise
    except Exception as exc:
        logger.exception("handler.failed", extra={"error_category": error})
        raise InternalError(error) from exc


async def _store_error_handler(_request: Request, exc: UserStoreError) -> JSONResponse:
    if isinstance(exc, ValidationFailed):
        return _error_response(400, "Validation failed", details=exc.errors)
    if isinstance(exc, UserNotFound):
        return _error_response(404, "User not found")
    if isinstance(exc, EmailConflict):
        return _error_response(409, "Email already exists")
    logger.error("store.unmapped_error", extra={"error_type": type(exc).__name__})
    return _error_response(500, "Internal Server Error")


async def _internal_error_handler(_request: Request, exc: InternalError) -> JSONResponse:
    return _error_response(500, exc.error, message="Internal Server Error")


async def _request_validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        return _error_response(400, "Malformed JSON payload")

    details = []
    for err in errors:
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        details.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return _error_response(400, "Validation failed", details=details)


async def _http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = _error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def _unhandled_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.error("api.unhandled_error", exc_info=exc)
    return _error_response(500, "Internal Server Error", timestamp=datetime.now(timezone.utc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(UserStoreError, _store_error_handler)
    app.add_exception_handler(InternalError, _internal_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
