"""Exception handlers rendering every API error in one envelope.

    {"success": false,
     "error": {"code": "MF6001", "message": "...", "details": {...}, "retryable": true},
     "correlation_id": "..."}

``details`` and ``correlation_id`` are omitted when empty. Retryable 503s
carry ``Retry-After`` so clients back off instead of hammering storage.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from marketfeed.core.exceptions import (
    ErrorCode,
    MarketFeedException,
    get_http_status_for_exception,
)
from marketfeed.core.logging import get_correlation_id, get_logger

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = get_logger(__name__)

RETRY_AFTER_SECONDS = 5

HTTP_STATUS_ERROR_CODES: dict[int, ErrorCode] = {
    HTTPStatus.BAD_REQUEST: ErrorCode.INVALID_INPUT,
    HTTPStatus.NOT_FOUND: ErrorCode.RESOURCE_NOT_FOUND,
    HTTPStatus.METHOD_NOT_ALLOWED: ErrorCode.METHOD_NOT_ALLOWED,
    HTTPStatus.INTERNAL_SERVER_ERROR: ErrorCode.INTERNAL_ERROR,
    HTTPStatus.SERVICE_UNAVAILABLE: ErrorCode.FEED_UNAVAILABLE,
}


def create_error_response(
    error_code: str,
    message: str,
    details: dict[str, Any] | None = None,
    correlation_id: str | None = None,
    retryable: bool = False,
) -> dict[str, Any]:
    """Build the error envelope body.

    Args:
        error_code: Machine-readable error code.
        message: Message safe to show to API clients.
        details: Extra context, omitted when empty.
        correlation_id: Request correlation ID, omitted when unset.
        retryable: Whether repeating the request may succeed.
    """
    error: dict[str, Any] = {"code": error_code, "message": message, "retryable": retryable}
    if details:
        error["details"] = details

    body: dict[str, Any] = {"success": False, "error": error}
    if correlation_id:
        body["correlation_id"] = correlation_id
    return body


def _json_error(
    status_code: int,
    error_code: ErrorCode,
    message: str,
    *,
    details: dict[str, Any] | None = None,
    retryable: bool = False,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=create_error_response(
            error_code=error_code.value,
            message=message,
            details=details,
            correlation_id=get_correlation_id(),
            retryable=retryable,
        ),
        headers=headers,
    )


async def marketfeed_exception_handler(
    request: Request,
    exc: MarketFeedException,
) -> JSONResponse:
    """Domain errors carry their own status, code and retry hint."""
    logger.warning(
        "marketfeed_exception",
        error_code=exc.error_code.value,
        error_message=exc.message,
        http_status=exc.http_status.value,
        path=request.url.path,
        details=exc.details,
    )

    headers = None
    if exc.retryable and exc.http_status == HTTPStatus.SERVICE_UNAVAILABLE:
        headers = {"Retry-After": str(RETRY_AFTER_SECONDS)}

    return _json_error(
        exc.http_status.value,
        exc.error_code,
        exc.user_message,
        details=exc.details,
        retryable=exc.retryable,
        headers=headers,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Malformed query parameters or headers are a 400, not FastAPI's 422."""
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning("validation_error", path=request.url.path, errors=errors[:5])

    return _json_error(
        HTTPStatus.BAD_REQUEST,
        ErrorCode.VALIDATION_ERROR,
        "Request validation failed",
        details={"validation_errors": errors},
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Routing errors (unknown path, wrong method) in the same envelope."""
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    return _json_error(
        exc.status_code,
        HTTP_STATUS_ERROR_CODES.get(exc.status_code, ErrorCode.UNKNOWN_ERROR),
        str(exc.detail) if exc.detail else HTTPStatus(exc.status_code).phrase,
        headers=exc.headers,
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Last resort: log the traceback, hide internals from the client."""
    logger.exception(
        "unhandled_exception",
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return _json_error(
        get_http_status_for_exception(exc).value,
        ErrorCode.INTERNAL_ERROR,
        "An unexpected error occurred. Please try again later.",
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the handlers on ``app``."""
    app.add_exception_handler(MarketFeedException, marketfeed_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
