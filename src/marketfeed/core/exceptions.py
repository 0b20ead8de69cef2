"""Exceptions raised across MarketFeed module boundaries.

Each exception class declares, as class attributes, the error code, HTTP
status and retry hint the API answers with; instances may override any of
them. An absent profile or an empty catalog is not an error and never shows
up here.
"""

from __future__ import annotations

from enum import Enum
from http import HTTPStatus
from typing import Any


class ErrorCode(str, Enum):
    """Machine-readable error codes, grouped by leading digit."""

    # 1xxx: unexpected
    INTERNAL_ERROR = "MF1000"
    UNKNOWN_ERROR = "MF1001"

    # 4xxx: bad request
    VALIDATION_ERROR = "MF4000"
    INVALID_INPUT = "MF4001"
    RESOURCE_NOT_FOUND = "MF4002"
    METHOD_NOT_ALLOWED = "MF4003"

    # 6xxx: storage
    DATABASE_ERROR = "MF6000"
    FEED_UNAVAILABLE = "MF6001"


class MarketFeedException(Exception):
    """Root of the MarketFeed exception hierarchy.

    Attributes:
        message: Internal message, logged.
        user_message: Message returned to API clients.
        error_code: Machine-readable error code.
        http_status: Status the API answers with.
        details: Structured debugging context.
        retryable: Whether repeating the same request may succeed.
    """

    message: str = "An unexpected error occurred"
    user_message: str | None = None
    error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR
    http_status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    retryable: bool = False

    def __init__(
        self,
        message: str | None = None,
        *,
        error_code: ErrorCode | None = None,
        http_status: HTTPStatus | None = None,
        details: dict[str, Any] | None = None,
        user_message: str | None = None,
        retryable: bool | None = None,
    ) -> None:
        cls = type(self)
        self.message = message or cls.message
        self.error_code = error_code or cls.error_code
        self.http_status = http_status or cls.http_status
        self.details: dict[str, Any] = dict(details or {})
        self.user_message = user_message or cls.user_message or self.message
        self.retryable = cls.retryable if retryable is None else retryable
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """The ``error`` member of the API error envelope."""
        return {
            "error": {
                "code": self.error_code.value,
                "message": self.user_message,
                "details": self.details or None,
                "retryable": self.retryable,
            }
        }

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, "
            f"error_code={self.error_code.value}, "
            f"http_status={self.http_status.value}, retryable={self.retryable})"
        )


class ValidationError(MarketFeedException):
    """A request parameter was rejected."""

    message = "Validation error"
    error_code = ErrorCode.VALIDATION_ERROR
    http_status = HTTPStatus.BAD_REQUEST

    def __init__(
        self,
        message: str | None = None,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        """Record the offending ``field`` and ``value`` in ``details``."""
        details = dict(kwargs.pop("details", None) or {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = value
        super().__init__(message, details=details, **kwargs)


class InvalidInputError(ValidationError):
    """A parameter is well-formed but outside what the service accepts."""

    message = "Invalid input"
    error_code = ErrorCode.INVALID_INPUT


class DatabaseError(MarketFeedException):
    message = "Database error"
    error_code = ErrorCode.DATABASE_ERROR


class FeedUnavailableError(DatabaseError):
    """A storage query failed, so no feed is returned at all.

    Never replaced by a partial or empty feed: clients must be able to tell
    "nothing to show" apart from "try again later".
    """

    message = "Feed temporarily unavailable"
    user_message = "The feed is temporarily unavailable. Please retry shortly."
    error_code = ErrorCode.FEED_UNAVAILABLE
    http_status = HTTPStatus.SERVICE_UNAVAILABLE
    retryable = True

    def __init__(
        self,
        message: str | None = None,
        *,
        operation: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Record the failed repository ``operation`` in ``details``."""
        details = dict(kwargs.pop("details", None) or {})
        if operation:
            details["operation"] = operation
        super().__init__(message, details=details, **kwargs)


# Checked in order, first match wins
_BUILTIN_STATUSES: tuple[tuple[type[Exception], HTTPStatus], ...] = (
    (ValueError, HTTPStatus.BAD_REQUEST),
    (TypeError, HTTPStatus.BAD_REQUEST),
    (TimeoutError, HTTPStatus.GATEWAY_TIMEOUT),
    (ConnectionError, HTTPStatus.SERVICE_UNAVAILABLE),
)


def get_http_status_for_exception(exc: Exception) -> HTTPStatus:
    """HTTP status for any exception reaching the API layer."""
    if isinstance(exc, MarketFeedException):
        return exc.http_status
    for exc_type, status in _BUILTIN_STATUSES:
        if isinstance(exc, exc_type):
            return status
    return HTTPStatus.INTERNAL_SERVER_ERROR
