"""Mapping of sqla-rest exceptions onto HTTP status codes and JSON bodies."""

from __future__ import annotations

import logging
from typing import Any

from sqla_rest.exceptions import (
    ConnectionUnavailable,
    ParseError,
    PermissionDenied,
    ValidationError,
)

__all__ = ["error_payload"]

logger = logging.getLogger("sqla_rest")


def error_payload(exc: BaseException) -> tuple[int, dict[str, Any]]:
    """Return ``(status, body)`` for an exception raised while serving a request.

    Client faults carry their detail; permission and server failures
    return fixed bodies so database text never reaches the client.

    Example::

        status, body = error_payload(ParseError("unbalanced parentheses"))
        # 400, {"error": "Invalid query", "code": "PARSE_ERROR", ...}
    """
    if isinstance(exc, ParseError):
        body: dict[str, Any] = {"error": "Invalid query", "code": "PARSE_ERROR", "detail": str(exc)}
        if exc.fragment:
            body["fragment"] = exc.fragment
        return 400, body

    if isinstance(exc, ValidationError):
        body = {"error": "Invalid query", "code": "VALIDATION_ERROR", "detail": exc.detail}
        if exc.column:
            body["column"] = exc.column
        return 400, body

    if isinstance(exc, PermissionDenied):
        return 403, {
            "error": "Insufficient permissions",
            "code": "RLS_POLICY_VIOLATION",
            "detail": "The operation was rejected by a row-level security policy.",
        }

    if isinstance(exc, ConnectionUnavailable):
        return 503, {
            "error": "Service unavailable",
            "code": "CONNECTION_UNAVAILABLE",
            "detail": "No database connection is available; retry the request.",
        }

    logger.error("Request failed: %s: %s", type(exc).__name__, exc)
    return 500, {
        "error": "Internal server error",
        "code": "INTERNAL_ERROR",
        "detail": "The request could not be completed.",
    }
