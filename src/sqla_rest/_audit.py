"""Logging for compiled queries, security contexts and transaction outcomes."""

from __future__ import annotations

import logging

__all__ = [
    "log_compensation_failure",
    "log_compiled_query",
    "log_execution_failure",
    "log_pagination_capped",
    "log_rollback_failure",
    "log_security_context",
    "log_transaction_outcome",
]

logger = logging.getLogger("sqla_rest")
rls_logger = logging.getLogger("sqla_rest.rls")


def log_compiled_query(*, table: str, sql: str, arg_count: int) -> None:
    """Log compiled SQL text at DEBUG.

    Argument values are never logged; they are attacker-controlled and
    may carry personal data.
    """
    logger.debug("Compiled query for %s (%d args): %s", table, arg_count, sql)


def log_pagination_capped(
    *,
    requested_limit: int | None,
    requested_offset: int | None,
    limit: int | None,
    offset: int,
) -> None:
    """Log when the pagination policy changed what the client asked for."""
    if requested_limit == limit and (requested_offset or 0) == offset:
        return
    logger.debug(
        "Pagination normalized: limit %r -> %r, offset %r -> %d",
        requested_limit,
        limit,
        requested_offset,
        offset,
    )


def log_security_context(*, user_id: object, app_role: str, db_role: str) -> None:
    """Log the identity bound to a transaction.

    Example::

        log_security_context(user_id="u-1", app_role="editor", db_role="authenticated")
    """
    rls_logger.debug(
        "Security context set: user=%r app_role=%r db_role=%s",
        user_id,
        app_role,
        db_role,
    )


def log_transaction_outcome(
    *, outcome: str, db_role: str, error: BaseException | None = None
) -> None:
    if error is None:
        rls_logger.debug("Transaction %s (role=%s)", outcome, db_role)
    else:
        rls_logger.debug(
            "Transaction %s (role=%s) after %s", outcome, db_role, type(error).__name__
        )


def log_compensation_failure(*, action: object, error: BaseException) -> None:
    """Log a compensating action that failed after a rollback.

    Compensation failures never replace the request's primary error.
    """
    rls_logger.warning(
        "Compensating action %r failed: %s: %s",
        getattr(action, "__qualname__", action),
        type(error).__name__,
        error,
    )


def log_execution_failure(*, error: BaseException, permission_denied: bool) -> None:
    """Log a classified database error.

    Permission denials are expected traffic and go out at WARNING; every
    other database failure is logged at ERROR with the driver's message,
    since that message is withheld from the client.
    """
    if permission_denied:
        rls_logger.warning("Row-level security rejected statement: %s", error)
    else:
        logger.error("Database execution failed: %s: %s", type(error).__name__, error)


def log_rollback_failure(*, db_role: str, error: BaseException) -> None:
    """Log a rollback that raised; the request's own error is still the one reported."""
    rls_logger.warning(
        "Rollback failed (role=%s): %s: %s", db_role, type(error).__name__, error
    )
