"""Classification of database errors raised inside RLS transactions."""

from __future__ import annotations

from sqlalchemy.exc import DBAPIError

from sqla_rest._audit import log_execution_failure
from sqla_rest.exceptions import ExecutionError, ExecutionFailed, PermissionDenied

__all__ = ["PERMISSION_SQLSTATES", "classify_database_error", "extract_sqlstate"]

# insufficient_privilege
PERMISSION_SQLSTATES = frozenset({"42501"})

_RLS_MESSAGE_MARKERS = (
    "row-level security",
    "row level security",
    "permission denied",
)


def extract_sqlstate(exc: BaseException) -> str | None:
    """Return the SQLSTATE carried by a driver error, if any.

    Reads ``sqlstate`` (psycopg 3, asyncpg) or ``pgcode`` (psycopg2) from
    the wrapped DBAPI exception and its cause.
    """
    candidates = [getattr(exc, "orig", None), exc]
    orig = candidates[0]
    if orig is not None and orig.__cause__ is not None:
        candidates.append(orig.__cause__)
    for candidate in candidates:
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if isinstance(code, str) and code:
            return code
    return None


def classify_database_error(exc: DBAPIError) -> ExecutionError:
    """Wrap *exc* as :class:`PermissionDenied` or :class:`ExecutionFailed`.

    Permission denials are recognized by SQLSTATE ``42501`` or, for
    drivers without SQLSTATE support, by the row-level-security message.
    The returned exception's message never includes the driver text.

    Example::

        try:
            conn.execute(stmt)
        except DBAPIError as exc:
            raise classify_database_error(exc) from exc
    """
    sqlstate = extract_sqlstate(exc)
    message = str(getattr(exc, "orig", None) or exc).lower()
    if sqlstate in PERMISSION_SQLSTATES or any(m in message for m in _RLS_MESSAGE_MARKERS):
        log_execution_failure(error=exc, permission_denied=True)
        return PermissionDenied(
            "permission denied by row-level security policy",
            original=exc,
            sqlstate=sqlstate,
        )
    log_execution_failure(error=exc, permission_denied=False)
    return ExecutionFailed("database execution failed", original=exc, sqlstate=sqlstate)
