"""Exception hierarchy for sqla-rest."""

from __future__ import annotations

__all__ = [
    "CompileError",
    "ConnectionUnavailable",
    "ExecutionError",
    "ExecutionFailed",
    "ParseError",
    "PermissionDenied",
    "RestError",
    "ValidationError",
]


class RestError(Exception):
    """Base exception for all sqla-rest errors."""


class ParseError(RestError):
    """The query string does not follow the filter grammar.

    A client fault: the request never reaches the database.

    Attributes:
        fragment: The offending part of the query string.

    Example::

        try:
            parse_query("or=(name.eq.John")
        except ParseError as exc:
            print(exc.fragment)  # "(name.eq.John"
    """

    def __init__(self, message: str, *, fragment: str = "") -> None:
        self.fragment = fragment
        if fragment:
            message = f"{message}: {fragment}"
        super().__init__(message)


class ValidationError(RestError):
    """The query is well-formed but asks for something that is not allowed.

    Raised for unknown columns, unknown operators, values of the wrong
    shape for an operator, negative ``st_dwithin`` distances and
    malformed GeoJSON.

    Attributes:
        column: The column the problem relates to, if any.
        detail: Human-readable description of the problem.
    """

    def __init__(self, detail: str, *, column: str | None = None) -> None:
        self.column = column
        self.detail = detail
        message = f"{detail} (column {column!r})" if column else detail
        super().__init__(message)


class CompileError(RestError):
    """Internal invariant violated while rendering SQL.

    Should not happen for input that parsed cleanly; treated as a server
    fault.
    """


class ExecutionError(RestError):
    """A database error raised while running a request's transaction.

    Attributes:
        original: The underlying driver or SQLAlchemy exception.
        sqlstate: The five-character SQLSTATE code, when the driver exposes one.
    """

    def __init__(
        self,
        message: str,
        *,
        original: BaseException | None = None,
        sqlstate: str | None = None,
    ) -> None:
        self.original = original
        self.sqlstate = sqlstate
        super().__init__(message)


class PermissionDenied(ExecutionError):  # noqa: N818
    """A row-level-security policy or privilege check rejected the statement."""


class ExecutionFailed(ExecutionError):  # noqa: N818
    """Any other database failure (constraint violation, bad input, driver error)."""


class ConnectionUnavailable(ExecutionError):  # noqa: N818
    """No connection could be acquired or no transaction could be started.

    Retryable: the pool timed out or the database refused the connection.
    """
