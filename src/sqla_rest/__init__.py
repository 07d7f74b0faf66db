"""sqla-rest: PostgREST-style query compiler and RLS transactions for SQLAlchemy 2.0.

Turns REST query strings into parameterized PostgreSQL and runs them in
transactions scoped to the caller's identity, so row-level-security
policies decide what each request can see.

Example::

    from sqla_rest import parse_query, compile_query, rls_transaction

    params = parse_query("select=id,title&status=eq.published&order=created_at.desc")
    with rls_transaction(engine, current_user) as tx:
        rows = tx.fetch_all(params, "posts")
"""

from importlib.metadata import PackageNotFoundError, version

from sqla_rest._responses import error_payload
from sqla_rest._types import IdentityLike
from sqla_rest.compiler._binder import CompiledQuery
from sqla_rest.compiler._query import compile_count_query, compile_query, fetch_rows
from sqla_rest.config._config import (
    RestConfig,
    configure,
    create_async_rest_engine,
    create_rest_engine,
)
from sqla_rest.exceptions import (
    CompileError,
    ConnectionUnavailable,
    ExecutionError,
    ExecutionFailed,
    ParseError,
    PermissionDenied,
    RestError,
    ValidationError,
)
from sqla_rest.explain import explain_query
from sqla_rest.pagination._policy import PaginationPolicy, normalize_pagination
from sqla_rest.query._models import ParseOptions, QueryParams
from sqla_rest.query._parser import QueryParser, parse_query
from sqla_rest.session._async import async_rls_transaction, async_run_in_rls_transaction
from sqla_rest.session._context import SecurityContext
from sqla_rest.session._transaction import rls_transaction, run_in_rls_transaction

try:
    __version__ = version("sqla-rest")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = [
    "__version__",
    "CompileError",
    "CompiledQuery",
    "ConnectionUnavailable",
    "ExecutionError",
    "ExecutionFailed",
    "IdentityLike",
    "PaginationPolicy",
    "ParseError",
    "ParseOptions",
    "PermissionDenied",
    "QueryParams",
    "QueryParser",
    "RestConfig",
    "RestError",
    "SecurityContext",
    "ValidationError",
    "async_rls_transaction",
    "async_run_in_rls_transaction",
    "compile_count_query",
    "compile_query",
    "configure",
    "create_async_rest_engine",
    "create_rest_engine",
    "error_payload",
    "explain_query",
    "fetch_rows",
    "normalize_pagination",
    "parse_query",
    "rls_transaction",
    "run_in_rls_transaction",
]
