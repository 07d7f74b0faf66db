"""Compiler: renders :class:`QueryParams` into parameterized SQL."""

from sqla_rest.compiler._binder import CompiledQuery, SqlWriter
from sqla_rest.compiler._clauses import (
    build_aggregation,
    build_group_by_clause,
    build_order_clause,
    build_select_clause,
)
from sqla_rest.compiler._filters import compile_filter
from sqla_rest.compiler._query import (
    async_fetch_rows,
    compile_count_query,
    compile_query,
    fetch_rows,
    planned_count_from_plan,
)
from sqla_rest.compiler._where import build_where_clause

__all__ = [
    "CompiledQuery",
    "SqlWriter",
    "async_fetch_rows",
    "build_aggregation",
    "build_group_by_clause",
    "build_order_clause",
    "build_select_clause",
    "build_where_clause",
    "compile_count_query",
    "compile_filter",
    "compile_query",
    "fetch_rows",
    "planned_count_from_plan",
]
