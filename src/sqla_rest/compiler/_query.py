"""compile_query() and friends: full statements from :class:`QueryParams`."""

from __future__ import annotations

import json
from typing import Any

from sqlalchemy import Connection, Table
from sqlalchemy.ext.asyncio import AsyncConnection

from sqla_rest._audit import log_compiled_query
from sqla_rest._sanitize import quote_table
from sqla_rest._types import ParamStyle
from sqla_rest.compiler._binder import CompiledQuery, SqlWriter
from sqla_rest.compiler._clauses import build_order_clause, build_select_clause, implicit_group_by
from sqla_rest.compiler._where import build_where_clause
from sqla_rest.config._config import RestConfig, get_global_config
from sqla_rest.exceptions import CompileError
from sqla_rest.query._models import QueryParams
from sqla_rest.schema._validate import validate_query_params

__all__ = [
    "async_fetch_rows",
    "compile_count_query",
    "compile_query",
    "fetch_rows",
    "planned_count_from_plan",
]


def _resolve_table(
    params: QueryParams, table: str | Table, schema: str | None
) -> tuple[str, str]:
    """Return ``(display_name, quoted_sql)``; validates columns for ``Table``."""
    if isinstance(table, Table):
        validate_query_params(params, table)
        schema = schema if schema is not None else table.schema
        name = table.name
    else:
        name = table
    display = f"{schema}.{name}" if schema else name
    return display, quote_table(name, schema)


def _where_with_cursor(params: QueryParams, writer: SqlWriter) -> str:
    where = build_where_clause(params.filters, writer)
    if params.cursor is None:
        return where
    op = "<" if params.cursor.desc else ">"
    cursor_sql = (
        f"{writer.identifier(params.cursor.column)} {op} {writer.bind(params.cursor.value)}"
    )
    return f"{where} AND {cursor_sql}" if where else cursor_sql


def compile_query(
    params: QueryParams,
    table: str | Table,
    *,
    schema: str | None = None,
    paramstyle: ParamStyle | None = None,
    config: RestConfig | None = None,
) -> CompiledQuery:
    """Render the full SELECT for *params* against *table*.

    ``SELECT ... FROM ... WHERE ... GROUP BY ... ORDER BY ... LIMIT $n
    OFFSET $m``; every value, including limit and offset, is a bound
    parameter. Passing a SQLAlchemy ``Table`` validates all referenced
    columns first.

    Args:
        params: Parsed query.
        table: Table name (``"schema.table"`` accepted) or ``Table``.
        schema: Schema override.
        paramstyle: Placeholder style; defaults to the config's.
        config: Configuration; defaults to the global config.

    Raises:
        ValidationError: For invalid identifiers or unknown columns.
        CompileError: For filters whose value cannot be rendered.

    Example::

        compiled = compile_query(parse_query("name.eq=John", config=cfg), "users")
        compiled.sql   # 'SELECT * FROM "users" WHERE "name" = $1 LIMIT $2'
        compiled.args  # ("John", 1000)
    """
    cfg = config if config is not None else get_global_config()
    writer = SqlWriter(paramstyle or cfg.paramstyle)
    display, table_sql = _resolve_table(params, table, schema)

    sql = f"SELECT {build_select_clause(params, writer)} FROM {table_sql}"
    where = _where_with_cursor(params, writer)
    if where:
        sql += f" WHERE {where}"
    sql += implicit_group_by(params, writer)
    if params.order:
        sql += f" ORDER BY {build_order_clause(params.order, writer)}"
    if params.limit is not None:
        sql += f" LIMIT {writer.bind(params.limit)}"
    if params.offset is not None:
        sql += f" OFFSET {writer.bind(params.offset)}"

    compiled = writer.finish(sql)
    if cfg.log_compiled_sql:
        log_compiled_query(table=display, sql=compiled.sql, arg_count=len(compiled.args))
    return compiled


def compile_count_query(
    params: QueryParams,
    table: str | Table,
    *,
    schema: str | None = None,
    paramstyle: ParamStyle | None = None,
    config: RestConfig | None = None,
) -> CompiledQuery | None:
    """Render the row-count statement for ``params.count``.

    ``exact`` counts the filtered rows with ``COUNT(*)``; ``planned`` and
    ``estimated`` ask the planner with ``EXPLAIN (FORMAT JSON)`` (read the
    result with :func:`planned_count_from_plan`). ``none`` returns None.
    Pagination and ordering never apply to counts.
    """
    if params.count == "none":
        return None
    cfg = config if config is not None else get_global_config()
    writer = SqlWriter(paramstyle or cfg.paramstyle)
    display, table_sql = _resolve_table(params, table, schema)

    where = build_where_clause(params.filters, writer)
    where_sql = f" WHERE {where}" if where else ""
    if params.count == "exact":
        sql = f'SELECT COUNT(*) AS "count" FROM {table_sql}{where_sql}'
    else:
        sql = f"EXPLAIN (FORMAT JSON) SELECT 1 FROM {table_sql}{where_sql}"

    compiled = writer.finish(sql)
    if cfg.log_compiled_sql:
        log_compiled_query(table=display, sql=compiled.sql, arg_count=len(compiled.args))
    return compiled


def planned_count_from_plan(plan: Any) -> int:
    """Extract the planner's row estimate from ``EXPLAIN (FORMAT JSON)`` output.

    Accepts the raw JSON text or the decoded document.

    Raises:
        CompileError: If the document has no top-level ``Plan Rows``.
    """
    if isinstance(plan, (str, bytes)):
        plan = json.loads(plan)
    try:
        return int(plan[0]["Plan"]["Plan Rows"])
    except (IndexError, KeyError, TypeError, ValueError):
        raise CompileError("EXPLAIN output has no Plan Rows") from None


def fetch_rows(
    connection: Connection,
    params: QueryParams,
    table: str | Table,
    *,
    schema: str | None = None,
    config: RestConfig | None = None,
) -> list[dict[str, Any]]:
    """Compile for *connection*'s paramstyle, execute, and return rows as dicts."""
    compiled = compile_query(
        params,
        table,
        schema=schema,
        paramstyle=connection.dialect.paramstyle,  # type: ignore[arg-type]
        config=config,
    )
    result = compiled.execute(connection)
    return [dict(row) for row in result.mappings()]


async def async_fetch_rows(
    connection: AsyncConnection,
    params: QueryParams,
    table: str | Table,
    *,
    schema: str | None = None,
    config: RestConfig | None = None,
) -> list[dict[str, Any]]:
    """Async counterpart of :func:`fetch_rows`."""
    compiled = compile_query(
        params,
        table,
        schema=schema,
        paramstyle=connection.dialect.paramstyle,  # type: ignore[arg-type]
        config=config,
    )
    result = await compiled.execute(connection)
    return [dict(row) for row in result.mappings()]
