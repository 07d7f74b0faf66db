"""explain_query(): show the SQL a query string would produce."""

from __future__ import annotations

from sqlalchemy import Table

from sqla_rest.compiler._binder import SqlWriter
from sqla_rest.compiler._filters import compile_filter
from sqla_rest.compiler._query import compile_count_query, compile_query
from sqla_rest.compiler._where import build_where_clause
from sqla_rest.config._config import RestConfig, get_global_config
from sqla_rest.explain._models import FilterExplanation, QueryExplanation
from sqla_rest.query._models import ParseOptions, QueryParams
from sqla_rest.query._parser import QueryInput, QueryParser

__all__ = ["explain_query"]


def _pagination_capped(params: QueryParams) -> bool:
    if params.requested_limit is not None and params.requested_limit != params.limit:
        return True
    return params.requested_offset is not None and params.requested_offset != params.offset


def explain_query(
    query: QueryInput | QueryParams,
    table: str | Table,
    *,
    schema: str | None = None,
    config: RestConfig | None = None,
    options: ParseOptions | None = None,
) -> QueryExplanation:
    """Parse and compile *query* for *table* without executing anything.

    Useful for debugging filters and pagination: the result carries the
    per-filter predicates, the OR groups, the WHERE fragment and the full
    statement, and reports whether the pagination policy changed the
    request.

    Args:
        query: A query string, ``(key, value)`` pairs, a mapping, or an
            already parsed :class:`QueryParams`.
        table: Table name or SQLAlchemy ``Table`` (validates columns).
        schema: Schema override.
        config: Configuration; defaults to the global config.
        options: Per-call parse switches.

    Returns:
        A :class:`QueryExplanation`.

    Example::

        explanation = explain_query("or=(a.eq.1,b.eq.2)&limit=5", "items")
        print(explanation)
        explanation.to_dict()["where_sql"]  # '("a" = $1 OR "b" = $2)'
    """
    cfg = config if config is not None else get_global_config()
    if isinstance(query, QueryParams):
        params = query
    else:
        params = QueryParser(cfg).parse(query, options)

    compiled = compile_query(params, table, schema=schema, config=cfg)
    count = compile_count_query(params, table, schema=schema, config=cfg)

    filters: list[FilterExplanation] = []
    or_groups: dict[int, list[str]] = {}
    for f in params.filters:
        filters.append(
            FilterExplanation(
                column=f.column,
                operator=f.operator,
                negated=f.negated,
                or_group_id=f.or_group_id,
                sql=compile_filter(f, SqlWriter(cfg.paramstyle)),
            )
        )
        if f.is_or:
            or_groups.setdefault(f.or_group_id, []).append(f.column)

    name = table.name if isinstance(table, Table) else table
    if schema is None and isinstance(table, Table):
        schema = table.schema
    display = f"{schema}.{name}" if schema else name

    return QueryExplanation(
        table=display,
        filters=filters,
        or_groups=or_groups,
        where_sql=build_where_clause(params.filters, SqlWriter(cfg.paramstyle)),
        sql=compiled.sql,
        arg_count=len(compiled.args),
        limit=params.limit,
        offset=params.offset,
        requested_limit=params.requested_limit,
        requested_offset=params.requested_offset,
        pagination_capped=_pagination_capped(params),
        count_sql=count.sql if count is not None else None,
    )
