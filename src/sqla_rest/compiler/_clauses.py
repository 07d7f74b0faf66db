"""SELECT, GROUP BY and ORDER BY rendering."""

from __future__ import annotations

from collections.abc import Sequence

from sqla_rest._sanitize import is_valid_identifier
from sqla_rest.compiler._binder import SqlWriter
from sqla_rest.exceptions import ValidationError
from sqla_rest.query._models import Aggregation, OrderBy, QueryParams
from sqla_rest.query._select import parse_select_item

__all__ = [
    "build_aggregation",
    "build_group_by_clause",
    "build_order_clause",
    "build_select_clause",
    "implicit_group_by",
]

_VECTOR_SQL = {"vec_l2": "<->", "vec_cos": "<=>", "vec_ip": "<#>"}


def build_aggregation(agg: Aggregation, writer: SqlWriter | None = None) -> str:
    """Render ``FUNC(col) AS "alias"``.

    The default alias is ``count`` for ``count(*)`` and ``<func>_<col>``
    otherwise; an alias that is not a plain identifier becomes ``result``.
    """
    writer = writer or SqlWriter()
    alias = agg.alias or agg.default_alias
    if not is_valid_identifier(alias):
        alias = "result"
    if agg.function == "count_all":
        expr = "COUNT(*)"
    else:
        expr = f"{agg.function.upper()}({writer.identifier(agg.column)})"
    return f"{expr} AS {writer.identifier(alias)}"


def build_select_clause(params: QueryParams, writer: SqlWriter | None = None) -> str:
    """Render the select list: plain columns first, then aggregates.

    Falls back to ``*`` when nothing is selected.

    Example::

        params = parse_query("select=category,count(*),avg(rating)")
        build_select_clause(params)
        # '"category", COUNT(*) AS "count", AVG("rating") AS "avg_rating"'
    """
    writer = writer or SqlWriter()
    parts: list[str] = []
    for raw in params.select:
        if raw.strip() == "*":
            if params.aggregations:
                raise ValidationError(
                    "* cannot be selected together with aggregates", column="*"
                )
            parts.append("*")
            continue
        item = parse_select_item(raw)
        expr = writer.column(item.path)
        name = item.output_name
        if name and is_valid_identifier(name):
            expr = f"{expr} AS {writer.identifier(name)}"
        parts.append(expr)
    parts.extend(build_aggregation(agg, writer) for agg in params.aggregations)
    if not parts:
        if params.group_by:
            return ", ".join(writer.identifier(col) for col in params.group_by)
        return "*"
    return ", ".join(parts)


def build_group_by_clause(group_by: Sequence[str], writer: SqlWriter | None = None) -> str:
    """Render ``' GROUP BY "a", "b"'``, or ``""`` for no columns."""
    if not group_by:
        return ""
    writer = writer or SqlWriter()
    return " GROUP BY " + ", ".join(writer.identifier(col) for col in group_by)


def implicit_group_by(params: QueryParams, writer: SqlWriter | None = None) -> str:
    """GROUP BY for aggregate queries that list plain columns but no ``group_by``.

    Explicit ``group_by`` always wins; without aggregates nothing is grouped.
    """
    if params.group_by:
        return build_group_by_clause(params.group_by, writer)
    if not params.aggregations:
        return ""
    writer = writer or SqlWriter()
    keys = [
        writer.column(parse_select_item(raw).path)
        for raw in params.select
        if raw.strip() != "*"
    ]
    if not keys:
        return ""
    return " GROUP BY " + ", ".join(keys)


def build_order_clause(order: Sequence[OrderBy], writer: SqlWriter) -> str:
    """Render ORDER BY terms (without the keyword), preserving order.

    Vector terms bind the normalized vector as a parameter and cast it::

        "embedding" <=> $1::vector ASC
    """
    parts: list[str] = []
    for term in order:
        expr = writer.column(term.column)
        if term.vector_op is not None:
            expr = f"{expr} {_VECTOR_SQL[term.vector_op]} {writer.bind(term.vector)}::vector"
        expr += " DESC" if term.desc else " ASC"
        if term.nulls:
            expr += f" NULLS {term.nulls.upper()}"
        parts.append(expr)
    return ", ".join(parts)
