"""Check that every column a query references exists on the table."""

from __future__ import annotations

from sqlalchemy import Table

from sqla_rest._sanitize import parse_column_path
from sqla_rest.exceptions import ValidationError
from sqla_rest.query._models import QueryParams
from sqla_rest.query._select import parse_select_item

__all__ = ["referenced_columns", "validate_query_params"]


def referenced_columns(params: QueryParams) -> list[str]:
    """Base column names referenced by *params*, in first-use order.

    JSONB paths contribute their base column only.
    """
    names: list[str] = []
    names.extend(parse_select_item(raw).path.column for raw in params.select if raw != "*")
    names.extend(agg.column for agg in params.aggregations if agg.column)
    names.extend(parse_column_path(f.column).column for f in params.filters)
    names.extend(parse_column_path(o.column).column for o in params.order)
    names.extend(params.group_by)
    if params.cursor is not None:
        names.append(params.cursor.column)
    return list(dict.fromkeys(names))


def validate_query_params(params: QueryParams, table: Table) -> None:
    """Raise if *params* references a column *table* does not have.

    The error names only the requested column, never the table's real
    column list.

    Raises:
        ValidationError: For the first unknown column.

    Example::

        validate_query_params(parse_query("nope.eq=1"), users)
        # ValidationError: column does not exist (column 'nope')
    """
    known = set(table.c.keys())
    for name in referenced_columns(params):
        if name not in known:
            raise ValidationError("column does not exist", column=name)
