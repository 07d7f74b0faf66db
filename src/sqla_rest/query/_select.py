"""``select`` parameter: plain columns, aliases, JSONB paths and aggregates."""

from __future__ import annotations

from dataclasses import dataclass

from sqla_rest._sanitize import ColumnPath, is_valid_identifier, parse_column_path
from sqla_rest.exceptions import ParseError, ValidationError
from sqla_rest.query._filters import split_top_level
from sqla_rest.query._models import Aggregation

__all__ = ["SelectItem", "parse_aggregation", "parse_select", "parse_select_item"]

_AGGREGATE_NAMES = frozenset({"count", "sum", "avg", "min", "max"})


@dataclass(frozen=True, slots=True)
class SelectItem:
    """A resolved plain select entry.

    ``alias`` is None when the column is exposed under its own name.
    JSONB paths without an explicit alias are exposed under their last key.
    """

    path: ColumnPath
    alias: str | None = None

    @property
    def output_name(self) -> str | None:
        if self.alias is not None:
            return self.alias
        if self.path.is_json:
            return self.path.output_name
        return None


def _split_alias(item: str) -> tuple[str | None, str]:
    alias, sep, rest = item.partition(":")
    if not sep:
        return None, item
    alias = alias.strip()
    if not is_valid_identifier(alias):
        raise ValidationError(f"invalid select alias {alias!r}")
    return alias, rest.strip()


def parse_select_item(item: str) -> SelectItem:
    """Resolve ``col``, ``alias:col`` or ``data->a->>b`` into a :class:`SelectItem`.

    Raises:
        ValidationError: For invalid aliases or column names.
    """
    alias, column = _split_alias(item.strip())
    return SelectItem(path=parse_column_path(column), alias=alias)


def parse_aggregation(item: str) -> Aggregation | None:
    """Parse ``func(col)`` / ``alias:func(col)``; None for plain columns.

    ``count(*)`` becomes ``count_all``. Any other ``name(...)`` is an
    embedded resource, which is not supported.

    Raises:
        ParseError: For malformed calls (``sum()``, trailing text).
        ValidationError: For embedded resources and invalid columns.

    Example::

        parse_aggregation("count(*)")     # Aggregation("count_all")
        parse_aggregation("total:sum(price)")
    """
    alias, expr = _split_alias(item.strip())
    paren = expr.find("(")
    if paren < 0:
        return None

    name = expr[:paren].strip().lower()
    if name not in _AGGREGATE_NAMES:
        raise ValidationError(f"embedded resources are not supported: {expr[:paren].strip()!r}")
    if not expr.endswith(")"):
        raise ParseError("malformed aggregate", fragment=item)

    column = expr[paren + 1 : -1].strip()
    if not column:
        raise ParseError("aggregate is missing a column", fragment=item)

    if column == "*":
        if name != "count":
            raise ParseError(f"{name}(*) is not supported", fragment=item)
        return Aggregation(function="count_all", alias=alias or "")

    if not is_valid_identifier(column):
        raise ValidationError("invalid aggregate column", column=column)
    return Aggregation(function=name, column=column, alias=alias or "")  # type: ignore[arg-type]


def parse_select(value: str) -> tuple[tuple[str, ...], tuple[Aggregation, ...]]:
    """Split a ``select`` value into plain entries and aggregations.

    Plain entries are validated but kept in their textual form; the
    compiler resolves them again with :func:`parse_select_item`.

    Example::

        parse_select("category,count(*),avg(rating)")
        # (("category",), (Aggregation("count_all"), Aggregation("avg", "rating")))
    """
    columns: list[str] = []
    aggregations: list[Aggregation] = []
    for item in split_top_level(value):
        if not item:
            continue
        aggregation = parse_aggregation(item)
        if aggregation is not None:
            aggregations.append(aggregation)
            continue
        if item != "*":
            parse_select_item(item)
        columns.append(item)
    if aggregations and "*" in columns:
        raise ValidationError("* cannot be selected together with aggregates", column="*")
    return tuple(columns), tuple(aggregations)
