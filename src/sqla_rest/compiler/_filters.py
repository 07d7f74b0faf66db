"""Render one :class:`Filter` as a parameterized predicate."""

from __future__ import annotations

from sqla_rest._sanitize import (
    coerce_number,
    needs_numeric_cast,
    parse_array_value,
    parse_column_path,
    parse_st_dwithin_value,
)
from sqla_rest.compiler._binder import SqlWriter
from sqla_rest.exceptions import CompileError
from sqla_rest.query._models import Filter, FilterValue

__all__ = ["compile_filter"]

_BINARY_OPERATORS: dict[str, str] = {
    "eq": "=",
    "neq": "<>",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
    "like": "LIKE",
    "ilike": "ILIKE",
    "cs": "@>",
    "cd": "<@",
    "ov": "&&",
    "adj": "-|-",
    "sl": "<<",
    "sr": ">>",
    "nxr": "&<",
    "nxl": "&>",
}

# Comparisons that cast ->> text extraction to numeric for numeric values.
_ORDERING_OPERATORS = frozenset({"gt", "gte", "lt", "lte"})

# Array-valued operands are meaningful for containment and overlap only.
_ARRAY_OPERATORS = frozenset({"cs", "cd", "ov"})

_TEXT_SEARCH_FUNCTIONS: dict[str, str] = {
    "fts": "plainto_tsquery",
    "plfts": "phraseto_tsquery",
    "wfts": "websearch_to_tsquery",
}

_SPATIAL_FUNCTIONS: dict[str, str] = {
    "st_intersects": "ST_Intersects",
    "st_contains": "ST_Contains",
    "st_within": "ST_Within",
    "st_touches": "ST_Touches",
    "st_crosses": "ST_Crosses",
    "st_overlaps": "ST_Overlaps",
}


def _scalar(f: Filter) -> str | int | float | bool:
    if f.value.kind == "null":
        raise CompileError(f"{f.operator} on {f.column!r} needs a value; use is.null")
    if f.value.kind == "string_array":
        raise CompileError(f"{f.operator} on {f.column!r} does not accept a list")
    return f.value.value  # type: ignore[return-value]


def _string(f: Filter) -> str:
    if f.value.kind != "string":
        raise CompileError(f"{f.operator} on {f.column!r} needs a string value")
    return f.value.value  # type: ignore[return-value]


def _array(value: FilterValue) -> list[str]:
    if value.kind == "string_array":
        return value.bind_value
    if value.kind == "string":
        return parse_array_value(value.value)  # type: ignore[arg-type]
    raise CompileError(f"expected a list value, got {value.kind}")


def _predicate(f: Filter, writer: SqlWriter) -> str:
    path = parse_column_path(f.column)
    col = writer.column(path)
    op = f.operator

    if op in _BINARY_OPERATORS:
        if op in _ARRAY_OPERATORS and f.value.kind == "string_array":
            return f"{col} {_BINARY_OPERATORS[op]} {writer.bind(f.value.bind_value)}"
        value = _scalar(f)
        if op in _ORDERING_OPERATORS and needs_numeric_cast(path, value):
            number = coerce_number(value) if isinstance(value, str) else value
            return f"({col})::numeric {_BINARY_OPERATORS[op]} {writer.bind(number)}"
        return f"{col} {_BINARY_OPERATORS[op]} {writer.bind(value)}"

    if op == "in":
        return f"{col} = ANY({writer.bind(_array(f.value))})"
    if op == "nin":
        return f"{col} <> ALL({writer.bind(_array(f.value))})"

    if op in ("is", "isnot"):
        keyword = "IS" if op == "is" else "IS NOT"
        if f.value.kind == "null":
            return f"{col} {keyword} NULL"
        if f.value.kind != "bool":
            raise CompileError(f"{op} on {f.column!r} needs null, true or false")
        return f"{col} {keyword} {writer.bind(f.value.value)}"

    if op in _TEXT_SEARCH_FUNCTIONS:
        return f"{col} @@ {_TEXT_SEARCH_FUNCTIONS[op]}({writer.bind(_string(f))})"

    if op in _SPATIAL_FUNCTIONS:
        geometry = writer.bind(_string(f))
        return f"{_SPATIAL_FUNCTIONS[op]}({col}, ST_GeomFromGeoJSON({geometry}))"

    if op == "st_dwithin":
        distance, geometry = parse_st_dwithin_value(_string(f))
        geometry_ph = writer.bind(geometry)
        distance_ph = writer.bind(distance)
        return f"ST_DWithin({col}, ST_GeomFromGeoJSON({geometry_ph}), {distance_ph})"

    raise CompileError(f"no SQL form for operator {op!r}")


def compile_filter(f: Filter, writer: SqlWriter) -> str:
    """Render *f*, binding its value(s) through *writer*.

    Example::

        writer = SqlWriter()
        compile_filter(Filter("status", "in", FilterValue.string_array(["a", "b"])), writer)
        # '"status" = ANY($1)'; writer.args == [["a", "b"]]
    """
    sql = _predicate(f, writer)
    if f.negated:
        return f"NOT ({sql})"
    return sql
