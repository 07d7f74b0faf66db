"""Query-string grammar and the immutable query model."""

from __future__ import annotations

from sqla_rest.query._cursor import decode_cursor, encode_cursor
from sqla_rest.query._filters import parse_filter_param, parse_logical_group
from sqla_rest.query._models import (
    Aggregation,
    CursorData,
    Filter,
    FilterValue,
    OrderBy,
    ParseOptions,
    QueryParams,
)
from sqla_rest.query._parser import QueryParser, parse_query
from sqla_rest.query._select import SelectItem, parse_select_item

__all__ = [
    "Aggregation",
    "CursorData",
    "Filter",
    "FilterValue",
    "OrderBy",
    "ParseOptions",
    "QueryParams",
    "QueryParser",
    "SelectItem",
    "decode_cursor",
    "encode_cursor",
    "parse_filter_param",
    "parse_logical_group",
    "parse_query",
    "parse_select_item",
]
