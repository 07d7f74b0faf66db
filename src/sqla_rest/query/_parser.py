"""Query-string to :class:`QueryParams`."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any, Union
from urllib.parse import parse_qsl

from sqla_rest._audit import log_pagination_capped
from sqla_rest._sanitize import is_valid_identifier
from sqla_rest._types import COUNT_TYPES
from sqla_rest.config._config import RestConfig, get_global_config
from sqla_rest.exceptions import ParseError, ValidationError
from sqla_rest.pagination._policy import normalize_pagination
from sqla_rest.query._cursor import decode_cursor
from sqla_rest.query._filters import GroupCounter, parse_filter_param, parse_logical_group
from sqla_rest.query._models import Filter, ParseOptions, QueryParams
from sqla_rest.query._order import parse_order
from sqla_rest.query._select import parse_select

__all__ = ["QueryInput", "QueryParser", "parse_query"]

logger = logging.getLogger("sqla_rest.query")

# A raw query string, (key, value) pairs, or a mapping of key to value(s).
QueryInput = Union[str, Iterable[tuple[str, str]], Mapping[str, Any]]

_SINGLE_VALUED = frozenset(
    {"select", "order", "limit", "offset", "group_by", "count", "cursor", "cursor_column"}
)
_LOGICAL = frozenset({"or", "and"})
_INT_RE = re.compile(r"-?[0-9]+")


def _iter_pairs(query: QueryInput) -> Iterable[tuple[str, str]]:
    if isinstance(query, str):
        return parse_qsl(query.lstrip("?"), keep_blank_values=True)
    if isinstance(query, Mapping):
        pairs: list[tuple[str, str]] = []
        for key, value in query.items():
            if isinstance(value, str):
                pairs.append((key, value))
            else:
                pairs.extend((key, item) for item in value)
        return pairs
    return query


def _parse_int(name: str, value: str) -> int:
    value = value.strip()
    if not _INT_RE.fullmatch(value):
        raise ParseError(f"invalid {name} parameter", fragment=value)
    return int(value)


class QueryParser:
    """Builds :class:`QueryParams` from a request's query parameters.

    The parser holds only configuration; every call allocates its own
    OR group counter, so one instance can serve concurrent requests.

    Args:
        config: Configuration to use. ``None`` reads the global config at
            parse time.

    Example::

        parser = QueryParser(RestConfig(max_page_size=100))
        params = parser.parse("select=id,name&status=in.(queued,running)&limit=500")
        params.limit  # 100
    """

    def __init__(self, config: RestConfig | None = None) -> None:
        self._config = config

    @property
    def config(self) -> RestConfig:
        return self._config if self._config is not None else get_global_config()

    def parse(self, query: QueryInput, options: ParseOptions | None = None) -> QueryParams:
        """Parse *query* into an immutable :class:`QueryParams`.

        Args:
            query: A raw query string, a sequence of ``(key, value)``
                pairs, or a mapping of key to value(s). Repeated keys
                are preserved.
            options: Per-call switches.

        Raises:
            ParseError: For malformed grammar.
            ValidationError: For invalid columns, operators or values.
        """
        options = options or ParseOptions()
        counter = GroupCounter()
        reserved: dict[str, str] = {}
        filters: list[Filter] = []

        for key, value in _iter_pairs(query):
            if key in _SINGLE_VALUED:
                if key in reserved:
                    logger.debug("Ignoring repeated %r parameter", key)
                    continue
                reserved[key] = value
            elif key in _LOGICAL:
                filters.extend(parse_logical_group(value, is_or=key == "or", counter=counter))
            else:
                parsed = parse_filter_param(key, value)
                if parsed is not None:
                    filters.append(parsed)

        select: tuple[str, ...] = ()
        aggregations = ()
        if "select" in reserved:
            select, aggregations = parse_select(reserved["select"])

        order = parse_order(reserved["order"]) if "order" in reserved else ()

        group_by: list[str] = []
        for column in reserved.get("group_by", "").split(","):
            column = column.strip()
            if not column:
                continue
            if not is_valid_identifier(column):
                raise ValidationError("invalid group_by column", column=column)
            group_by.append(column)

        count = reserved.get("count", "none") or "none"
        if count not in COUNT_TYPES:
            raise ParseError(
                "count must be one of exact, planned, estimated, none", fragment=count
            )

        cursor = None
        if reserved.get("cursor"):
            cursor = decode_cursor(
                reserved["cursor"], column_override=reserved.get("cursor_column") or None
            )

        requested_limit = _parse_int("limit", reserved["limit"]) if "limit" in reserved else None
        requested_offset = (
            _parse_int("offset", reserved["offset"]) if "offset" in reserved else None
        )
        limit, offset = normalize_pagination(
            requested_limit,
            requested_offset,
            self.config.pagination_policy,
            bypass_total_cap=options.bypass_max_total_results,
        )
        log_pagination_capped(
            requested_limit=requested_limit,
            requested_offset=requested_offset,
            limit=limit,
            offset=offset,
        )

        return QueryParams(
            select=select,
            filters=tuple(filters),
            order=order,
            limit=limit,
            offset=None if requested_offset is None else offset,
            aggregations=aggregations,
            group_by=tuple(group_by),
            count=count,  # type: ignore[arg-type]
            cursor=cursor,
            requested_limit=requested_limit,
            requested_offset=requested_offset,
        )


def parse_query(
    query: QueryInput,
    *,
    config: RestConfig | None = None,
    options: ParseOptions | None = None,
) -> QueryParams:
    """Parse *query* with a one-off :class:`QueryParser`.

    Example::

        params = parse_query("name.eq=John")
        params.filters[0].column  # "name"
    """
    return QueryParser(config).parse(query, options)
