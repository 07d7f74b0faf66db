"""Filter grammar: ``column.op=value``, ``column=op.value`` and logical groups.

Logical groups are flattened into a list of :class:`Filter` objects tagged
with OR group ids::

    and=(or(x.lt.10,x.gt.20),or(y.lt.1,y.gt.2))

yields four filters in two distinct OR groups, which the compiler renders
as ``(x < 10 OR x > 20) AND (y < 1 OR y > 2)``. Group ids come from a
counter owned by the calling parser, so concurrent parses never share
state.
"""

from __future__ import annotations

import logging

from sqla_rest._sanitize import parse_array_value, parse_column_path, parse_st_dwithin_value
from sqla_rest._types import FILTER_OPERATORS, VECTOR_OPERATORS
from sqla_rest.exceptions import ParseError, ValidationError
from sqla_rest.query._models import Filter, FilterValue

__all__ = [
    "GroupCounter",
    "coerce_value",
    "parse_filter_param",
    "parse_logical_group",
    "split_top_level",
]

logger = logging.getLogger("sqla_rest.query")


class GroupCounter:
    """Monotonic OR group id source, one per parse call."""

    __slots__ = ("value",)

    def __init__(self) -> None:
        self.value = 0

    def next(self) -> int:
        self.value += 1
        return self.value


def _split(expr: str, *, nest_brackets: bool) -> list[str] | None:
    """Comma split; None when ``{}``/``[]`` nesting does not balance."""
    items: list[str] = []
    current: list[str] = []
    parens = brackets = 0
    for ch in expr:
        if ch == "(":
            parens += 1
        elif ch == ")":
            parens -= 1
            if parens < 0:
                raise ParseError("unbalanced parentheses in filter expression", fragment=expr)
        elif nest_brackets and ch in "{[":
            brackets += 1
        elif nest_brackets and ch in "}]":
            brackets -= 1
            if brackets < 0:
                return None
        elif ch == "," and parens == 0 and brackets == 0:
            items.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    if parens != 0:
        raise ParseError("unbalanced parentheses in filter expression", fragment=expr)
    if brackets != 0:
        return None
    items.append("".join(current).strip())
    return items


def split_top_level(expr: str) -> list[str]:
    """Split *expr* on commas that are not nested in ``()``, ``{}`` or ``[]``.

    Parentheses must balance. Braces and brackets only shield commas when
    they balance too; otherwise they are ordinary characters, so a LIKE
    pattern such as ``name.like.*[*`` still splits. Items are
    whitespace-trimmed.

    Raises:
        ParseError: On unbalanced parentheses.

    Example::

        split_top_level("a.eq.1,or(b.eq.2,c.eq.3)")
        # ["a.eq.1", "or(b.eq.2,c.eq.3)"]
    """
    items = _split(expr, nest_brackets=True)
    if items is None:
        items = _split(expr, nest_brackets=False) or []
    return items


def coerce_value(operator: str, raw: str, *, column: str) -> FilterValue:
    """Type the raw value for *operator*.

    ``in``/``nin`` become string arrays, ``is``/``isnot`` accept only
    ``null``/``true``/``false``; every other value stays a string and
    numeric interpretation is left to the compiler.
    """
    if operator in ("in", "nin"):
        return FilterValue.string_array(parse_array_value(raw))
    if operator in ("is", "isnot"):
        if raw == "null":
            return FilterValue.null()
        if raw == "true":
            return FilterValue.boolean(True)
        if raw == "false":
            return FilterValue.boolean(False)
        raise ValidationError(
            f"{operator} accepts only null, true or false, got {raw!r}", column=column
        )
    if operator == "st_dwithin":
        # Validated eagerly so malformed geometry never reaches the compiler.
        parse_st_dwithin_value(raw)
    return FilterValue.string(raw)


def _split_operator(op_and_value: str, *, fragment: str) -> tuple[str, str, bool]:
    """Split ``op.value`` (or ``not.op.value``) into ``(op, value, negated)``."""
    negated = False
    op, sep, value = op_and_value.partition(".")
    if op == "not":
        if not sep:
            raise ParseError("not requires an operator and a value", fragment=fragment)
        negated = True
        op, sep, value = value.partition(".")
    if not op or not sep:
        raise ParseError("invalid filter format", fragment=fragment)
    return op, value, negated


def _build_filter(
    column: str,
    operator: str,
    raw: str,
    *,
    negated: bool = False,
    group_id: int = 0,
) -> Filter:
    column = column.strip()
    if not column:
        raise ParseError("filter is missing a column", fragment=f"{column}.{operator}.{raw}")
    parse_column_path(column)
    if operator in VECTOR_OPERATORS:
        raise ValidationError(f"{operator} is only supported in order", column=column)
    if operator not in FILTER_OPERATORS:
        raise ValidationError(f"unknown operator {operator!r}", column=column)
    return Filter(
        column=column,
        operator=operator,  # type: ignore[arg-type]
        value=coerce_value(operator, raw, column=column),
        is_or=group_id > 0,
        or_group_id=group_id,
        negated=negated,
    )


def _parse_fragment(fragment: str, *, group_id: int) -> Filter:
    """Parse ``column.op.value`` (``column.not.op.value``) inside a group."""
    if not fragment:
        raise ParseError("empty filter expression in logical group")
    column, sep, rest = fragment.partition(".")
    if not sep:
        raise ParseError("invalid filter format in logical group", fragment=fragment)
    op, value, negated = _split_operator(rest, fragment=fragment)
    return _build_filter(column, op, value, negated=negated, group_id=group_id)


def _unwrap(item: str, prefix: str) -> str | None:
    """Return the inside of ``prefix(...)`` or None when *item* is not one."""
    if not item.startswith(prefix + "("):
        return None
    if not item.endswith(")"):
        raise ParseError(f"malformed {prefix}() group", fragment=item)
    return item[len(prefix) + 1 : -1]


def _group_items(body: str, fragment: str) -> list[str]:
    items = split_top_level(body)
    if items == [""]:
        raise ParseError("empty logical group", fragment=fragment)
    return items


def _parse_or_items(body: str, *, group_id: int, fragment: str) -> list[Filter]:
    filters: list[Filter] = []
    for item in _group_items(body, fragment):
        inner_or = _unwrap(item, "or")
        if inner_or is not None:
            # a OR (b OR c) is a OR b OR c
            filters.extend(_parse_or_items(inner_or, group_id=group_id, fragment=item))
            continue
        if _unwrap(item, "and") is not None:
            raise ParseError("and() cannot be nested inside an or group", fragment=item)
        filters.append(_parse_fragment(item, group_id=group_id))
    return filters


def _parse_and_items(body: str, *, counter: GroupCounter, fragment: str) -> list[Filter]:
    filters: list[Filter] = []
    for item in _group_items(body, fragment):
        inner_or = _unwrap(item, "or")
        if inner_or is not None:
            filters.extend(_parse_or_items(inner_or, group_id=counter.next(), fragment=item))
            continue
        inner_and = _unwrap(item, "and")
        if inner_and is not None:
            filters.extend(_parse_and_items(inner_and, counter=counter, fragment=item))
            continue
        filters.append(_parse_fragment(item, group_id=0))
    return filters


def parse_logical_group(value: str, *, is_or: bool, counter: GroupCounter) -> list[Filter]:
    """Parse the value of an ``or=`` / ``and=`` parameter.

    One pair of outer parentheses is stripped. Each ``or(...)`` group gets
    the next id from *counter*; ``and(...)`` groups are flattened into the
    surrounding conjunction.

    Raises:
        ParseError: On unbalanced parentheses, empty groups or fragments,
            or an ``and()`` nested inside an OR group.
        ValidationError: On unknown operators or invalid columns.

    Example::

        counter = GroupCounter()
        parse_logical_group("(name.eq.John,name.eq.Jane)", is_or=True, counter=counter)
        # two filters, both with or_group_id == 1
    """
    body = value.strip()
    if body.startswith("(") and body.endswith(")"):
        body = body[1:-1]
    if is_or:
        return _parse_or_items(body, group_id=counter.next(), fragment=value)
    return _parse_and_items(body, counter=counter, fragment=value)


def parse_filter_param(key: str, value: str) -> Filter | None:
    """Parse a non-reserved query parameter as a column filter.

    ``column.op=value`` takes precedence over ``column=op.value``. A key
    without a dot whose value has no dot either is not a filter and
    yields None.

    Example::

        parse_filter_param("name.eq", "John")
        parse_filter_param("recorded_at", "gte.2025-01-01")
    """
    if "." in key:
        column, _, op_part = key.partition(".")
        negated = False
        if op_part.startswith("not."):
            negated = True
            op_part = op_part[len("not.") :]
        if not op_part:
            raise ParseError("invalid filter format", fragment=key)
        return _build_filter(column, op_part, value, negated=negated)

    if "." not in value:
        logger.debug("Ignoring non-filter query parameter %r", key)
        return None
    op, raw, negated = _split_operator(value, fragment=f"{key}={value}")
    return _build_filter(key, op, raw, negated=negated)
