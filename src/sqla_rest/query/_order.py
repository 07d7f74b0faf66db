"""``order`` parameter grammar.

Terms are comma-separated (commas inside ``[...]`` vectors do not split)::

    order=name.asc,created_at.desc.nullslast
    order=embedding.vec_cos.[0.1,0.2,0.3].asc
"""

from __future__ import annotations

from sqla_rest._sanitize import format_vector_value, parse_column_path
from sqla_rest._types import VECTOR_OPERATORS
from sqla_rest.exceptions import ParseError
from sqla_rest.query._models import OrderBy

__all__ = ["parse_order", "parse_order_term", "split_order_terms"]

_DIRECTIONS = {"asc": False, "desc": True}
_NULLS = {"nullsfirst": "first", "nullslast": "last"}


def split_order_terms(value: str) -> list[str]:
    terms: list[str] = []
    current: list[str] = []
    depth = 0
    for ch in value:
        if ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
        elif ch == "," and depth == 0:
            terms.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    if depth != 0:
        raise ParseError("unbalanced brackets in order", fragment=value)
    terms.append("".join(current).strip())
    return [term for term in terms if term]


def _parse_vector_term(term: str) -> OrderBy | None:
    for op in sorted(VECTOR_OPERATORS):
        marker = f".{op}."
        idx = term.find(marker)
        if idx <= 0:
            continue
        column = term[:idx]
        parse_column_path(column)
        remainder = term[idx + len(marker) :]
        if not remainder.startswith("["):
            raise ParseError("vector ordering needs a [v1,v2,...] value", fragment=term)
        end = remainder.rfind("]")
        if end < 0:
            raise ParseError("vector ordering needs a [v1,v2,...] value", fragment=term)
        vector = format_vector_value(remainder[: end + 1])
        tail = remainder[end + 1 :]
        if tail in ("", ".asc"):
            desc = False
        elif tail == ".desc":
            desc = True
        else:
            raise ParseError("invalid vector order direction", fragment=term)
        return OrderBy(
            column=column, desc=desc, vector_op=op, vector=vector  # type: ignore[arg-type]
        )
    return None


def parse_order_term(term: str) -> OrderBy:
    """Parse one term: ``col``, ``col.desc``, ``col.asc.nullsfirst`` or a vector term.

    Raises:
        ParseError: For unknown directions or nulls positions.
        ValidationError: For invalid column names.
    """
    vector_order = _parse_vector_term(term)
    if vector_order is not None:
        return vector_order

    parts = term.split(".")
    if len(parts) > 3:
        raise ParseError("invalid order format", fragment=term)
    column = parts[0].strip()
    parse_column_path(column)

    desc = False
    if len(parts) > 1:
        if parts[1] not in _DIRECTIONS:
            raise ParseError("order direction must be asc or desc", fragment=term)
        desc = _DIRECTIONS[parts[1]]

    nulls = ""
    if len(parts) > 2:
        if parts[2] not in _NULLS:
            raise ParseError("nulls position must be nullsfirst or nullslast", fragment=term)
        nulls = _NULLS[parts[2]]

    return OrderBy(column=column, desc=desc, nulls=nulls)  # type: ignore[arg-type]


def parse_order(value: str) -> tuple[OrderBy, ...]:
    """Parse a full ``order`` value, preserving term order."""
    return tuple(parse_order_term(term) for term in split_order_terms(value))
