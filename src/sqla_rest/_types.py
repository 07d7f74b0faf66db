"""Shared protocols and type aliases for sqla-rest."""

from __future__ import annotations

from typing import Literal, Protocol, get_args, runtime_checkable

__all__ = [
    "AGGREGATE_FUNCTIONS",
    "AggregateFunction",
    "COUNT_TYPES",
    "CountType",
    "FILTER_OPERATORS",
    "FilterOperator",
    "IdentityLike",
    "NULLS_POSITIONS",
    "NullsPosition",
    "PARAMSTYLES",
    "ParamStyle",
    "VECTOR_OPERATORS",
    "VectorOperator",
]

# Operators accepted in filters (``column.op=value`` / ``column=op.value``).
FilterOperator = Literal[
    "eq",
    "neq",
    "gt",
    "gte",
    "lt",
    "lte",
    "like",
    "ilike",
    "in",
    "nin",
    "is",
    "isnot",
    "cs",
    "cd",
    "ov",
    "fts",
    "plfts",
    "wfts",
    "adj",
    "sl",
    "sr",
    "nxr",
    "nxl",
    "st_intersects",
    "st_contains",
    "st_within",
    "st_dwithin",
    "st_touches",
    "st_crosses",
    "st_overlaps",
]

FILTER_OPERATORS: frozenset[str] = frozenset(get_args(FilterOperator))

# pgvector distance operators; only valid in ``order``.
VectorOperator = Literal["vec_l2", "vec_cos", "vec_ip"]

VECTOR_OPERATORS: frozenset[str] = frozenset(get_args(VectorOperator))

AggregateFunction = Literal["count", "count_all", "sum", "avg", "min", "max"]

AGGREGATE_FUNCTIONS: frozenset[str] = frozenset(get_args(AggregateFunction))

CountType = Literal["none", "exact", "planned", "estimated"]

COUNT_TYPES: frozenset[str] = frozenset(get_args(CountType))

NullsPosition = Literal["", "first", "last"]

NULLS_POSITIONS: frozenset[str] = frozenset(get_args(NullsPosition))

# DBAPI placeholder styles the compiler can render.
ParamStyle = Literal["numeric_dollar", "qmark", "numeric", "named", "format", "pyformat"]

PARAMSTYLES: frozenset[str] = frozenset(get_args(ParamStyle))


@runtime_checkable
class IdentityLike(Protocol):
    """Structural type for the authenticated caller of a request.

    Any object with a ``user_id`` attribute satisfies this protocol.
    ``role`` and ``claims`` are read with ``getattr`` when present.

    Example::

        @dataclass
        class Caller:
            user_id: str | None
            role: str = "authenticated"

        assert isinstance(Caller(user_id="u-1"), IdentityLike)
    """

    @property
    def user_id(self) -> str | int | None: ...
