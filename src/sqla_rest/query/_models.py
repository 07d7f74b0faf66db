"""Immutable request-scoped query description."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from sqla_rest._types import (
    AGGREGATE_FUNCTIONS,
    COUNT_TYPES,
    FILTER_OPERATORS,
    NULLS_POSITIONS,
    VECTOR_OPERATORS,
    AggregateFunction,
    CountType,
    FilterOperator,
    NullsPosition,
    VectorOperator,
)

__all__ = [
    "Aggregation",
    "CursorData",
    "Filter",
    "FilterValue",
    "OrderBy",
    "ParseOptions",
    "QueryParams",
    "ValueKind",
]

ValueKind = Literal["string", "number", "bool", "null", "string_array"]


@dataclass(frozen=True, slots=True)
class FilterValue:
    """A filter's right-hand side, typed once at parse time.

    Use the constructors rather than building instances directly.

    Example::

        FilterValue.string("John")
        FilterValue.null()
        FilterValue.string_array(["queued", "running"])
    """

    kind: ValueKind
    value: str | int | float | bool | tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        expected = {
            "string": str,
            "bool": bool,
            "string_array": tuple,
        }
        if self.kind == "null":
            if self.value is not None:
                raise ValueError("null FilterValue cannot carry a value")
        elif self.kind == "number":
            if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
                raise ValueError(f"number FilterValue needs int or float, got {self.value!r}")
        elif self.kind in expected:
            if not isinstance(self.value, expected[self.kind]):
                raise ValueError(f"{self.kind} FilterValue got {self.value!r}")
        else:
            raise ValueError(f"unknown FilterValue kind {self.kind!r}")

    @classmethod
    def string(cls, value: str) -> FilterValue:
        return cls("string", value)

    @classmethod
    def number(cls, value: int | float) -> FilterValue:
        return cls("number", value)

    @classmethod
    def boolean(cls, value: bool) -> FilterValue:
        return cls("bool", value)

    @classmethod
    def null(cls) -> FilterValue:
        return cls("null", None)

    @classmethod
    def string_array(cls, items: list[str] | tuple[str, ...]) -> FilterValue:
        return cls("string_array", tuple(items))

    @property
    def bind_value(self) -> Any:
        """The value as handed to the driver (arrays become lists)."""
        if self.kind == "string_array":
            return list(self.value)  # type: ignore[arg-type]
        return self.value


@dataclass(frozen=True, slots=True)
class Filter:
    """One predicate on a column or JSONB path.

    Attributes:
        column: Column name, optionally a JSONB path (``data->a->>b``).
        operator: Comparison operator.
        value: Typed right-hand side.
        is_or: Whether the filter belongs to an OR group.
        or_group_id: Group id (``> 0`` exactly when ``is_or``). Filters
            sharing an id are OR-ed together.
        negated: Render as ``NOT (<predicate>)``.
    """

    column: str
    operator: FilterOperator
    value: FilterValue
    is_or: bool = False
    or_group_id: int = 0
    negated: bool = False

    def __post_init__(self) -> None:
        if self.operator not in FILTER_OPERATORS:
            raise ValueError(f"unknown filter operator {self.operator!r}")
        if self.is_or != (self.or_group_id > 0):
            raise ValueError(
                "or_group_id must be positive exactly when is_or is set, "
                f"got is_or={self.is_or!r} or_group_id={self.or_group_id!r}"
            )


@dataclass(frozen=True, slots=True)
class OrderBy:
    """One ORDER BY term.

    ``vector_op`` / ``vector`` are set together for pgvector distance
    ordering; ``vector`` holds the normalized ``[n1,n2,...]`` text.
    """

    column: str
    desc: bool = False
    nulls: NullsPosition = ""
    vector_op: VectorOperator | None = None
    vector: str | None = None

    def __post_init__(self) -> None:
        if self.nulls not in NULLS_POSITIONS:
            raise ValueError(f"nulls must be one of {sorted(NULLS_POSITIONS)!r}")
        if (self.vector_op is None) != (self.vector is None):
            raise ValueError("vector_op and vector must be given together")
        if self.vector_op is not None and self.vector_op not in VECTOR_OPERATORS:
            raise ValueError(f"unknown vector operator {self.vector_op!r}")


@dataclass(frozen=True, slots=True)
class Aggregation:
    """An aggregate in the select list.

    ``column`` is empty exactly when ``function == "count_all"``.
    """

    function: AggregateFunction
    column: str = ""
    alias: str = ""

    def __post_init__(self) -> None:
        if self.function not in AGGREGATE_FUNCTIONS:
            raise ValueError(f"unknown aggregate function {self.function!r}")
        if (self.function == "count_all") != (self.column == ""):
            raise ValueError("column must be empty exactly for count_all")

    @property
    def default_alias(self) -> str:
        if self.function == "count_all":
            return "count"
        return f"{self.function}_{self.column}"


@dataclass(frozen=True, slots=True)
class CursorData:
    """Decoded keyset-pagination cursor: the last row's value in ``column``."""

    column: str
    value: Any
    desc: bool = False


@dataclass(frozen=True, slots=True)
class ParseOptions:
    """Per-call parser switches.

    Attributes:
        bypass_max_total_results: Skip the ``max_total_results`` cap for
            administrative callers. Page-size cap and default still apply.
    """

    bypass_max_total_results: bool = False


@dataclass(frozen=True, slots=True)
class QueryParams:
    """Everything one list request asks for.

    Built once per request and consumed by the compiler. When
    ``aggregations`` or ``group_by`` are present the select list is
    aggregation-driven and plain ``select`` columns are grouping keys.

    Attributes:
        select: Plain select entries (``col``, ``alias:col``, JSONB paths).
        filters: Filters in query-string order.
        order: ORDER BY terms in request order.
        limit: Effective limit after pagination policy (``None`` = unlimited).
        offset: Effective offset, ``None`` when none was requested.
        aggregations: Aggregates extracted from ``select``.
        group_by: Explicit GROUP BY columns.
        count: Requested row-count strategy.
        cursor: Keyset cursor, if any.
        requested_limit: Limit as sent by the client.
        requested_offset: Offset as sent by the client.
    """

    select: tuple[str, ...] = ()
    filters: tuple[Filter, ...] = ()
    order: tuple[OrderBy, ...] = ()
    limit: int | None = None
    offset: int | None = None
    aggregations: tuple[Aggregation, ...] = ()
    group_by: tuple[str, ...] = ()
    count: CountType = "none"
    cursor: CursorData | None = None
    requested_limit: int | None = None
    requested_offset: int | None = None

    def __post_init__(self) -> None:
        if self.count not in COUNT_TYPES:
            raise ValueError(f"count must be one of {sorted(COUNT_TYPES)!r}")
        if self.limit is not None and self.limit < 0:
            raise ValueError("limit cannot be negative")
        if self.offset is not None and self.offset < 0:
            raise ValueError("offset cannot be negative")

    @property
    def is_aggregate(self) -> bool:
        return bool(self.aggregations or self.group_by)

    @property
    def or_group_ids(self) -> tuple[int, ...]:
        """Distinct OR group ids in first-appearance order."""
        seen: dict[int, None] = {}
        for f in self.filters:
            if f.is_or:
                seen.setdefault(f.or_group_id, None)
        return tuple(seen)
