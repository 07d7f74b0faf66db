"""Data models for dry-run explanation output."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

__all__ = ["FilterExplanation", "QueryExplanation"]


@dataclass(frozen=True, slots=True)
class FilterExplanation:
    """One parsed filter and the predicate it compiles to.

    Attributes:
        column: Column or JSONB path.
        operator: Grammar operator (``eq``, ``in``, ...).
        negated: True for ``not.<op>`` filters.
        or_group_id: OR group the filter belongs to; 0 when ungrouped.
        sql: The predicate as rendered on its own.
    """

    column: str
    operator: str
    negated: bool
    or_group_id: int
    sql: str

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {
            "column": self.column,
            "operator": self.operator,
            "negated": self.negated,
            "or_group_id": self.or_group_id,
            "sql": self.sql,
        }


@dataclass(frozen=True, slots=True)
class QueryExplanation:
    """What a query string would run, without running it.

    Attributes:
        table: Display name of the target table.
        filters: Per-filter explanations, in query order.
        or_groups: Group id to the columns in that group.
        where_sql: The WHERE fragment (empty when unfiltered).
        sql: The full compiled statement.
        arg_count: Number of bound arguments.
        limit: Effective LIMIT (None when unbounded).
        offset: Effective OFFSET (None when not requested).
        requested_limit: LIMIT as sent by the client.
        requested_offset: OFFSET as sent by the client.
        pagination_capped: True if the pagination policy changed the request.
        count_sql: Row-count statement, when ``count`` was requested.
    """

    table: str
    filters: list[FilterExplanation]
    or_groups: dict[int, list[str]]
    where_sql: str
    sql: str
    arg_count: int
    limit: int | None
    offset: int | None
    requested_limit: int | None
    requested_offset: int | None
    pagination_capped: bool
    count_sql: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {
            "table": self.table,
            "filters": [f.to_dict() for f in self.filters],
            "or_groups": {str(k): list(v) for k, v in self.or_groups.items()},
            "where_sql": self.where_sql,
            "sql": self.sql,
            "arg_count": self.arg_count,
            "limit": self.limit,
            "offset": self.offset,
            "requested_limit": self.requested_limit,
            "requested_offset": self.requested_offset,
            "pagination_capped": self.pagination_capped,
            "count_sql": self.count_sql,
        }

    def __str__(self) -> str:
        """Return a human-readable multi-line explanation."""
        lines: list[str] = []
        lines.append(f"Query Explanation for table={self.table!r}")
        if self.filters:
            lines.append(f"  Filters ({len(self.filters)}):")
            for f in self.filters:
                group = f" [or group {f.or_group_id}]" if f.or_group_id else ""
                lines.append(f"    - {f.column} {f.operator}{group}: {f.sql}")
        else:
            lines.append("  Filters: none")
        lines.append(f"  WHERE: {self.where_sql or '(none)'}")
        lines.append(f"  Limit: {self.limit}  Offset: {self.offset}")
        if self.pagination_capped:
            lines.append(
                f"  NOTE: pagination adjusted from limit={self.requested_limit}, "
                f"offset={self.requested_offset}"
            )
        lines.append(f"  SQL ({self.arg_count} args): {self.sql}")
        if self.count_sql is not None:
            lines.append(f"  Count SQL: {self.count_sql}")
        return "\n".join(lines)
