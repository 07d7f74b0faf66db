"""WHERE clause assembly with OR-group bracketing."""

from __future__ import annotations

from collections.abc import Sequence

from sqla_rest.compiler._binder import SqlWriter
from sqla_rest.compiler._filters import compile_filter
from sqla_rest.query._models import Filter

__all__ = ["build_where_clause", "group_filters"]


def group_filters(filters: Sequence[Filter]) -> list[list[Filter]]:
    """Partition *filters* into AND-ed units.

    An ungrouped filter is a unit of its own; all filters sharing an OR
    group id form one unit, placed where the group first appears.
    """
    units: list[list[Filter]] = []
    by_group: dict[int, list[Filter]] = {}
    for f in filters:
        if not f.is_or:
            units.append([f])
            continue
        unit = by_group.get(f.or_group_id)
        if unit is None:
            unit = by_group[f.or_group_id] = []
            units.append(unit)
        unit.append(f)
    return units


def build_where_clause(filters: Sequence[Filter], writer: SqlWriter) -> str:
    """Render *filters* as a WHERE fragment (without the keyword).

    OR groups render as ``(a OR b)`` and units are joined with ``AND``.
    Placeholders are numbered in rendering order, so ``writer.args``
    lines up with them.

    Example::

        params = parse_query("or=(name.eq.John,name.eq.Jane)")
        build_where_clause(params.filters, SqlWriter())
        # '("name" = $1 OR "name" = $2)'
    """
    parts: list[str] = []
    for unit in group_filters(filters):
        rendered = [compile_filter(f, writer) for f in unit]
        if len(rendered) == 1:
            parts.append(rendered[0])
        else:
            parts.append("(" + " OR ".join(rendered) + ")")
    return " AND ".join(parts)
