"""Identifier quoting and value classification.

Leaf utilities shared by the parser and the compiler:

- identifier validation and double-quoting,
- JSONB path segmentation (``data->items->0->>name``),
- the "looks numeric" heuristic behind ``::numeric`` casts,
- pgvector literal normalization,
- ``st_dwithin`` value splitting.

Nothing in here ever produces SQL that embeds a filter *value*; JSON keys
are the only user text rendered as literals, and they are escaped.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Literal

from sqla_rest.exceptions import ValidationError

__all__ = [
    "ColumnPath",
    "JsonAccessor",
    "coerce_number",
    "format_json_key",
    "format_vector_value",
    "is_valid_identifier",
    "looks_numeric",
    "needs_numeric_cast",
    "parse_array_value",
    "parse_column_path",
    "parse_st_dwithin_value",
    "quote_identifier",
    "quote_table",
    "split_table_name",
]

_IDENTIFIER_RE = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_ARRAY_INDEX_RE = re.compile(r"[0-9]+")

JsonAccessor = Literal["->", "->>"]


def is_valid_identifier(name: str) -> bool:
    """Return True if *name* is a plain SQL identifier (``[a-zA-Z_][a-zA-Z0-9_]*``)."""
    return _IDENTIFIER_RE.fullmatch(name) is not None


def quote_identifier(name: str) -> str:
    """Double-quote a validated identifier.

    Raises:
        ValidationError: If *name* is not a plain identifier.

    Example::

        quote_identifier("created_at")  # '"created_at"'
    """
    if not is_valid_identifier(name):
        raise ValidationError("invalid identifier", column=name)
    return '"' + name.replace('"', '""') + '"'


def split_table_name(name: str) -> tuple[str | None, str]:
    """Split ``"schema.table"`` into ``("schema", "table")``.

    Only the first dot separates; a leading dot is not a schema separator.
    """
    dot = name.find(".")
    if dot > 0:
        return name[:dot], name[dot + 1 :]
    return None, name


def quote_table(table: str, schema: str | None = None) -> str:
    """Render a (possibly schema-qualified) table reference."""
    if schema is None:
        schema, table = split_table_name(table)
    if schema:
        return f"{quote_identifier(schema)}.{quote_identifier(table)}"
    return quote_identifier(table)


def format_json_key(key: str) -> str:
    """Render one JSONB path key.

    All-digit keys are array indexes and stay unquoted; anything else
    becomes a single-quoted string literal with quotes doubled.
    """
    if _ARRAY_INDEX_RE.fullmatch(key):
        return key
    return "'" + key.replace("'", "''") + "'"


@dataclass(frozen=True, slots=True)
class ColumnPath:
    """A column reference, optionally chained through JSONB accessors.

    Attributes:
        column: The base column identifier.
        accessors: ``(operator, key)`` pairs in path order.
    """

    column: str
    accessors: tuple[tuple[JsonAccessor, str], ...] = ()

    @property
    def is_json(self) -> bool:
        return bool(self.accessors)

    @property
    def final_accessor(self) -> JsonAccessor | None:
        if not self.accessors:
            return None
        return self.accessors[-1][0]

    @property
    def is_text_extraction(self) -> bool:
        """True when the path ends in ``->>`` and therefore yields text."""
        return self.final_accessor == "->>"

    @property
    def output_name(self) -> str:
        """Name a selected path is exposed under (its last key)."""
        if not self.accessors:
            return self.column
        return self.accessors[-1][1]

    def to_sql(self) -> str:
        parts = [quote_identifier(self.column)]
        for op, key in self.accessors:
            parts.append(op)
            parts.append(format_json_key(key))
        return "".join(parts)


def parse_column_path(column: str) -> ColumnPath:
    """Split ``a->b->>c`` into a :class:`ColumnPath`.

    The earliest of ``->>`` / ``->`` wins at each step, so ``->>`` is never
    read as ``->`` followed by ``>``.

    Raises:
        ValidationError: If the base column is not an identifier or a
            path segment is empty.

    Example::

        path = parse_column_path("metadata->stats->>count")
        path.to_sql()  # "\"metadata\"->'stats'->>'count'"
    """
    if "->" not in column:
        if not is_valid_identifier(column):
            raise ValidationError("invalid column name", column=column)
        return ColumnPath(column=column)

    segments: list[str] = []
    operators: list[JsonAccessor] = []
    remaining = column
    while True:
        text_idx = remaining.find("->>")
        json_idx = remaining.find("->")
        if text_idx >= 0 and (json_idx < 0 or text_idx <= json_idx):
            idx, op = text_idx, "->>"
        elif json_idx >= 0:
            idx, op = json_idx, "->"
        else:
            segments.append(remaining)
            break
        segments.append(remaining[:idx])
        operators.append(op)  # type: ignore[arg-type]
        remaining = remaining[idx + len(op) :]

    base, keys = segments[0], segments[1:]
    if not is_valid_identifier(base):
        raise ValidationError("invalid column name", column=column)
    if any(key == "" for key in keys):
        raise ValidationError("empty JSON path segment", column=column)
    return ColumnPath(column=base, accessors=tuple(zip(operators, keys)))


def looks_numeric(value: str) -> bool:
    """Best-effort check that a string would parse as a float.

    Mirrors a strict float parser: surrounding whitespace and digit
    separators are not accepted.
    """
    if not value or value != value.strip() or "_" in value:
        return False
    try:
        float(value)
    except ValueError:
        return False
    return True


def coerce_number(value: str) -> int | float:
    """Convert a numeric-looking string to ``int`` when integral, else ``float``."""
    if _INTEGER_RE.fullmatch(value):
        return int(value)
    return float(value)


def needs_numeric_cast(path: ColumnPath, value: object) -> bool:
    """Whether a comparison on *path* should cast the extracted text to numeric.

    True when the path ends in a text extraction and the value is a number
    or a string that looks like one. This is a heuristic on the value's
    shape, not on the column's schema.
    """
    if not path.is_text_extraction:
        return False
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float, Decimal)):
        return True
    if isinstance(value, str):
        return looks_numeric(value)
    return False


def parse_array_value(value: str) -> list[str]:
    """Parse ``(a,b,c)`` / ``[a,b]`` / ``a,b`` into a list of strings.

    Surrounding brackets are dropped and each item is trimmed of
    whitespace and quotes.
    """
    inner = value.strip("()[]")
    return [item.strip().strip("\"'") for item in inner.split(",")]


def _format_number(num: object) -> str:
    if isinstance(num, bool):
        return str(int(num))
    if isinstance(num, int):
        return str(num)
    if isinstance(num, float):
        if math.isfinite(num):
            text = repr(num)
            if "e" in text or "E" in text:
                text = format(Decimal(text), "f")
            return text
        return repr(num)
    if isinstance(num, Decimal):
        return format(num, "f")
    return str(num).strip()


def format_vector_value(value: str | Sequence[object]) -> str:
    """Normalize a vector to pgvector's ``[n1,n2,...]`` text form.

    Accepts a bracketed or bare comma-separated string, or a sequence of
    numbers (mixed types allowed). Bracket problems are repaired rather
    than rejected; the result is bound as a parameter and cast to
    ``vector`` by the database, which does the real validation.

    Example::

        format_vector_value("0.1, 0.2")   # "[0.1,0.2]"
        format_vector_value([1, 2.5])     # "[1,2.5]"
    """
    if isinstance(value, str):
        inner = value.strip().strip("[]")
        items = [item.strip() for item in inner.split(",") if item.strip()]
        return "[" + ",".join(items) + "]"
    return "[" + ",".join(_format_number(item) for item in value) + "]"


def parse_st_dwithin_value(value: str) -> tuple[float, str]:
    """Split an ``st_dwithin`` value ``"distance,{geojson}"``.

    The first comma outside braces/brackets separates the two parts.

    Returns:
        ``(distance, geometry_json)``.

    Raises:
        ValidationError: If a component is missing, the distance is not a
            non-negative number, or the geometry is not a JSON object.
    """
    depth = 0
    comma = -1
    for idx, ch in enumerate(value):
        if ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
        elif ch == "," and depth == 0:
            comma = idx
            break

    if comma <= 0:
        raise ValidationError("st_dwithin value must be in format: distance,{geojson}")

    distance_text = value[:comma].strip()
    geometry = value[comma + 1 :].strip()

    try:
        distance = float(distance_text)
    except ValueError:
        raise ValidationError(f"invalid st_dwithin distance: {distance_text!r}") from None
    if not math.isfinite(distance):
        raise ValidationError(f"invalid st_dwithin distance: {distance_text!r}")
    if distance < 0:
        raise ValidationError("st_dwithin distance cannot be negative")

    if not geometry:
        raise ValidationError("st_dwithin geometry is missing")
    try:
        parsed = json.loads(geometry)
    except json.JSONDecodeError:
        raise ValidationError("st_dwithin geometry must be valid GeoJSON") from None
    if not isinstance(parsed, dict):
        raise ValidationError("st_dwithin geometry must be a GeoJSON object")

    return distance, geometry
