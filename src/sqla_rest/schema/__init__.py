"""Column validation against SQLAlchemy table metadata."""

from __future__ import annotations

from sqla_rest.schema._validate import referenced_columns, validate_query_params

__all__ = ["referenced_columns", "validate_query_params"]
