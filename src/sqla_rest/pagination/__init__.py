"""Pagination policy enforcement for sqla-rest."""

from __future__ import annotations

from sqla_rest.pagination._policy import UNLIMITED, PaginationPolicy, normalize_pagination

__all__ = ["PaginationPolicy", "UNLIMITED", "normalize_pagination"]
