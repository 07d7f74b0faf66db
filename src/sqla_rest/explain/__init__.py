"""Explain/dry-run mode: the SQL a query string would run."""

from sqla_rest.explain._models import FilterExplanation, QueryExplanation
from sqla_rest.explain._query import explain_query

__all__ = ["FilterExplanation", "QueryExplanation", "explain_query"]
