"""Tests for column validation against table metadata."""

from __future__ import annotations

import pytest
from sqlalchemy import Table

from sqla_rest.exceptions import ValidationError
from sqla_rest.query import encode_cursor, parse_query
from sqla_rest.schema import referenced_columns, validate_query_params


class TestReferencedColumns:
    def test_every_clause_in_first_use_order(self) -> None:
        params = parse_query(
            {
                "select": "title,max(rating)",
                "status.eq": "draft",
                "order": "id.desc",
                "group_by": "author_id",
                "cursor": encode_cursor("id", 1),
            }
        )
        assert referenced_columns(params) == ["title", "rating", "status", "id", "author_id"]

    def test_json_paths_contribute_base_column(self) -> None:
        params = parse_query("select=data->a->>b&data->>kind.eq=x")
        assert referenced_columns(params) == ["data"]

    def test_star_and_count_all_reference_nothing(self) -> None:
        assert referenced_columns(parse_query("select=*")) == []
        assert referenced_columns(parse_query("select=count(*)")) == []


class TestValidate:
    def test_known_columns_pass(self, posts_table: Table) -> None:
        validate_query_params(parse_query("select=id,title&rating.gte=3"), posts_table)

    @pytest.mark.parametrize(
        "query",
        [
            "select=id,password",
            "password.eq=x",
            "order=password",
            "select=sum(password)",
            "group_by=password",
        ],
    )
    def test_unknown_column(self, posts_table: Table, query: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_query_params(parse_query(query), posts_table)
        assert exc_info.value.column == "password"

    def test_error_does_not_list_table_columns(self, posts_table: Table) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_query_params(parse_query("nope.eq=1"), posts_table)
        assert "title" not in str(exc_info.value)
