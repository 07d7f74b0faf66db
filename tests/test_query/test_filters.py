"""Tests for filter-level parsing helpers and the Filter model."""

from __future__ import annotations

import pytest

from sqla_rest.exceptions import ParseError
from sqla_rest.query import (
    Filter,
    FilterValue,
    parse_filter_param,
    parse_logical_group,
    parse_query,
)
from sqla_rest.query._filters import GroupCounter, split_top_level


class TestSplitTopLevel:
    def test_respects_nesting(self) -> None:
        assert split_top_level("a.eq.1,or(b.eq.2,c.eq.3),d.in.(x,y)") == [
            "a.eq.1",
            "or(b.eq.2,c.eq.3)",
            "d.in.(x,y)",
        ]

    def test_braces_and_brackets(self) -> None:
        assert split_top_level('a.eq.{"k":[1,2]},b.eq.2') == ['a.eq.{"k":[1,2]}', "b.eq.2"]

    @pytest.mark.parametrize("pattern", ["*[*", "*]*", "*{*", "*[a}*"])
    def test_unbalanced_brackets_are_plain_text(self, pattern: str) -> None:
        assert split_top_level(f"name.like.{pattern},x.eq.1") == [
            f"name.like.{pattern}",
            "x.eq.1",
        ]

    def test_like_bracket_inside_or_group(self) -> None:
        params = parse_query("or=(name.like.*[*,x.eq.1)")
        assert [f.column for f in params.filters] == ["name", "x"]
        assert params.filters[0].or_group_id == params.filters[1].or_group_id > 0

    def test_trims(self) -> None:
        assert split_top_level(" a , b ") == ["a", "b"]

    @pytest.mark.parametrize("expr", ["(a", "a)", "or(a.eq.1"])
    def test_unbalanced(self, expr: str) -> None:
        with pytest.raises(ParseError):
            split_top_level(expr)


class TestParseFilterParam:
    def test_key_form(self) -> None:
        f = parse_filter_param("age.gte", "18")
        assert f == Filter("age", "gte", FilterValue.string("18"))

    def test_value_form(self) -> None:
        f = parse_filter_param("age", "gte.18")
        assert f == Filter("age", "gte", FilterValue.string("18"))

    def test_value_keeps_dots(self) -> None:
        f = parse_filter_param("version", "eq.1.2.3")
        assert f is not None
        assert f.value.value == "1.2.3"

    def test_not_a_filter(self) -> None:
        assert parse_filter_param("callback", "foo") is None

    def test_missing_operator(self) -> None:
        with pytest.raises(ParseError):
            parse_filter_param("age.", "18")

    def test_dangling_not(self) -> None:
        with pytest.raises(ParseError):
            parse_filter_param("age", "not.")


class TestParseLogicalGroup:
    def test_counter_is_shared_within_call(self) -> None:
        counter = GroupCounter()
        parse_logical_group("(a.eq.1,b.eq.2)", is_or=True, counter=counter)
        filters = parse_logical_group("(c.eq.1,d.eq.2)", is_or=True, counter=counter)
        assert {f.or_group_id for f in filters} == {2}


class TestFilterModel:
    def test_group_invariant(self) -> None:
        with pytest.raises(ValueError):
            Filter("a", "eq", FilterValue.string("1"), is_or=True, or_group_id=0)
        with pytest.raises(ValueError):
            Filter("a", "eq", FilterValue.string("1"), is_or=False, or_group_id=3)

    def test_unknown_operator(self) -> None:
        with pytest.raises(ValueError):
            Filter("a", "regex", FilterValue.string("1"))  # type: ignore[arg-type]

    def test_value_kinds_checked(self) -> None:
        with pytest.raises(ValueError):
            FilterValue("number", True)
        with pytest.raises(ValueError):
            FilterValue("null", "x")

    def test_array_bind_value_is_list(self) -> None:
        assert FilterValue.string_array(("a", "b")).bind_value == ["a", "b"]
