"""Tests for exceptions.py: RestError hierarchy."""

from __future__ import annotations

import pytest

from sqla_rest.exceptions import (
    CompileError,
    ConnectionUnavailable,
    ExecutionError,
    ExecutionFailed,
    ParseError,
    PermissionDenied,
    RestError,
    ValidationError,
)


class TestRestError:
    """Base exception for all sqla-rest errors."""

    def test_is_exception(self):
        assert issubclass(RestError, Exception)

    def test_message(self):
        assert str(RestError("something went wrong")) == "something went wrong"

    @pytest.mark.parametrize(
        "cls",
        [ParseError, ValidationError, CompileError, ExecutionError],
    )
    def test_subclasses(self, cls):
        assert issubclass(cls, RestError)


class TestParseError:
    def test_fragment_attribute(self):
        err = ParseError("unbalanced parentheses", fragment="(a.eq.1")
        assert err.fragment == "(a.eq.1"

    def test_message_includes_fragment(self):
        err = ParseError("unbalanced parentheses", fragment="(a.eq.1")
        assert str(err) == "unbalanced parentheses: (a.eq.1"

    def test_no_fragment(self):
        err = ParseError("empty logical group")
        assert err.fragment == ""
        assert str(err) == "empty logical group"


class TestValidationError:
    def test_attributes(self):
        err = ValidationError("column does not exist", column="nope")
        assert err.column == "nope"
        assert err.detail == "column does not exist"

    def test_message_names_column(self):
        err = ValidationError("column does not exist", column="nope")
        assert "nope" in str(err)

    def test_without_column(self):
        err = ValidationError("st_dwithin distance cannot be negative")
        assert err.column is None
        assert str(err) == "st_dwithin distance cannot be negative"


class TestExecutionErrors:
    @pytest.mark.parametrize("cls", [PermissionDenied, ExecutionFailed, ConnectionUnavailable])
    def test_are_execution_errors(self, cls):
        assert issubclass(cls, ExecutionError)

    def test_carries_original_and_sqlstate(self):
        original = RuntimeError("boom")
        err = PermissionDenied("denied", original=original, sqlstate="42501")
        assert err.original is original
        assert err.sqlstate == "42501"

    def test_defaults(self):
        err = ExecutionFailed("failed")
        assert err.original is None
        assert err.sqlstate is None

    def test_catchable_as_rest_error(self):
        with pytest.raises(RestError):
            raise ConnectionUnavailable("pool exhausted")
