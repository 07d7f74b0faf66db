"""Tests for rls_transaction against SQLite with emulated session settings."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import Engine, Table, event, func, insert, select, text
from sqlalchemy.exc import DBAPIError

from sqla_rest.config import RestConfig, configure, create_rest_engine
from sqla_rest.exceptions import (
    ConnectionUnavailable,
    ExecutionFailed,
    PermissionDenied,
    ValidationError,
)
from sqla_rest.query import parse_query
from sqla_rest.session import (
    RLSTransaction,
    TransactionState,
    rls_transaction,
    run_in_rls_transaction,
)
from sqla_rest.testing import SettingsRecorder, make_anonymous, make_user


def _setting(tx: RLSTransaction, name: str) -> str | None:
    return tx.execute("SELECT current_setting(:name, true)", {"name": name}).scalar()


def _count_posts(engine: Engine, posts: Table) -> int:
    with engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(posts)).scalar_one()


class _RlsViolation(Exception):
    sqlstate = "42501"


class TestContextBinding:
    def test_settings_visible_inside(self, engine: Engine, sqlite_config: RestConfig) -> None:
        identity = make_user("u-1", role="editor", claims={"org": "acme"})
        with rls_transaction(engine, identity, config=sqlite_config) as tx:
            assert _setting(tx, "app.user_id") == "u-1"
            assert _setting(tx, "app.role") == "editor"
            claims = json.loads(_setting(tx, "request.jwt.claims") or "{}")
        assert claims == {"org": "acme", "sub": "u-1", "role": "editor"}

    def test_settings_are_transaction_local(
        self, engine: Engine, recorder: SettingsRecorder, sqlite_config: RestConfig
    ) -> None:
        with rls_transaction(engine, make_user("u-1"), config=sqlite_config):
            pass
        assert {c.is_local for c in recorder.calls} == {True}

    def test_nothing_leaks_after_commit(self, engine: Engine, sqlite_config: RestConfig) -> None:
        with rls_transaction(engine, make_user("u-1"), config=sqlite_config):
            pass
        with engine.connect() as conn:
            value = conn.execute(text("SELECT current_setting('app.user_id', true)")).scalar()
        assert value is None

    def test_nothing_leaks_after_rollback(
        self, engine: Engine, sqlite_config: RestConfig
    ) -> None:
        with pytest.raises(ValueError):
            with rls_transaction(engine, make_user("u-1"), config=sqlite_config):
                raise ValueError("boom")
        with rls_transaction(engine, make_anonymous(), config=sqlite_config) as tx:
            assert _setting(tx, "app.user_id") == ""

    def test_sequential_identities(
        self, engine: Engine, recorder: SettingsRecorder, sqlite_config: RestConfig
    ) -> None:
        for user_id in ("a", "b", "c"):
            with rls_transaction(engine, make_user(user_id), config=sqlite_config) as tx:
                assert _setting(tx, "app.user_id") == user_id
        assert recorder.values_for("app.user_id") == ["a", "b", "c"]

    def test_anonymous_binds_empty_user_id(
        self, engine: Engine, recorder: SettingsRecorder, sqlite_config: RestConfig
    ) -> None:
        with rls_transaction(engine, None, config=sqlite_config):
            pass
        assert recorder.values_for("app.user_id") == [""]
        assert recorder.values_for("app.role") == ["anon"]

    def test_global_config_used_by_default(
        self, engine: Engine, recorder: SettingsRecorder
    ) -> None:
        configure(set_local_role=False, session_var_prefix="tenant")
        with rls_transaction(engine, make_user("u-9")):
            pass
        assert recorder.values_for("tenant.user_id") == ["u-9"]


class TestOutcome:
    def test_commit(
        self, engine: Engine, posts_table: Table, sqlite_config: RestConfig
    ) -> None:
        with rls_transaction(engine, make_user(), config=sqlite_config) as tx:
            tx.execute(insert(posts_table).values(id=10, title="New", status="draft"))
        assert _count_posts(engine, posts_table) == 5

    def test_exception_rolls_back(
        self, engine: Engine, posts_table: Table, sqlite_config: RestConfig
    ) -> None:
        with pytest.raises(ValueError, match="boom"):
            with rls_transaction(engine, make_user(), config=sqlite_config) as tx:
                tx.execute(insert(posts_table).values(id=10, title="New", status="draft"))
                raise ValueError("boom")
        assert _count_posts(engine, posts_table) == 4

    def test_run_in_returns_result(self, engine: Engine, sqlite_config: RestConfig) -> None:
        params = parse_query("select=id&status.eq=published&order=id")
        rows = run_in_rls_transaction(
            engine,
            make_user(),
            lambda tx: tx.fetch_all(params, "posts"),
            config=sqlite_config,
        )
        assert rows == [{"id": 1}, {"id": 3}]

    def test_fetch_all_validates_table_columns(
        self, engine: Engine, posts_table: Table, sqlite_config: RestConfig
    ) -> None:
        with pytest.raises(ValidationError):
            with rls_transaction(engine, make_user(), config=sqlite_config) as tx:
                tx.fetch_all(parse_query("password.eq=x"), posts_table)


class TestErrors:
    def test_database_error_becomes_execution_failed(
        self, engine: Engine, sqlite_config: RestConfig
    ) -> None:
        with pytest.raises(ExecutionFailed) as exc_info:
            with rls_transaction(engine, make_user(), config=sqlite_config) as tx:
                tx.execute("SELECT * FROM missing_table")
        assert isinstance(exc_info.value.original, DBAPIError)
        assert "missing_table" not in str(exc_info.value)

    def test_policy_violation_becomes_permission_denied(
        self, engine: Engine, sqlite_config: RestConfig
    ) -> None:
        with pytest.raises(PermissionDenied):
            with rls_transaction(engine, make_user(), config=sqlite_config):
                raise DBAPIError("INSERT ...", {}, _RlsViolation("denied"))

    def test_unreachable_database(self, tmp_path: Path, sqlite_config: RestConfig) -> None:
        engine = create_rest_engine(f"sqlite:///{tmp_path / 'missing' / 'db.sqlite'}")
        with pytest.raises(ConnectionUnavailable):
            with rls_transaction(engine, make_user(), config=sqlite_config):
                pass
        engine.dispose()

    def test_pool_timeout(self, tmp_path: Path, sqlite_config: RestConfig) -> None:
        engine = create_rest_engine(
            f"sqlite:///{tmp_path / 'pool.sqlite'}",
            pool_timeout=0.1,
            pool_size=1,
            max_overflow=0,
        )
        held = engine.connect()
        try:
            with pytest.raises(ConnectionUnavailable):
                with rls_transaction(engine, make_user(), config=sqlite_config):
                    pass
        finally:
            held.close()
            engine.dispose()


class TestCompensations:
    def test_run_in_reverse_order_on_rollback(
        self, engine: Engine, sqlite_config: RestConfig
    ) -> None:
        ran: list[str] = []
        with pytest.raises(ValueError):
            with rls_transaction(engine, make_user(), config=sqlite_config) as tx:
                tx.on_rollback(lambda: ran.append("first"))
                tx.on_rollback(lambda: ran.append("second"))
                raise ValueError("boom")
        assert ran == ["second", "first"]

    def test_not_run_on_commit(self, engine: Engine, sqlite_config: RestConfig) -> None:
        ran: list[str] = []
        with rls_transaction(engine, make_user(), config=sqlite_config) as tx:
            tx.on_rollback(lambda: ran.append("undo"))
        assert ran == []

    def test_failure_is_logged_not_raised(
        self, engine: Engine, sqlite_config: RestConfig, caplog: pytest.LogCaptureFixture
    ) -> None:
        ran: list[str] = []

        def broken() -> None:
            raise OSError("storage offline")

        with caplog.at_level(logging.WARNING, logger="sqla_rest.rls"):
            with pytest.raises(ValueError, match="primary"):
                with rls_transaction(engine, make_user(), config=sqlite_config) as tx:
                    tx.on_rollback(lambda: ran.append("cleanup"))
                    tx.on_rollback(broken)
                    raise ValueError("primary")
        assert ran == ["cleanup"]
        assert "storage offline" in caplog.text

    def test_failed_rollback_still_compensates(
        self, engine: Engine, sqlite_config: RestConfig, caplog: pytest.LogCaptureFixture
    ) -> None:
        ran: list[str] = []

        @event.listens_for(engine, "rollback")
        def _drop_connection(conn: Any) -> None:  # pyright: ignore[reportUnusedFunction]
            raise RuntimeError("connection lost during rollback")

        with caplog.at_level(logging.WARNING, logger="sqla_rest.rls"):
            with pytest.raises(ValueError, match="primary failure"):
                with rls_transaction(engine, make_user(), config=sqlite_config) as tx:
                    tx.on_rollback(lambda: ran.append("delete blob"))
                    raise ValueError("primary failure")
        assert ran == ["delete blob"]
        assert tx.state is TransactionState.ROLLED_BACK
        assert "connection lost during rollback" in caplog.text


class TestStateMachine:
    def test_transitions(self, engine: Engine, sqlite_config: RestConfig) -> None:
        with rls_transaction(engine, make_user(), config=sqlite_config) as tx:
            assert tx.state is TransactionState.CONTEXT_SET
            tx.execute("SELECT 1")
            assert tx.state is TransactionState.EXECUTING
        assert tx.state is TransactionState.COMMITTED

    def test_rolled_back(self, engine: Engine, sqlite_config: RestConfig) -> None:
        with pytest.raises(KeyError):
            with rls_transaction(engine, make_user(), config=sqlite_config) as tx:
                raise KeyError("x")
        assert tx.state is TransactionState.ROLLED_BACK

    def test_handle_unusable_after_block(
        self, engine: Engine, sqlite_config: RestConfig
    ) -> None:
        with rls_transaction(engine, make_user(), config=sqlite_config) as tx:
            pass
        with pytest.raises(RuntimeError, match="not active"):
            tx.execute("SELECT 1")

    def test_context_exposed(self, engine: Engine, sqlite_config: RestConfig) -> None:
        with rls_transaction(engine, make_user("u-3"), config=sqlite_config) as tx:
            assert tx.context.user_id == "u-3"
            assert tx.connection.in_transaction()

    def test_security_context_logged(
        self, engine: Engine, sqlite_config: RestConfig, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.DEBUG, logger="sqla_rest.rls"):
            with rls_transaction(engine, make_user("u-4"), config=sqlite_config):
                pass
        assert "Security context set: user='u-4'" in caplog.text
        assert "Transaction committed (role=authenticated)" in caplog.text
