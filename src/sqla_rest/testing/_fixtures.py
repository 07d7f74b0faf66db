"""Pytest fixtures for testing code built on sqla-rest."""

from __future__ import annotations

from collections.abc import Generator

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from sqla_rest.config._config import RestConfig
from sqla_rest.testing._sqlite import SettingsRecorder, install_settings_shim

__all__ = ["isolated_rest_state", "rest_config", "settings_engine"]


@pytest.fixture()
def rest_config() -> RestConfig:
    """Provide a config suited to SQLite-backed tests.

    Defaults everywhere except ``set_local_role=False``, since SQLite has
    no roles.

    Example::

        def test_small_pages(rest_config):
            cfg = rest_config.merge(max_page_size=10)
            assert parse_query("limit=50", config=cfg).limit == 10
    """
    return RestConfig(set_local_role=False)


@pytest.fixture()
def isolated_rest_state() -> Generator[RestConfig, None, None]:
    """Pytest fixture that isolates global sqla-rest config for each test.

    Example::

        def test_something(isolated_rest_state):
            configure(max_page_size=5)
            # restored after the test
    """
    from sqla_rest.testing._isolation import isolated_rest

    with isolated_rest() as cfg:
        yield cfg


@pytest.fixture()
def settings_engine() -> Generator[tuple[Engine, SettingsRecorder], None, None]:
    """In-memory SQLite engine with ``set_config``/``current_setting`` installed.

    Yields ``(engine, recorder)``. All sessions share one connection, so
    tables created in the test are visible to every transaction.

    Example::

        def test_claims(settings_engine, rest_config):
            engine, recorder = settings_engine
            run_in_rls_transaction(engine, make_user("u-1"), lambda tx: None, config=rest_config)
            assert recorder.values_for("app.user_id") == ["u-1"]
    """
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    recorder = install_settings_shim(engine)
    yield engine, recorder
    engine.dispose()
