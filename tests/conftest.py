"""Shared test fixtures for sqla-rest tests."""

from __future__ import annotations

from collections.abc import Generator

import pytest
from sqlalchemy import (
    JSON,
    Column,
    Engine,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    insert,
)
from sqlalchemy.pool import StaticPool

from sqla_rest.config._config import RestConfig, _reset_global_config
from sqla_rest.testing._sqlite import SettingsRecorder, install_settings_shim

# ---------------------------------------------------------------------------
# Test tables
# ---------------------------------------------------------------------------

metadata = MetaData()

posts = Table(
    "posts",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("title", String(200)),
    Column("status", String(20)),
    Column("author_id", String(50)),
    Column("rating", Integer),
    Column("data", JSON),
)

POST_ROWS = [
    {"id": 1, "title": "Hello", "status": "published", "author_id": "u-1", "rating": 5},
    {"id": 2, "title": "Draft", "status": "draft", "author_id": "u-1", "rating": 3},
    {"id": 3, "title": "Other", "status": "published", "author_id": "u-2", "rating": 4},
    {"id": 4, "title": "Old", "status": "archived", "author_id": "u-2", "rating": None},
]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clean_global_config() -> Generator[None, None, None]:
    """Every test starts and ends with the default global config."""
    _reset_global_config()
    yield
    _reset_global_config()


@pytest.fixture()
def posts_table() -> Table:
    return posts


@pytest.fixture()
def sqlite_config() -> RestConfig:
    """Config for SQLite-backed tests: SQLite has no SET ROLE."""
    return RestConfig(set_local_role=False)


@pytest.fixture()
def shimmed_engine() -> Generator[tuple[Engine, SettingsRecorder], None, None]:
    """In-memory SQLite with session-setting functions and seeded posts."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    recorder = install_settings_shim(engine)
    metadata.create_all(engine)
    with engine.begin() as conn:
        conn.execute(insert(posts), POST_ROWS)
    recorder.clear()
    yield engine, recorder
    engine.dispose()


@pytest.fixture()
def engine(shimmed_engine: tuple[Engine, SettingsRecorder]) -> Engine:
    return shimmed_engine[0]


@pytest.fixture()
def recorder(shimmed_engine: tuple[Engine, SettingsRecorder]) -> SettingsRecorder:
    return shimmed_engine[1]
