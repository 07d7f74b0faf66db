"""Benchmark fixtures: representative query strings, parsed params and a seeded database."""

from __future__ import annotations

from collections.abc import Generator

import pytest
from sqlalchemy import Column, Engine, Integer, MetaData, String, Table, create_engine, insert
from sqlalchemy.pool import StaticPool

from sqla_rest.query import QueryParams, parse_query
from sqla_rest.testing import install_settings_shim

SIMPLE_QUERY = "select=id,name&status=eq.active&limit=20"

COMPLEX_QUERY = (
    "select=id,name,data->stats->>score,category"
    "&status=in.(active,pending,review)"
    "&data->stats->>score.gt=10"
    "&and=(or(priority.lt.3,priority.gt.7),or(owner.eq.alice,owner.eq.bob))"
    "&or=(name.ilike.*widget*,name.ilike.*gadget*)"
    "&order=created_at.desc.nullslast,id"
    "&limit=500&offset=9800"
)

# ---------------------------------------------------------------------------
# Benchmark-local table (separate MetaData to avoid conflicts)
# ---------------------------------------------------------------------------

bench_metadata = MetaData()

bench_items = Table(
    "bench_items",
    bench_metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(50)),
    Column("status", String(20)),
    Column("priority", Integer),
)


@pytest.fixture()
def simple_query() -> str:
    return SIMPLE_QUERY


@pytest.fixture()
def complex_query() -> str:
    return COMPLEX_QUERY


@pytest.fixture()
def complex_params() -> QueryParams:
    return parse_query(COMPLEX_QUERY)


@pytest.fixture()
def bench_table() -> Table:
    return bench_items


@pytest.fixture()
def populated_engine() -> Generator[Engine, None, None]:
    """SQLite engine with 1000 items and the settings shim installed."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    install_settings_shim(engine)
    bench_metadata.create_all(engine)
    rows = [
        {
            "id": i,
            "name": f"item-{i}",
            "status": ("active", "pending", "archived")[i % 3],
            "priority": i % 10,
        }
        for i in range(1, 1001)
    ]
    with engine.begin() as conn:
        conn.execute(insert(bench_items), rows)
    yield engine
    engine.dispose()
