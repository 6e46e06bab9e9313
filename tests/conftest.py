"""
Pytest fixtures for the test suite.

- Scope engine tests use an in-memory `OrgHierarchy` and a fake query runner
  that answers by table name; no database is involved.
- Data-layer tests use a temporary aiosqlite file database (a file, not
  `:memory:`, because every query runner call opens its own connection).
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from orgscope.scope_engine import build_hierarchy


# Scenario hierarchy (ids chosen so that no two levels share a value):
#   group 10 -> legal entities 100 (country 7), 200 (country 8)
#   group 20 -> legal entity 300 (country 7)
#   100 -> units 1000, 1001; 200 -> unit 2000; 300 -> unit 3000
G1, G2 = 10, 20
C1, C2 = 7, 8
E1, E2, E3 = 100, 200, 300
U1, U2, U3, U4 = 1000, 1001, 2000, 3000
TENANT_ID = 1

GROUP_ROWS = [{"id": G1}, {"id": G2}]
ENTITY_ROWS = [
    {"id": E1, "group_company_id": G1, "country_id": C1},
    {"id": E2, "group_company_id": G1, "country_id": C2},
    {"id": E3, "group_company_id": G2, "country_id": C1},
]
UNIT_ROWS = [
    {"id": U1, "legal_entity_id": E1},
    {"id": U2, "legal_entity_id": E1},
    {"id": U3, "legal_entity_id": E2},
    {"id": U4, "legal_entity_id": E3},
]


class FakeQueryRunner:
    """
    Answers queries by the table in their FROM clause.

    `tables` maps a table name to rows or to an exception instance to raise.
    Every call is recorded in `calls` as (table, params).
    """

    _TABLES = ("user_role_scopes", "data_scopes", "group_companies", "legal_entities", "operating_units")

    def __init__(self, tables: Mapping[str, Any]) -> None:
        self.tables = dict(tables)
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def _table_for(self, sql: str) -> str:
        for name in self._TABLES:
            if f"FROM {name}" in sql:
                return name
        raise AssertionError(f"unexpected query: {sql}")

    async def __call__(self, sql: str, params: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        table = self._table_for(sql)
        self.calls.append((table, dict(params or {})))
        result = self.tables.get(table, [])
        if isinstance(result, Exception):
            raise result
        return [dict(row) for row in result]

    def tables_queried(self) -> list[str]:
        return [table for table, _ in self.calls]


@pytest.fixture
def hierarchy():
    return build_hierarchy(GROUP_ROWS, ENTITY_ROWS, UNIT_ROWS)


@pytest.fixture
def fake_query():
    """Factory: `fake_query(user_role_scopes=[...], data_scopes=[...])` with the scenario hierarchy preloaded."""

    def factory(**tables: Any) -> FakeQueryRunner:
        base: dict[str, Any] = {
            "group_companies": GROUP_ROWS,
            "legal_entities": ENTITY_ROWS,
            "operating_units": UNIT_ROWS,
        }
        base.update(tables)
        return FakeQueryRunner(base)

    return factory


@pytest_asyncio.fixture
async def async_engine(tmp_path):
    """A fresh aiosqlite file database with all ORM tables created."""
    from orgscope.db.base import Base
    from orgscope.models import org, security  # noqa: F401  (register tables)

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(async_engine):
    session_factory = async_sessionmaker(async_engine, expire_on_commit=False, class_=AsyncSession)
    async with session_factory() as session:
        yield session
