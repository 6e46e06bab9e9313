"""
Data-layer tests for the raw SQL query runner.

Rows are inserted via the ORM and read back through `SqlQueryRunner`, the same
way the scope engine reads them at request time.
"""
from __future__ import annotations

import pytest
from sqlalchemy.exc import DBAPIError

from orgscope.db.query import SqlQueryRunner, missing_table_name
from orgscope.models.org import Country, GroupCompany, LegalEntity, OperatingUnit, Tenant
from orgscope.models.security import DataScope
from orgscope.scope_engine import MissingTableError, load_hierarchy
from orgscope.scope_engine.pipeline import fetch_data_scope_rows


async def _seed_small_tree(db_session):
    db_session.add_all(
        [
            Tenant(id=1, code="T1", name="Tenant 1"),
            Tenant(id=2, code="T2", name="Tenant 2"),
            Country(id=1, iso2="US", iso3="USA", name="United States"),
            Country(id=2, iso2="DE", iso3="DEU", name="Germany"),
        ]
    )
    await db_session.flush()
    db_session.add_all(
        [
            GroupCompany(id=1, tenant_id=1, code="G1", name="Group 1"),
            GroupCompany(id=2, tenant_id=2, code="G2", name="Group 2"),
        ]
    )
    await db_session.flush()
    db_session.add_all(
        [
            LegalEntity(id=1, tenant_id=1, group_company_id=1, country_id=1, code="E1", name="E1",
                        functional_currency_code="USD"),
            LegalEntity(id=2, tenant_id=1, group_company_id=1, country_id=2, code="E2", name="E2",
                        functional_currency_code="EUR"),
            LegalEntity(id=3, tenant_id=2, group_company_id=2, country_id=1, code="E3", name="E3",
                        functional_currency_code="USD"),
        ]
    )
    await db_session.flush()
    db_session.add_all(
        [
            OperatingUnit(id=1, tenant_id=1, legal_entity_id=1, code="U1", name="U1"),
            OperatingUnit(id=2, tenant_id=1, legal_entity_id=2, code="U2", name="U2"),
            OperatingUnit(id=3, tenant_id=2, legal_entity_id=3, code="U3", name="U3"),
        ]
    )
    await db_session.commit()


@pytest.mark.asyncio
async def test_runner_returns_rows_as_dicts(async_engine, db_session):
    await _seed_small_tree(db_session)
    query = SqlQueryRunner(async_engine)

    rows = await query(
        "SELECT id, code FROM legal_entities WHERE tenant_id = :tenant_id ORDER BY id",
        {"tenant_id": 1},
    )

    assert rows == [{"id": 1, "code": "E1"}, {"id": 2, "code": "E2"}]
    assert all(isinstance(row, dict) for row in rows)


@pytest.mark.asyncio
async def test_runner_without_params(async_engine, db_session):
    await _seed_small_tree(db_session)
    rows = await SqlQueryRunner(async_engine)("SELECT COUNT(*) AS n FROM operating_units")
    assert rows == [{"n": 3}]


@pytest.mark.asyncio
async def test_load_hierarchy_is_tenant_bounded(async_engine, db_session):
    await _seed_small_tree(db_session)

    h = await load_hierarchy(SqlQueryRunner(async_engine), 1)

    assert h.group_ids == {1}
    assert h.country_ids == {1, 2}
    assert h.legal_entity_ids == {1, 2}
    assert h.operating_unit_ids == {1, 2}
    assert h.operating_units_of(2) == {2}


@pytest.mark.asyncio
async def test_missing_table_raises_missing_table_error(async_engine):
    async with async_engine.begin() as conn:
        await conn.run_sync(DataScope.__table__.drop)

    with pytest.raises(MissingTableError) as exc_info:
        await SqlQueryRunner(async_engine)("SELECT id FROM data_scopes")
    assert exc_info.value.table == "data_scopes"


@pytest.mark.asyncio
async def test_missing_data_scopes_table_yields_no_override_rows(async_engine):
    async with async_engine.begin() as conn:
        await conn.run_sync(DataScope.__table__.drop)

    rows = await fetch_data_scope_rows(SqlQueryRunner(async_engine), user_id=1, tenant_id=1)
    assert rows == []


@pytest.mark.asyncio
async def test_other_database_errors_propagate(async_engine):
    query = SqlQueryRunner(async_engine)

    with pytest.raises(DBAPIError) as exc_info:
        await query("SELECT missing_column FROM legal_entities")
    assert not isinstance(exc_info.value, MissingTableError)


@pytest.mark.asyncio
async def test_missing_core_table_propagates_driver_error(async_engine):
    async with async_engine.begin() as conn:
        await conn.run_sync(LegalEntity.__table__.drop)

    with pytest.raises(DBAPIError) as exc_info:
        await SqlQueryRunner(async_engine)("SELECT id FROM legal_entities")
    assert "no such table" in str(exc_info.value)


@pytest.mark.asyncio
async def test_optional_tables_are_configurable(async_engine):
    async with async_engine.begin() as conn:
        await conn.run_sync(DataScope.__table__.drop)

    with pytest.raises(DBAPIError):
        await SqlQueryRunner(async_engine, optional_tables=frozenset())("SELECT id FROM data_scopes")


class _PostgresError(Exception):
    sqlstate = "42P01"


def _wrap(orig: Exception) -> DBAPIError:
    return DBAPIError("SELECT 1", None, orig)


def test_missing_table_name_driver_signals():
    assert missing_table_name(_wrap(Exception("no such table: data_scopes"))) == "data_scopes"
    assert missing_table_name(_wrap(_PostgresError('relation "public.data_scopes" does not exist'))) == "data_scopes"
    assert missing_table_name(_wrap(Exception(1146, "Table 'erp.data_scopes' doesn't exist"))) == "data_scopes"
    # Recognized signal without a parseable name.
    assert missing_table_name(_wrap(_PostgresError("undefined table"))) == ""


def test_missing_table_name_ignores_other_errors():
    assert missing_table_name(_wrap(Exception("database is locked"))) is None
    assert missing_table_name(_wrap(Exception(1062, "Duplicate entry '1' for key 'PRIMARY'"))) is None
