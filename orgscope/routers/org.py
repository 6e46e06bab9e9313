from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orgscope.db.filters import scope_clause
from orgscope.db.query import SqlQueryRunner
from orgscope.db.session import get_db, get_query_runner
from orgscope.models.org import LegalEntity
from orgscope.schemas.org import (
    CountryListOut,
    GroupCompanyListOut,
    LegalEntityListOut,
    LegalEntityOut,
    OperatingUnitListOut,
    OperatingUnitOut,
    OrgTreeOut,
)
from orgscope.scope_engine import (
    AuthorizationDecision,
    RequestedScope,
    ScopeType,
    assert_scope_access,
    build_scope_filter,
)
from orgscope.scope_engine.types import parse_positive_int
from orgscope.security.dependencies import authorize

router = APIRouter(prefix="/org", tags=["org"])

_GROUPS_SQL = """
    SELECT id, code, name
    FROM group_companies
    WHERE tenant_id = :tenant_id
      AND {scope}
    ORDER BY id
"""

_COUNTRIES_SQL = """
    SELECT c.id, c.iso2, c.iso3, c.name, c.default_currency_code
    FROM countries c
    JOIN legal_entities le ON le.country_id = c.id
    WHERE le.tenant_id = :tenant_id
      AND {scope}
    GROUP BY c.id, c.iso2, c.iso3, c.name, c.default_currency_code
    ORDER BY c.name
"""

_LEGAL_ENTITIES_SQL = """
    SELECT id, group_company_id, country_id, code, name, functional_currency_code, status
    FROM legal_entities
    WHERE tenant_id = :tenant_id
      AND {scope}
    ORDER BY id
"""

_OPERATING_UNITS_SQL = """
    SELECT id, legal_entity_id, code, name, unit_type, status
    FROM operating_units
    WHERE tenant_id = :tenant_id
      AND {scope}
    ORDER BY id
"""

_LEGAL_ENTITY_UNITS_SQL = """
    SELECT id, legal_entity_id, code, name, unit_type, status
    FROM operating_units
    WHERE tenant_id = :tenant_id
      AND legal_entity_id = :legal_entity_id
      AND {scope}
    ORDER BY id
"""


def _scoped(sql: str, decision: AuthorizationDecision, scope_kind: str, column: str) -> tuple[str, dict]:
    params: dict = {"tenant_id": decision.tenant_id}
    return sql.format(scope=build_scope_filter(decision, scope_kind, column, params)), params


@router.get("/tree", response_model=OrgTreeOut)
async def org_tree(
    decision: AuthorizationDecision = Depends(authorize("org.tree.read")),
    query: SqlQueryRunner = Depends(get_query_runner),
) -> OrgTreeOut:
    groups, countries, entities, units = await asyncio.gather(
        query(*_scoped(_GROUPS_SQL, decision, "group", "id")),
        query(*_scoped(_COUNTRIES_SQL, decision, "legal_entity", "le.id")),
        query(*_scoped(_LEGAL_ENTITIES_SQL, decision, "legal_entity", "id")),
        query(*_scoped(_OPERATING_UNITS_SQL, decision, "operating_unit", "id")),
    )

    return OrgTreeOut(
        tenant_id=decision.tenant_id,
        groups=groups,
        countries=countries,
        legal_entities=entities,
        operating_units=units,
        rbac_source=decision.source,
        tenant_wide_scope=decision.scope_context.tenant_wide,
    )


@router.get("/group-companies", response_model=GroupCompanyListOut)
async def list_group_companies(
    decision: AuthorizationDecision = Depends(authorize("org.tree.read")),
    query: SqlQueryRunner = Depends(get_query_runner),
) -> GroupCompanyListOut:
    rows = await query(*_scoped(_GROUPS_SQL, decision, "group", "id"))
    return GroupCompanyListOut(tenant_id=decision.tenant_id, rows=rows)


@router.get("/countries", response_model=CountryListOut)
async def list_countries(
    decision: AuthorizationDecision = Depends(authorize("org.tree.read")),
    query: SqlQueryRunner = Depends(get_query_runner),
) -> CountryListOut:
    # Countries are visible through the legal entities the caller can reach.
    rows = await query(*_scoped(_COUNTRIES_SQL, decision, "legal_entity", "le.id"))
    return CountryListOut(tenant_id=decision.tenant_id, rows=rows)


@router.get("/legal-entities", response_model=LegalEntityListOut)
async def list_legal_entities(
    group_company_id: int | None = None,
    country_id: int | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    decision: AuthorizationDecision = Depends(authorize("org.tree.read")),
    db: AsyncSession = Depends(get_db),
) -> LegalEntityListOut:
    stmt = (
        select(LegalEntity)
        .where(LegalEntity.tenant_id == decision.tenant_id)
        .where(scope_clause(decision, "legal_entity", LegalEntity.id))
        .order_by(LegalEntity.id)
    )
    if group_company_id is not None:
        assert_scope_access(decision, "group", group_company_id, "group_company_id")
        stmt = stmt.where(LegalEntity.group_company_id == group_company_id)
    if country_id is not None:
        assert_scope_access(decision, "country", country_id, "country_id")
        stmt = stmt.where(LegalEntity.country_id == country_id)
    if status_filter:
        stmt = stmt.where(LegalEntity.status == status_filter.strip().upper())

    entities = (await db.scalars(stmt)).all()
    return LegalEntityListOut(
        tenant_id=decision.tenant_id,
        rows=[LegalEntityOut.model_validate(entity) for entity in entities],
    )


@router.get("/legal-entities/{legal_entity_id}", response_model=LegalEntityOut)
async def get_legal_entity(
    legal_entity_id: int,
    decision: AuthorizationDecision = Depends(authorize("org.tree.read")),
    db: AsyncSession = Depends(get_db),
) -> LegalEntity:
    assert_scope_access(decision, "legal_entity", legal_entity_id, "legal_entity_id")

    entity = (
        await db.scalars(
            select(LegalEntity).where(
                LegalEntity.id == legal_entity_id,
                LegalEntity.tenant_id == decision.tenant_id,
            )
        )
    ).first()
    if entity is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Legal entity not found")
    return entity


def _legal_entity_from_path(request: Request, tenant_id: int) -> dict:
    return {"scope_type": "LEGAL_ENTITY", "scope_id": request.path_params.get("legal_entity_id")}


@router.get("/legal-entities/{legal_entity_id}/operating-units", response_model=OperatingUnitListOut)
async def list_legal_entity_operating_units(
    legal_entity_id: int,
    decision: AuthorizationDecision = Depends(authorize("org.tree.read", resolve_scope=_legal_entity_from_path)),
    query: SqlQueryRunner = Depends(get_query_runner),
) -> OperatingUnitListOut:
    sql, params = _scoped(_LEGAL_ENTITY_UNITS_SQL, decision, "operating_unit", "id")
    params["legal_entity_id"] = legal_entity_id
    rows = await query(sql, params)
    return OperatingUnitListOut(tenant_id=decision.tenant_id, rows=rows)

@router.get("/operating-units", response_model=OperatingUnitListOut)
async def list_operating_units(
    legal_entity_id: int | None = None,
    decision: AuthorizationDecision = Depends(authorize("org.tree.read")),
    query: SqlQueryRunner = Depends(get_query_runner),
) -> OperatingUnitListOut:
    if legal_entity_id is None:
        rows = await query(*_scoped(_OPERATING_UNITS_SQL, decision, "operating_unit", "id"))
        return OperatingUnitListOut(tenant_id=decision.tenant_id, rows=rows)

    assert_scope_access(decision, "legal_entity", legal_entity_id, "legal_entity_id")
    sql, params = _scoped(_LEGAL_ENTITY_UNITS_SQL, decision, "operating_unit", "id")
    params["legal_entity_id"] = legal_entity_id
    rows = await query(sql, params)
    return OperatingUnitListOut(tenant_id=decision.tenant_id, rows=rows)


def _operating_unit_from_path(request: Request, tenant_id: int) -> RequestedScope | None:
    unit_id = parse_positive_int(request.path_params.get("operating_unit_id"))
    if not unit_id:
        return None
    return RequestedScope(scope_type=ScopeType.OPERATING_UNIT, scope_id=unit_id)


@router.get("/operating-units/{operating_unit_id}", response_model=OperatingUnitOut)
async def get_operating_unit(
    operating_unit_id: int,
    decision: AuthorizationDecision = Depends(authorize("org.tree.read", resolve_scope=_operating_unit_from_path)),
    query: SqlQueryRunner = Depends(get_query_runner),
) -> dict:
    rows = await query(
        """
        SELECT id, legal_entity_id, code, name, unit_type, status
        FROM operating_units
        WHERE id = :id AND tenant_id = :tenant_id
        """,
        {"id": operating_unit_id, "tenant_id": decision.tenant_id},
    )
    if not rows:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Operating unit not found")
    return rows[0]
