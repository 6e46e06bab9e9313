from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from orgscope.db.base import Base
from orgscope.models.org import Country, GroupCompany, LegalEntity, OperatingUnit, Tenant
from orgscope.models.security import DataScope, Permission, Role, User, UserRoleScope
from orgscope.security.config import SecurityConfig


async def init_db(engine: AsyncEngine, config: SecurityConfig, *, seed: bool = True) -> None:
    """
    Create tables and (optionally) seed demo data.

    The demo tree uses fixed ids so the grants below are easy to reason about:

        tenant 1 (DEFAULT)
          group 1 NA Holdings:  legal entity 1 (US) -> units 1, 2
                                legal entity 2 (TR) -> unit 3
          group 2 EU Holdings:  legal entity 3 (DE) -> unit 4
        tenant 2 (OTHER)
          group 3 Other Group:  legal entity 4 (US) -> unit 5
    """

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if not seed:
        return

    session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with session_factory() as db:
        if await _has_seed_data(db):
            return
        await _seed(db, config)


async def _has_seed_data(db: AsyncSession) -> bool:
    return (await db.execute(select(Tenant.id).limit(1))).first() is not None


async def _seed(db: AsyncSession, config: SecurityConfig) -> None:
    db.add_all(
        [
            Tenant(id=1, code="DEFAULT", name="Default Tenant"),
            Tenant(id=2, code="OTHER", name="Other Tenant"),
            Country(id=1, iso2="US", iso3="USA", name="United States", default_currency_code="USD"),
            Country(id=2, iso2="TR", iso3="TUR", name="Turkey", default_currency_code="TRY"),
            Country(id=3, iso2="DE", iso3="DEU", name="Germany", default_currency_code="EUR"),
        ]
    )
    await db.flush()

    db.add_all(
        [
            GroupCompany(id=1, tenant_id=1, code="NA", name="NA Holdings"),
            GroupCompany(id=2, tenant_id=1, code="EU", name="EU Holdings"),
            GroupCompany(id=3, tenant_id=2, code="OG", name="Other Group"),
        ]
    )
    await db.flush()

    db.add_all(
        [
            LegalEntity(id=1, tenant_id=1, group_company_id=1, country_id=1, code="US01", name="Acme US Inc.",
                        functional_currency_code="USD"),
            LegalEntity(id=2, tenant_id=1, group_company_id=1, country_id=2, code="TR01", name="Acme Turkiye A.S.",
                        functional_currency_code="TRY"),
            LegalEntity(id=3, tenant_id=1, group_company_id=2, country_id=3, code="DE01", name="Acme GmbH",
                        functional_currency_code="EUR"),
            LegalEntity(id=4, tenant_id=2, group_company_id=3, country_id=1, code="US01", name="Other US LLC",
                        functional_currency_code="USD"),
        ]
    )
    await db.flush()

    db.add_all(
        [
            OperatingUnit(id=1, tenant_id=1, legal_entity_id=1, code="NYC", name="New York"),
            OperatingUnit(id=2, tenant_id=1, legal_entity_id=1, code="SFO", name="San Francisco"),
            OperatingUnit(id=3, tenant_id=1, legal_entity_id=2, code="IST", name="Istanbul"),
            OperatingUnit(id=4, tenant_id=1, legal_entity_id=3, code="BER", name="Berlin"),
            OperatingUnit(id=5, tenant_id=2, legal_entity_id=4, code="CHI", name="Chicago"),
        ]
    )
    await db.flush()

    # Permission catalog + system roles per tenant, from security config.
    permissions = {code: Permission(code=code, description=desc) for code, desc in config.model.permissions.items()}
    db.add_all(permissions.values())
    await db.flush()

    roles: dict[tuple[int, str], Role] = {}
    for tenant_id in (1, 2):
        for definition in config.model.roles:
            role = Role(tenant_id=tenant_id, code=definition.code, name=definition.name, is_system=True)
            role.permissions.extend(permissions[code] for code in sorted(config.role_permissions(definition.code)))
            roles[(tenant_id, definition.code)] = role
    db.add_all(roles.values())
    await db.flush()

    admin = User(id=1, email="admin@example.com", name="Tenant Admin")
    controller = User(id=2, email="controller@example.com", name="Group Controller")
    accountant = User(id=3, email="accountant@example.com", name="Entity Accountant")
    blocked = User(id=4, email="blocked@example.com", name="Blocked Auditor")
    outsider = User(id=5, email="outsider@example.com", name="No Roles")
    db.add_all([admin, controller, accountant, blocked, outsider])
    await db.flush()

    def grant(user: User, role_code: str, effect: str, scope_type: str, scope_id: int, tenant_id: int = 1) -> UserRoleScope:
        return UserRoleScope(
            tenant_id=tenant_id,
            user_id=user.id,
            role_id=roles[(tenant_id, role_code)].id,
            effect=effect,
            scope_type=scope_type,
            scope_id=scope_id,
        )

    db.add_all(
        [
            grant(admin, "TenantAdmin", "ALLOW", "TENANT", 1),
            # Whole NA group except the Turkish entity.
            grant(controller, "GroupController", "ALLOW", "GROUP", 1),
            grant(controller, "GroupController", "DENY", "LEGAL_ENTITY", 2),
            # Role covers DE01; data visibility narrowed to one branch below.
            grant(accountant, "EntityAccountant", "ALLOW", "LEGAL_ENTITY", 3),
            # Tenant-level deny overrides the tenant-level allow.
            grant(blocked, "AuditorReadOnly", "ALLOW", "TENANT", 1),
            grant(blocked, "AuditorReadOnly", "DENY", "TENANT", 1),
        ]
    )
    db.add(DataScope(tenant_id=1, user_id=accountant.id, effect="ALLOW", scope_type="OPERATING_UNIT", scope_id=4))

    await db.commit()
