from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from orgscope.db.query import SqlQueryRunner
from orgscope.db.session import get_db, get_query_runner
from orgscope.models.security import User
from orgscope.schemas.security import AuthorizationDecisionOut, UserOut
from orgscope.scope_engine import authorize_request
from orgscope.security.auth import load_user
from orgscope.security.config import SecurityConfig
from orgscope.security.context import Identity
from orgscope.security.dependencies import get_identity, get_security_config, get_tenant_id

router = APIRouter(prefix="/me", tags=["me"])


@router.get("", response_model=UserOut)
async def me(identity: Identity = Depends(get_identity), db: AsyncSession = Depends(get_db)) -> User:
    return await load_user(db, identity.user_id or 0)


@router.get("/access/{permission_code}", response_model=AuthorizationDecisionOut)
async def my_access(
    permission_code: str,
    identity: Identity = Depends(get_identity),
    tenant_id: int | None = Depends(get_tenant_id),
    config: SecurityConfig = Depends(get_security_config),
    query: SqlQueryRunner = Depends(get_query_runner),
) -> dict:
    """Effective permission / data scope for the caller, for a permission chosen at request time."""

    decision = await authorize_request(
        query,
        permission_code=permission_code,
        user_id=identity.user_id,
        tenant_id=tenant_id,
        data_scopes_enabled=config.data_scopes_enabled,
    )
    return decision.to_dict()
