from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    is_active: bool
    created_at: datetime


class RequestedScopeOut(BaseModel):
    scope_type: str
    scope_id: int


class ScopeContextOut(BaseModel):
    tenant_id: int
    tenant_wide: bool
    source_rows: int
    groups: list[int]
    countries: list[int]
    legal_entities: list[int]
    operating_units: list[int]


class AuthorizationDecisionOut(BaseModel):
    permission_code: str
    tenant_id: int
    requested_scope: RequestedScopeOut | None
    source: str
    permission_scope_context: ScopeContextOut
    scope_context: ScopeContextOut
