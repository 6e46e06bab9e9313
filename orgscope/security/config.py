from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


class AuthConfig(BaseModel):
    authorization_header: str = "Authorization"
    bearer_prefix: str = "Bearer"
    user_id_claims: list[str] = Field(default_factory=lambda: ["userId", "sub"])


class TenantConfig(BaseModel):
    """Where the tenant id is read from, in order: header, query parameter, token claim."""

    header: str = "X-Tenant-Id"
    query_param: str = "tenantId"
    token_claim: str = "tenantId"


class DataScopesConfig(BaseModel):
    # Turn off when the data_scopes table is not part of the deployed schema.
    enabled: bool = True


class RoleDefinition(BaseModel):
    code: str
    name: str
    permissions: list[str] = Field(default_factory=list)


class SecurityConfigModel(BaseModel):
    auth: AuthConfig = Field(default_factory=AuthConfig)
    tenant: TenantConfig = Field(default_factory=TenantConfig)
    data_scopes: DataScopesConfig = Field(default_factory=DataScopesConfig)
    permissions: dict[str, str] = Field(default_factory=dict)
    roles: list[RoleDefinition] = Field(default_factory=list)


class SecurityConfig:
    """
    Runtime helper around the validated config.
    """

    def __init__(self, model: SecurityConfigModel):
        self.model = model
        self._roles_by_code = {role.code: role for role in model.roles}

        unknown: set[str] = set()
        for role in model.roles:
            unknown.update(p for p in role.permissions if p not in model.permissions)
        if unknown:
            raise ValueError(f"Roles reference unknown permissions: {sorted(unknown)}")

    @property
    def auth(self) -> AuthConfig:
        return self.model.auth

    @property
    def tenant(self) -> TenantConfig:
        return self.model.tenant

    @property
    def data_scopes_enabled(self) -> bool:
        return self.model.data_scopes.enabled

    def role(self, code: str) -> RoleDefinition | None:
        return self._roles_by_code.get(code)

    def role_permissions(self, code: str) -> frozenset[str]:
        role = self.role(code)
        if role is None:
            return frozenset()
        return frozenset(role.permissions)


def load_security_config(path: Path) -> SecurityConfig:
    raw_text = path.read_text(encoding="utf-8")
    raw: dict[str, Any] = yaml.safe_load(raw_text) or {}

    if "security" not in raw:
        raise ValueError(f"Missing top-level 'security' key in config: {path}")

    model = SecurityConfigModel.model_validate(raw["security"])
    return SecurityConfig(model)
