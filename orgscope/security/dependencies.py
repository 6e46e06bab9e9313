from __future__ import annotations

from collections.abc import Awaitable, Callable

from fastapi import Depends, Request

from orgscope.db.query import SqlQueryRunner
from orgscope.db.session import get_query_runner
from orgscope.scope_engine.decision import AuthorizationDecision
from orgscope.scope_engine.pipeline import ScopeResolver, authorize_request, normalize_permission_code
from orgscope.security.auth import decode_identity, extract_bearer_token, resolve_tenant_id
from orgscope.security.config import SecurityConfig
from orgscope.security.context import Identity
from orgscope.settings import Settings, get_settings


def get_security_config(request: Request) -> SecurityConfig:
    config = getattr(request.app.state, "security_config", None)
    if config is None:
        raise RuntimeError("Security config not loaded. Did app startup run?")
    return config


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_identity(
    request: Request,
    config: SecurityConfig = Depends(get_security_config),
    settings: Settings = Depends(get_app_settings),
) -> Identity:
    token = extract_bearer_token(request, config)
    return decode_identity(token, settings, config)


def get_tenant_id(
    request: Request,
    identity: Identity = Depends(get_identity),
    config: SecurityConfig = Depends(get_security_config),
) -> int | None:
    return resolve_tenant_id(request, identity, config)


def authorize(
    permission_code: str,
    *,
    resolve_scope: ScopeResolver | None = None,
) -> Callable[..., Awaitable[AuthorizationDecision]]:
    """
    Build a route dependency that runs the authorization pipeline.

    Usage:
        @router.get("/org/tree")
        async def tree(decision: AuthorizationDecision = Depends(authorize("org.tree.read"))):
            ...

    `resolve_scope(request, tenant_id)` may be sync or async and returns a
    `RequestedScope`, a mapping with `scope_type` / `scope_id`, or None.
    Failures raise `AuthorizationError`, converted to 400 / 403 by the app's handler.
    """

    code = normalize_permission_code(permission_code)

    async def dependency(
        request: Request,
        identity: Identity = Depends(get_identity),
        tenant_id: int | None = Depends(get_tenant_id),
        config: SecurityConfig = Depends(get_security_config),
        query: SqlQueryRunner = Depends(get_query_runner),
    ) -> AuthorizationDecision:
        return await authorize_request(
            query,
            permission_code=code,
            user_id=identity.user_id,
            tenant_id=tenant_id,
            resolve_scope=resolve_scope,
            request=request,
            data_scopes_enabled=config.data_scopes_enabled,
        )

    dependency.__name__ = f"authorize_{code.replace('.', '_')}"
    return dependency
