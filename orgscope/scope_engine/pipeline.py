"""
Authorization pipeline.

Single pass per request, no retries:

    user -> tenant -> permission rows -> hierarchy -> permission context
         -> requested scope -> permission check
         -> data-scope rows (or permission rows) -> data context -> data check
         -> AuthorizationDecision

Any failure raises an `AuthorizationError` and stops the remaining steps.
All reads go through the injected `QueryRunner`; nothing is written.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any

from .context import build_scope_context
from .decision import AuthorizationDecision
from .errors import BadRequestError, ForbiddenError, MissingTableError
from .evaluator import is_scope_allowed, normalize_scope
from .hierarchy import load_hierarchy
from .types import QueryRunner, parse_positive_int

logger = logging.getLogger(__name__)

# (request, tenant_id) -> RequestedScope | mapping | None, optionally awaitable.
ScopeResolver = Callable[[Any, int], Any]

PERMISSION_SCOPES_SQL = """
    SELECT urs.effect, urs.scope_type, urs.scope_id
    FROM user_role_scopes urs
    JOIN roles r ON r.id = urs.role_id
    JOIN role_permissions rp ON rp.role_id = r.id
    JOIN permissions p ON p.id = rp.permission_id
    WHERE urs.user_id = :user_id
      AND urs.tenant_id = :tenant_id
      AND p.code = :permission_code
    ORDER BY urs.id
"""

DATA_SCOPES_SQL = """
    SELECT effect, scope_type, scope_id
    FROM data_scopes
    WHERE tenant_id = :tenant_id
      AND user_id = :user_id
    ORDER BY id
"""


def normalize_permission_code(permission_code: str | None) -> str:
    normalized = str(permission_code or "").strip()
    if not normalized:
        raise ValueError("permission_code is required")
    return normalized


async def fetch_permission_rows(query: QueryRunner, user_id: int, tenant_id: int, permission_code: str) -> list[dict[str, Any]]:
    return await query(
        PERMISSION_SCOPES_SQL,
        {"user_id": user_id, "tenant_id": tenant_id, "permission_code": permission_code},
    )


async def fetch_data_scope_rows(query: QueryRunner, user_id: int, tenant_id: int) -> list[dict[str, Any]]:
    """
    Load user-specific data-scope overrides.

    A missing `data_scopes` table (schema not migrated yet) yields no rows;
    any other persistence error propagates.
    """

    try:
        return await query(DATA_SCOPES_SQL, {"tenant_id": tenant_id, "user_id": user_id})
    except MissingTableError:
        logger.warning("data_scopes table missing; falling back to permission scopes tenant=%s", tenant_id)
        return []


async def _resolve_requested_scope(resolve_scope: ScopeResolver | None, request: Any, tenant_id: int) -> Any:
    if resolve_scope is None:
        return None
    raw = resolve_scope(request, tenant_id)
    if inspect.isawaitable(raw):
        raw = await raw
    return raw


async def authorize_request(
    query: QueryRunner,
    *,
    permission_code: str,
    user_id: Any,
    tenant_id: Any,
    resolve_scope: ScopeResolver | None = None,
    request: Any = None,
    data_scopes_enabled: bool = True,
) -> AuthorizationDecision:
    code = normalize_permission_code(permission_code)

    parsed_user_id = parse_positive_int(user_id)
    if not parsed_user_id:
        raise BadRequestError("Authenticated user is required")

    parsed_tenant_id = parse_positive_int(tenant_id)
    if not parsed_tenant_id:
        raise BadRequestError("tenantId is required")

    permission_rows = await fetch_permission_rows(query, parsed_user_id, parsed_tenant_id, code)
    if not permission_rows:
        logger.info(
            "Authorization denied (no grants) user=%s tenant=%s permission=%s",
            parsed_user_id,
            parsed_tenant_id,
            code,
        )
        raise ForbiddenError(f"Missing permission: {code}")

    hierarchy = await load_hierarchy(query, parsed_tenant_id)
    permission_context = build_scope_context(parsed_tenant_id, permission_rows, hierarchy)

    raw_scope = await _resolve_requested_scope(resolve_scope, request, parsed_tenant_id)
    requested_scope = normalize_scope(raw_scope, parsed_tenant_id)

    if not is_scope_allowed(permission_context, requested_scope):
        logger.info(
            "Authorization denied (permission scope) user=%s tenant=%s permission=%s scope=%s",
            parsed_user_id,
            parsed_tenant_id,
            code,
            requested_scope,
        )
        raise ForbiddenError(f"Missing permission: {code}")

    data_rows: list[dict[str, Any]] = []
    if data_scopes_enabled:
        data_rows = await fetch_data_scope_rows(query, parsed_user_id, parsed_tenant_id)
    source = "data_scopes" if data_rows else "permission_scopes"
    scope_context = build_scope_context(parsed_tenant_id, data_rows or permission_rows, hierarchy)

    if not is_scope_allowed(scope_context, requested_scope):
        logger.info(
            "Authorization denied (data scope) user=%s tenant=%s permission=%s scope=%s source=%s",
            parsed_user_id,
            parsed_tenant_id,
            code,
            requested_scope,
            source,
        )
        raise ForbiddenError(f"Data scope denied: {code}")

    logger.debug(
        "Authorization granted user=%s tenant=%s permission=%s source=%s tenant_wide=%s",
        parsed_user_id,
        parsed_tenant_id,
        code,
        source,
        scope_context.tenant_wide,
    )

    return AuthorizationDecision(
        permission_code=code,
        tenant_id=parsed_tenant_id,
        requested_scope=requested_scope,
        source=source,
        permission_scope_context=permission_context,
        scope_context=scope_context,
    )
