"""Point checks against a scope context."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Union

from .context import ScopeContext
from .decision import AuthorizationDecision
from .errors import BadRequestError, ForbiddenError
from .types import (
    SCOPE_KIND_TO_ATTR,
    SCOPE_TYPE_TO_ATTR,
    RequestedScope,
    ScopeType,
    VALID_SCOPE_TYPES,
    parse_positive_int,
)

ScopeTarget = Union[AuthorizationDecision, ScopeContext, None]


def get_scope_context(target: ScopeTarget) -> ScopeContext | None:
    """Return the effective (data-scope) context of a decision, or the context itself."""

    if isinstance(target, AuthorizationDecision):
        return target.scope_context
    return target


def scope_attr_for_kind(scope_kind: str | None) -> str | None:
    return SCOPE_KIND_TO_ATTR.get(str(scope_kind or "").lower())


def is_scope_allowed(context: ScopeContext, requested_scope: RequestedScope | None) -> bool:
    if requested_scope is None:
        return context.tenant_wide or not context.is_empty()

    if requested_scope.scope_type == ScopeType.TENANT:
        return context.tenant_wide

    attr = SCOPE_TYPE_TO_ATTR.get(requested_scope.scope_type)
    if attr is None:
        return False
    return requested_scope.scope_id in getattr(context, attr)


def has_scope_access(target: ScopeTarget, scope_kind: str, scope_id: Any) -> bool:
    context = get_scope_context(target)
    if context is None:
        return False
    if context.tenant_wide:
        return True

    attr = scope_attr_for_kind(scope_kind)
    parsed_id = parse_positive_int(scope_id)
    if attr is None or not parsed_id:
        return False

    return parsed_id in getattr(context, attr)


def assert_scope_access(target: ScopeTarget, scope_kind: str, scope_id: Any, label: str = "scope") -> None:
    if not has_scope_access(target, scope_kind, scope_id):
        raise ForbiddenError(f"Access denied for {label}")


def normalize_scope(raw: RequestedScope | Mapping[str, Any] | None, tenant_id: int) -> RequestedScope | None:
    """
    Validate a scope produced by a route's resolver.

    Accepts a `RequestedScope` or a mapping with `scope_type` / `scope_id`
    (camelCase keys are accepted too).
    """

    if raw is None:
        return None

    if isinstance(raw, RequestedScope):
        raw_type: Any = raw.scope_type.value
        raw_id: Any = raw.scope_id
    elif isinstance(raw, Mapping):
        raw_type = raw.get("scope_type", raw.get("scopeType"))
        raw_id = raw.get("scope_id", raw.get("scopeId"))
    else:
        raise BadRequestError(f"Invalid RBAC scope: expected a mapping, got {type(raw).__name__}")

    if isinstance(raw_type, ScopeType):
        raw_type = raw_type.value
    scope_type = str(raw_type or "").upper()
    scope_id = parse_positive_int(raw_id)

    if scope_type not in VALID_SCOPE_TYPES:
        raise BadRequestError(f"Invalid RBAC scope_type: {scope_type}")
    if not scope_id:
        raise BadRequestError("RBAC scope_id must be a positive integer")
    if scope_type == ScopeType.TENANT.value and scope_id != tenant_id:
        raise ForbiddenError("Tenant scope does not match authenticated tenant")

    return RequestedScope(scope_type=ScopeType(scope_type), scope_id=scope_id)
