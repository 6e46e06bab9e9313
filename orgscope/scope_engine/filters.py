"""Render a scope context as a SQL predicate for `text()` queries."""

from __future__ import annotations

from typing import Any

from .errors import BadRequestError
from .evaluator import ScopeTarget, get_scope_context, scope_attr_for_kind

MATCH_ALL = "1=1"
MATCH_NONE = "1=0"


def _next_param_name(params: dict[str, Any]) -> str:
    index = len(params)
    while f"scope_{index}" in params:
        index += 1
    return f"scope_{index}"


def build_scope_filter(target: ScopeTarget, scope_kind: str, column_name: str, params: dict[str, Any]) -> str:
    """
    Return a WHERE fragment restricting `column_name` to the reachable ids.

    One named bind parameter per id is added to `params` (ascending id order).
    The fragment is meant to be embedded by the caller; nothing is executed here.

        params = {"tenant_id": 1}
        where = build_scope_filter(decision, "legal_entity", "le.id", params)
        sql = f"SELECT ... FROM legal_entities le WHERE le.tenant_id = :tenant_id AND {where}"
    """

    context = get_scope_context(target)
    if context is None:
        return MATCH_NONE
    if context.tenant_wide:
        return MATCH_ALL

    attr = scope_attr_for_kind(scope_kind)
    if attr is None:
        raise BadRequestError(f"Unsupported scope kind: {scope_kind}")

    ids = sorted(getattr(context, attr))
    if not ids:
        return MATCH_NONE

    placeholders: list[str] = []
    for scope_id in ids:
        name = _next_param_name(params)
        params[name] = scope_id
        placeholders.append(f":{name}")

    return f"{column_name} IN ({', '.join(placeholders)})"
