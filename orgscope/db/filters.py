from __future__ import annotations

from typing import Any

from sqlalchemy import ColumnElement, false, true

from orgscope.scope_engine.errors import BadRequestError
from orgscope.scope_engine.evaluator import ScopeTarget, get_scope_context, scope_attr_for_kind


def scope_clause(target: ScopeTarget, scope_kind: str, column: Any) -> ColumnElement[bool]:
    """
    ORM counterpart of `build_scope_filter`.

    Usage:
        stmt = select(LegalEntity).where(scope_clause(decision, "legal_entity", LegalEntity.id))

    Missing context or an empty id set matches nothing; a tenant-wide context matches everything.
    """

    context = get_scope_context(target)
    if context is None:
        return false()
    if context.tenant_wide:
        return true()

    attr = scope_attr_for_kind(scope_kind)
    if attr is None:
        raise BadRequestError(f"Unsupported scope kind: {scope_kind}")

    ids = sorted(getattr(context, attr))
    if not ids:
        return false()
    return column.in_(ids)
