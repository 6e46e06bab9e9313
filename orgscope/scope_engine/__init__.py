"""
Hierarchical scope authorization engine.

This package has no dependency on other orgscope packages (db, security, etc.)
and no web framework dependency. Reads go through a `QueryRunner`; see
`orgscope.db.query.SqlQueryRunner` for the SQLAlchemy implementation and
`orgscope.security.dependencies.authorize` for the FastAPI integration.
"""

from .context import ScopeContext, build_scope_context
from .decision import AuthorizationDecision
from .errors import AuthorizationError, BadRequestError, ErrorKind, ForbiddenError, MissingTableError
from .evaluator import assert_scope_access, get_scope_context, has_scope_access, is_scope_allowed, normalize_scope
from .filters import MATCH_ALL, MATCH_NONE, build_scope_filter
from .hierarchy import OrgHierarchy, build_hierarchy, load_hierarchy
from .pipeline import ScopeResolver, authorize_request
from .rows import ParsedScopeRows, ScopeGrantSet, parse_scope_rows
from .types import Effect, QueryRunner, RequestedScope, ScopeRow, ScopeType

__all__ = [
    "AuthorizationDecision",
    "AuthorizationError",
    "BadRequestError",
    "Effect",
    "ErrorKind",
    "ForbiddenError",
    "MATCH_ALL",
    "MATCH_NONE",
    "MissingTableError",
    "OrgHierarchy",
    "ParsedScopeRows",
    "QueryRunner",
    "RequestedScope",
    "ScopeContext",
    "ScopeGrantSet",
    "ScopeResolver",
    "ScopeRow",
    "ScopeType",
    "assert_scope_access",
    "authorize_request",
    "build_hierarchy",
    "build_scope_context",
    "build_scope_filter",
    "get_scope_context",
    "has_scope_access",
    "is_scope_allowed",
    "load_hierarchy",
    "normalize_scope",
    "parse_scope_rows",
]
