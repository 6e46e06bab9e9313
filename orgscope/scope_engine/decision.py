from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .context import ScopeContext
from .types import RequestedScope

DecisionSource = Literal["data_scopes", "permission_scopes"]


@dataclass(frozen=True)
class AuthorizationDecision:
    """
    Result of a successful authorization pipeline run.

    Returned to route handlers explicitly (as a dependency value) so they can
    run point checks or render list filters against `scope_context`.
    """

    permission_code: str
    tenant_id: int
    requested_scope: RequestedScope | None
    source: DecisionSource
    permission_scope_context: ScopeContext
    scope_context: ScopeContext

    def to_dict(self) -> dict[str, object]:
        return {
            "permission_code": self.permission_code,
            "tenant_id": self.tenant_id,
            "requested_scope": self.requested_scope.to_dict() if self.requested_scope else None,
            "source": self.source,
            "permission_scope_context": self.permission_scope_context.to_dict(),
            "scope_context": self.scope_context.to_dict(),
        }
